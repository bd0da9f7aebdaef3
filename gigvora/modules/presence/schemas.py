"""Presence Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PresenceUpdate(BaseModel):
    availability: str
    message: str | None = None
    expires_at: datetime | None = None


class FocusSessionStart(BaseModel):
    duration_minutes: int
    label: str | None = None


class PresenceResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: uuid.UUID
    availability: str
    message: str | None = None
    online: bool = True
    expires_at: datetime | None = None
    last_calendar_sync_at: datetime | None = None


class FocusSessionResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    user_id: uuid.UUID
    label: str | None = None
    planned_minutes: int
    started_at: datetime
    ends_at: datetime
    ended_at: datetime | None = None


class PresenceSnapshotResponse(BaseModel):
    presence: PresenceResponse
    active_focus_session: FocusSessionResponse | None = None
    timeline: list[dict[str, Any]] = Field(default_factory=list)


class CalendarSyncResponse(BaseModel):
    presence: PresenceResponse
    event_count: int
    in_progress_events: list[dict[str, Any]] = Field(default_factory=list)
