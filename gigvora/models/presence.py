"""Presence, focus sessions and the presence timeline."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from gigvora.models.base import BaseModel, TimestampedModel


class PresenceStatus(BaseModel):
    """Single row per user holding their current availability."""

    __tablename__ = "presence_statuses"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    availability: Mapped[str] = mapped_column(
        String(20), nullable=False, default="available", server_default="available"
    )  # available, away, busy, focus, in_meeting, offline
    message: Mapped[str | None] = mapped_column(String(280))
    online: Mapped[bool] = mapped_column(default=True, server_default="true", nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_calendar_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)


class FocusSession(BaseModel):
    __tablename__ = "focus_sessions"
    __table_args__ = (
        Index("ix_focus_sessions_user_started", "user_id", "started_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    label: Mapped[str | None] = mapped_column(String(160))
    planned_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class PresenceEvent(TimestampedModel):
    """Append-only presence timeline entry."""

    __tablename__ = "presence_events"
    __table_args__ = (
        Index("ix_presence_events_user_created", "user_id", "created_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(30), nullable=False)
    # status_changed, focus_started, focus_ended, calendar_synced
    availability: Mapped[str | None] = mapped_column(String(20))
    summary: Mapped[str | None] = mapped_column(String(280))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)
