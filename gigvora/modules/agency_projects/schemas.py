"""Agency project Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AgencyProjectCreate(BaseModel):
    title: str
    description: str | None = None
    client_name: str | None = None
    status: str | None = None  # planning, active, at_risk, on_hold, completed, cancelled
    budget_amount: Decimal | None = None
    budget_spent: Decimal | None = None
    currency_code: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    auto_match_enabled: bool | None = None
    skills: list[str] | None = None
    metadata: dict[str, Any] | None = None


class AgencyProjectUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    client_name: str | None = None
    status: str | None = None
    budget_amount: Decimal | None = None
    budget_spent: Decimal | None = None
    currency_code: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    auto_match_enabled: bool | None = None
    skills: list[str] | None = None
    metadata: dict[str, Any] | None = None


class AutoMatchCreate(BaseModel):
    freelancer_name: str
    freelancer_id: uuid.UUID | None = None
    freelancer_email: str | None = None
    score: Decimal | None = None
    status: str | None = None
    notes: str | None = None
    metadata: dict[str, Any] | None = None


class AutoMatchUpdate(BaseModel):
    status: str | None = None  # pending, accepted, rejected
    score: Decimal | None = None
    notes: str | None = None
    metadata: dict[str, Any] | None = None


class AutoMatchResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    project_id: uuid.UUID
    freelancer_name: str
    score: float
    status: str
    responded_at: datetime | None = None


class AgencyProjectResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    workspace_id: uuid.UUID
    title: str
    status: str
    budget_amount: float | None = None
    budget_spent: float = 0
    currency_code: str
    start_date: date | None = None
    due_date: date | None = None
    matches: list[AutoMatchResponse] = Field(default_factory=list)


class AgencyProjectSummary(BaseModel):
    project_count: int
    by_status: dict[str, int]
    total_budget: float
    total_spent: float
    matches: dict[str, int]


class AgencyProjectListResponse(BaseModel):
    projects: list[AgencyProjectResponse]
    summary: AgencyProjectSummary
