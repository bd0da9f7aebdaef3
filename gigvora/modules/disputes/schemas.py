"""Dispute Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EvidencePayload(BaseModel):
    file_name: str | None = None
    content_type: str | None = None
    content: str | None = None  # base64


class DisputeCreate(BaseModel):
    escrow_transaction_id: uuid.UUID | None = None
    reason_code: str | None = None
    summary: str | None = None
    priority: str | None = None  # low, medium, high, urgent
    customer_deadline_at: datetime | None = None
    provider_deadline_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class DisputeEventCreate(BaseModel):
    notes: str | None = None
    action_type: str | None = None
    stage: str | None = None
    status: str | None = None
    customer_deadline_at: datetime | None = None
    provider_deadline_at: datetime | None = None
    resolution_notes: str | None = None
    evidence: EvidencePayload | None = None


class DisputeSummary(BaseModel):
    total: int
    open_count: int
    awaiting_customer_action: int
    escalated_count: int
    last_updated_at: datetime | None = None
    upcoming_deadlines: list[dict[str, Any]] = Field(default_factory=list)
    resolution_rate: float | None = None
    average_first_response_minutes: float | None = None
    auto_escalation_rate: float | None = None
    sla_breaches: int = 0
    trust_score: int | None = None
    open_exposure: dict[str, Any] | None = None
    risk_alerts: list[dict[str, Any]] = Field(default_factory=list)
    next_sla_review_at: datetime | None = None


class DisputeResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    escrow_transaction_id: uuid.UUID
    opened_by_id: uuid.UUID
    stage: str
    status: str
    priority: str
    reason_code: str
    summary: str
    customer_deadline_at: datetime | None = None
    provider_deadline_at: datetime | None = None
    resolved_at: datetime | None = None
    transaction: dict[str, Any] | None = None
    events: list[dict[str, Any]] = Field(default_factory=list)
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    metrics: dict[str, int]
    permissions: dict[str, bool]


class DisputeListResponse(BaseModel):
    summary: DisputeSummary
    disputes: list[DisputeResponse]
    eligible_transactions: list[dict[str, Any]]
    metadata: dict[str, Any]
    permissions: dict[str, bool]


class DisputeOverviewResponse(BaseModel):
    summary: DisputeSummary
    metadata: dict[str, Any]
    permissions: dict[str, bool]
