"""Compliance locker Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VersionInput(BaseModel):
    file_key: str
    file_name: str
    mime_type: str | None = None
    file_size: int | None = None
    sha256: str | None = None
    change_summary: str | None = None
    signed_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class ObligationInput(BaseModel):
    description: str
    clause_reference: str | None = None
    status: str | None = None  # open, in_progress, overdue, satisfied, waived
    due_at: datetime | None = None
    recurring_interval: str | None = None
    assignee_id: uuid.UUID | None = None
    priority: str | None = None
    metadata: dict[str, Any] | None = None


class ReminderInput(BaseModel):
    reminder_type: str
    obligation_id: uuid.UUID | None = None
    clause_reference: str | None = None
    due_at: datetime | None = None
    status: str | None = None
    channel: str | None = None
    metadata: dict[str, Any] | None = None


class ComplianceDocumentCreate(BaseModel):
    title: str
    storage_path: str
    workspace_id: uuid.UUID | None = None
    document_type: str | None = None
    status: str | None = None
    storage_provider: str | None = None
    storage_region: str | None = None
    counterparty_name: str | None = None
    counterparty_email: str | None = None
    counterparty_company: str | None = None
    jurisdiction: str | None = None
    governing_law: str | None = None
    effective_date: datetime | None = None
    expiry_date: datetime | None = None
    renewal_terms: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    version: VersionInput | None = None
    obligations: list[ObligationInput] = Field(default_factory=list)
    reminders: list[ReminderInput] = Field(default_factory=list)


class DocumentVersionCreate(VersionInput):
    status: str | None = None
    effective_date: datetime | None = None
    expiry_date: datetime | None = None
    renewal_terms: str | None = None
    document_metadata: dict[str, Any] | None = None


class ReminderUpdate(BaseModel):
    status: str = "acknowledged"  # scheduled, sent, acknowledged, dismissed, cancelled


class ComplianceDocumentResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    document_type: str
    status: str
    storage_path: str
    latest_version_id: uuid.UUID | None = None
    tags: list[str] = Field(default_factory=list)
    versions: list[dict[str, Any]] = Field(default_factory=list)
    obligations: list[dict[str, Any]] = Field(default_factory=list)
    reminders: list[dict[str, Any]] = Field(default_factory=list)


class DocumentVersionResponse(BaseModel):
    document: dict[str, Any]
    version: dict[str, Any]


class ComplianceLockerResponse(BaseModel):
    owner_id: uuid.UUID
    documents: list[ComplianceDocumentResponse]
    summary: dict[str, Any]
    audit_log: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any]
