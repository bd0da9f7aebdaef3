"""Compliance locker: contracts, versions, obligations and reminders."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gigvora.models.base import BaseModel


class ComplianceDocument(BaseModel):
    __tablename__ = "compliance_documents"
    __table_args__ = (
        Index("ix_compliance_documents_owner_status", "owner_id", "status"),
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workspaces.id", ondelete="SET NULL")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    document_type: Mapped[str] = mapped_column(
        String(40), nullable=False, default="contract", server_default="contract"
    )  # contract, nda, msa, sow, policy, certificate
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="awaiting_signature", server_default="awaiting_signature"
    )  # draft, awaiting_signature, active, expired, archived
    storage_provider: Mapped[str] = mapped_column(String(20), nullable=False, server_default="r2")
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)
    storage_region: Mapped[str | None] = mapped_column(String(40))
    counterparty_name: Mapped[str | None] = mapped_column(String(180))
    counterparty_email: Mapped[str | None] = mapped_column(String(320))
    counterparty_company: Mapped[str | None] = mapped_column(String(180))
    jurisdiction: Mapped[str | None] = mapped_column(String(80))
    governing_law: Mapped[str | None] = mapped_column(String(120))
    effective_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    renewal_terms: Mapped[str | None] = mapped_column(String(255))
    tags: Mapped[list[str] | None] = mapped_column(JSONB)
    latest_version_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    versions: Mapped[list[ComplianceDocumentVersion]] = relationship(
        back_populates="document", order_by="ComplianceDocumentVersion.version_number.desc()"
    )
    obligations: Mapped[list[ComplianceObligation]] = relationship(back_populates="document")
    reminders: Mapped[list[ComplianceReminder]] = relationship(back_populates="document")


class ComplianceDocumentVersion(BaseModel):
    __tablename__ = "compliance_document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_compliance_document_versions_number"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("compliance_documents.id", ondelete="CASCADE"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    file_key: Mapped[str] = mapped_column(String(512), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(120))
    file_size: Mapped[int | None] = mapped_column(BigInteger)
    sha256: Mapped[str | None] = mapped_column(String(64))
    uploaded_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    change_summary: Mapped[str | None] = mapped_column(Text)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    document: Mapped[ComplianceDocument] = relationship(back_populates="versions")


class ComplianceObligation(BaseModel):
    __tablename__ = "compliance_obligations"
    __table_args__ = (
        Index("ix_compliance_obligations_document_status", "document_id", "status"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("compliance_documents.id", ondelete="CASCADE"), nullable=False
    )
    clause_reference: Mapped[str | None] = mapped_column(String(80))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="open", server_default="open"
    )  # open, in_progress, overdue, satisfied, waived
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    recurring_interval: Mapped[str | None] = mapped_column(String(20))
    assignee_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    priority: Mapped[str | None] = mapped_column(String(10))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    document: Mapped[ComplianceDocument] = relationship(back_populates="obligations")


class ComplianceReminder(BaseModel):
    __tablename__ = "compliance_reminders"
    __table_args__ = (
        Index("ix_compliance_reminders_document_due", "document_id", "due_at"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("compliance_documents.id", ondelete="CASCADE"), nullable=False
    )
    obligation_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("compliance_obligations.id", ondelete="SET NULL")
    )
    reminder_type: Mapped[str] = mapped_column(String(40), nullable=False)  # renewal, signature, obligation
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="scheduled", server_default="scheduled"
    )  # scheduled, sent, acknowledged, dismissed, cancelled
    channel: Mapped[str | None] = mapped_column(String(20))  # email, in_app, sms
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    document: Mapped[ComplianceDocument] = relationship(back_populates="reminders")
