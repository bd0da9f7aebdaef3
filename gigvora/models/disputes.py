"""Escrow transactions and the dispute workflow tables."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gigvora.models.base import BaseModel, TimestampedModel


class EscrowTransaction(BaseModel):
    __tablename__ = "escrow_transactions"
    __table_args__ = (
        Index("ix_escrow_transactions_initiator", "initiated_by_id"),
        Index("ix_escrow_transactions_counterparty", "counterparty_id"),
        Index("ix_escrow_transactions_status", "status"),
    )

    reference: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    initiated_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    counterparty_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    # Amount after platform fees; exposure uses it when present.
    net_amount: Mapped[Decimal | None] = mapped_column()
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )  # pending, funded, in_escrow, disputed, released, refunded, cancelled
    reference_type: Mapped[str | None] = mapped_column(String(40))  # gig, project, milestone
    reference_id: Mapped[str | None] = mapped_column(String(64))
    milestone_label: Mapped[str | None] = mapped_column(String(160))
    scheduled_release_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    disputes: Mapped[list[DisputeCase]] = relationship(back_populates="transaction")


class DisputeCase(BaseModel):
    __tablename__ = "dispute_cases"
    __table_args__ = (
        Index("ix_dispute_cases_transaction", "escrow_transaction_id"),
        Index("ix_dispute_cases_opened_by", "opened_by_id"),
        Index("ix_dispute_cases_stage_status", "stage", "status"),
    )

    escrow_transaction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("escrow_transactions.id", ondelete="CASCADE"), nullable=False
    )
    opened_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    stage: Mapped[str] = mapped_column(
        String(20), nullable=False, default="intake", server_default="intake"
    )  # intake, mediation, arbitration, resolved
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="open", server_default="open"
    )  # open, awaiting_customer, under_review, settled, closed
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default="medium", server_default="medium"
    )  # low, medium, high, urgent
    reason_code: Mapped[str] = mapped_column(String(80), nullable=False)
    summary: Mapped[str] = mapped_column(String(500), nullable=False)
    customer_deadline_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    provider_deadline_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolution_notes: Mapped[str | None] = mapped_column(Text)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    transaction: Mapped[EscrowTransaction] = relationship(back_populates="disputes")
    events: Mapped[list[DisputeEvent]] = relationship(
        back_populates="dispute", order_by="DisputeEvent.event_at"
    )


class DisputeEvent(TimestampedModel):
    """Append-only timeline entry on a dispute case."""

    __tablename__ = "dispute_events"
    __table_args__ = (
        Index("ix_dispute_events_case_event_at", "dispute_case_id", "event_at"),
    )

    dispute_case_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("dispute_cases.id", ondelete="CASCADE"), nullable=False
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # customer, provider, mediator, admin, system
    action_type: Mapped[str] = mapped_column(String(30), nullable=False)
    # comment, evidence_upload, deadline_adjusted, stage_advanced, status_change, system_notice
    notes: Mapped[str | None] = mapped_column(Text)
    evidence_key: Mapped[str | None] = mapped_column(String(512))
    evidence_url: Mapped[str | None] = mapped_column(String(1024))
    evidence_file_name: Mapped[str | None] = mapped_column(String(255))
    evidence_content_type: Mapped[str | None] = mapped_column(String(120))
    event_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    dispute: Mapped[DisputeCase] = relationship(back_populates="events")


class DisputeWorkflowSetting(BaseModel):
    """SLA configuration; the most recently updated row wins."""

    __tablename__ = "dispute_workflow_settings"

    workspace_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workspaces.id", ondelete="CASCADE")
    )
    response_sla_hours: Mapped[int] = mapped_column(Integer, nullable=False, server_default="24")
    resolution_sla_hours: Mapped[int] = mapped_column(Integer, nullable=False, server_default="120")
    auto_escalate_hours: Mapped[int | None] = mapped_column(Integer)
    default_assignee_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    reason_codes: Mapped[list[str] | None] = mapped_column(JSONB)
