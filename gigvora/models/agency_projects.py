"""Agency projects and their auto-match freelancer candidates."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gigvora.models.base import AuditMixin, BaseModel


class AgencyProject(BaseModel, AuditMixin):
    __tablename__ = "agency_projects"
    __table_args__ = (
        Index("ix_agency_projects_workspace_status", "workspace_id", "status"),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(180), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    client_name: Mapped[str | None] = mapped_column(String(180))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="planning", server_default="planning"
    )  # planning, active, at_risk, on_hold, completed, cancelled
    budget_amount: Mapped[Decimal | None] = mapped_column()
    budget_spent: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"), server_default="0")
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")
    start_date: Mapped[date | None] = mapped_column(Date)
    due_date: Mapped[date | None] = mapped_column(Date)
    auto_match_enabled: Mapped[bool] = mapped_column(default=True, server_default="true", nullable=False)
    skills: Mapped[list[str] | None] = mapped_column(JSONB)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    matches: Mapped[list[AutoMatchCandidate]] = relationship(
        back_populates="project", order_by="AutoMatchCandidate.score.desc()"
    )


class AutoMatchCandidate(BaseModel):
    __tablename__ = "agency_project_matches"
    __table_args__ = (
        UniqueConstraint("project_id", "freelancer_name", name="uq_agency_project_matches_freelancer"),
        Index("ix_agency_project_matches_project_status", "project_id", "status"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("agency_projects.id", ondelete="CASCADE"), nullable=False
    )
    freelancer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    freelancer_name: Mapped[str] = mapped_column(String(180), nullable=False)
    freelancer_email: Mapped[str | None] = mapped_column(String(320))
    score: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"), server_default="0")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )  # pending, accepted, rejected
    notes: Mapped[str | None] = mapped_column(Text)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    project: Mapped[AgencyProject] = relationship(back_populates="matches")
