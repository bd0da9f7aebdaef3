"""Workspace template catalogue."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gigvora.models.base import BaseModel


class WorkspaceTemplateCategory(BaseModel):
    __tablename__ = "workspace_template_categories"

    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    icon: Mapped[str | None] = mapped_column(String(80))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    templates: Mapped[list[WorkspaceTemplate]] = relationship(back_populates="category")


class WorkspaceTemplate(BaseModel):
    __tablename__ = "workspace_templates"
    __table_args__ = (
        Index("ix_workspace_templates_status_visibility", "status", "visibility"),
        Index("ix_workspace_templates_category", "category_id"),
    )

    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workspace_template_categories.id", ondelete="SET NULL")
    )
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    tagline: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    industry: Mapped[str | None] = mapped_column(String(80))
    workflow_type: Mapped[str | None] = mapped_column(String(80))
    workspace_type: Mapped[str | None] = mapped_column(String(20))  # agency, company, freelancer
    recommended_team_size: Mapped[int | None] = mapped_column(Integer)
    estimated_duration_days: Mapped[int | None] = mapped_column(Integer)
    automation_level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")  # 0-100
    quality_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))  # 0-100
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", server_default="active"
    )  # draft, active, deprecated
    visibility: Mapped[str] = mapped_column(
        String(20), nullable=False, default="public", server_default="public"
    )  # public, private
    requirement_checklist: Mapped[list[Any] | None] = mapped_column(JSONB)
    onboarding_sequence: Mapped[list[Any] | None] = mapped_column(JSONB)
    deliverables: Mapped[list[Any] | None] = mapped_column(JSONB)
    metrics: Mapped[list[Any] | None] = mapped_column(JSONB)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    category: Mapped[WorkspaceTemplateCategory | None] = relationship(back_populates="templates")
