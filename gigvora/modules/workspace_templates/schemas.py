"""Workspace template Pydantic schemas."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TemplateCategoryResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    slug: str
    name: str
    description: str | None = None
    icon: str | None = None
    sort_order: int = 0


class WorkspaceTemplateResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    slug: str
    name: str
    tagline: str | None = None
    description: str | None = None
    industry: str | None = None
    workflow_type: str | None = None
    workspace_type: str | None = None
    automation_level: int = 0
    quality_score: float | None = None
    status: str
    visibility: str
    requirement_checklist: list[Any] = Field(default_factory=list)
    onboarding_sequence: list[Any] = Field(default_factory=list)
    deliverables: list[Any] = Field(default_factory=list)
    metrics: list[Any] = Field(default_factory=list)
    category: TemplateCategoryResponse | None = None


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class TemplateStats(BaseModel):
    average_automation_level: float | None = None
    average_quality_score: float | None = None
    template_count: int


class WorkspaceTemplateListResponse(BaseModel):
    items: list[WorkspaceTemplateResponse]
    categories: list[TemplateCategoryResponse]
    pagination: Pagination
    stats: TemplateStats
