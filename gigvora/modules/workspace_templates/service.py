"""Workspace template catalogue: filtered, paginated listing and lookup by slug."""

from __future__ import annotations

import json
import math
from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gigvora.core import cache
from gigvora.core.errors import NotFoundError
from gigvora.models.workspace_templates import WorkspaceTemplate, WorkspaceTemplateCategory
from gigvora.utils.sanitizers import (
    ensure_choice,
    like_pattern,
    parse_int,
    sanitize_string,
    strip_private_metadata,
)

logger = structlog.get_logger()

CACHE_NAMESPACE = "workspace:templates"
CACHE_TTL_SECONDS = 90
DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50

TEMPLATE_STATUSES = {"draft", "active", "deprecated"}
TEMPLATE_VISIBILITIES = {"public", "private"}
WORKSPACE_TYPES = {"agency", "company", "freelancer"}


def normalize_filters(filters: dict[str, Any] | None) -> dict[str, Any]:
    """Validate and canonicalise listing filters; the result is also the cache key."""
    filters = filters or {}
    return {
        "category": sanitize_string(filters.get("category"), max_length=120, lower=True),
        "workspace_type": ensure_choice(filters.get("workspace_type"), "workspace_type", WORKSPACE_TYPES),
        "industry": sanitize_string(filters.get("industry"), max_length=80, lower=True),
        "search": sanitize_string(filters.get("search"), max_length=120),
        "status": ensure_choice(filters.get("status"), "status", TEMPLATE_STATUSES, default="active"),
        "visibility": ensure_choice(
            filters.get("visibility"), "visibility", TEMPLATE_VISIBILITIES, default="public"
        ),
        "page": parse_int(filters.get("page"), "page", minimum=1) or 1,
        "page_size": parse_int(filters.get("page_size"), "page_size", minimum=1, maximum=MAX_PAGE_SIZE)
        or DEFAULT_PAGE_SIZE,
    }


def _serialize_category(category: WorkspaceTemplateCategory) -> dict[str, Any]:
    return category.to_dict(exclude={"is_deleted"})


def serialize_template(template: WorkspaceTemplate) -> dict[str, Any]:
    data = template.to_dict(exclude={"is_deleted"})
    data["metadata"] = strip_private_metadata(data.get("metadata"))
    for field in ("requirement_checklist", "onboarding_sequence", "deliverables", "metrics"):
        data[field] = data.get(field) or []
    data["category"] = _serialize_category(template.category) if template.category else None
    return data


def build_stats(templates: list[WorkspaceTemplate]) -> dict[str, Any]:
    if not templates:
        return {"average_automation_level": None, "average_quality_score": None, "template_count": 0}
    automation = [t.automation_level for t in templates if t.automation_level is not None]
    quality = [float(t.quality_score) for t in templates if t.quality_score is not None]
    return {
        "average_automation_level": round(sum(automation) / len(automation), 1) if automation else None,
        "average_quality_score": round(sum(quality) / len(quality), 1) if quality else None,
        "template_count": len(templates),
    }


def _filtered_statement(filters: dict[str, Any]):
    stmt = select(WorkspaceTemplate).where(
        WorkspaceTemplate.is_deleted == False,  # noqa: E712
        WorkspaceTemplate.status == filters["status"],
        WorkspaceTemplate.visibility == filters["visibility"],
    )
    if filters["category"]:
        stmt = stmt.join(WorkspaceTemplate.category).where(
            WorkspaceTemplateCategory.slug == filters["category"]
        )
    if filters["workspace_type"]:
        stmt = stmt.where(WorkspaceTemplate.workspace_type == filters["workspace_type"])
    if filters["industry"]:
        stmt = stmt.where(func.lower(WorkspaceTemplate.industry) == filters["industry"])
    if filters["search"]:
        pattern = like_pattern(filters["search"])
        stmt = stmt.where(
            or_(
                WorkspaceTemplate.name.ilike(pattern, escape="\\"),
                WorkspaceTemplate.tagline.ilike(pattern, escape="\\"),
            )
        )
    return stmt


async def _load_catalogue(db: AsyncSession, filters: dict[str, Any]) -> dict[str, Any]:
    stmt = _filtered_statement(filters)
    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    page, page_size = filters["page"], filters["page_size"]
    result = await db.execute(
        stmt.options(selectinload(WorkspaceTemplate.category))
        .order_by(WorkspaceTemplate.quality_score.desc().nulls_last(), WorkspaceTemplate.name)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    templates = list(result.scalars().all())

    result = await db.execute(
        select(WorkspaceTemplateCategory)
        .where(WorkspaceTemplateCategory.is_deleted == False)  # noqa: E712
        .order_by(WorkspaceTemplateCategory.sort_order, WorkspaceTemplateCategory.name)
    )
    categories = list(result.scalars().all())

    return {
        "items": [serialize_template(t) for t in templates],
        "categories": [_serialize_category(c) for c in categories],
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": math.ceil(total / page_size) if total else 0,
        },
        "stats": build_stats(templates),
    }


async def list_workspace_templates(
    db: AsyncSession, filters: dict[str, Any] | None = None
) -> dict[str, Any]:
    normalized = normalize_filters(filters)
    key = cache.cache_key(CACHE_NAMESPACE, "list", json.dumps(normalized, sort_keys=True))
    return await cache.remember(key, CACHE_TTL_SECONDS, lambda: _load_catalogue(db, normalized))


async def get_workspace_template(db: AsyncSession, slug: str) -> dict[str, Any]:
    normalized = sanitize_string(slug, max_length=120, lower=True)
    result = await db.execute(
        select(WorkspaceTemplate)
        .options(selectinload(WorkspaceTemplate.category))
        .where(
            WorkspaceTemplate.slug == normalized,
            WorkspaceTemplate.is_deleted == False,  # noqa: E712
        )
    )
    template = result.scalar_one_or_none()
    if template is None:
        raise NotFoundError("Workspace template not found.")
    return serialize_template(template)
