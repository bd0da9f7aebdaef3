"""Agency project management: projects, budgets and auto-match candidates."""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gigvora.core.errors import ConflictError, NotFoundError, ValidationError
from gigvora.models.agency_projects import AgencyProject, AutoMatchCandidate
from gigvora.models.enums import AgencyProjectStatus, AutoMatchStatus
from gigvora.utils.sanitizers import (
    ensure_choice,
    ensure_optional_bool,
    normalize_currency,
    parse_datetime,
    parse_decimal,
    parse_uuid,
    require_string,
    sanitize_metadata,
    sanitize_string,
    strip_private_metadata,
)

logger = structlog.get_logger()

PROJECT_STATUSES = {s.value for s in AgencyProjectStatus}
MATCH_STATUSES = {s.value for s in AutoMatchStatus}
RESPONDED_MATCH_STATUSES = {"accepted", "rejected"}


def _serialize_match(match: AutoMatchCandidate) -> dict[str, Any]:
    data = match.to_dict(exclude={"is_deleted"})
    data["metadata"] = strip_private_metadata(data.get("metadata"))
    return data


def _serialize_project(project: AgencyProject) -> dict[str, Any]:
    data = project.to_dict(exclude={"is_deleted"})
    data["metadata"] = strip_private_metadata(data.get("metadata"))
    data["matches"] = [_serialize_match(m) for m in project.matches if not m.is_deleted]
    return data


def _parse_date(value: Any, field: str) -> date | None:
    parsed = parse_datetime(value, field)
    return parsed.date() if parsed else None


def _check_dates(start: date | None, due: date | None) -> None:
    if start and due and due < start:
        raise ValidationError("due_date cannot be before start_date.")


def _normalize_skills(value: Any) -> list[str] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError("skills must be a list.")
    skills = [sanitize_string(s, max_length=60) for s in value]
    return [s for s in dict.fromkeys(skills) if s]


def build_project_summary(projects: list[AgencyProject]) -> dict[str, Any]:
    status_counts = Counter(p.status for p in projects)
    match_counts: Counter[str] = Counter()
    for project in projects:
        match_counts.update(m.status for m in project.matches if not m.is_deleted)
    return {
        "project_count": len(projects),
        "by_status": {s: status_counts.get(s, 0) for s in sorted(PROJECT_STATUSES)},
        "total_budget": float(sum((p.budget_amount or Decimal("0")) for p in projects)),
        "total_spent": float(sum((p.budget_spent or Decimal("0")) for p in projects)),
        "matches": {s: match_counts.get(s, 0) for s in sorted(MATCH_STATUSES)},
    }


async def _load_project(
    db: AsyncSession, workspace_id: uuid.UUID, project_id: uuid.UUID
) -> AgencyProject:
    result = await db.execute(
        select(AgencyProject)
        .options(selectinload(AgencyProject.matches))
        .where(
            AgencyProject.id == project_id,
            AgencyProject.workspace_id == workspace_id,
            AgencyProject.is_deleted == False,  # noqa: E712
        )
        .execution_options(populate_existing=True)
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Agency project not found.")
    return project


async def list_agency_projects(
    db: AsyncSession, workspace_id: uuid.UUID, status: str | None = None
) -> dict[str, Any]:
    status_filter = ensure_choice(status, "status", PROJECT_STATUSES)
    stmt = (
        select(AgencyProject)
        .options(selectinload(AgencyProject.matches))
        .where(
            AgencyProject.workspace_id == workspace_id,
            AgencyProject.is_deleted == False,  # noqa: E712
        )
        .order_by(AgencyProject.updated_at.desc())
    )
    if status_filter:
        stmt = stmt.where(AgencyProject.status == status_filter)
    result = await db.execute(stmt)
    projects = list(result.scalars().all())
    return {
        "projects": [_serialize_project(p) for p in projects],
        "summary": build_project_summary(projects),
    }


async def get_agency_project(
    db: AsyncSession, workspace_id: uuid.UUID, project_id: uuid.UUID
) -> dict[str, Any]:
    return _serialize_project(await _load_project(db, workspace_id, project_id))


async def create_agency_project(
    db: AsyncSession, workspace_id: uuid.UUID, body: Any, actor_id: uuid.UUID
) -> dict[str, Any]:
    data = body.model_dump(exclude_unset=True)
    start_date = _parse_date(data.get("start_date"), "start_date")
    due_date = _parse_date(data.get("due_date"), "due_date")
    _check_dates(start_date, due_date)

    auto_match = ensure_optional_bool(data.get("auto_match_enabled"), "auto_match_enabled")
    project = AgencyProject(
        id=uuid.uuid4(),
        workspace_id=workspace_id,
        title=require_string(data.get("title"), "title", max_length=180),
        description=sanitize_string(data.get("description"), max_length=5000),
        client_name=sanitize_string(data.get("client_name"), max_length=180),
        status=ensure_choice(data.get("status"), "status", PROJECT_STATUSES, default="planning"),
        budget_amount=parse_decimal(data.get("budget_amount"), "budget_amount", minimum=Decimal("0")),
        budget_spent=parse_decimal(data.get("budget_spent"), "budget_spent", minimum=Decimal("0"))
        or Decimal("0"),
        currency_code=normalize_currency(data.get("currency_code")),
        start_date=start_date,
        due_date=due_date,
        auto_match_enabled=True if auto_match is None else auto_match,
        skills=_normalize_skills(data.get("skills")),
        metadata_=sanitize_metadata(data.get("metadata")),
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.add(project)
    await db.commit()

    logger.info(
        "agency_project.created",
        workspace_id=str(workspace_id),
        project_id=str(project.id),
        actor_id=str(actor_id),
    )
    return await get_agency_project(db, workspace_id, project.id)


async def update_agency_project(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    project_id: uuid.UUID,
    body: Any,
    actor_id: uuid.UUID,
) -> dict[str, Any]:
    project = await _load_project(db, workspace_id, project_id)
    data = body.model_dump(exclude_unset=True)

    if "title" in data:
        project.title = require_string(data["title"], "title", max_length=180)
    if "description" in data:
        project.description = sanitize_string(data["description"], max_length=5000)
    if "client_name" in data:
        project.client_name = sanitize_string(data["client_name"], max_length=180)
    if "status" in data:
        project.status = ensure_choice(data["status"], "status", PROJECT_STATUSES) or project.status
    if "budget_amount" in data:
        project.budget_amount = parse_decimal(
            data["budget_amount"], "budget_amount", minimum=Decimal("0")
        )
    if "budget_spent" in data:
        project.budget_spent = parse_decimal(
            data["budget_spent"], "budget_spent", minimum=Decimal("0")
        ) or Decimal("0")
    if "currency_code" in data:
        project.currency_code = normalize_currency(data["currency_code"], project.currency_code)
    if "start_date" in data:
        project.start_date = _parse_date(data["start_date"], "start_date")
    if "due_date" in data:
        project.due_date = _parse_date(data["due_date"], "due_date")
    _check_dates(project.start_date, project.due_date)
    if "auto_match_enabled" in data:
        flag = ensure_optional_bool(data["auto_match_enabled"], "auto_match_enabled")
        if flag is not None:
            project.auto_match_enabled = flag
    if "skills" in data:
        project.skills = _normalize_skills(data["skills"])
    if "metadata" in data:
        project.metadata_ = sanitize_metadata(data["metadata"])
    project.updated_by = actor_id

    await db.commit()
    logger.info("agency_project.updated", project_id=str(project_id), actor_id=str(actor_id))
    return await get_agency_project(db, workspace_id, project_id)


# ── Auto-match candidates ────────────────────────────────────────────────────


async def add_auto_match(
    db: AsyncSession, workspace_id: uuid.UUID, project_id: uuid.UUID, body: Any
) -> dict[str, Any]:
    project = await _load_project(db, workspace_id, project_id)
    data = body.model_dump(exclude_unset=True)

    name = require_string(data.get("freelancer_name"), "freelancer_name", max_length=180)
    if any(m.freelancer_name.lower() == name.lower() for m in project.matches if not m.is_deleted):
        raise ConflictError("This freelancer is already matched to the project.")

    score = parse_decimal(data.get("score"), "score", minimum=Decimal("0")) or Decimal("0")
    if score > 100:
        raise ValidationError("score must be between 0 and 100.")

    status = ensure_choice(data.get("status"), "status", MATCH_STATUSES, default="pending")
    match = AutoMatchCandidate(
        project_id=project.id,
        freelancer_id=parse_uuid(data.get("freelancer_id"), "freelancer_id"),
        freelancer_name=name,
        freelancer_email=sanitize_string(data.get("freelancer_email"), max_length=320, lower=True),
        score=score,
        status=status,
        notes=sanitize_string(data.get("notes"), max_length=2000),
        responded_at=datetime.now(timezone.utc) if status in RESPONDED_MATCH_STATUSES else None,
        metadata_=sanitize_metadata(data.get("metadata")),
    )
    db.add(match)
    await db.commit()
    await db.refresh(match)

    logger.info(
        "agency_project.auto_match_added",
        project_id=str(project_id),
        match_id=str(match.id),
        score=float(score),
    )
    return _serialize_match(match)


async def update_auto_match(
    db: AsyncSession,
    workspace_id: uuid.UUID,
    project_id: uuid.UUID,
    match_id: uuid.UUID,
    body: Any,
) -> dict[str, Any]:
    project = await _load_project(db, workspace_id, project_id)
    match = next((m for m in project.matches if m.id == match_id and not m.is_deleted), None)
    if match is None:
        raise NotFoundError("Auto-match candidate not found.")

    data = body.model_dump(exclude_unset=True)
    if "status" in data:
        status = ensure_choice(data["status"], "status", MATCH_STATUSES)
        if status is None:
            raise ValidationError("status is required.")
        match.status = status
        match.responded_at = (
            datetime.now(timezone.utc) if status in RESPONDED_MATCH_STATUSES else None
        )
    if "score" in data:
        score = parse_decimal(data["score"], "score", minimum=Decimal("0")) or Decimal("0")
        if score > 100:
            raise ValidationError("score must be between 0 and 100.")
        match.score = score
    if "notes" in data:
        match.notes = sanitize_string(data["notes"], max_length=2000)
    if "metadata" in data:
        match.metadata_ = sanitize_metadata(data["metadata"])

    await db.commit()
    await db.refresh(match)
    logger.info(
        "agency_project.auto_match_updated",
        project_id=str(project_id),
        match_id=str(match_id),
        status=match.status,
    )
    return _serialize_match(match)
