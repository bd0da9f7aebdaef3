"""Compliance locker: contract documents, their versions, obligations and reminders.

The locker overview for an owner is cached and every write invalidates all
cached views under that owner's prefix.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gigvora.core import cache
from gigvora.core.errors import AuthorizationError, NotFoundError, ValidationError
from gigvora.models.compliance import (
    ComplianceDocument,
    ComplianceDocumentVersion,
    ComplianceObligation,
    ComplianceReminder,
)
from gigvora.models.enums import ComplianceDocumentStatus, ComplianceReminderStatus
from gigvora.schemas.auth import CurrentUser
from gigvora.utils.sanitizers import (
    ensure_choice,
    humanize,
    parse_datetime,
    parse_int,
    parse_uuid,
    require_string,
    sanitize_metadata,
    sanitize_string,
    strip_private_metadata,
)

logger = structlog.get_logger()

CACHE_NAMESPACE = "compliance:locker"
CACHE_TTL_SECONDS = 45
DOCUMENT_LIMIT = 50
VERSIONS_PER_DOCUMENT = 5
EXPIRING_SOON_DAYS = 45
AUDIT_LOG_LIMIT = 50
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DOCUMENT_STATUSES = {s.value for s in ComplianceDocumentStatus}
REMINDER_STATUSES = {s.value for s in ComplianceReminderStatus}
OBLIGATION_STATUSES = {"open", "in_progress", "overdue", "satisfied", "waived"}
OPEN_OBLIGATION_STATUSES = {"open", "in_progress", "overdue"}
COMPLETED_OBLIGATION_STATUSES = {"satisfied", "waived"}
CLOSED_REMINDER_STATUSES = {"acknowledged", "dismissed", "cancelled"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _locker_prefix(owner_id: uuid.UUID) -> str:
    return cache.cache_key(CACHE_NAMESPACE, owner_id)


async def _invalidate(owner_id: uuid.UUID) -> None:
    await cache.invalidate_prefix(_locker_prefix(owner_id))


def _assert_owner(actor: CurrentUser, owner_id: uuid.UUID) -> None:
    if actor.is_admin or actor.user_id == owner_id:
        return
    raise AuthorizationError("You do not have access to this compliance locker.")


def _serialize(model: Any) -> dict[str, Any]:
    data = model.to_dict(exclude={"is_deleted"})
    data["metadata"] = strip_private_metadata(data.get("metadata"))
    return data


def _serialize_document(
    document: ComplianceDocument,
    versions: list[ComplianceDocumentVersion],
    obligations: list[ComplianceObligation],
    reminders: list[ComplianceReminder],
) -> dict[str, Any]:
    data = _serialize(document)
    data["tags"] = document.tags or []
    by_obligation: dict[uuid.UUID, list[ComplianceReminder]] = {}
    for reminder in reminders:
        if reminder.obligation_id:
            by_obligation.setdefault(reminder.obligation_id, []).append(reminder)

    ordered = sorted(versions, key=lambda v: v.version_number, reverse=True)
    data["versions"] = [_serialize(v) for v in ordered[:VERSIONS_PER_DOCUMENT]]
    data["obligations"] = [
        {**_serialize(o), "reminders": [_serialize(r) for r in by_obligation.get(o.id, [])]}
        for o in obligations
    ]
    data["reminders"] = [_serialize(r) for r in reminders if not r.obligation_id]
    return data


def _normalize_tags(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [t.strip() for t in value if isinstance(t, str) and t.strip()]


def _build_version(
    document_id: uuid.UUID, data: dict[str, Any], version_number: int, actor_id: uuid.UUID | None
) -> ComplianceDocumentVersion:
    file_size = parse_int(data.get("file_size"), "file_size", minimum=0)
    return ComplianceDocumentVersion(
        id=uuid.uuid4(),
        document_id=document_id,
        version_number=version_number,
        file_key=require_string(data.get("file_key"), "file_key", max_length=512),
        file_name=require_string(data.get("file_name"), "file_name", max_length=255),
        mime_type=sanitize_string(data.get("mime_type"), max_length=120),
        file_size=file_size,
        sha256=sanitize_string(data.get("sha256"), max_length=64, lower=True),
        uploaded_by_id=actor_id,
        change_summary=sanitize_string(data.get("change_summary"), max_length=5000),
        signed_at=parse_datetime(data.get("signed_at"), "signed_at"),
        metadata_=sanitize_metadata(data.get("metadata")),
    )


def _build_obligation(document_id: uuid.UUID, data: dict[str, Any]) -> ComplianceObligation:
    return ComplianceObligation(
        id=uuid.uuid4(),
        document_id=document_id,
        clause_reference=sanitize_string(data.get("clause_reference"), max_length=80),
        description=require_string(data.get("description"), "description", max_length=5000),
        status=ensure_choice(data.get("status"), "status", OBLIGATION_STATUSES, default="open"),
        due_at=parse_datetime(data.get("due_at"), "due_at"),
        recurring_interval=sanitize_string(data.get("recurring_interval"), max_length=20, lower=True),
        assignee_id=parse_uuid(data.get("assignee_id"), "assignee_id"),
        priority=sanitize_string(data.get("priority"), max_length=10, lower=True),
        metadata_=sanitize_metadata(data.get("metadata")),
    )


def _build_reminder(
    document_id: uuid.UUID,
    data: dict[str, Any],
    obligation_id: uuid.UUID | None,
    actor_id: uuid.UUID | None,
) -> ComplianceReminder:
    return ComplianceReminder(
        id=uuid.uuid4(),
        document_id=document_id,
        obligation_id=obligation_id,
        reminder_type=require_string(data.get("reminder_type"), "reminder_type", max_length=40).lower(),
        due_at=parse_datetime(data.get("due_at"), "due_at") or _now(),
        status=ensure_choice(data.get("status"), "status", REMINDER_STATUSES, default="scheduled"),
        channel=sanitize_string(data.get("channel"), max_length=20, lower=True),
        created_by_id=actor_id,
        metadata_=sanitize_metadata(data.get("metadata")),
    )


# ── Writes ───────────────────────────────────────────────────────────────────


async def create_compliance_document(
    db: AsyncSession, owner_id: uuid.UUID, body: Any, actor: CurrentUser
) -> dict[str, Any]:
    """Create a document with its optional first version, obligations and reminders.

    Reminders may point at an obligation created in the same call by giving
    its ``clause_reference``.
    """
    _assert_owner(actor, owner_id)
    data = body.model_dump(exclude_unset=True)

    effective_date = parse_datetime(data.get("effective_date"), "effective_date")
    expiry_date = parse_datetime(data.get("expiry_date"), "expiry_date")
    if effective_date and expiry_date and expiry_date < effective_date:
        raise ValidationError("expiry_date cannot be before effective_date.")

    document = ComplianceDocument(
        id=uuid.uuid4(),
        owner_id=owner_id,
        workspace_id=parse_uuid(data.get("workspace_id"), "workspace_id") or actor.workspace_id,
        title=require_string(data.get("title"), "title", max_length=255),
        document_type=sanitize_string(data.get("document_type"), max_length=40, lower=True) or "contract",
        status=ensure_choice(
            data.get("status"), "status", DOCUMENT_STATUSES, default="awaiting_signature"
        ),
        storage_provider=sanitize_string(data.get("storage_provider"), max_length=20, lower=True) or "r2",
        storage_path=require_string(data.get("storage_path"), "storage_path", max_length=512),
        storage_region=sanitize_string(data.get("storage_region"), max_length=40),
        counterparty_name=sanitize_string(data.get("counterparty_name"), max_length=180),
        counterparty_email=sanitize_string(data.get("counterparty_email"), max_length=320, lower=True),
        counterparty_company=sanitize_string(data.get("counterparty_company"), max_length=180),
        jurisdiction=sanitize_string(data.get("jurisdiction"), max_length=80),
        governing_law=sanitize_string(data.get("governing_law"), max_length=120),
        effective_date=effective_date,
        expiry_date=expiry_date,
        renewal_terms=sanitize_string(data.get("renewal_terms"), max_length=255),
        tags=_normalize_tags(data.get("tags")),
        metadata_=sanitize_metadata(data.get("metadata")),
    )
    db.add(document)
    await db.flush()

    versions: list[ComplianceDocumentVersion] = []
    if data.get("version"):
        version = _build_version(document.id, data["version"], 1, actor.user_id)
        db.add(version)
        versions.append(version)
        document.latest_version_id = version.id

    obligations: list[ComplianceObligation] = []
    by_clause: dict[str, ComplianceObligation] = {}
    for item in data.get("obligations") or []:
        obligation = _build_obligation(document.id, item)
        db.add(obligation)
        obligations.append(obligation)
        if obligation.clause_reference:
            by_clause[obligation.clause_reference] = obligation

    reminders: list[ComplianceReminder] = []
    for item in data.get("reminders") or []:
        obligation_id = parse_uuid(item.get("obligation_id"), "obligation_id")
        if obligation_id is None and item.get("clause_reference"):
            referenced = by_clause.get(str(item["clause_reference"]).strip())
            obligation_id = referenced.id if referenced else None
        reminder = _build_reminder(document.id, item, obligation_id, actor.user_id)
        db.add(reminder)
        reminders.append(reminder)

    await db.commit()
    await db.refresh(document)
    await _invalidate(owner_id)

    logger.info(
        "compliance.document_created",
        owner_id=str(owner_id),
        document_id=str(document.id),
        versions=len(versions),
        obligations=len(obligations),
        reminders=len(reminders),
    )
    return _serialize_document(document, versions, obligations, reminders)


async def add_document_version(
    db: AsyncSession, document_id: uuid.UUID, body: Any, actor: CurrentUser
) -> dict[str, Any]:
    result = await db.execute(
        select(ComplianceDocument).where(
            ComplianceDocument.id == document_id,
            ComplianceDocument.is_deleted == False,  # noqa: E712
        )
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFoundError("Compliance document not found.")
    _assert_owner(actor, document.owner_id)

    current_max = (
        await db.execute(
            select(func.max(ComplianceDocumentVersion.version_number)).where(
                ComplianceDocumentVersion.document_id == document_id
            )
        )
    ).scalar_one()
    data = body.model_dump(exclude_unset=True)
    version = _build_version(document.id, data, (current_max or 0) + 1, actor.user_id)
    db.add(version)

    document.latest_version_id = version.id
    if data.get("status"):
        document.status = ensure_choice(data["status"], "status", DOCUMENT_STATUSES) or document.status
    if data.get("effective_date"):
        document.effective_date = parse_datetime(data["effective_date"], "effective_date")
    if data.get("expiry_date"):
        document.expiry_date = parse_datetime(data["expiry_date"], "expiry_date")
    if data.get("renewal_terms"):
        document.renewal_terms = sanitize_string(data["renewal_terms"], max_length=255)
    extra_metadata = sanitize_metadata(data.get("document_metadata"))
    if extra_metadata:
        document.metadata_ = {**(document.metadata_ or {}), **extra_metadata}

    await db.commit()
    await db.refresh(document)
    await db.refresh(version)
    await _invalidate(document.owner_id)

    logger.info(
        "compliance.version_added",
        document_id=str(document_id),
        version_number=version.version_number,
    )
    return {"document": _serialize(document), "version": _serialize(version)}


async def acknowledge_reminder(
    db: AsyncSession, reminder_id: uuid.UUID, status: str | None, actor: CurrentUser
) -> dict[str, Any]:
    result = await db.execute(
        select(ComplianceReminder)
        .options(selectinload(ComplianceReminder.document))
        .where(
            ComplianceReminder.id == reminder_id,
            ComplianceReminder.is_deleted == False,  # noqa: E712
        )
    )
    reminder = result.scalar_one_or_none()
    if reminder is None:
        raise NotFoundError("Reminder not found.")
    owner_id = reminder.document.owner_id
    _assert_owner(actor, owner_id)

    new_status = ensure_choice(status, "status", REMINDER_STATUSES, default="acknowledged")
    now = _now()
    reminder.status = new_status
    if new_status in ("acknowledged", "dismissed"):
        reminder.acknowledged_at = now
    if new_status == "sent" and reminder.sent_at is None:
        reminder.sent_at = now
    reminder.metadata_ = {
        **(reminder.metadata_ or {}),
        "last_actor_id": str(actor.user_id),
        "last_actor_status": new_status,
    }

    await db.commit()
    await db.refresh(reminder)
    await _invalidate(owner_id)

    logger.info("compliance.reminder_updated", reminder_id=str(reminder_id), status=new_status)
    return _serialize(reminder)


# ── Overview ─────────────────────────────────────────────────────────────────


def build_document_summary(documents: list[ComplianceDocument], now: datetime) -> dict[str, Any]:
    totals = {
        "total_documents": len(documents),
        "active_documents": 0,
        "awaiting_signature": 0,
        "expired": 0,
        "archived": 0,
        "jurisdictions_covered": 0,
    }
    type_counts: dict[str, int] = {}
    jurisdictions: set[str] = set()
    renewals: list[dict[str, Any]] = []

    for document in documents:
        status = document.status or "draft"
        if status == "active":
            totals["active_documents"] += 1
        elif status == "awaiting_signature":
            totals["awaiting_signature"] += 1
        elif status == "expired":
            totals["expired"] += 1
        elif status == "archived":
            totals["archived"] += 1
        if document.document_type:
            type_counts[document.document_type] = type_counts.get(document.document_type, 0) + 1
        if document.jurisdiction:
            jurisdictions.add(document.jurisdiction)
        if document.expiry_date:
            renewals.append({
                "document_id": str(document.id),
                "title": document.title,
                "status": status,
                "expiry_date": document.expiry_date.isoformat(),
                "days_until": math.floor((document.expiry_date - now).total_seconds() / 86400),
            })

    totals["jurisdictions_covered"] = len(jurisdictions)
    renewals.sort(key=lambda r: r["expiry_date"])
    return {
        "totals": totals,
        "type_counts": type_counts,
        "renewals": renewals,
        "expiring_soon": [r for r in renewals if 0 <= r["days_until"] <= EXPIRING_SOON_DAYS],
        "overdue_renewals": [r for r in renewals if r["days_until"] < 0],
    }


def build_obligation_summary(obligations: list[ComplianceObligation]) -> dict[str, Any]:
    open_items = [o for o in obligations if o.status in OPEN_OBLIGATION_STATUSES]
    overdue = [o for o in obligations if o.status == "overdue"]
    completed = [o for o in obligations if o.status in COMPLETED_OBLIGATION_STATUSES]
    return {
        "total": len(obligations),
        "open_count": len(open_items),
        "overdue_count": len(overdue),
        "completed_count": len(completed),
        "open": [_serialize(o) for o in open_items],
        "overdue": [_serialize(o) for o in overdue],
        "completed": [_serialize(o) for o in completed],
    }


def build_reminder_summary(reminders: list[ComplianceReminder], now: datetime) -> dict[str, Any]:
    overdue = [
        r for r in reminders
        if r.status not in CLOSED_REMINDER_STATUSES and r.due_at and r.due_at < now
    ]
    upcoming = sorted((r for r in reminders if r.due_at and r.due_at >= now), key=lambda r: r.due_at)
    return {
        "total": len(reminders),
        "overdue": [_serialize(r) for r in overdue],
        "upcoming": [_serialize(r) for r in upcoming],
    }


def build_audit_log(
    versions: list[ComplianceDocumentVersion],
    reminders: list[ComplianceReminder],
    limit: int = AUDIT_LOG_LIMIT,
) -> list[dict[str, Any]]:
    """Version uploads and reminder activity across the locker, newest first."""
    entries = [
        {
            "id": f"version-{v.id}",
            "document_id": str(v.document_id),
            "type": "version",
            "label": f"Version {v.version_number}",
            "occurred_at": v.created_at,
            "actor_id": str(v.uploaded_by_id) if v.uploaded_by_id else None,
            "summary": v.change_summary or "Document version uploaded",
            "metadata": strip_private_metadata(v.metadata_),
        }
        for v in versions
    ] + [
        {
            "id": f"reminder-{r.id}",
            "document_id": str(r.document_id),
            "type": "reminder",
            "label": f"{humanize(r.reminder_type)} reminder",
            "occurred_at": r.updated_at or r.created_at,
            "actor_id": str(r.created_by_id) if r.created_by_id else None,
            "summary": f"Reminder {r.status}",
            "metadata": strip_private_metadata(r.metadata_),
        }
        for r in reminders
    ]
    entries.sort(key=lambda e: e["occurred_at"] or _EPOCH, reverse=True)
    for entry in entries:
        entry["occurred_at"] = entry["occurred_at"].isoformat() if entry["occurred_at"] else None
    return entries[:limit]


async def _load_overview(db: AsyncSession, owner_id: uuid.UUID) -> dict[str, Any]:
    result = await db.execute(
        select(ComplianceDocument)
        .options(
            selectinload(ComplianceDocument.versions),
            selectinload(ComplianceDocument.obligations),
            selectinload(ComplianceDocument.reminders),
        )
        .where(
            ComplianceDocument.owner_id == owner_id,
            ComplianceDocument.is_deleted == False,  # noqa: E712
        )
        .order_by(ComplianceDocument.updated_at.desc())
        .limit(DOCUMENT_LIMIT)
    )
    documents = list(result.scalars().all())
    now = _now()

    obligations = [o for d in documents for o in d.obligations if not o.is_deleted]
    reminders = [r for d in documents for r in d.reminders if not r.is_deleted]
    versions = [v for d in documents for v in d.versions if not v.is_deleted]
    return {
        "owner_id": str(owner_id),
        "documents": [
            _serialize_document(
                d,
                [v for v in d.versions if not v.is_deleted],
                [o for o in d.obligations if not o.is_deleted],
                [r for r in d.reminders if not r.is_deleted],
            )
            for d in documents
        ],
        "summary": {
            "documents": build_document_summary(documents, now),
            "obligations": build_obligation_summary(obligations),
            "reminders": build_reminder_summary(reminders, now),
        },
        "audit_log": build_audit_log(versions, reminders),
        "metadata": {"generated_at": now.isoformat()},
    }


async def get_compliance_locker_overview(
    db: AsyncSession, owner_id: uuid.UUID, actor: CurrentUser, use_cache: bool = True
) -> dict[str, Any]:
    _assert_owner(actor, owner_id)
    return await cache.remember(
        cache.cache_key(_locker_prefix(owner_id), "overview"),
        CACHE_TTL_SECONDS,
        lambda: _load_overview(db, owner_id),
        bypass=not use_cache,
    )
