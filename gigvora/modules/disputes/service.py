"""User-facing dispute workflow: listing, dashboard summary, case creation and timeline events.

A user can see a dispute when they initiated its escrow transaction, are the
transaction's counterparty, or opened the case themselves.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from gigvora.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from gigvora.models.disputes import (
    DisputeCase,
    DisputeEvent,
    DisputeWorkflowSetting,
    EscrowTransaction,
)
from gigvora.models.enums import (
    DisputeActionType,
    DisputeActorType,
    DisputePriority,
    DisputeStage,
    DisputeStatus,
    EscrowTransactionStatus,
)
from gigvora.modules.disputes.evidence import store_evidence
from gigvora.utils.sanitizers import (
    ensure_choice,
    humanize,
    parse_datetime,
    parse_uuid,
    sanitize_metadata,
    sanitize_string,
    strip_private_metadata,
)

logger = structlog.get_logger()

STAGE_VALUES = [s.value for s in DisputeStage]
STATUS_VALUES = [s.value for s in DisputeStatus]
PRIORITY_VALUES = [p.value for p in DisputePriority]
ACTOR_TYPE_VALUES = [a.value for a in DisputeActorType]
ACTION_TYPE_VALUES = [a.value for a in DisputeActionType]

REASON_CODE_FALLBACK = [
    "quality_issue",
    "scope_disagreement",
    "missed_deadline",
    "communication_breakdown",
    "fraud_concern",
    "payment_issue",
]

CUSTOMER_STATUSES = {"open", "awaiting_customer", "under_review"}
RESOLVED_STATUSES = {"settled", "closed"}
ACTIVE_TRANSACTION_STATUSES = {
    EscrowTransactionStatus.FUNDED.value,
    EscrowTransactionStatus.IN_ESCROW.value,
    EscrowTransactionStatus.DISPUTED.value,
}
ESCALATED_STAGES = {"mediation", "arbitration", "resolved"}
RESPONDER_ACTORS = {"mediator", "admin", "provider"}
USER_STATUS_CHANGES = {"open", "awaiting_customer", "under_review", "settled"}
ALERT_SEVERITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}

DEFAULT_RESPONSE_SLA_HOURS = 24
DEFAULT_RESOLUTION_SLA_HOURS = 120
HIGH_VALUE_EXPOSURE = 1500
ELIGIBLE_TRANSACTION_LIMIT = 50

_PRIORITY_RANK = case(
    {"urgent": 3, "high": 2, "medium": 1, "low": 0},
    value=DisputeCase.priority,
    else_=0,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ── Payload shaping ──────────────────────────────────────────────────────────


def _transaction_payload(transaction: EscrowTransaction | None) -> dict[str, Any] | None:
    if transaction is None:
        return None
    data = transaction.to_dict(exclude={"is_deleted"})
    metadata = transaction.metadata_ or {}
    data["metadata"] = strip_private_metadata(metadata) or None
    data["display_name"] = (
        metadata.get("title")
        or metadata.get("gig_title")
        or metadata.get("project_name")
        or transaction.milestone_label
        or metadata.get("description")
        or transaction.reference
        or f"Escrow transaction #{transaction.id}"
    )
    return data


def escrow_exposure(transaction: EscrowTransaction | None) -> float:
    """Net escrow amount when recorded, otherwise the gross amount."""
    if transaction is None:
        return 0.0
    amount = transaction.net_amount if transaction.net_amount is not None else transaction.amount
    return float(amount or 0)


def _event_payload(event: DisputeEvent) -> dict[str, Any]:
    data = event.to_dict()
    data["metadata"] = strip_private_metadata(event.metadata_)
    return data


def _sorted_events(dispute: DisputeCase) -> list[DisputeEvent]:
    return sorted(dispute.events or [], key=lambda e: e.event_at or e.created_at or datetime.min.replace(tzinfo=timezone.utc))


def days_open(dispute: DisputeCase, now: datetime | None = None) -> int:
    if not dispute.opened_at:
        return 0
    now = now or _now()
    return max(0, math.floor((now - dispute.opened_at).total_seconds() / 86400))


def compute_first_response_minutes(dispute: DisputeCase) -> float | None:
    """Minutes from opening to the first mediator, admin or provider event."""
    if not dispute.opened_at:
        return None
    responder = next(
        (e for e in _sorted_events(dispute) if e.actor_type in RESPONDER_ACTORS), None
    )
    if responder is None:
        return None
    event_at = responder.event_at or responder.created_at
    if event_at is None:
        return None
    diff = (event_at - dispute.opened_at).total_seconds() / 60
    if diff < 0:
        return None
    return round(diff, 1)


def decorate_dispute(dispute: DisputeCase, now: datetime | None = None) -> dict[str, Any]:
    events = [_event_payload(e) for e in _sorted_events(dispute)]
    attachments = [
        {
            "id": e["id"],
            "file_name": e["evidence_file_name"],
            "url": e["evidence_url"],
            "uploaded_at": e["event_at"],
            "content_type": e["evidence_content_type"] or "application/octet-stream",
        }
        for e in events
        if e["evidence_url"]
    ]
    data = dispute.to_dict(exclude={"is_deleted"})
    data["metadata"] = strip_private_metadata(dispute.metadata_)
    data.update(
        transaction=_transaction_payload(dispute.transaction),
        events=events,
        attachments=attachments,
        metrics={
            "days_open": days_open(dispute, now),
            "event_count": len(events),
            "attachment_count": len(attachments),
        },
        permissions={
            "can_add_evidence": dispute.status not in RESOLVED_STATUSES,
            "can_request_mediation": dispute.stage == "intake",
            "can_escalate": dispute.stage not in ("arbitration", "resolved"),
            "can_close": dispute.status != "closed",
        },
    )
    return data


def build_metadata(workflow: dict[str, Any], reason_codes: list[str] | None = None) -> dict[str, Any]:
    def labelled(values: list[str]) -> list[dict[str, str]]:
        return [{"value": v, "label": humanize(v)} for v in values]

    codes = list(dict.fromkeys(reason_codes or REASON_CODE_FALLBACK))
    return {
        "stages": labelled(STAGE_VALUES),
        "statuses": labelled(STATUS_VALUES),
        "priorities": labelled(PRIORITY_VALUES),
        "reason_codes": labelled(codes),
        "action_types": labelled(ACTION_TYPE_VALUES),
        "actor_types": labelled(ACTOR_TYPE_VALUES),
        "workflow": workflow,
    }


# ── Summary ──────────────────────────────────────────────────────────────────


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_trust_score(
    *,
    total: int,
    resolution_rate: float | None,
    auto_escalation_rate: float | None,
    average_first_response_minutes: float | None,
    sla_breaches: int,
    response_target_minutes: float,
) -> int | None:
    if not total:
        return None
    score = 60.0
    if resolution_rate is not None:
        score += _round_half_up(resolution_rate * 24)
    if auto_escalation_rate is not None:
        score += _round_half_up(auto_escalation_rate * 8)
    if average_first_response_minutes is not None and average_first_response_minutes >= 0:
        ratio = average_first_response_minutes / (response_target_minutes or 1440)
        contribution = 12 if ratio <= 1 else max(0.0, 12 - (ratio - 1) * 18)
        score += _round_half_up(contribution)
    if sla_breaches > 0:
        score -= min(30, sla_breaches * 6)
    return max(0, min(100, _round_half_up(score)))


def build_risk_alerts(
    dispute: DisputeCase,
    *,
    now: datetime,
    resolution_target_hours: float,
    response_target_minutes: float,
) -> list[dict[str, Any]]:
    """Risk alerts for one case. An overdue deadline suppresses every other alert."""
    alerts: list[dict[str, Any]] = []
    summary = dispute.summary
    if summary and len(summary) > 140:
        summary = summary[:137] + "..."

    def add(suffix: str, severity: str, title: str, fallback: str) -> None:
        alerts.append({
            "id": f"dispute-{dispute.id}-{suffix}",
            "dispute_id": str(dispute.id),
            "severity": severity,
            "title": title,
            "summary": summary or fallback,
        })

    deadlines = [d for d in (dispute.customer_deadline_at, dispute.provider_deadline_at) if d]
    if any(d < now for d in deadlines):
        add("sla", "critical", "SLA window breached", "Response window has elapsed without resolution.")
        return alerts

    if dispute.priority == "urgent":
        add("priority", "critical", "Urgent dispute needs action",
            "Escalate with stakeholders to prevent trust impact.")
    elif dispute.priority == "high":
        add("priority", "high", "High-priority case under review",
            "Coordinate updates with the assigned specialist.")

    if dispute.status == "awaiting_customer":
        add("awaiting", "high", "Awaiting customer response",
            "Follow up with the customer to keep momentum.")

    aging_threshold = max(2, math.ceil((resolution_target_hours or DEFAULT_RESOLUTION_SLA_HOURS) / 24))
    if days_open(dispute, now) > aging_threshold:
        add("aging", "medium", "Case aging beyond target",
            "Resolution cadence has slowed below trust targets.")

    first_response = compute_first_response_minutes(dispute)
    if first_response is not None and first_response > response_target_minutes:
        add("response", "medium", "Slow first response detected",
            "Ensure future responses land within SLA expectations.")

    if dispute.stage in ESCALATED_STAGES and dispute.transaction is not None:
        exposure = escrow_exposure(dispute.transaction)
        if exposure >= HIGH_VALUE_EXPOSURE:
            currency = dispute.transaction.currency_code or "USD"
            alerts.append({
                "id": f"dispute-{dispute.id}-exposure",
                "dispute_id": str(dispute.id),
                "severity": "medium",
                "title": "High-value dispute escalated",
                "summary": f"Escrow exposure {exposure:,.0f} {currency} requires close monitoring.",
            })

    return alerts


def _empty_summary() -> dict[str, Any]:
    return {
        "total": 0,
        "open_count": 0,
        "awaiting_customer_action": 0,
        "escalated_count": 0,
        "last_updated_at": None,
        "upcoming_deadlines": [],
        "resolution_rate": None,
        "average_first_response_minutes": None,
        "auto_escalation_rate": None,
        "sla_breaches": 0,
        "trust_score": None,
        "open_exposure": None,
        "risk_alerts": [],
        "next_sla_review_at": None,
    }


def build_dispute_summary(
    disputes: list[DisputeCase],
    workflow: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    if not disputes:
        return _empty_summary()

    now = now or _now()
    workflow = workflow or {}
    response_sla_hours = workflow.get("response_sla_hours") or DEFAULT_RESPONSE_SLA_HOURS
    response_target_minutes = response_sla_hours * 60
    resolution_target_hours = workflow.get("resolution_sla_hours") or DEFAULT_RESOLUTION_SLA_HOURS

    upcoming: list[dict[str, Any]] = []
    risk_alerts: list[dict[str, Any]] = []
    first_responses: list[float] = []
    exposures: dict[str, float] = {}
    open_count = awaiting = escalated = resolved = breaches = 0
    last_updated: datetime | None = None

    for dispute in disputes:
        if dispute.status in CUSTOMER_STATUSES:
            open_count += 1
        if dispute.status == "awaiting_customer":
            awaiting += 1
        if dispute.stage and dispute.stage != "intake":
            escalated += 1
        if dispute.status in RESOLVED_STATUSES:
            resolved += 1

        updated = dispute.updated_at or dispute.created_at
        if updated and (last_updated is None or updated > last_updated):
            last_updated = updated

        for kind, label, due in (
            ("customer", "Customer response", dispute.customer_deadline_at),
            ("provider", "Provider response", dispute.provider_deadline_at),
        ):
            if due:
                upcoming.append({
                    "id": f"{dispute.id}-{kind}",
                    "dispute_id": str(dispute.id),
                    "type": kind,
                    "due_at": due,
                    "label": label,
                    "status": dispute.status,
                    "summary": dispute.summary,
                })

        deadlines = [d for d in (dispute.customer_deadline_at, dispute.provider_deadline_at) if d]
        if dispute.status in CUSTOMER_STATUSES and any(d < now for d in deadlines):
            breaches += 1

        first_response = compute_first_response_minutes(dispute)
        if first_response is not None:
            first_responses.append(first_response)

        risk_alerts.extend(
            build_risk_alerts(
                dispute,
                now=now,
                resolution_target_hours=resolution_target_hours,
                response_target_minutes=response_target_minutes,
            )
        )

        if dispute.status not in RESOLVED_STATUSES and dispute.transaction is not None:
            amount = escrow_exposure(dispute.transaction)
            if amount > 0:
                currency = dispute.transaction.currency_code or "USD"
                exposures[currency] = exposures.get(currency, 0.0) + amount

    upcoming.sort(key=lambda d: d["due_at"])
    risk_alerts.sort(key=lambda a: (ALERT_SEVERITY_ORDER.get(a["severity"], 99), a["id"]))

    total = len(disputes)
    average_first_response = (
        round(sum(first_responses) / len(first_responses), 1) if first_responses else None
    )
    resolution_rate = resolved / total
    auto_escalation_rate = escalated / total

    open_exposure = None
    if len(exposures) == 1:
        currency, amount = next(iter(exposures.items()))
        open_exposure = {"amount": round(amount, 2), "currency": currency}
    elif exposures:
        open_exposure = {"amount": round(sum(exposures.values()), 2), "currency": "USD"}

    next_review = upcoming[0]["due_at"] if upcoming else now + timedelta(hours=response_sla_hours)

    return {
        "total": total,
        "open_count": open_count,
        "awaiting_customer_action": awaiting,
        "escalated_count": escalated,
        "last_updated_at": _iso(last_updated),
        "upcoming_deadlines": [{**d, "due_at": _iso(d["due_at"])} for d in upcoming[:5]],
        "resolution_rate": resolution_rate,
        "average_first_response_minutes": average_first_response,
        "auto_escalation_rate": auto_escalation_rate,
        "sla_breaches": breaches,
        "trust_score": compute_trust_score(
            total=total,
            resolution_rate=resolution_rate,
            auto_escalation_rate=auto_escalation_rate,
            average_first_response_minutes=average_first_response,
            sla_breaches=breaches,
            response_target_minutes=response_target_minutes,
        ),
        "open_exposure": open_exposure,
        "risk_alerts": risk_alerts[:5],
        "next_sla_review_at": _iso(next_review),
    }


# ── Queries ──────────────────────────────────────────────────────────────────


def _resolve_actor_type(user_id: uuid.UUID, transaction: EscrowTransaction | None) -> str:
    if transaction is not None and transaction.counterparty_id == user_id:
        return "provider"
    return "customer"


def _is_party(user_id: uuid.UUID, dispute: DisputeCase) -> bool:
    transaction = dispute.transaction
    if transaction is None:
        return False
    return user_id in (transaction.initiated_by_id, transaction.counterparty_id, dispute.opened_by_id)


async def load_workflow_settings(db: AsyncSession) -> dict[str, Any]:
    result = await db.execute(
        select(DisputeWorkflowSetting)
        .where(DisputeWorkflowSetting.is_deleted == False)  # noqa: E712
        .order_by(DisputeWorkflowSetting.updated_at.desc())
        .limit(1)
    )
    record = result.scalar_one_or_none()
    if record is None:
        return {
            "response_sla_hours": DEFAULT_RESPONSE_SLA_HOURS,
            "resolution_sla_hours": DEFAULT_RESOLUTION_SLA_HOURS,
            "auto_escalate_hours": None,
            "reason_codes": None,
        }
    return {
        "response_sla_hours": record.response_sla_hours,
        "resolution_sla_hours": record.resolution_sla_hours,
        "auto_escalate_hours": record.auto_escalate_hours,
        "reason_codes": record.reason_codes,
    }


async def _load_dispute(db: AsyncSession, dispute_id: uuid.UUID) -> DisputeCase | None:
    result = await db.execute(
        select(DisputeCase)
        .where(DisputeCase.id == dispute_id, DisputeCase.is_deleted == False)  # noqa: E712
        .options(selectinload(DisputeCase.transaction), selectinload(DisputeCase.events))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _load_dispute_for_user(
    db: AsyncSession, user_id: uuid.UUID, dispute_id: uuid.UUID
) -> DisputeCase:
    dispute = await _load_dispute(db, dispute_id)
    if dispute is None:
        raise NotFoundError("Dispute not found.")
    if not _is_party(user_id, dispute):
        raise AuthorizationError("You do not have access to this dispute.")
    return dispute


async def list_user_disputes(
    db: AsyncSession,
    user_id: uuid.UUID,
    stage: str | None = None,
    status: str | None = None,
) -> dict[str, Any]:
    stmt = (
        select(DisputeCase)
        .join(EscrowTransaction, DisputeCase.escrow_transaction_id == EscrowTransaction.id)
        .where(
            DisputeCase.is_deleted == False,  # noqa: E712
            or_(
                EscrowTransaction.initiated_by_id == user_id,
                EscrowTransaction.counterparty_id == user_id,
                DisputeCase.opened_by_id == user_id,
            ),
        )
        .options(selectinload(DisputeCase.transaction), selectinload(DisputeCase.events))
        .order_by(_PRIORITY_RANK.desc(), DisputeCase.updated_at.desc())
    )
    # Unknown filter values are ignored rather than rejected.
    if stage in STAGE_VALUES:
        stmt = stmt.where(DisputeCase.stage == stage)
    if status in STATUS_VALUES:
        stmt = stmt.where(DisputeCase.status == status)
    result = await db.execute(stmt)
    disputes = list(result.scalars().unique().all())

    workflow = await load_workflow_settings(db)
    now = _now()

    result = await db.execute(
        select(EscrowTransaction)
        .where(
            or_(
                EscrowTransaction.initiated_by_id == user_id,
                EscrowTransaction.counterparty_id == user_id,
            ),
            EscrowTransaction.status.in_(ACTIVE_TRANSACTION_STATUSES),
            EscrowTransaction.is_deleted == False,  # noqa: E712
        )
        .order_by(EscrowTransaction.updated_at.desc())
        .limit(ELIGIBLE_TRANSACTION_LIMIT)
    )
    eligible = list(result.scalars().all())

    reason_codes = [
        *REASON_CODE_FALLBACK,
        *(workflow.get("reason_codes") or []),
        *(d.reason_code for d in disputes if d.reason_code),
    ]

    return {
        "summary": build_dispute_summary(disputes, workflow, now),
        "disputes": [decorate_dispute(d, now) for d in disputes],
        "eligible_transactions": [
            {
                **_transaction_payload(t),
                "actor_type": _resolve_actor_type(user_id, t),
                "eligible_for_dispute": t.status in ACTIVE_TRANSACTION_STATUSES,
            }
            for t in eligible
        ],
        "metadata": build_metadata(workflow, reason_codes),
        "permissions": {"can_create": bool(eligible)},
    }


async def get_user_dispute(
    db: AsyncSession, user_id: uuid.UUID, dispute_id: uuid.UUID
) -> dict[str, Any]:
    dispute = await _load_dispute_for_user(db, user_id, dispute_id)
    return decorate_dispute(dispute)


async def get_user_dispute_overview(db: AsyncSession, user_id: uuid.UUID) -> dict[str, Any]:
    data = await list_user_disputes(db, user_id)
    return {
        "summary": data["summary"],
        "metadata": data["metadata"],
        "permissions": data["permissions"],
    }


# ── Mutations ────────────────────────────────────────────────────────────────


async def create_user_dispute(
    db: AsyncSession, user_id: uuid.UUID, body: Any
) -> dict[str, Any]:
    """Open a case on an active escrow transaction and mark the transaction disputed."""
    data = body.model_dump(exclude_unset=True)
    transaction_id = parse_uuid(data.get("escrow_transaction_id"), "escrow_transaction_id")
    reason_code = sanitize_string(data.get("reason_code"), max_length=80, lower=True)
    summary = sanitize_string(data.get("summary"), max_length=500)
    if not transaction_id or not reason_code or not summary:
        raise ValidationError("escrow_transaction_id, reason_code and summary are required.")
    priority = ensure_choice(data.get("priority"), "priority", set(PRIORITY_VALUES), default="medium")

    result = await db.execute(
        select(EscrowTransaction).where(
            EscrowTransaction.id == transaction_id,
            EscrowTransaction.is_deleted == False,  # noqa: E712
        )
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise NotFoundError("Escrow transaction not found.")
    if user_id not in (transaction.initiated_by_id, transaction.counterparty_id):
        raise AuthorizationError("You do not have access to this transaction.")
    if transaction.status not in ACTIVE_TRANSACTION_STATUSES:
        raise ValidationError("Disputes can only be opened for funded or in-escrow transactions.")

    result = await db.execute(
        select(DisputeCase.id).where(
            DisputeCase.escrow_transaction_id == transaction_id,
            DisputeCase.status.in_(CUSTOMER_STATUSES),
            DisputeCase.is_deleted == False,  # noqa: E712
        )
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("A dispute is already active for this escrow transaction.")

    now = _now()
    dispute = DisputeCase(
        id=uuid.uuid4(),
        escrow_transaction_id=transaction_id,
        opened_by_id=user_id,
        stage="intake",
        status="open",
        priority=priority,
        reason_code=reason_code,
        summary=summary,
        customer_deadline_at=parse_datetime(data.get("customer_deadline_at"), "customer_deadline_at"),
        provider_deadline_at=parse_datetime(data.get("provider_deadline_at"), "provider_deadline_at"),
        opened_at=now,
        metadata_=sanitize_metadata(data.get("metadata")),
    )
    db.add(dispute)
    await db.flush()

    trail = list((transaction.metadata_ or {}).get("audit_trail", []))
    trail.append({
        "action": "dispute_opened",
        "actor_id": str(user_id),
        "reason_code": reason_code,
        "at": now.isoformat(),
    })
    transaction.status = EscrowTransactionStatus.DISPUTED.value
    transaction.metadata_ = {**(transaction.metadata_ or {}), "audit_trail": trail}

    db.add(
        DisputeEvent(
            dispute_case_id=dispute.id,
            actor_id=user_id,
            actor_type=_resolve_actor_type(user_id, transaction),
            action_type="comment",
            notes=summary,
            event_at=now,
            metadata_={"system": True},
        )
    )
    await db.commit()

    logger.info(
        "disputes.case_opened",
        dispute_id=str(dispute.id),
        transaction_id=str(transaction_id),
        user_id=str(user_id),
        priority=priority,
    )
    return await get_user_dispute(db, user_id, dispute.id)


async def append_user_dispute_event(
    db: AsyncSession, user_id: uuid.UUID, dispute_id: uuid.UUID, body: Any
) -> dict[str, Any]:
    dispute = await _load_dispute_for_user(db, user_id, dispute_id)
    data = body.model_dump(exclude_unset=True)

    notes = sanitize_string(data.get("notes"), max_length=5000)
    evidence = data.get("evidence") or None
    if not notes and not (evidence and evidence.get("content")):
        raise ValidationError("A note or evidence upload is required to update the dispute.")

    stage = sanitize_string(data.get("stage"), max_length=20, lower=True)
    if stage and stage not in STAGE_VALUES:
        raise ValidationError("Invalid dispute stage supplied.")
    status = sanitize_string(data.get("status"), max_length=20, lower=True)
    if status and status not in STATUS_VALUES:
        raise ValidationError("Invalid dispute status supplied.")
    next_status = status if status in USER_STATUS_CHANGES else None

    action_type = sanitize_string(data.get("action_type"), max_length=30, lower=True)
    if action_type not in ACTION_TYPE_VALUES:
        action_type = "comment"
    if evidence and action_type == "comment":
        action_type = "evidence_upload"

    stored = None
    if evidence and evidence.get("content"):
        stored = store_evidence(
            dispute.id,
            evidence.get("file_name"),
            evidence.get("content_type"),
            evidence["content"],
        )

    now = _now()
    changes: dict[str, Any] = {}
    if stage and stage != dispute.stage:
        changes["stage"] = {"from": dispute.stage, "to": stage}
        dispute.stage = stage
    if next_status and next_status != dispute.status:
        changes["status"] = {"from": dispute.status, "to": next_status}
        dispute.status = next_status
        if next_status in RESOLVED_STATUSES:
            dispute.resolved_at = now
    for field in ("customer_deadline_at", "provider_deadline_at"):
        if field in data:
            value = parse_datetime(data[field], field)
            changes[field] = _iso(value)
            setattr(dispute, field, value)
    if "resolution_notes" in data:
        dispute.resolution_notes = sanitize_string(data["resolution_notes"], max_length=5000)

    db.add(
        DisputeEvent(
            dispute_case_id=dispute.id,
            actor_id=user_id,
            actor_type=_resolve_actor_type(user_id, dispute.transaction),
            action_type=action_type,
            notes=notes,
            evidence_key=stored.key if stored else None,
            evidence_url=stored.url if stored else None,
            evidence_file_name=stored.file_name if stored else None,
            evidence_content_type=stored.content_type if stored else None,
            event_at=now,
            metadata_={"changes": changes} if changes else None,
        )
    )
    await db.commit()

    logger.info(
        "disputes.event_appended",
        dispute_id=str(dispute.id),
        user_id=str(user_id),
        action_type=action_type,
        changes=sorted(changes),
    )
    return await get_user_dispute(db, user_id, dispute.id)
