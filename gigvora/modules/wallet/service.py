"""Wallet management: overview dashboard, funding sources, transfer rules and requests.

Every operation is scoped to the wallet owner. The caller must be that user
or an admin. Mutations invalidate the cached overview for the owner.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.core import cache
from gigvora.core.errors import AuthorizationError, NotFoundError, ValidationError
from gigvora.models.core import User
from gigvora.models.enums import FundingSourceStatus, TransferRequestStatus
from gigvora.models.wallet import (
    WalletAccount,
    WalletFundingSource,
    WalletLedgerEntry,
    WalletTransferRequest,
    WalletTransferRule,
)
from gigvora.schemas.auth import CurrentUser
from gigvora.utils.sanitizers import (
    ensure_choice,
    normalize_currency,
    parse_datetime,
    parse_decimal,
    parse_int,
    parse_uuid,
    require_string,
    sanitize_metadata,
    sanitize_string,
    strip_private_metadata,
)

logger = structlog.get_logger()

CACHE_NAMESPACE = "wallet:management"
CACHE_TTL_SECONDS = 60
LEDGER_LIMIT = 120
ACCOUNT_LEDGER_LIMIT = 10
TRANSFER_LIMIT = 100

FUNDING_SOURCE_STATUSES = {s.value for s in FundingSourceStatus}
TRANSFER_STATUSES = {s.value for s in TransferRequestStatus}
OPEN_TRANSFER_STATUSES = {"pending", "scheduled", "processing"}
TERMINAL_TRANSFER_STATUSES = {"completed", "failed", "cancelled"}
TRANSFER_TYPES = {"payout", "sweep", "top_up"}
RULE_CADENCES = {"daily", "weekly", "biweekly", "monthly", "threshold"}
RULE_STATUSES = {"active", "paused", "archived"}
USABLE_SOURCE_STATUSES = {"active", "verified"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _serialize(model: Any) -> dict[str, Any]:
    data = model.to_dict(exclude={"is_deleted"})
    data["metadata"] = strip_private_metadata(data.get("metadata"))
    return data


def _overview_key(user_id: uuid.UUID) -> str:
    return cache.cache_key(CACHE_NAMESPACE, user_id)


async def _invalidate(user_id: uuid.UUID) -> None:
    await cache.invalidate(_overview_key(user_id))


def assert_can_manage_wallet(actor: CurrentUser, user_id: uuid.UUID) -> None:
    if actor.is_admin or actor.user_id == user_id:
        return
    raise AuthorizationError("You do not have permission to manage this wallet.")


# ── Lookups ──────────────────────────────────────────────────────────────────


async def _load_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id, User.is_deleted == False)  # noqa: E712
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found.")
    return user


async def resolve_wallet_account(
    db: AsyncSession, user_id: uuid.UUID, wallet_account_id: Any = None
) -> WalletAccount:
    """Return the explicit account when given, else the user's first account."""
    account_id = parse_uuid(wallet_account_id, "wallet_account_id")
    stmt = select(WalletAccount).where(
        WalletAccount.user_id == user_id,
        WalletAccount.is_deleted == False,  # noqa: E712
    )
    if account_id:
        stmt = stmt.where(WalletAccount.id == account_id)
    else:
        stmt = stmt.order_by(WalletAccount.account_type, WalletAccount.created_at).limit(1)
    result = await db.execute(stmt)
    account = result.scalar_one_or_none()
    if account is None:
        if account_id:
            raise NotFoundError("Wallet account not found.")
        raise NotFoundError("No wallet account is available for this user.")
    return account


async def _load_funding_source_for_account(
    db: AsyncSession, account: WalletAccount, source_id: uuid.UUID
) -> WalletFundingSource:
    result = await db.execute(
        select(WalletFundingSource).where(
            WalletFundingSource.id == source_id,
            WalletFundingSource.wallet_account_id == account.id,
            WalletFundingSource.is_deleted == False,  # noqa: E712
        )
    )
    source = result.scalar_one_or_none()
    if source is None:
        raise ValidationError("Funding source does not belong to this wallet account.")
    return source


async def _user_account_ids(db: AsyncSession, user_id: uuid.UUID) -> set[uuid.UUID]:
    result = await db.execute(
        select(WalletAccount.id).where(
            WalletAccount.user_id == user_id,
            WalletAccount.is_deleted == False,  # noqa: E712
        )
    )
    return set(result.scalars().all())


async def _clear_primary(
    db: AsyncSession, wallet_account_id: uuid.UUID, keep_id: uuid.UUID | None = None
) -> None:
    stmt = (
        update(WalletFundingSource)
        .where(
            WalletFundingSource.wallet_account_id == wallet_account_id,
            WalletFundingSource.is_primary == True,  # noqa: E712
        )
        .values(is_primary=False)
    )
    if keep_id is not None:
        stmt = stmt.where(WalletFundingSource.id != keep_id)
    await db.execute(stmt)


# ── Overview ─────────────────────────────────────────────────────────────────


def _build_summary(
    accounts: list[WalletAccount], transfers: list[WalletTransferRequest]
) -> dict[str, Any]:
    currency = accounts[0].currency_code if accounts else "USD"
    scheduled = sorted(
        t.scheduled_at for t in transfers if t.status == "scheduled" and t.scheduled_at
    )
    reconciled = [a.last_reconciled_at for a in accounts if a.last_reconciled_at]
    return {
        "currency": currency,
        "account_count": len(accounts),
        "total_balance": float(sum((a.current_balance or Decimal("0")) for a in accounts)),
        "available_balance": float(sum((a.available_balance or Decimal("0")) for a in accounts)),
        "pending_hold_balance": float(
            sum((a.pending_hold_balance or Decimal("0")) for a in accounts)
        ),
        "pending_transfer_count": sum(1 for t in transfers if t.status in OPEN_TRANSFER_STATUSES),
        "next_scheduled_transfer_at": scheduled[0].isoformat() if scheduled else None,
        "last_reconciled_at": max(reconciled).isoformat() if reconciled else None,
    }


def _build_alerts(
    accounts: list[WalletAccount],
    sources: list[WalletFundingSource],
    transfers: list[WalletTransferRequest],
) -> list[dict[str, Any]]:
    alerts: list[dict[str, Any]] = []
    if not accounts:
        alerts.append({
            "type": "no_wallet_account",
            "severity": "warning",
            "message": "No wallet account has been provisioned yet.",
        })
    if not any(s.status in USABLE_SOURCE_STATUSES for s in sources):
        alerts.append({
            "type": "no_active_funding_source",
            "severity": "warning",
            "message": "Add and verify a funding source to enable payouts.",
        })
    failed = sum(1 for t in transfers if t.status == "failed")
    if failed:
        alerts.append({
            "type": "failed_transfers",
            "severity": "critical",
            "message": f"{failed} transfer(s) failed and need attention.",
        })
    return alerts


async def _build_overview(db: AsyncSession, user_id: uuid.UUID) -> dict[str, Any]:
    await _load_user(db, user_id)

    result = await db.execute(
        select(WalletAccount)
        .where(WalletAccount.user_id == user_id, WalletAccount.is_deleted == False)  # noqa: E712
        .order_by(WalletAccount.account_type, WalletAccount.created_at)
    )
    accounts = list(result.scalars().all())
    account_ids = [a.id for a in accounts]

    ledger: list[WalletLedgerEntry] = []
    sources: list[WalletFundingSource] = []
    rules: list[WalletTransferRule] = []
    transfers: list[WalletTransferRequest] = []
    if account_ids:
        result = await db.execute(
            select(WalletLedgerEntry)
            .where(WalletLedgerEntry.wallet_account_id.in_(account_ids))
            .order_by(WalletLedgerEntry.occurred_at.desc())
            .limit(LEDGER_LIMIT)
        )
        ledger = list(result.scalars().all())
        result = await db.execute(
            select(WalletFundingSource)
            .where(
                WalletFundingSource.wallet_account_id.in_(account_ids),
                WalletFundingSource.is_deleted == False,  # noqa: E712
            )
            .order_by(WalletFundingSource.is_primary.desc(), WalletFundingSource.created_at.desc())
        )
        sources = list(result.scalars().all())
        result = await db.execute(
            select(WalletTransferRule)
            .where(
                WalletTransferRule.wallet_account_id.in_(account_ids),
                WalletTransferRule.is_deleted == False,  # noqa: E712
            )
            .order_by(WalletTransferRule.created_at.desc())
        )
        rules = sorted(result.scalars().all(), key=lambda r: r.status != "active")
        result = await db.execute(
            select(WalletTransferRequest)
            .where(
                WalletTransferRequest.wallet_account_id.in_(account_ids),
                WalletTransferRequest.is_deleted == False,  # noqa: E712
            )
            .order_by(WalletTransferRequest.created_at.desc())
            .limit(TRANSFER_LIMIT)
        )
        transfers = list(result.scalars().all())

    accounts_payload = []
    for account in accounts:
        payload = _serialize(account)
        payload["ledger"] = [
            _serialize(e) for e in ledger if e.wallet_account_id == account.id
        ][:ACCOUNT_LEDGER_LIMIT]
        accounts_payload.append(payload)

    primary = next((s for s in sources if s.is_primary), None)

    return {
        "summary": _build_summary(accounts, transfers),
        "accounts": accounts_payload,
        "ledger": [_serialize(e) for e in ledger],
        "funding_sources": {
            "primary_id": str(primary.id) if primary else None,
            "items": [_serialize(s) for s in sources],
        },
        "transfer_rules": [_serialize(r) for r in rules],
        "transfers": {
            "recent": [_serialize(t) for t in transfers],
            "pending_count": sum(1 for t in transfers if t.status in OPEN_TRANSFER_STATUSES),
        },
        "alerts": _build_alerts(accounts, sources, transfers),
        "metadata": {"generated_at": _now().isoformat()},
    }


async def get_wallet_overview(
    db: AsyncSession,
    user_id: uuid.UUID,
    actor: CurrentUser,
    bypass_cache: bool = False,
) -> dict[str, Any]:
    assert_can_manage_wallet(actor, user_id)
    overview = await cache.remember(
        _overview_key(user_id),
        CACHE_TTL_SECONDS,
        lambda: _build_overview(db, user_id),
        bypass=bypass_cache,
    )
    return {
        **overview,
        "access": {
            "can_manage": True,
            "actor_id": str(actor.user_id),
            "is_owner": actor.user_id == user_id,
        },
    }


# ── Funding sources ──────────────────────────────────────────────────────────


async def create_funding_source(
    db: AsyncSession, user_id: uuid.UUID, body: Any, actor: CurrentUser
) -> dict[str, Any]:
    assert_can_manage_wallet(actor, user_id)
    data = body.model_dump(exclude_unset=True)
    account = await resolve_wallet_account(db, user_id, data.get("wallet_account_id"))

    source = WalletFundingSource(
        wallet_account_id=account.id,
        user_id=user_id,
        type=sanitize_string(data.get("type"), max_length=40, lower=True) or "bank_account",
        label=require_string(data.get("label"), "label", max_length=160),
        institution_name=sanitize_string(data.get("institution_name"), max_length=160),
        last_four=sanitize_string(data.get("last_four"), max_length=8),
        currency_code=normalize_currency(data.get("currency_code"), account.currency_code),
        status=ensure_choice(
            data.get("status"), "status", FUNDING_SOURCE_STATUSES, default="pending"
        ),
        is_primary=bool(data.get("make_primary")),
        provider=sanitize_string(data.get("provider"), max_length=80),
        external_reference=sanitize_string(data.get("external_reference"), max_length=160),
        connected_at=parse_datetime(data.get("connected_at"), "connected_at"),
        metadata_=sanitize_metadata(data.get("metadata")),
    )
    if source.is_primary:
        await _clear_primary(db, account.id)
    db.add(source)
    await db.commit()
    await db.refresh(source)
    await _invalidate(user_id)

    logger.info(
        "wallet.funding_source_created",
        user_id=str(user_id),
        funding_source_id=str(source.id),
        is_primary=source.is_primary,
    )
    return _serialize(source)


async def update_funding_source(
    db: AsyncSession,
    user_id: uuid.UUID,
    source_id: uuid.UUID,
    body: Any,
    actor: CurrentUser,
) -> dict[str, Any]:
    assert_can_manage_wallet(actor, user_id)
    result = await db.execute(
        select(WalletFundingSource).where(
            WalletFundingSource.id == source_id,
            WalletFundingSource.user_id == user_id,
            WalletFundingSource.is_deleted == False,  # noqa: E712
        )
    )
    source = result.scalar_one_or_none()
    if source is None:
        raise NotFoundError("Funding source not found.")

    data = body.model_dump(exclude_unset=True)
    if "label" in data:
        source.label = require_string(data["label"], "label", max_length=160)
    if "type" in data:
        source.type = sanitize_string(data["type"], max_length=40, lower=True) or source.type
    if "institution_name" in data:
        source.institution_name = sanitize_string(data["institution_name"], max_length=160)
    if "last_four" in data:
        source.last_four = sanitize_string(data["last_four"], max_length=8)
    if "currency_code" in data:
        source.currency_code = normalize_currency(data["currency_code"], source.currency_code)
    if "provider" in data:
        source.provider = sanitize_string(data["provider"], max_length=80)
    if "external_reference" in data:
        source.external_reference = sanitize_string(data["external_reference"], max_length=160)
    if "last_verified_at" in data:
        source.last_verified_at = parse_datetime(data["last_verified_at"], "last_verified_at")
    if "metadata" in data:
        source.metadata_ = sanitize_metadata(data["metadata"])
    if "status" in data:
        source.status = ensure_choice(data["status"], "status", FUNDING_SOURCE_STATUSES) or source.status
        if source.status != "disabled":
            source.disabled_at = None
        elif source.disabled_at is None:
            source.disabled_at = _now()

    make_primary = data.get("make_primary")
    if make_primary is True:
        await _clear_primary(db, source.wallet_account_id, keep_id=source.id)
        source.is_primary = True
    elif make_primary is False:
        source.is_primary = False

    if data.get("disable"):
        source.status = "disabled"
        source.disabled_at = _now()

    await db.commit()
    await db.refresh(source)
    await _invalidate(user_id)
    logger.info("wallet.funding_source_updated", user_id=str(user_id), funding_source_id=str(source.id))
    return _serialize(source)


# ── Transfer rules ───────────────────────────────────────────────────────────


async def create_transfer_rule(
    db: AsyncSession, user_id: uuid.UUID, body: Any, actor: CurrentUser
) -> dict[str, Any]:
    assert_can_manage_wallet(actor, user_id)
    data = body.model_dump(exclude_unset=True)
    account = await resolve_wallet_account(db, user_id, data.get("wallet_account_id"))

    name = require_string(data.get("name"), "name", max_length=160)
    funding_source_id = parse_uuid(data.get("funding_source_id"), "funding_source_id")
    if funding_source_id:
        await _load_funding_source_for_account(db, account, funding_source_id)

    rule = WalletTransferRule(
        wallet_account_id=account.id,
        user_id=user_id,
        funding_source_id=funding_source_id,
        name=name,
        transfer_type=ensure_choice(
            data.get("transfer_type"), "transfer_type", TRANSFER_TYPES, default="payout"
        ),
        cadence=ensure_choice(data.get("cadence"), "cadence", RULE_CADENCES, default="monthly"),
        status=ensure_choice(data.get("status"), "status", RULE_STATUSES, default="active"),
        threshold_amount=parse_decimal(
            data.get("threshold_amount"), "threshold_amount", minimum=Decimal("0")
        ),
        threshold_currency=normalize_currency(
            data.get("threshold_currency"), account.currency_code
        ),
        execution_day=parse_int(data.get("execution_day"), "execution_day", minimum=1, maximum=31),
        next_run_at=parse_datetime(data.get("next_run_at"), "next_run_at"),
        notes=sanitize_string(data.get("notes"), max_length=2000),
        metadata_=sanitize_metadata(data.get("metadata")),
    )
    db.add(rule)
    await db.commit()
    await db.refresh(rule)
    await _invalidate(user_id)
    logger.info("wallet.transfer_rule_created", user_id=str(user_id), rule_id=str(rule.id))
    return _serialize(rule)


async def _load_rule_for_user(
    db: AsyncSession, user_id: uuid.UUID, rule_id: uuid.UUID
) -> WalletTransferRule:
    result = await db.execute(
        select(WalletTransferRule).where(
            WalletTransferRule.id == rule_id,
            WalletTransferRule.is_deleted == False,  # noqa: E712
        )
    )
    rule = result.scalar_one_or_none()
    if rule is None:
        raise NotFoundError("Transfer rule not found.")
    if rule.wallet_account_id not in await _user_account_ids(db, user_id):
        raise AuthorizationError("Transfer rule does not belong to this wallet.")
    return rule


async def update_transfer_rule(
    db: AsyncSession,
    user_id: uuid.UUID,
    rule_id: uuid.UUID,
    body: Any,
    actor: CurrentUser,
) -> dict[str, Any]:
    assert_can_manage_wallet(actor, user_id)
    rule = await _load_rule_for_user(db, user_id, rule_id)
    data = body.model_dump(exclude_unset=True)

    if "name" in data:
        rule.name = require_string(data["name"], "name", max_length=160)
    if "transfer_type" in data:
        rule.transfer_type = ensure_choice(
            data["transfer_type"], "transfer_type", TRANSFER_TYPES, default=rule.transfer_type
        )
    if "cadence" in data:
        rule.cadence = ensure_choice(data["cadence"], "cadence", RULE_CADENCES, default=rule.cadence)
    if "status" in data:
        rule.status = ensure_choice(data["status"], "status", RULE_STATUSES, default=rule.status)
    if "threshold_amount" in data:
        rule.threshold_amount = parse_decimal(
            data["threshold_amount"], "threshold_amount", minimum=Decimal("0")
        )
    if "threshold_currency" in data:
        rule.threshold_currency = normalize_currency(data["threshold_currency"], rule.threshold_currency)
    if "execution_day" in data:
        rule.execution_day = parse_int(data["execution_day"], "execution_day", minimum=1, maximum=31)
    if "next_run_at" in data:
        rule.next_run_at = parse_datetime(data["next_run_at"], "next_run_at")
    if "notes" in data:
        rule.notes = sanitize_string(data["notes"], max_length=2000)
    if "metadata" in data:
        rule.metadata_ = sanitize_metadata(data["metadata"])
    if "funding_source_id" in data:
        funding_source_id = parse_uuid(data["funding_source_id"], "funding_source_id")
        if funding_source_id:
            result = await db.execute(
                select(WalletAccount).where(WalletAccount.id == rule.wallet_account_id)
            )
            account = result.scalar_one()
            await _load_funding_source_for_account(db, account, funding_source_id)
        rule.funding_source_id = funding_source_id

    await db.commit()
    await db.refresh(rule)
    await _invalidate(user_id)
    logger.info("wallet.transfer_rule_updated", user_id=str(user_id), rule_id=str(rule.id))
    return _serialize(rule)


async def delete_transfer_rule(
    db: AsyncSession, user_id: uuid.UUID, rule_id: uuid.UUID, actor: CurrentUser
) -> dict[str, Any]:
    """Archive a rule. Rules are kept for the transfer history that references them."""
    assert_can_manage_wallet(actor, user_id)
    rule = await _load_rule_for_user(db, user_id, rule_id)
    rule.status = "archived"
    await db.commit()
    await db.refresh(rule)
    await _invalidate(user_id)
    logger.info("wallet.transfer_rule_archived", user_id=str(user_id), rule_id=str(rule.id))
    return _serialize(rule)


# ── Transfer requests ────────────────────────────────────────────────────────


async def create_transfer_request(
    db: AsyncSession, user_id: uuid.UUID, body: Any, actor: CurrentUser
) -> dict[str, Any]:
    assert_can_manage_wallet(actor, user_id)
    data = body.model_dump(exclude_unset=True)
    account = await resolve_wallet_account(db, user_id, data.get("wallet_account_id"))

    amount = parse_decimal(data.get("amount"), "amount")
    if amount is None or amount <= 0:
        raise ValidationError("amount must be greater than zero.")
    available = account.available_balance or Decimal("0")
    if amount > available + 1:
        raise ValidationError(
            "Transfer amount exceeds the available balance.",
            details=[{"available_balance": float(available), "amount": float(amount)}],
        )

    funding_source_id = parse_uuid(data.get("funding_source_id"), "funding_source_id")
    if funding_source_id:
        source = await _load_funding_source_for_account(db, account, funding_source_id)
        if source.status == "disabled":
            raise ValidationError("Funding source is disabled.")

    transfer_rule_id = parse_uuid(data.get("transfer_rule_id"), "transfer_rule_id")
    if transfer_rule_id:
        result = await db.execute(
            select(WalletTransferRule).where(
                WalletTransferRule.id == transfer_rule_id,
                WalletTransferRule.wallet_account_id == account.id,
            )
        )
        if result.scalar_one_or_none() is None:
            raise ValidationError("Transfer rule does not belong to this wallet account.")

    scheduled_at = parse_datetime(data.get("scheduled_at"), "scheduled_at")
    request = WalletTransferRequest(
        wallet_account_id=account.id,
        user_id=user_id,
        funding_source_id=funding_source_id,
        transfer_rule_id=transfer_rule_id,
        transfer_type=ensure_choice(
            data.get("transfer_type"), "transfer_type", TRANSFER_TYPES, default="payout"
        ),
        amount=amount,
        currency_code=normalize_currency(data.get("currency_code"), account.currency_code),
        status="scheduled" if scheduled_at else "pending",
        requested_by_id=actor.user_id,
        scheduled_at=scheduled_at,
        notes=sanitize_string(data.get("notes"), max_length=2000),
        metadata_=sanitize_metadata(data.get("metadata")),
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)
    await _invalidate(user_id)
    logger.info(
        "wallet.transfer_requested",
        user_id=str(user_id),
        transfer_id=str(request.id),
        amount=float(amount),
        status=request.status,
    )
    return _serialize(request)


async def update_transfer_request(
    db: AsyncSession,
    user_id: uuid.UUID,
    request_id: uuid.UUID,
    body: Any,
    actor: CurrentUser,
) -> dict[str, Any]:
    assert_can_manage_wallet(actor, user_id)
    result = await db.execute(
        select(WalletTransferRequest).where(
            WalletTransferRequest.id == request_id,
            WalletTransferRequest.user_id == user_id,
            WalletTransferRequest.is_deleted == False,  # noqa: E712
        )
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Transfer request not found.")

    data = body.model_dump(exclude_unset=True)
    now = _now()

    status = ensure_choice(data.get("status"), "status", TRANSFER_STATUSES)
    if status:
        request.status = status
        if status == "cancelled":
            request.metadata_ = {
                **(request.metadata_ or {}),
                "cancelled_at": now.isoformat(),
                "cancelled_by": str(actor.user_id),
            }
        if status == "completed":
            request.processed_at = parse_datetime(data.get("processed_at"), "processed_at") or now

    if "scheduled_at" in data:
        request.scheduled_at = parse_datetime(data["scheduled_at"], "scheduled_at")
        if request.scheduled_at and request.status not in TERMINAL_TRANSFER_STATUSES:
            request.status = "scheduled"
    if "failure_reason" in data:
        request.failure_reason = sanitize_string(data["failure_reason"], max_length=255)
    if "notes" in data:
        request.notes = sanitize_string(data["notes"], max_length=2000)
    if "metadata" in data and isinstance(data["metadata"], dict):
        request.metadata_ = {**(request.metadata_ or {}), **data["metadata"]}

    await db.commit()
    await db.refresh(request)
    await _invalidate(user_id)
    logger.info(
        "wallet.transfer_updated",
        user_id=str(user_id),
        transfer_id=str(request.id),
        status=request.status,
    )
    return _serialize(request)
