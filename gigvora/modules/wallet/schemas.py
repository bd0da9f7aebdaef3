"""Wallet request/response schemas.

Request bodies only check shapes; business rules (required labels, balance
limits, ownership) live in the service so they apply to every caller.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict


class FundingSourceCreate(BaseModel):
    wallet_account_id: uuid.UUID | None = None
    label: str | None = None
    type: str | None = None
    institution_name: str | None = None
    last_four: str | None = None
    currency_code: str | None = None
    status: str | None = None
    make_primary: bool = False
    provider: str | None = None
    external_reference: str | None = None
    connected_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class FundingSourceUpdate(BaseModel):
    label: str | None = None
    type: str | None = None
    institution_name: str | None = None
    last_four: str | None = None
    currency_code: str | None = None
    status: str | None = None
    make_primary: bool | None = None
    disable: bool | None = None
    provider: str | None = None
    external_reference: str | None = None
    last_verified_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class TransferRuleCreate(BaseModel):
    wallet_account_id: uuid.UUID | None = None
    funding_source_id: uuid.UUID | None = None
    name: str | None = None
    transfer_type: str | None = None
    cadence: str | None = None
    status: str | None = None
    threshold_amount: Decimal | None = None
    threshold_currency: str | None = None
    execution_day: int | None = None
    next_run_at: datetime | None = None
    notes: str | None = None
    metadata: dict[str, Any] | None = None


class TransferRuleUpdate(BaseModel):
    funding_source_id: uuid.UUID | None = None
    name: str | None = None
    transfer_type: str | None = None
    cadence: str | None = None
    status: str | None = None
    threshold_amount: Decimal | None = None
    threshold_currency: str | None = None
    execution_day: int | None = None
    next_run_at: datetime | None = None
    notes: str | None = None
    metadata: dict[str, Any] | None = None


class TransferRequestCreate(BaseModel):
    wallet_account_id: uuid.UUID | None = None
    funding_source_id: uuid.UUID | None = None
    transfer_rule_id: uuid.UUID | None = None
    transfer_type: str | None = None
    amount: Decimal | None = None
    currency_code: str | None = None
    scheduled_at: datetime | None = None
    notes: str | None = None
    metadata: dict[str, Any] | None = None


class TransferRequestUpdate(BaseModel):
    status: str | None = None
    scheduled_at: datetime | None = None
    processed_at: datetime | None = None
    failure_reason: str | None = None
    notes: str | None = None
    metadata: dict[str, Any] | None = None


# ── Responses ────────────────────────────────────────────────────────────────


class FundingSourceResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    wallet_account_id: uuid.UUID
    user_id: uuid.UUID
    type: str
    label: str
    institution_name: str | None = None
    last_four: str | None = None
    currency_code: str
    status: str
    is_primary: bool
    disabled_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class TransferRuleResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    wallet_account_id: uuid.UUID
    funding_source_id: uuid.UUID | None = None
    name: str
    transfer_type: str
    cadence: str
    status: str
    threshold_amount: float | None = None
    threshold_currency: str | None = None
    execution_day: int | None = None
    metadata: dict[str, Any] | None = None


class TransferRequestResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: uuid.UUID
    wallet_account_id: uuid.UUID
    funding_source_id: uuid.UUID | None = None
    transfer_rule_id: uuid.UUID | None = None
    transfer_type: str
    amount: float
    currency_code: str
    status: str
    scheduled_at: datetime | None = None
    processed_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class WalletSummary(BaseModel):
    currency: str
    account_count: int
    total_balance: float
    available_balance: float
    pending_hold_balance: float
    pending_transfer_count: int
    next_scheduled_transfer_at: datetime | None = None
    last_reconciled_at: datetime | None = None


class FundingSourceCollection(BaseModel):
    primary_id: uuid.UUID | None = None
    items: list[FundingSourceResponse]


class TransferCollection(BaseModel):
    recent: list[TransferRequestResponse]
    pending_count: int


class WalletOverviewResponse(BaseModel):
    access: dict[str, Any]
    summary: WalletSummary
    accounts: list[dict[str, Any]]
    ledger: list[dict[str, Any]]
    funding_sources: FundingSourceCollection
    transfer_rules: list[TransferRuleResponse]
    transfers: TransferCollection
    alerts: list[dict[str, Any]]
    metadata: dict[str, Any]
