"""Wallet models: accounts, ledger, funding sources, transfer rules and requests."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gigvora.models.base import BaseModel, TimestampedModel


class WalletAccount(BaseModel):
    __tablename__ = "wallet_accounts"
    __table_args__ = (
        Index("ix_wallet_accounts_user_id", "user_id"),
        Index("ix_wallet_accounts_user_type", "user_id", "account_type"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workspaces.id", ondelete="SET NULL"), nullable=True
    )
    account_type: Mapped[str] = mapped_column(
        String(40), nullable=False, default="user", server_default="user"
    )  # user, freelancer, agency, company, escrow
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")
    current_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"), server_default="0")
    available_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"), server_default="0")
    pending_hold_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"), server_default="0")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", server_default="active"
    )  # active, suspended, closed
    last_reconciled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    ledger_entries: Mapped[list[WalletLedgerEntry]] = relationship(back_populates="account")
    funding_sources: Mapped[list[WalletFundingSource]] = relationship(back_populates="account")


class WalletLedgerEntry(TimestampedModel):
    """Append-only money movement on a wallet account."""

    __tablename__ = "wallet_ledger_entries"
    __table_args__ = (
        Index("ix_wallet_ledger_account_occurred", "wallet_account_id", "occurred_at"),
    )

    wallet_account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wallet_accounts.id", ondelete="CASCADE"), nullable=False
    )
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)  # credit, debit, hold, release
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(120))
    description: Mapped[str | None] = mapped_column(String(255))
    balance_after: Mapped[Decimal | None] = mapped_column()
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    account: Mapped[WalletAccount] = relationship(back_populates="ledger_entries")


class WalletFundingSource(BaseModel):
    __tablename__ = "wallet_funding_sources"
    __table_args__ = (
        Index("ix_wallet_funding_sources_account", "wallet_account_id"),
    )

    wallet_account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wallet_accounts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(
        String(40), nullable=False, default="bank_account", server_default="bank_account"
    )  # bank_account, debit_card, paypal, stripe_connect
    label: Mapped[str] = mapped_column(String(160), nullable=False)
    institution_name: Mapped[str | None] = mapped_column(String(160))
    last_four: Mapped[str | None] = mapped_column(String(8))
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, server_default="USD")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )  # pending, active, verified, disabled
    is_primary: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)
    provider: Mapped[str | None] = mapped_column(String(80))
    external_reference: Mapped[str | None] = mapped_column(String(160))
    connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    disabled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)

    account: Mapped[WalletAccount] = relationship(back_populates="funding_sources")


class WalletTransferRule(BaseModel):
    __tablename__ = "wallet_transfer_rules"
    __table_args__ = (
        CheckConstraint("threshold_amount >= 0", name="ck_wallet_transfer_rules_threshold"),
        CheckConstraint(
            "execution_day IS NULL OR (execution_day BETWEEN 1 AND 31)",
            name="ck_wallet_transfer_rules_execution_day",
        ),
        Index("ix_wallet_transfer_rules_account_status", "wallet_account_id", "status"),
    )

    wallet_account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wallet_accounts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    funding_source_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wallet_funding_sources.id", ondelete="SET NULL")
    )
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    transfer_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="payout", server_default="payout"
    )  # payout, sweep, top_up
    cadence: Mapped[str] = mapped_column(
        String(20), nullable=False, default="monthly", server_default="monthly"
    )  # daily, weekly, biweekly, monthly, threshold
    threshold_amount: Mapped[Decimal | None] = mapped_column()
    threshold_currency: Mapped[str | None] = mapped_column(String(3))
    execution_day: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", server_default="active"
    )  # active, paused, archived
    last_executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)


class WalletTransferRequest(BaseModel):
    __tablename__ = "wallet_transfer_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transfer_requests_amount"),
        Index("ix_wallet_transfer_requests_account_status", "wallet_account_id", "status"),
    )

    wallet_account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wallet_accounts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    funding_source_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wallet_funding_sources.id", ondelete="SET NULL")
    )
    transfer_rule_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("wallet_transfer_rules.id", ondelete="SET NULL")
    )
    transfer_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="payout", server_default="payout"
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )  # pending, scheduled, processing, completed, failed, cancelled
    requested_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    failure_reason: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB)
