"""Wallet management API router."""

import uuid

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.auth.dependencies import require_permission
from gigvora.core.database import get_db
from gigvora.modules.wallet import service
from gigvora.modules.wallet.schemas import (
    FundingSourceCreate,
    FundingSourceResponse,
    FundingSourceUpdate,
    TransferRequestCreate,
    TransferRequestResponse,
    TransferRequestUpdate,
    TransferRuleCreate,
    TransferRuleResponse,
    TransferRuleUpdate,
    WalletOverviewResponse,
)
from gigvora.schemas.auth import CurrentUser

logger = structlog.get_logger()

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/{user_id}", response_model=WalletOverviewResponse)
async def get_wallet_overview(
    user_id: uuid.UUID,
    fresh: bool = Query(False, description="Skip the cached overview"),
    current_user: CurrentUser = Depends(require_permission("view", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_wallet_overview(db, user_id, current_user, bypass_cache=fresh)


@router.post(
    "/{user_id}/funding-sources",
    response_model=FundingSourceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_funding_source(
    user_id: uuid.UUID,
    body: FundingSourceCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.create_funding_source(db, user_id, body, current_user)


@router.patch("/{user_id}/funding-sources/{source_id}", response_model=FundingSourceResponse)
async def update_funding_source(
    user_id: uuid.UUID,
    source_id: uuid.UUID,
    body: FundingSourceUpdate,
    current_user: CurrentUser = Depends(require_permission("manage", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.update_funding_source(db, user_id, source_id, body, current_user)


@router.post(
    "/{user_id}/transfer-rules",
    response_model=TransferRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transfer_rule(
    user_id: uuid.UUID,
    body: TransferRuleCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.create_transfer_rule(db, user_id, body, current_user)


@router.patch("/{user_id}/transfer-rules/{rule_id}", response_model=TransferRuleResponse)
async def update_transfer_rule(
    user_id: uuid.UUID,
    rule_id: uuid.UUID,
    body: TransferRuleUpdate,
    current_user: CurrentUser = Depends(require_permission("manage", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.update_transfer_rule(db, user_id, rule_id, body, current_user)


@router.delete("/{user_id}/transfer-rules/{rule_id}", response_model=TransferRuleResponse)
async def delete_transfer_rule(
    user_id: uuid.UUID,
    rule_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("manage", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.delete_transfer_rule(db, user_id, rule_id, current_user)


@router.post(
    "/{user_id}/transfers",
    response_model=TransferRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transfer_request(
    user_id: uuid.UUID,
    body: TransferRequestCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.create_transfer_request(db, user_id, body, current_user)


@router.patch("/{user_id}/transfers/{request_id}", response_model=TransferRequestResponse)
async def update_transfer_request(
    user_id: uuid.UUID,
    request_id: uuid.UUID,
    body: TransferRequestUpdate,
    current_user: CurrentUser = Depends(require_permission("manage", "wallet")),
    db: AsyncSession = Depends(get_db),
):
    return await service.update_transfer_request(db, user_id, request_id, body, current_user)
