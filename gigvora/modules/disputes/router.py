"""User dispute API router."""

import uuid

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.auth.dependencies import require_permission
from gigvora.core.database import get_db
from gigvora.core.errors import AuthorizationError
from gigvora.modules.disputes import service
from gigvora.modules.disputes.schemas import (
    DisputeCreate,
    DisputeEventCreate,
    DisputeListResponse,
    DisputeOverviewResponse,
    DisputeResponse,
)
from gigvora.schemas.auth import CurrentUser

logger = structlog.get_logger()

# Mounted under both /users and /freelancer in gigvora.main.
router = APIRouter(tags=["disputes"])


def _ensure_self(current_user: CurrentUser, user_id: uuid.UUID) -> None:
    if current_user.user_id != user_id and not current_user.is_admin:
        raise AuthorizationError("You can only access your own disputes.")


@router.get("/{user_id}/disputes", response_model=DisputeListResponse)
async def list_disputes(
    user_id: uuid.UUID,
    stage: str | None = Query(None),
    status: str | None = Query(None),
    current_user: CurrentUser = Depends(require_permission("view", "dispute")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.list_user_disputes(db, user_id, stage=stage, status=status)


@router.get("/{user_id}/disputes/overview", response_model=DisputeOverviewResponse)
async def get_overview(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("view", "dispute")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.get_user_dispute_overview(db, user_id)


@router.post("/{user_id}/disputes", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def create_dispute(
    user_id: uuid.UUID,
    body: DisputeCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "dispute")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.create_user_dispute(db, user_id, body)


@router.get("/{user_id}/disputes/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    user_id: uuid.UUID,
    dispute_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("view", "dispute")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.get_user_dispute(db, user_id, dispute_id)


@router.post(
    "/{user_id}/disputes/{dispute_id}/events",
    response_model=DisputeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def append_event(
    user_id: uuid.UUID,
    dispute_id: uuid.UUID,
    body: DisputeEventCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "dispute")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.append_user_dispute_event(db, user_id, dispute_id, body)
