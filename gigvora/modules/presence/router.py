"""Presence API router."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.auth.dependencies import require_permission
from gigvora.core.database import get_db
from gigvora.core.errors import AuthorizationError
from gigvora.modules.presence import service
from gigvora.modules.presence.schemas import (
    CalendarSyncResponse,
    FocusSessionResponse,
    FocusSessionStart,
    PresenceResponse,
    PresenceSnapshotResponse,
    PresenceUpdate,
)
from gigvora.schemas.auth import CurrentUser

router = APIRouter(prefix="/presence", tags=["presence"])


def _ensure_self(current_user: CurrentUser, user_id: uuid.UUID) -> None:
    if current_user.user_id != user_id and not current_user.is_admin:
        raise AuthorizationError("You can only manage your own presence.")


@router.get("/{user_id}", response_model=PresenceSnapshotResponse)
async def get_presence(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("view", "presence")),
    db: AsyncSession = Depends(get_db),
):
    # Any member can read availability; the timeline is private to its owner.
    is_owner = current_user.user_id == user_id or current_user.is_admin
    return await service.get_presence(db, user_id, include_timeline=is_owner)


@router.put("/{user_id}", response_model=PresenceResponse)
async def update_presence(
    user_id: uuid.UUID,
    body: PresenceUpdate,
    current_user: CurrentUser = Depends(require_permission("manage", "presence")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.update_presence(db, user_id, body)


@router.post(
    "/{user_id}/focus-sessions",
    response_model=FocusSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_focus_session(
    user_id: uuid.UUID,
    body: FocusSessionStart,
    current_user: CurrentUser = Depends(require_permission("manage", "presence")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.start_focus_session(db, user_id, body)


@router.post("/{user_id}/focus-sessions/end", response_model=FocusSessionResponse)
async def end_focus_session(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("manage", "presence")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.end_focus_session(db, user_id)


@router.post("/{user_id}/calendar-sync", response_model=CalendarSyncResponse)
async def sync_calendar(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("manage", "presence")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return await service.sync_calendar(db, user_id, current_user)


@router.get("/{user_id}/events")
async def list_events(
    user_id: uuid.UUID,
    limit: int = Query(20, ge=1, le=100),
    current_user: CurrentUser = Depends(require_permission("view", "presence")),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self(current_user, user_id)
    return {"items": await service.list_presence_events(db, user_id, limit=limit)}
