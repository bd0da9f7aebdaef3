"""Compliance locker API router."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.auth.dependencies import require_permission
from gigvora.core.database import get_db
from gigvora.modules.compliance_locker import service
from gigvora.modules.compliance_locker.schemas import (
    ComplianceDocumentCreate,
    ComplianceDocumentResponse,
    ComplianceLockerResponse,
    DocumentVersionCreate,
    DocumentVersionResponse,
    ReminderUpdate,
)
from gigvora.schemas.auth import CurrentUser

router = APIRouter(prefix="/compliance", tags=["compliance"])


@router.get("/{owner_id}/locker", response_model=ComplianceLockerResponse)
async def get_locker(
    owner_id: uuid.UUID,
    fresh: bool = Query(False),
    current_user: CurrentUser = Depends(require_permission("view", "compliance")),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_compliance_locker_overview(
        db, owner_id, current_user, use_cache=not fresh
    )


@router.post(
    "/{owner_id}/documents",
    response_model=ComplianceDocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    owner_id: uuid.UUID,
    body: ComplianceDocumentCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "compliance")),
    db: AsyncSession = Depends(get_db),
):
    return await service.create_compliance_document(db, owner_id, body, current_user)


@router.post(
    "/documents/{document_id}/versions",
    response_model=DocumentVersionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_version(
    document_id: uuid.UUID,
    body: DocumentVersionCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "compliance")),
    db: AsyncSession = Depends(get_db),
):
    return await service.add_document_version(db, document_id, body, current_user)


@router.patch("/reminders/{reminder_id}")
async def update_reminder(
    reminder_id: uuid.UUID,
    body: ReminderUpdate,
    current_user: CurrentUser = Depends(require_permission("manage", "compliance")),
    db: AsyncSession = Depends(get_db),
):
    return await service.acknowledge_reminder(db, reminder_id, body.status, current_user)
