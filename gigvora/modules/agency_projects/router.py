"""Agency project API router."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.auth.dependencies import require_permission
from gigvora.core.database import get_db
from gigvora.core.errors import AuthorizationError
from gigvora.modules.agency_projects import service
from gigvora.modules.agency_projects.schemas import (
    AgencyProjectCreate,
    AgencyProjectListResponse,
    AgencyProjectResponse,
    AgencyProjectUpdate,
    AutoMatchCreate,
    AutoMatchResponse,
    AutoMatchUpdate,
)
from gigvora.schemas.auth import CurrentUser

router = APIRouter(prefix="/agency/projects", tags=["agency-projects"])


def _workspace_id(current_user: CurrentUser) -> uuid.UUID:
    if current_user.workspace_id is None:
        raise AuthorizationError("An agency workspace is required to manage projects.")
    return current_user.workspace_id


@router.get("", response_model=AgencyProjectListResponse)
async def list_projects(
    status: str | None = Query(None),
    current_user: CurrentUser = Depends(require_permission("view", "agency_project")),
    db: AsyncSession = Depends(get_db),
):
    return await service.list_agency_projects(db, _workspace_id(current_user), status=status)


@router.post("", response_model=AgencyProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: AgencyProjectCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "agency_project")),
    db: AsyncSession = Depends(get_db),
):
    return await service.create_agency_project(
        db, _workspace_id(current_user), body, current_user.user_id
    )


@router.get("/{project_id}", response_model=AgencyProjectResponse)
async def get_project(
    project_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission("view", "agency_project")),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_agency_project(db, _workspace_id(current_user), project_id)


@router.patch("/{project_id}", response_model=AgencyProjectResponse)
async def update_project(
    project_id: uuid.UUID,
    body: AgencyProjectUpdate,
    current_user: CurrentUser = Depends(require_permission("manage", "agency_project")),
    db: AsyncSession = Depends(get_db),
):
    return await service.update_agency_project(
        db, _workspace_id(current_user), project_id, body, current_user.user_id
    )


@router.post(
    "/{project_id}/auto-matches",
    response_model=AutoMatchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_auto_match(
    project_id: uuid.UUID,
    body: AutoMatchCreate,
    current_user: CurrentUser = Depends(require_permission("manage", "agency_project")),
    db: AsyncSession = Depends(get_db),
):
    return await service.add_auto_match(db, _workspace_id(current_user), project_id, body)


@router.patch("/{project_id}/auto-matches/{match_id}", response_model=AutoMatchResponse)
async def update_auto_match(
    project_id: uuid.UUID,
    match_id: uuid.UUID,
    body: AutoMatchUpdate,
    current_user: CurrentUser = Depends(require_permission("manage", "agency_project")),
    db: AsyncSession = Depends(get_db),
):
    return await service.update_auto_match(
        db, _workspace_id(current_user), project_id, match_id, body
    )
