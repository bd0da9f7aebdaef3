"""Workspace template catalogue API router."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gigvora.auth.dependencies import require_permission
from gigvora.core.database import get_db
from gigvora.modules.workspace_templates import service
from gigvora.modules.workspace_templates.schemas import (
    WorkspaceTemplateListResponse,
    WorkspaceTemplateResponse,
)
from gigvora.schemas.auth import CurrentUser

router = APIRouter(prefix="/workspace-templates", tags=["workspace-templates"])


@router.get("", response_model=WorkspaceTemplateListResponse)
async def list_templates(
    category: str | None = Query(None),
    workspace_type: str | None = Query(None),
    industry: str | None = Query(None),
    search: str | None = Query(None),
    status: str | None = Query(None),
    visibility: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=50),
    current_user: CurrentUser = Depends(require_permission("view", "workspace_template")),
    db: AsyncSession = Depends(get_db),
):
    return await service.list_workspace_templates(
        db,
        {
            "category": category,
            "workspace_type": workspace_type,
            "industry": industry,
            "search": search,
            "status": status,
            "visibility": visibility,
            "page": page,
            "page_size": page_size,
        },
    )


@router.get("/{slug}", response_model=WorkspaceTemplateResponse)
async def get_template(
    slug: str,
    current_user: CurrentUser = Depends(require_permission("view", "workspace_template")),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_workspace_template(db, slug)
