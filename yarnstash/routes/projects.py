"""Project routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from yarnstash.config import Config
from yarnstash.database import get_db
from yarnstash.models import ProjectStatus, User
from yarnstash.routes.auth import require_user
from yarnstash.routes.deps import get_blob_store, get_config
from yarnstash.schemas import (
    AuditLogOut,
    MessageOut,
    ProjectCreate,
    ProjectOut,
    ProjectPage,
    ProjectUpdate,
    ProjectYarnLink,
)
from yarnstash.services import projects as project_service
from yarnstash.services.audit import list_audit_logs
from yarnstash.services.presentation import present_audit_log, present_project
from yarnstash.storage import BlobStore

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=ProjectPage)
async def list_projects(
    search: str | None = None,
    status: ProjectStatus | None = None,
    yarn_id: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=Config.MAX_PAGE_SIZE)] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> ProjectPage:
    """List projects for the current user."""
    filters = project_service.ProjectFilters(
        search=search, status=status, yarn_id=yarn_id
    )
    result = await project_service.list_projects(
        db, current_user.id, filters, page=page, limit=limit
    )
    ttl = settings.BLOB_URL_TTL_SECONDS
    return ProjectPage(
        projects=[await present_project(p, store, ttl) for p in result.items],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> ProjectOut:
    project = await project_service.create_project(db, current_user.id, payload)
    return await present_project(project, store, settings.BLOB_URL_TTL_SECONDS)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> ProjectOut:
    project = await project_service.get_project(db, current_user.id, project_id)
    return await present_project(project, store, settings.BLOB_URL_TTL_SECONDS)


@router.patch("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: str,
    patch: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> ProjectOut:
    project = await project_service.update_project(
        db, current_user.id, project_id, patch
    )
    return await present_project(project, store, settings.BLOB_URL_TTL_SECONDS)


@router.delete("/{project_id}", response_model=MessageOut)
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
) -> MessageOut:
    await project_service.delete_project(db, store, current_user.id, project_id)
    return MessageOut(message="Project deleted")


@router.post("/{project_id}/yarns", response_model=ProjectOut)
async def link_yarn(
    project_id: str,
    payload: ProjectYarnLink,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> ProjectOut:
    """Attach one of the user's yarns to the project."""
    project = await project_service.link_yarn(
        db, current_user.id, project_id, payload.yarn_id
    )
    return await present_project(project, store, settings.BLOB_URL_TTL_SECONDS)


@router.delete("/{project_id}/yarns/{yarn_id}", response_model=ProjectOut)
async def unlink_yarn(
    project_id: str,
    yarn_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> ProjectOut:
    project = await project_service.unlink_yarn(
        db, current_user.id, project_id, yarn_id
    )
    return await present_project(project, store, settings.BLOB_URL_TTL_SECONDS)


@router.get("/{project_id}/history", response_model=list[AuditLogOut])
async def project_history(
    project_id: str,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
) -> list[AuditLogOut]:
    await project_service.get_project(db, current_user.id, project_id)
    entries = await list_audit_logs(
        db, entity_type="project", entity_id=project_id, limit=limit
    )
    return [present_audit_log(entry) for entry in entries]
