"""Yarn stash routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from yarnstash.config import Config
from yarnstash.database import get_db
from yarnstash.models import DyeState, User
from yarnstash.routes.auth import require_user
from yarnstash.routes.deps import get_blob_store, get_config
from yarnstash.schemas import (
    AuditLogOut,
    MessageOut,
    YarnCreate,
    YarnOut,
    YarnPage,
    YarnUpdate,
)
from yarnstash.services import yarns as yarn_service
from yarnstash.services.audit import list_audit_logs
from yarnstash.services.presentation import present_audit_log, present_yarn
from yarnstash.storage import BlobStore

router = APIRouter(prefix="/yarns", tags=["yarns"])


@router.get("", response_model=YarnPage)
async def list_yarns(
    search: str | None = None,
    brand: str | None = None,
    weight: Annotated[int | None, Query(ge=1, le=7)] = None,
    dye_state: DyeState | None = None,
    tag: str | None = None,
    min_yards: Annotated[float | None, Query(ge=0)] = None,
    max_yards: Annotated[float | None, Query(ge=0)] = None,
    min_weight: Annotated[float | None, Query(ge=0)] = None,
    max_weight: Annotated[float | None, Query(ge=0)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int | None, Query(ge=1, le=Config.MAX_PAGE_SIZE)] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> YarnPage:
    """List the current user's yarns with optional filters."""
    filters = yarn_service.YarnFilters(
        search=search,
        brand=brand,
        weight=weight,
        dye_state=dye_state,
        tag=tag,
        min_yards=min_yards,
        max_yards=max_yards,
        min_weight=min_weight,
        max_weight=max_weight,
    )
    result = await yarn_service.list_yarns(
        db, current_user.id, filters, page=page, limit=limit
    )
    ttl = settings.BLOB_URL_TTL_SECONDS
    return YarnPage(
        yarns=[await present_yarn(yarn, store, ttl) for yarn in result.items],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.post("", response_model=YarnOut, status_code=status.HTTP_201_CREATED)
async def create_yarn(
    payload: YarnCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> YarnOut:
    yarn = await yarn_service.create_yarn(db, current_user.id, payload)
    return await present_yarn(yarn, store, settings.BLOB_URL_TTL_SECONDS)


@router.get("/{yarn_id}", response_model=YarnOut)
async def get_yarn(
    yarn_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> YarnOut:
    yarn = await yarn_service.get_yarn(db, current_user.id, yarn_id)
    return await present_yarn(yarn, store, settings.BLOB_URL_TTL_SECONDS)


@router.patch("/{yarn_id}", response_model=YarnOut)
async def update_yarn(
    yarn_id: str,
    patch: YarnUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
    settings: Config = Depends(get_config),
) -> YarnOut:
    """Update supplied fields; ``tags``, ``organization`` and ``projectIds``
    replace their whole set when present."""
    yarn = await yarn_service.update_yarn(db, current_user.id, yarn_id, patch)
    return await present_yarn(yarn, store, settings.BLOB_URL_TTL_SECONDS)


@router.delete("/{yarn_id}", response_model=MessageOut)
async def delete_yarn(
    yarn_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
    store: BlobStore = Depends(get_blob_store),
) -> MessageOut:
    """Delete a yarn and its photos."""
    await yarn_service.delete_yarn(db, store, current_user.id, yarn_id)
    return MessageOut(message="Yarn deleted")


@router.get("/{yarn_id}/history", response_model=list[AuditLogOut])
async def yarn_history(
    yarn_id: str,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
) -> list[AuditLogOut]:
    """Audit trail of one yarn, newest first."""
    await yarn_service.get_yarn(db, current_user.id, yarn_id)
    entries = await list_audit_logs(
        db, entity_type="yarn", entity_id=yarn_id, limit=limit
    )
    return [present_audit_log(entry) for entry in entries]
