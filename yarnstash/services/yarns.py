"""Ownership-scoped yarn CRUD."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from yarnstash.errors import NotFoundError
from yarnstash.models import DyeState, OrganizationEntry, Tag, Yarn
from yarnstash.models.base import utcnow
from yarnstash.schemas import YarnCreate, YarnUpdate
from yarnstash.services.associations import (
    check_organization_entries,
    load_owned_project_ids,
    replace_organization,
    replace_tags,
    replace_yarn_projects,
)
from yarnstash.services.audit import build_field_changes, create_audit_log
from yarnstash.services.colors import apply_color_input
from yarnstash.services.pagination import Page, paginate
from yarnstash.services.photos import purge_blobs
from yarnstash.storage import BlobStore

logger = logging.getLogger(__name__)

YARN_RELATIONS = (
    selectinload(Yarn.photos),
    selectinload(Yarn.tags),
    selectinload(Yarn.organization).joinedload(OrganizationEntry.type),
    selectinload(Yarn.projects),
)

_AUDITED_FIELDS = (
    "brand",
    "product_line",
    "previous_color",
    "current_color",
    "next_color",
    "dye_state",
    "materials",
    "weight",
    "yards_per_oz",
    "total_weight",
    "total_yards",
    "notes",
)


@dataclass
class YarnFilters:
    search: str | None = None
    brand: str | None = None
    weight: int | None = None
    dye_state: DyeState | None = None
    tag: str | None = None
    min_yards: float | None = None
    max_yards: float | None = None
    min_weight: float | None = None
    max_weight: float | None = None


def _snapshot(yarn: Yarn) -> dict[str, object]:
    return {field: getattr(yarn, field) for field in _AUDITED_FIELDS}


async def _fetch_yarn(db: AsyncSession, owner_id: str, yarn_id: str) -> Yarn:
    """Load an owned yarn with every relation, refreshing stale state."""
    result = await db.execute(
        select(Yarn)
        .where(Yarn.id == yarn_id, Yarn.owner_id == owner_id)
        .options(*YARN_RELATIONS)
        .execution_options(populate_existing=True)
    )
    yarn = result.scalar_one_or_none()
    if yarn is None:
        raise NotFoundError("yarn", yarn_id)
    return yarn


async def list_yarns(
    db: AsyncSession,
    owner_id: str,
    filters: YarnFilters | None = None,
    *,
    page: int = 1,
    limit: int | None = None,
) -> Page[Yarn]:
    """List the owner's yarns, most recently updated first."""
    filters = filters or YarnFilters()
    query = (
        select(Yarn)
        .where(Yarn.owner_id == owner_id)
        .options(*YARN_RELATIONS)
        .order_by(Yarn.updated_at.desc(), Yarn.id)
    )

    if filters.search:
        # Wildcards in the term match literally.
        query = query.where(
            or_(
                *(
                    column.icontains(filters.search, autoescape=True)
                    for column in (
                        Yarn.brand,
                        Yarn.product_line,
                        Yarn.previous_color,
                        Yarn.current_color,
                        Yarn.next_color,
                        Yarn.materials,
                    )
                )
            )
        )
    if filters.brand:
        query = query.where(Yarn.brand == filters.brand)
    if filters.weight is not None:
        query = query.where(Yarn.weight == filters.weight)
    if filters.dye_state is not None:
        query = query.where(Yarn.dye_state == filters.dye_state)
    if filters.tag:
        query = query.where(Yarn.tags.any(Tag.name == filters.tag))
    if filters.min_yards is not None:
        query = query.where(Yarn.total_yards >= filters.min_yards)
    if filters.max_yards is not None:
        query = query.where(Yarn.total_yards <= filters.max_yards)
    if filters.min_weight is not None:
        query = query.where(Yarn.total_weight >= filters.min_weight)
    if filters.max_weight is not None:
        query = query.where(Yarn.total_weight <= filters.max_weight)

    return await paginate(db, query, page=page, limit=limit)


async def get_yarn(db: AsyncSession, owner_id: str, yarn_id: str) -> Yarn:
    return await _fetch_yarn(db, owner_id, yarn_id)


async def create_yarn(db: AsyncSession, owner_id: str, payload: YarnCreate) -> Yarn:
    """Create a yarn together with its tags, organization and project links."""
    fields = apply_color_input(
        payload.model_dump(exclude={"tags", "organization", "project_ids"})
    )

    project_ids = await load_owned_project_ids(db, owner_id, payload.project_ids)
    await check_organization_entries(db, owner_id, payload.organization)

    yarn = Yarn(owner_id=owner_id, **fields)
    db.add(yarn)
    await db.flush()

    await replace_tags(db, yarn.id, payload.tags)
    await replace_organization(db, yarn.id, payload.organization)
    await replace_yarn_projects(db, yarn.id, project_ids)

    await create_audit_log(
        db,
        actor_user_id=owner_id,
        entity_type="yarn",
        entity_id=yarn.id,
        action="created",
        details={"brand": yarn.brand, "product_line": yarn.product_line},
    )
    await db.commit()
    logger.info("Created yarn %s for user %s", yarn.id, owner_id)

    return await _fetch_yarn(db, owner_id, yarn.id)


async def update_yarn(
    db: AsyncSession, owner_id: str, yarn_id: str, patch: YarnUpdate
) -> Yarn:
    """Apply supplied fields and replace supplied association sets atomically."""
    yarn = await _fetch_yarn(db, owner_id, yarn_id)
    before = _snapshot(yarn)

    changes = apply_color_input(patch.scalar_changes())
    fields_set = patch.model_fields_set

    project_ids: list[str] | None = None
    if "project_ids" in fields_set:
        project_ids = await load_owned_project_ids(
            db, owner_id, patch.project_ids or []
        )
    if "organization" in fields_set:
        await check_organization_entries(db, owner_id, patch.organization or [])

    for field, value in changes.items():
        setattr(yarn, field, value)

    replaced: list[str] = []
    if "tags" in fields_set:
        await replace_tags(db, yarn.id, patch.tags or [])
        replaced.append("tags")
    if "organization" in fields_set:
        await replace_organization(db, yarn.id, patch.organization or [])
        replaced.append("organization")
    if project_ids is not None:
        await replace_yarn_projects(db, yarn.id, project_ids)
        replaced.append("projectIds")

    yarn.updated_at = utcnow()
    details: dict[str, object] = {
        "changes": build_field_changes(before, _snapshot(yarn))
    }
    if replaced:
        details["replaced"] = replaced
    await create_audit_log(
        db,
        actor_user_id=owner_id,
        entity_type="yarn",
        entity_id=yarn.id,
        action="updated",
        details=details,
    )
    await db.commit()
    logger.info("Updated yarn %s for user %s", yarn.id, owner_id)

    return await _fetch_yarn(db, owner_id, yarn.id)


async def delete_yarn(
    db: AsyncSession, store: BlobStore, owner_id: str, yarn_id: str
) -> None:
    """Delete a yarn with its photos, tags and entries; project links are severed."""
    yarn = await _fetch_yarn(db, owner_id, yarn_id)
    blob_keys = [photo.key for photo in yarn.photos]

    await create_audit_log(
        db,
        actor_user_id=owner_id,
        entity_type="yarn",
        entity_id=yarn.id,
        action="deleted",
        details={"brand": yarn.brand, "product_line": yarn.product_line},
    )
    await db.delete(yarn)
    await db.commit()
    logger.info("Deleted yarn %s for user %s", yarn_id, owner_id)

    await purge_blobs(store, blob_keys)
