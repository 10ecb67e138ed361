"""Ownership-scoped project CRUD and yarn linking."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from yarnstash.errors import NotFoundError
from yarnstash.models import Project, ProjectStatus, Yarn
from yarnstash.models.base import utcnow
from yarnstash.schemas import ProjectCreate, ProjectUpdate
from yarnstash.services.associations import (
    link_project_yarn,
    load_owned_yarn_ids,
    replace_project_yarns,
    unlink_project_yarn,
)
from yarnstash.services.audit import build_field_changes, create_audit_log
from yarnstash.services.pagination import Page, paginate
from yarnstash.services.photos import purge_blobs
from yarnstash.storage import BlobStore

logger = logging.getLogger(__name__)

PROJECT_RELATIONS = (selectinload(Project.photos), selectinload(Project.yarns))

_AUDITED_FIELDS = ("name", "description", "status")


@dataclass
class ProjectFilters:
    search: str | None = None
    status: ProjectStatus | None = None
    yarn_id: str | None = None


def _snapshot(project: Project) -> dict[str, object]:
    return {field: getattr(project, field) for field in _AUDITED_FIELDS}


async def _fetch_project(db: AsyncSession, owner_id: str, project_id: str) -> Project:
    result = await db.execute(
        select(Project)
        .where(Project.id == project_id, Project.owner_id == owner_id)
        .options(*PROJECT_RELATIONS)
        .execution_options(populate_existing=True)
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("project", project_id)
    return project


async def list_projects(
    db: AsyncSession,
    owner_id: str,
    filters: ProjectFilters | None = None,
    *,
    page: int = 1,
    limit: int | None = None,
) -> Page[Project]:
    """List the owner's projects, most recently updated first."""
    filters = filters or ProjectFilters()
    query = (
        select(Project)
        .where(Project.owner_id == owner_id)
        .options(*PROJECT_RELATIONS)
        .order_by(Project.updated_at.desc(), Project.id)
    )

    if filters.search:
        query = query.where(
            or_(
                Project.name.icontains(filters.search, autoescape=True),
                Project.description.icontains(filters.search, autoescape=True),
            )
        )
    if filters.status is not None:
        query = query.where(Project.status == filters.status)
    if filters.yarn_id:
        query = query.where(Project.yarns.any(Yarn.id == filters.yarn_id))

    return await paginate(db, query, page=page, limit=limit)


async def get_project(db: AsyncSession, owner_id: str, project_id: str) -> Project:
    return await _fetch_project(db, owner_id, project_id)


async def create_project(
    db: AsyncSession, owner_id: str, payload: ProjectCreate
) -> Project:
    yarn_ids = await load_owned_yarn_ids(db, owner_id, payload.yarn_ids)

    project = Project(
        owner_id=owner_id,
        name=payload.name,
        description=payload.description,
        status=payload.status,
    )
    db.add(project)
    await db.flush()
    await replace_project_yarns(db, project.id, yarn_ids)

    await create_audit_log(
        db,
        actor_user_id=owner_id,
        entity_type="project",
        entity_id=project.id,
        action="created",
        details={"name": project.name},
    )
    await db.commit()
    logger.info("Created project %s for user %s", project.id, owner_id)

    return await _fetch_project(db, owner_id, project.id)


async def update_project(
    db: AsyncSession, owner_id: str, project_id: str, patch: ProjectUpdate
) -> Project:
    """Apply supplied fields; ``yarn_ids`` replaces the whole yarn set."""
    project = await _fetch_project(db, owner_id, project_id)
    before = _snapshot(project)

    yarn_ids: list[str] | None = None
    if "yarn_ids" in patch.model_fields_set:
        yarn_ids = await load_owned_yarn_ids(db, owner_id, patch.yarn_ids or [])

    for field, value in patch.scalar_changes().items():
        setattr(project, field, value)
    if yarn_ids is not None:
        await replace_project_yarns(db, project.id, yarn_ids)

    project.updated_at = utcnow()
    details: dict[str, object] = {
        "changes": build_field_changes(before, _snapshot(project))
    }
    if yarn_ids is not None:
        details["replaced"] = ["yarnIds"]
    await create_audit_log(
        db,
        actor_user_id=owner_id,
        entity_type="project",
        entity_id=project.id,
        action="updated",
        details=details,
    )
    await db.commit()
    logger.info("Updated project %s for user %s", project.id, owner_id)

    return await _fetch_project(db, owner_id, project.id)


async def delete_project(
    db: AsyncSession, store: BlobStore, owner_id: str, project_id: str
) -> None:
    """Delete a project and its photos; linked yarns stay in the stash."""
    project = await _fetch_project(db, owner_id, project_id)
    blob_keys = [photo.key for photo in project.photos]

    await create_audit_log(
        db,
        actor_user_id=owner_id,
        entity_type="project",
        entity_id=project.id,
        action="deleted",
        details={"name": project.name},
    )
    await db.delete(project)
    await db.commit()
    logger.info("Deleted project %s for user %s", project_id, owner_id)

    await purge_blobs(store, blob_keys)


async def link_yarn(
    db: AsyncSession, owner_id: str, project_id: str, yarn_id: str
) -> Project:
    """Link an owned yarn to an owned project; linking twice is a no-op."""
    project = await _fetch_project(db, owner_id, project_id)
    await load_owned_yarn_ids(db, owner_id, [yarn_id])

    if await link_project_yarn(db, project.id, yarn_id):
        project.updated_at = utcnow()
        await create_audit_log(
            db,
            actor_user_id=owner_id,
            entity_type="project",
            entity_id=project.id,
            action="updated",
            details={"linked_yarn": yarn_id},
        )
        await db.commit()
        logger.info("Linked yarn %s to project %s", yarn_id, project.id)

    return await _fetch_project(db, owner_id, project.id)


async def unlink_yarn(
    db: AsyncSession, owner_id: str, project_id: str, yarn_id: str
) -> Project:
    project = await _fetch_project(db, owner_id, project_id)
    await load_owned_yarn_ids(db, owner_id, [yarn_id])

    if await unlink_project_yarn(db, project.id, yarn_id):
        project.updated_at = utcnow()
        await create_audit_log(
            db,
            actor_user_id=owner_id,
            entity_type="project",
            entity_id=project.id,
            action="updated",
            details={"unlinked_yarn": yarn_id},
        )
        await db.commit()
        logger.info("Unlinked yarn %s from project %s", yarn_id, project.id)

    return await _fetch_project(db, owner_id, project.id)
