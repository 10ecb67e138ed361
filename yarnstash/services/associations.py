"""Replace-all maintenance of yarn and project relation sets.

Each ``replace_*`` helper deletes every existing row of one relation and
inserts exactly the supplied set. None of them commit: callers resolve and
validate every referenced id first (``load_owned_*`` raise
:class:`NotFoundError` before anything is written), then run the replacements
and commit once, so a failure anywhere leaves the previous state intact.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from yarnstash.errors import ConflictError, NotFoundError
from yarnstash.models import OrganizationEntry, Project, Tag, Yarn, project_yarns
from yarnstash.schemas import OrganizationEntryIn
from yarnstash.services.organization import load_visible_types

logger = logging.getLogger(__name__)


async def _load_owned(
    db: AsyncSession,
    model: type[Yarn] | type[Project],
    resource: str,
    owner_id: str,
    ids: Sequence[str],
) -> list[str]:
    wanted = list(dict.fromkeys(ids))
    if not wanted:
        return []

    result = await db.execute(
        select(model.id).where(model.owner_id == owner_id, model.id.in_(wanted))
    )
    found = set(result.scalars())
    for entity_id in wanted:
        if entity_id not in found:
            raise NotFoundError(resource, entity_id)
    return wanted


async def load_owned_project_ids(
    db: AsyncSession, owner_id: str, project_ids: Sequence[str]
) -> list[str]:
    """Return de-duplicated project ids, all owned by ``owner_id``."""
    return await _load_owned(db, Project, "project", owner_id, project_ids)


async def load_owned_yarn_ids(
    db: AsyncSession, owner_id: str, yarn_ids: Sequence[str]
) -> list[str]:
    """Return de-duplicated yarn ids, all owned by ``owner_id``."""
    return await _load_owned(db, Yarn, "yarn", owner_id, yarn_ids)


async def check_organization_entries(
    db: AsyncSession, owner_id: str, entries: Sequence[OrganizationEntryIn]
) -> None:
    """Ensure every entry references a type visible to the owner."""
    await load_visible_types(db, owner_id, (entry.type_id for entry in entries))


async def replace_tags(db: AsyncSession, yarn_id: str, names: Sequence[str]) -> None:
    """Drop the yarn's tags and recreate one row per name (no de-duplication)."""
    await db.execute(delete(Tag).where(Tag.yarn_id == yarn_id))
    db.add_all(
        Tag(yarn_id=yarn_id, name=name, position=position)
        for position, name in enumerate(names)
    )
    await db.flush()


async def replace_organization(
    db: AsyncSession, yarn_id: str, entries: Sequence[OrganizationEntryIn]
) -> None:
    await db.execute(
        delete(OrganizationEntry).where(OrganizationEntry.yarn_id == yarn_id)
    )
    db.add_all(
        OrganizationEntry(
            yarn_id=yarn_id,
            type_id=entry.type_id,
            quantity=entry.quantity,
            position=position,
        )
        for position, entry in enumerate(entries)
    )
    await db.flush()


async def _insert_links(
    db: AsyncSession, rows: list[dict[str, str]], relation: str
) -> None:
    # A linked entity deleted after validation surfaces as a key violation.
    try:
        await db.execute(insert(project_yarns), rows)
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Link insert for %s failed: %s", relation, exc.orig)
        raise ConflictError(
            "Linked items changed while saving; nothing was applied",
            {"relation": relation},
        ) from exc


async def replace_yarn_projects(
    db: AsyncSession, yarn_id: str, project_ids: Sequence[str]
) -> None:
    """Make the yarn's project links exactly ``project_ids``."""
    await db.execute(delete(project_yarns).where(project_yarns.c.yarn_id == yarn_id))
    if project_ids:
        await _insert_links(
            db,
            [{"project_id": pid, "yarn_id": yarn_id} for pid in project_ids],
            "projectIds",
        )


async def replace_project_yarns(
    db: AsyncSession, project_id: str, yarn_ids: Sequence[str]
) -> None:
    """Make the project's yarn links exactly ``yarn_ids``."""
    await db.execute(
        delete(project_yarns).where(project_yarns.c.project_id == project_id)
    )
    if yarn_ids:
        await _insert_links(
            db,
            [{"project_id": project_id, "yarn_id": yid} for yid in yarn_ids],
            "yarnIds",
        )


async def link_project_yarn(db: AsyncSession, project_id: str, yarn_id: str) -> bool:
    """Add a single link; returns False when it already existed."""
    existing = await db.execute(
        select(project_yarns.c.yarn_id).where(
            project_yarns.c.project_id == project_id,
            project_yarns.c.yarn_id == yarn_id,
        )
    )
    if existing.first() is not None:
        return False
    await _insert_links(db, [{"project_id": project_id, "yarn_id": yarn_id}], "yarnId")
    return True


async def unlink_project_yarn(db: AsyncSession, project_id: str, yarn_id: str) -> bool:
    """Remove a single link; returns False when there was none."""
    result = await db.execute(
        delete(project_yarns).where(
            project_yarns.c.project_id == project_id,
            project_yarns.c.yarn_id == yarn_id,
        )
    )
    return bool(result.rowcount)
