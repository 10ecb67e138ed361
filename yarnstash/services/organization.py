"""Organization types: the skein/ball/cake vocabulary."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yarnstash.errors import NotFoundError, ValidationError
from yarnstash.models import OrganizationType

logger = logging.getLogger(__name__)

SYSTEM_TYPES: tuple[str, ...] = ("Skein", "Ball", "Cake", "Hank", "Cone")


def _visible_to(owner_id: str):
    return or_(
        OrganizationType.is_system.is_(True),
        OrganizationType.owner_id == owner_id,
    )


async def list_organization_types(
    db: AsyncSession, owner_id: str
) -> Sequence[OrganizationType]:
    """System types plus the owner's private ones, sorted by name."""
    result = await db.execute(
        select(OrganizationType)
        .where(_visible_to(owner_id))
        .order_by(func.lower(OrganizationType.name), OrganizationType.is_system.desc())
    )
    return result.scalars().all()


async def create_organization_type(
    db: AsyncSession, owner_id: str, name: str
) -> OrganizationType:
    """Create a private type; names must not clash with any visible type."""
    cleaned = name.strip()
    clash = await db.execute(
        select(OrganizationType.id).where(
            _visible_to(owner_id),
            func.lower(OrganizationType.name) == cleaned.lower(),
        )
    )
    if clash.first() is not None:
        raise ValidationError(
            f"Organization type '{cleaned}' already exists", field="name"
        )

    org_type = OrganizationType(name=cleaned, is_system=False, owner_id=owner_id)
    db.add(org_type)
    await db.commit()
    logger.info("Created organization type %s for user %s", org_type.id, owner_id)
    return org_type


async def load_visible_types(
    db: AsyncSession, owner_id: str, type_ids: Iterable[str]
) -> dict[str, OrganizationType]:
    """Resolve type ids the owner may use, failing on the first unknown one."""
    wanted = list(dict.fromkeys(type_ids))
    if not wanted:
        return {}

    result = await db.execute(
        select(OrganizationType).where(
            OrganizationType.id.in_(wanted),
            _visible_to(owner_id),
        )
    )
    found = {org_type.id: org_type for org_type in result.scalars()}
    for type_id in wanted:
        if type_id not in found:
            raise NotFoundError("organization type", type_id)
    return found


async def seed_system_types(db: AsyncSession) -> int:
    """Insert missing system types; returns how many were created."""
    result = await db.execute(
        select(OrganizationType.name).where(OrganizationType.is_system.is_(True))
    )
    existing = {name.lower() for name in result.scalars()}
    created = 0
    for name in SYSTEM_TYPES:
        if name.lower() in existing:
            continue
        db.add(OrganizationType(name=name, is_system=True, owner_id=None))
        created += 1
    if created:
        await db.commit()
        logger.info("Seeded %d system organization types", created)
    return created
