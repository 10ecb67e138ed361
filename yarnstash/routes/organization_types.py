"""Organization type vocabulary routes."""

from __future__ import annotations

from collections.abc import Sequence

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from yarnstash.database import get_db
from yarnstash.models import OrganizationType, User
from yarnstash.routes.auth import require_user
from yarnstash.schemas import OrganizationTypeCreate, OrganizationTypeOut
from yarnstash.services import organization

router = APIRouter(prefix="/yarn-organization-types", tags=["organization types"])


@router.get("", response_model=list[OrganizationTypeOut])
async def list_organization_types(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
) -> Sequence[OrganizationType]:
    """System types plus the caller's own."""
    return await organization.list_organization_types(db, current_user.id)


@router.post(
    "", response_model=OrganizationTypeOut, status_code=status.HTTP_201_CREATED
)
async def create_organization_type(
    payload: OrganizationTypeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_user),
) -> OrganizationType:
    return await organization.create_organization_type(
        db, current_user.id, payload.name
    )
