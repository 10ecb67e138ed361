"""Identity resolution and the current-user endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from yarnstash.config import Config
from yarnstash.database import get_db
from yarnstash.errors import UnauthorizedError
from yarnstash.models import User
from yarnstash.routes.deps import get_config
from yarnstash.schemas import CurrentUserOut
from yarnstash.utils.auth import Identity, decode_identity_token, get_or_create_user

router = APIRouter(prefix="/auth", tags=["auth"])


def _extract_token(request: Request, cookie_name: str) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(cookie_name) or None


async def get_identity(
    request: Request,
    settings: Config = Depends(get_config),
) -> Identity:
    """Verify the caller's token; fails before any storage access."""
    token = _extract_token(request, settings.SESSION_COOKIE_NAME)
    if not token:
        raise UnauthorizedError()

    identity = decode_identity_token(token, settings)
    if identity is None:
        raise UnauthorizedError("Invalid or expired token")
    return identity


async def require_user(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Require authentication and return the local user row."""
    return await get_or_create_user(db, identity)


@router.get("/me", response_model=CurrentUserOut)
async def me(current_user: User = Depends(require_user)) -> User:
    """Return the authenticated user."""
    return current_user
