"""Identity token helpers.

Tokens are issued by the external identity provider; the only ones minted
here are development tokens from the ``yarnstash token`` command.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yarnstash.config import Config, config
from yarnstash.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None


def create_identity_token(
    identity: Identity,
    expires_delta: timedelta | None = None,
    settings: Config = config,
) -> str:
    """Create a signed token carrying ``identity``."""
    claims: dict[str, object] = {"sub": identity.user_id}
    if identity.email:
        claims["email"] = identity.email
    if identity.name:
        claims["name"] = identity.name
    if identity.picture:
        claims["picture"] = identity.picture

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.DEV_TOKEN_EXPIRE_MINUTES)
    claims["exp"] = datetime.now(UTC) + expires_delta

    encoded: str = jwt.encode(
        claims, settings.IDENTITY_SECRET, algorithm=settings.IDENTITY_ALGORITHM
    )
    return encoded


def decode_identity_token(token: str, settings: Config = config) -> Identity | None:
    """Verify a token and return its identity, or None when it is unusable."""
    try:
        payload = jwt.decode(
            token, settings.IDENTITY_SECRET, algorithms=[settings.IDENTITY_ALGORITHM]
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        return None
    return Identity(
        user_id=subject,
        email=payload.get("email"),
        name=payload.get("name"),
        picture=payload.get("picture"),
    )


async def get_or_create_user(db: AsyncSession, identity: Identity) -> User:
    """Return the local user row for ``identity``, creating it on first sight."""
    user = await db.get(User, identity.user_id)
    if user is not None:
        return user

    email = identity.email
    if email:
        taken = await db.execute(select(User.id).where(User.email == email))
        if taken.first() is not None:
            logger.warning(
                "Email %s already belongs to another user; %s created without it",
                email,
                identity.user_id,
            )
            email = None

    user = User(
        id=identity.user_id,
        email=email,
        name=identity.name,
        image=identity.picture,
    )
    db.add(user)
    await db.commit()
    logger.info("Registered user %s", user.id)
    return user
