"""Base model definitions."""

import uuid
from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def new_id() -> str:
    """Generate a primary key value."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)
