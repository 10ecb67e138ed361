"""User model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yarnstash.models.base import Base, new_id, utcnow

if TYPE_CHECKING:
    from yarnstash.models.audit import AuditLog
    from yarnstash.models.organization import OrganizationType
    from yarnstash.models.project import Project
    from yarnstash.models.yarn import Yarn


class User(Base):
    """Identity anchor; the id is issued by the identity provider."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    email: Mapped[str | None] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    yarns: Mapped[list[Yarn]] = relationship(
        "Yarn", back_populates="owner", cascade="all, delete-orphan"
    )
    projects: Mapped[list[Project]] = relationship(
        "Project", back_populates="owner", cascade="all, delete-orphan"
    )
    organization_types: Mapped[list[OrganizationType]] = relationship(
        "OrganizationType", back_populates="owner", cascade="all, delete-orphan"
    )
    audit_logs: Mapped[list[AuditLog]] = relationship(
        "AuditLog", cascade="all, delete-orphan", passive_deletes=True
    )
