"""Storage-unit vocabulary and per-yarn unit counts."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yarnstash.models.base import Base, new_id, utcnow

if TYPE_CHECKING:
    from yarnstash.models.user import User
    from yarnstash.models.yarn import Yarn


class OrganizationType(Base):
    """A unit of storage such as a skein or a cake.

    System types have no owner and are visible to everyone.
    """

    __tablename__ = "organization_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    owner_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    owner: Mapped[User | None] = relationship(
        "User", back_populates="organization_types"
    )


class OrganizationEntry(Base):
    """How many units of one organization type a yarn currently has."""

    __tablename__ = "organization_entries"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_organization_entries_quantity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    yarn_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("yarns.id", ondelete="CASCADE"), index=True
    )
    type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization_types.id", ondelete="RESTRICT")
    )

    yarn: Mapped[Yarn] = relationship("Yarn", back_populates="organization")
    type: Mapped[OrganizationType] = relationship(
        "OrganizationType", lazy="joined"
    )
