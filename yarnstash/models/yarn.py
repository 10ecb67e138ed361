"""Yarn models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yarnstash.models.associations import project_yarns
from yarnstash.models.base import Base, new_id, utcnow
from yarnstash.models.enums import DyeState

if TYPE_CHECKING:
    from yarnstash.models.organization import OrganizationEntry
    from yarnstash.models.photo import Photo
    from yarnstash.models.project import Project
    from yarnstash.models.user import User


class Yarn(Base):
    """Yarn stash entry."""

    __tablename__ = "yarns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    brand: Mapped[str] = mapped_column(String(120), nullable=False)
    product_line: Mapped[str] = mapped_column(String(255), nullable=False)
    previous_color: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_color: Mapped[str | None] = mapped_column(String(255), nullable=True)
    next_color: Mapped[str | None] = mapped_column(String(255), nullable=True)
    dye_state: Mapped[DyeState] = mapped_column(
        Enum(DyeState, name="dye_state", native_enum=False, length=20),
        default=DyeState.NOT_TO_BE_DYED,
        nullable=False,
    )
    materials: Mapped[str] = mapped_column(String(255), nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False)
    yards_per_oz: Mapped[str] = mapped_column(String(40), nullable=False)
    total_weight: Mapped[float] = mapped_column(Float, nullable=False)
    total_yards: Mapped[float] = mapped_column(Float, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, index=True, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, index=True, nullable=False
    )

    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    owner: Mapped[User] = relationship("User", back_populates="yarns")
    photos: Mapped[list[Photo]] = relationship(
        "Photo",
        back_populates="yarn",
        cascade="all, delete-orphan",
        order_by="Photo.created_at",
    )
    tags: Mapped[list[Tag]] = relationship(
        "Tag",
        back_populates="yarn",
        cascade="all, delete-orphan",
        order_by="Tag.position",
    )
    organization: Mapped[list[OrganizationEntry]] = relationship(
        "OrganizationEntry",
        back_populates="yarn",
        cascade="all, delete-orphan",
        order_by="OrganizationEntry.position",
    )
    projects: Mapped[list[Project]] = relationship(
        "Project",
        secondary=lambda: project_yarns,
        back_populates="yarns",
    )

    @property
    def primary_photo(self) -> Photo | None:
        return next((photo for photo in self.photos if photo.is_primary), None)


class Tag(Base):
    """Free-text label owned by a single yarn."""

    __tablename__ = "tags"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    yarn_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("yarns.id", ondelete="CASCADE"), index=True
    )

    yarn: Mapped[Yarn] = relationship("Yarn", back_populates="tags")
