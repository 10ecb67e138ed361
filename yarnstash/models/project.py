"""Project model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yarnstash.models.associations import project_yarns
from yarnstash.models.base import Base, new_id, utcnow
from yarnstash.models.enums import ProjectStatus

if TYPE_CHECKING:
    from yarnstash.models.photo import Photo
    from yarnstash.models.user import User
    from yarnstash.models.yarn import Yarn


class Project(Base):
    """Project model."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(
            ProjectStatus,
            name="project_status",
            native_enum=False,
            length=20,
            values_callable=lambda members: [member.value for member in members],
        ),
        default=ProjectStatus.PLANNED,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, index=True
    )

    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    owner: Mapped[User] = relationship("User", back_populates="projects")
    photos: Mapped[list[Photo]] = relationship(
        "Photo",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Photo.created_at",
    )
    yarns: Mapped[list[Yarn]] = relationship(
        "Yarn",
        secondary=lambda: project_yarns,
        back_populates="projects",
    )
