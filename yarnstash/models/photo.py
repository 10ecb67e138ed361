"""Photo attachments for yarns and projects."""

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
    from yarnstash.models.project import Project
    from yarnstash.models.yarn import Yarn


class Photo(Base):
    """A blob-store reference owned by exactly one yarn or project."""

    __tablename__ = "photos"
    __table_args__ = (
        CheckConstraint(
            "(yarn_id IS NULL) <> (project_id IS NULL)",
            name="ck_photos_single_owner",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    key: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(120), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    yarn_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("yarns.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    project_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    yarn: Mapped[Yarn | None] = relationship("Yarn", back_populates="photos")
    project: Mapped[Project | None] = relationship("Project", back_populates="photos")
