"""Association tables for many-to-many relationships."""

from sqlalchemy import Column, ForeignKey, Table

from yarnstash.models.base import Base

project_yarns: Table = Table(
    "project_yarns",
    Base.metadata,
    Column(
        "project_id",
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "yarn_id",
        ForeignKey("yarns.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)
