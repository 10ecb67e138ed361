"""Database models for Yarnstash."""

from yarnstash.models.associations import project_yarns
from yarnstash.models.audit import AuditLog
from yarnstash.models.base import Base
from yarnstash.models.enums import DyeState, ProjectStatus
from yarnstash.models.organization import OrganizationEntry, OrganizationType
from yarnstash.models.photo import Photo
from yarnstash.models.project import Project
from yarnstash.models.user import User
from yarnstash.models.yarn import Tag, Yarn

__all__ = [
    "AuditLog",
    "Base",
    "DyeState",
    "OrganizationEntry",
    "OrganizationType",
    "Photo",
    "Project",
    "ProjectStatus",
    "Tag",
    "User",
    "Yarn",
    "project_yarns",
]
