"""Enum types for models."""

from enum import Enum


class DyeState(str, Enum):
    """Whether a yarn is earmarked for re-dyeing."""

    NOT_TO_BE_DYED = "NOT_TO_BE_DYED"
    TO_BE_DYED = "TO_BE_DYED"
    HAS_BEEN_DYED = "HAS_BEEN_DYED"


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FROGGED = "frogged"
