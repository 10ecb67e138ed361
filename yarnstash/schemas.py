"""Request and response schemas.

JSON uses camelCase (``productLine``, ``projectIds``); Python attributes stay
snake_case. Update schemas distinguish an omitted field from one sent
explicitly through ``model_fields_set``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel

from yarnstash.models import DyeState, ProjectStatus

YARDS_PER_OZ_PATTERN = r"^\d+(\.\d+)?/\d+(\.\d+)?$"

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _check_ounces(value: str) -> str:
    if float(value.split("/", 1)[1]) == 0:
        raise ValueError("yardsPerOz must not divide by zero ounces")
    return value


YardsPerOz = Annotated[
    str,
    StringConstraints(strip_whitespace=True, pattern=YARDS_PER_OZ_PATTERN),
    AfterValidator(_check_ounces),
]
WeightClass = Annotated[int, Field(ge=1, le=7, strict=True)]
PositiveAmount = Annotated[float, Field(gt=0)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _reject_explicit_nulls(model: BaseModel, fields: tuple[str, ...]) -> None:
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{to_camel(name)} may not be null")


# Requests


class OrganizationEntryIn(CamelModel):
    type_id: RequiredText
    quantity: Annotated[int, Field(gt=0, strict=True)]


class YarnCreate(CamelModel):
    brand: RequiredText
    product_line: RequiredText
    previous_color: str | None = None
    current_color: str | None = None
    next_color: str | None = None
    dye_state: DyeState = DyeState.NOT_TO_BE_DYED
    materials: RequiredText
    weight: WeightClass
    yards_per_oz: YardsPerOz
    total_weight: PositiveAmount
    total_yards: PositiveAmount
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    organization: list[OrganizationEntryIn] = Field(default_factory=list)
    project_ids: list[str] = Field(default_factory=list)


class YarnUpdate(CamelModel):
    """Partial yarn update; omitted fields are left untouched."""

    brand: RequiredText | None = None
    product_line: RequiredText | None = None
    previous_color: str | None = None
    current_color: str | None = None
    next_color: str | None = None
    dye_state: DyeState | None = None
    materials: RequiredText | None = None
    weight: WeightClass | None = None
    yards_per_oz: YardsPerOz | None = None
    total_weight: PositiveAmount | None = None
    total_yards: PositiveAmount | None = None
    notes: str | None = None
    tags: list[str] | None = None
    organization: list[OrganizationEntryIn] | None = None
    project_ids: list[str] | None = None

    @model_validator(mode="after")
    def _check_nulls(self) -> YarnUpdate:
        _reject_explicit_nulls(
            self,
            (
                "brand",
                "product_line",
                "dye_state",
                "materials",
                "weight",
                "yards_per_oz",
                "total_weight",
                "total_yards",
                "tags",
                "organization",
                "project_ids",
            ),
        )
        return self

    def scalar_changes(self) -> dict[str, Any]:
        """Supplied column values, excluding association replacements."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in {"tags", "organization", "project_ids"}
        }


class ProjectCreate(CamelModel):
    name: RequiredText
    description: str | None = None
    status: ProjectStatus = ProjectStatus.PLANNED
    yarn_ids: list[str] = Field(default_factory=list)


class ProjectUpdate(CamelModel):
    """Partial project update; omitted fields are left untouched."""

    name: RequiredText | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    yarn_ids: list[str] | None = None

    @model_validator(mode="after")
    def _check_nulls(self) -> ProjectUpdate:
        _reject_explicit_nulls(self, ("name", "status", "yarn_ids"))
        return self

    def scalar_changes(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "yarn_ids"
        }


class ProjectYarnLink(CamelModel):
    yarn_id: RequiredText


class OrganizationTypeCreate(CamelModel):
    name: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=80)
    ]


class PhotoRegister(CamelModel):
    """Metadata for a blob already uploaded through a presigned URL."""

    key: RequiredText
    filename: RequiredText
    content_type: RequiredText
    size: Annotated[int, Field(ge=0)]
    is_primary: bool = False


class UploadUrlRequest(CamelModel):
    filename: RequiredText
    content_type: RequiredText


# Responses


class OrganizationTypeOut(CamelModel):
    id: str
    name: str
    is_system: bool


class OrganizationEntryOut(CamelModel):
    id: str
    type_id: str
    quantity: int
    type: OrganizationTypeOut


class TagOut(CamelModel):
    id: str
    name: str


class PhotoOut(CamelModel):
    id: str
    key: str
    filename: str
    content_type: str
    size: int
    is_primary: bool
    created_at: datetime
    url: str


class UploadUrlOut(CamelModel):
    key: str
    upload_url: str
    expires_in: int


class ProjectSummary(CamelModel):
    id: str
    name: str
    status: ProjectStatus
    description: str | None = None


class YarnSummary(CamelModel):
    id: str
    brand: str
    product_line: str
    current_color: str | None = None
    dye_state: DyeState


class YarnOut(CamelModel):
    id: str
    brand: str
    product_line: str
    previous_color: str | None
    current_color: str | None
    next_color: str | None
    dye_state: DyeState
    materials: str
    weight: int
    yards_per_oz: str
    total_weight: float
    total_yards: float
    notes: str | None
    created_at: datetime
    updated_at: datetime
    tags: list[TagOut]
    photos: list[PhotoOut]
    organization: list[OrganizationEntryOut]
    projects: list[ProjectSummary]


class ProjectOut(CamelModel):
    id: str
    name: str
    description: str | None
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime
    yarns: list[YarnSummary]
    photos: list[PhotoOut]


class YarnPage(CamelModel):
    yarns: list[YarnOut]
    total: int
    page: int
    pages: int


class ProjectPage(CamelModel):
    projects: list[ProjectOut]
    total: int
    page: int
    pages: int


class AuditLogOut(CamelModel):
    id: int
    action: str
    actor_user_id: str
    details: dict[str, Any]
    created_at: datetime


class MessageOut(BaseModel):
    message: str


class CurrentUserOut(CamelModel):
    id: str
    email: str | None
    name: str | None
    image: str | None
