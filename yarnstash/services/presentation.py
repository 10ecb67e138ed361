"""Turn loaded entities into response schemas.

Photo URLs are presigned on the way out, so serialization needs the blob
store and is async.
"""

from __future__ import annotations

from collections.abc import Iterable

from yarnstash.models import AuditLog, Photo, Project, Yarn
from yarnstash.schemas import (
    AuditLogOut,
    OrganizationEntryOut,
    PhotoOut,
    ProjectOut,
    ProjectSummary,
    TagOut,
    YarnOut,
    YarnSummary,
)
from yarnstash.services.audit import load_details
from yarnstash.storage import BlobStore


def order_photos(photos: Iterable[Photo]) -> list[Photo]:
    """Primary photo first, the rest oldest to newest."""
    return sorted(photos, key=lambda photo: (not photo.is_primary, photo.created_at))


async def present_photo(photo: Photo, store: BlobStore, ttl_seconds: int) -> PhotoOut:
    return PhotoOut(
        id=photo.id,
        key=photo.key,
        filename=photo.filename,
        content_type=photo.content_type,
        size=photo.size,
        is_primary=photo.is_primary,
        created_at=photo.created_at,
        url=await store.presigned_get_url(photo.key, ttl_seconds),
    )


async def present_photos(
    photos: Iterable[Photo], store: BlobStore, ttl_seconds: int
) -> list[PhotoOut]:
    return [
        await present_photo(photo, store, ttl_seconds) for photo in order_photos(photos)
    ]


async def present_yarn(yarn: Yarn, store: BlobStore, ttl_seconds: int) -> YarnOut:
    """Serialize a yarn loaded with photos, tags, organization and projects."""
    return YarnOut(
        id=yarn.id,
        brand=yarn.brand,
        product_line=yarn.product_line,
        previous_color=yarn.previous_color,
        current_color=yarn.current_color,
        next_color=yarn.next_color,
        dye_state=yarn.dye_state,
        materials=yarn.materials,
        weight=yarn.weight,
        yards_per_oz=yarn.yards_per_oz,
        total_weight=yarn.total_weight,
        total_yards=yarn.total_yards,
        notes=yarn.notes,
        created_at=yarn.created_at,
        updated_at=yarn.updated_at,
        tags=[TagOut.model_validate(tag) for tag in yarn.tags],
        photos=await present_photos(yarn.photos, store, ttl_seconds),
        organization=[
            OrganizationEntryOut.model_validate(entry) for entry in yarn.organization
        ],
        projects=[ProjectSummary.model_validate(project) for project in yarn.projects],
    )


async def present_project(
    project: Project, store: BlobStore, ttl_seconds: int
) -> ProjectOut:
    """Serialize a project loaded with photos and yarns."""
    return ProjectOut(
        id=project.id,
        name=project.name,
        description=project.description,
        status=project.status,
        created_at=project.created_at,
        updated_at=project.updated_at,
        yarns=[YarnSummary.model_validate(yarn) for yarn in project.yarns],
        photos=await present_photos(project.photos, store, ttl_seconds),
    )


def present_audit_log(entry: AuditLog) -> AuditLogOut:
    return AuditLogOut(
        id=entry.id,
        action=entry.action,
        actor_user_id=entry.actor_user_id,
        details=load_details(entry.details),
        created_at=entry.created_at,
    )
