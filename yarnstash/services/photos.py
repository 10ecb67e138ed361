"""Photo attachments for yarns and projects.

Each yarn or project has at most one primary photo. The first photo an
entity receives becomes primary, a photo added or marked with ``is_primary``
demotes the others, and deleting the primary photo promotes the oldest one
left.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from yarnstash.errors import InternalError, NotFoundError, ValidationError
from yarnstash.models import Photo, Project, Yarn
from yarnstash.schemas import PhotoRegister, UploadUrlOut
from yarnstash.storage import BlobStore, build_blob_key

logger = logging.getLogger(__name__)

PhotoOwnerKind = Literal["yarn", "project"]

_MODELS: dict[PhotoOwnerKind, type[Yarn] | type[Project]] = {
    "yarn": Yarn,
    "project": Project,
}


def entity_prefix(kind: PhotoOwnerKind, entity_id: str) -> str:
    """Blob-key prefix under which an entity's photos live."""
    return f"{kind}s/{entity_id}"


async def purge_blobs(store: BlobStore, keys: Iterable[str]) -> None:
    """Delete blobs whose rows are already gone; failures are only logged."""
    for key in keys:
        try:
            await store.delete(key)
        except Exception:
            logger.exception("Failed to delete blob %s", key)


async def _load_entity(
    db: AsyncSession, owner_id: str, kind: PhotoOwnerKind, entity_id: str
) -> Yarn | Project:
    model = _MODELS[kind]
    result = await db.execute(
        select(model)
        .where(model.id == entity_id, model.owner_id == owner_id)
        .options(selectinload(model.photos))
    )
    entity = result.scalar_one_or_none()
    if entity is None:
        raise NotFoundError(kind, entity_id)
    return entity


def _find_photo(entity: Yarn | Project, photo_id: str) -> Photo:
    photo = next((p for p in entity.photos if p.id == photo_id), None)
    if photo is None:
        raise NotFoundError("photo", photo_id)
    return photo


def _make_primary(entity: Yarn | Project, chosen: Photo) -> None:
    for photo in entity.photos:
        photo.is_primary = photo is chosen


def _attach(entity: Yarn | Project, photo: Photo, requested_primary: bool) -> None:
    has_primary = any(p.is_primary for p in entity.photos)
    entity.photos.append(photo)
    if requested_primary or not has_primary:
        _make_primary(entity, photo)
    else:
        photo.is_primary = False


async def list_photos(
    db: AsyncSession, owner_id: str, kind: PhotoOwnerKind, entity_id: str
) -> list[Photo]:
    entity = await _load_entity(db, owner_id, kind, entity_id)
    return list(entity.photos)


async def add_uploaded_photo(
    db: AsyncSession,
    store: BlobStore,
    owner_id: str,
    kind: PhotoOwnerKind,
    entity_id: str,
    *,
    filename: str,
    content_type: str,
    data: bytes,
    is_primary: bool = False,
    max_bytes: int,
) -> Photo:
    """Store uploaded bytes in the blob store and attach them as a photo."""
    if len(data) > max_bytes:
        raise ValidationError(
            f"File exceeds the {max_bytes} byte upload limit", field="file"
        )
    if not filename:
        raise ValidationError("Uploaded file has no name", field="file")

    entity = await _load_entity(db, owner_id, kind, entity_id)
    key = build_blob_key(entity_prefix(kind, entity.id), filename)
    try:
        await store.put(key, data, content_type)
    except OSError as exc:
        raise InternalError(
            "Could not store uploaded photo", {"key": key, "reason": str(exc)}
        ) from exc

    photo = Photo(
        key=key, filename=filename, content_type=content_type, size=len(data)
    )
    _attach(entity, photo, is_primary)
    try:
        await db.commit()
    except Exception:
        await purge_blobs(store, [key])
        raise

    logger.info("Uploaded photo %s for %s %s", photo.id, kind, entity.id)
    return photo


async def register_photo(
    db: AsyncSession,
    store: BlobStore,
    owner_id: str,
    kind: PhotoOwnerKind,
    entity_id: str,
    payload: PhotoRegister,
) -> Photo:
    """Attach a blob that the client already uploaded to a presigned URL."""
    entity = await _load_entity(db, owner_id, kind, entity_id)

    prefix = entity_prefix(kind, entity.id) + "/"
    if not payload.key.startswith(prefix):
        raise ValidationError(f"Key must start with '{prefix}'", field="key")

    taken = await db.execute(select(Photo.id).where(Photo.key == payload.key))
    if taken.first() is not None:
        raise ValidationError("Key is already registered", field="key")
    if not await store.exists(payload.key):
        raise ValidationError("No uploaded object under this key", field="key")

    photo = Photo(
        key=payload.key,
        filename=payload.filename,
        content_type=payload.content_type,
        size=payload.size,
    )
    _attach(entity, photo, payload.is_primary)
    await db.commit()

    logger.info("Registered photo %s for %s %s", photo.id, kind, entity.id)
    return photo


async def set_primary_photo(
    db: AsyncSession,
    owner_id: str,
    kind: PhotoOwnerKind,
    entity_id: str,
    photo_id: str,
) -> Photo:
    entity = await _load_entity(db, owner_id, kind, entity_id)
    photo = _find_photo(entity, photo_id)
    _make_primary(entity, photo)
    await db.commit()
    return photo


async def delete_photo(
    db: AsyncSession,
    store: BlobStore,
    owner_id: str,
    kind: PhotoOwnerKind,
    entity_id: str,
    photo_id: str,
) -> None:
    entity = await _load_entity(db, owner_id, kind, entity_id)
    photo = _find_photo(entity, photo_id)
    was_primary = photo.is_primary

    entity.photos.remove(photo)
    if was_primary and entity.photos:
        fallback = min(entity.photos, key=lambda p: p.created_at)
        _make_primary(entity, fallback)
    await db.commit()

    logger.info("Deleted photo %s from %s %s", photo_id, kind, entity.id)
    await purge_blobs(store, [photo.key])


async def create_upload_url(
    db: AsyncSession,
    store: BlobStore,
    owner_id: str,
    kind: PhotoOwnerKind,
    entity_id: str,
    *,
    filename: str,
    content_type: str,
    ttl_seconds: int,
) -> UploadUrlOut:
    """Reserve a key under the entity prefix and presign a PUT for it."""
    entity = await _load_entity(db, owner_id, kind, entity_id)
    key = build_blob_key(entity_prefix(kind, entity.id), filename)
    url = await store.presigned_put_url(key, content_type, ttl_seconds)
    return UploadUrlOut(key=key, upload_url=url, expires_in=ttl_seconds)
