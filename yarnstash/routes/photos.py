"""Photo sub-resources shared by yarns and projects."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from yarnstash.config import Config
from yarnstash.database import get_db
from yarnstash.errors import ValidationError
from yarnstash.models import Photo, User
from yarnstash.routes.auth import require_user
from yarnstash.routes.deps import get_blob_store, get_config
from yarnstash.schemas import (
    MessageOut,
    PhotoOut,
    PhotoRegister,
    UploadUrlOut,
    UploadUrlRequest,
)
from yarnstash.services import photos as photo_service
from yarnstash.services.photos import PhotoOwnerKind
from yarnstash.services.presentation import present_photo, present_photos
from yarnstash.storage import BlobStore, guess_content_type

_TRUTHY = {"1", "true", "yes", "on"}


async def _register_from_json(request: Request) -> PhotoRegister:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise ValidationError("Request body must be JSON or multipart") from exc
    try:
        return PhotoRegister.model_validate(body)
    except SchemaValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


async def _store_multipart(
    request: Request,
    kind: PhotoOwnerKind,
    entity_id: str,
    db: AsyncSession,
    owner: User,
    store: BlobStore,
    settings: Config,
) -> Photo:
    async with request.form() as form:
        upload = form.get("file")
        if not isinstance(upload, UploadFile) or not upload.filename:
            raise ValidationError("A file upload is required", field="file")

        is_primary = str(form.get("isPrimary", "")).strip().lower() in _TRUTHY
        data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
        return await photo_service.add_uploaded_photo(
            db,
            store,
            owner.id,
            kind,
            entity_id,
            filename=upload.filename,
            content_type=upload.content_type or guess_content_type(upload.filename),
            data=data,
            is_primary=is_primary,
            max_bytes=settings.MAX_UPLOAD_BYTES,
        )


def build_photo_router(kind: PhotoOwnerKind) -> APIRouter:
    """Photo endpoints mounted under ``/{kind}s/{entity_id}/photos``."""
    router = APIRouter(prefix=f"/{kind}s/{{entity_id}}/photos", tags=[f"{kind} photos"])

    @router.get("", response_model=list[PhotoOut])
    async def list_photos(
        entity_id: str,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_user),
        store: BlobStore = Depends(get_blob_store),
        settings: Config = Depends(get_config),
    ) -> list[PhotoOut]:
        photos = await photo_service.list_photos(db, current_user.id, kind, entity_id)
        return await present_photos(photos, store, settings.BLOB_URL_TTL_SECONDS)

    @router.post("", response_model=PhotoOut, status_code=status.HTTP_201_CREATED)
    async def add_photo(
        entity_id: str,
        request: Request,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_user),
        store: BlobStore = Depends(get_blob_store),
        settings: Config = Depends(get_config),
    ) -> PhotoOut:
        """Upload a file (multipart ``file``) or register a presigned upload (JSON)."""
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("multipart/form-data"):
            photo = await _store_multipart(
                request, kind, entity_id, db, current_user, store, settings
            )
        else:
            payload = await _register_from_json(request)
            photo = await photo_service.register_photo(
                db, store, current_user.id, kind, entity_id, payload
            )
        return await present_photo(photo, store, settings.BLOB_URL_TTL_SECONDS)

    @router.post("/upload-url", response_model=UploadUrlOut)
    async def create_upload_url(
        entity_id: str,
        payload: UploadUrlRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_user),
        store: BlobStore = Depends(get_blob_store),
        settings: Config = Depends(get_config),
    ) -> UploadUrlOut:
        return await photo_service.create_upload_url(
            db,
            store,
            current_user.id,
            kind,
            entity_id,
            filename=payload.filename,
            content_type=payload.content_type,
            ttl_seconds=settings.BLOB_URL_TTL_SECONDS,
        )

    @router.post("/{photo_id}/primary", response_model=PhotoOut)
    async def set_primary(
        entity_id: str,
        photo_id: str,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_user),
        store: BlobStore = Depends(get_blob_store),
        settings: Config = Depends(get_config),
    ) -> PhotoOut:
        photo = await photo_service.set_primary_photo(
            db, current_user.id, kind, entity_id, photo_id
        )
        return await present_photo(photo, store, settings.BLOB_URL_TTL_SECONDS)

    @router.delete("/{photo_id}", response_model=MessageOut)
    async def delete_photo(
        entity_id: str,
        photo_id: str,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_user),
        store: BlobStore = Depends(get_blob_store),
    ) -> MessageOut:
        await photo_service.delete_photo(
            db, store, current_user.id, kind, entity_id, photo_id
        )
        return MessageOut(message="Photo deleted")

    return router


yarn_photos_router = build_photo_router("yarn")
project_photos_router = build_photo_router("project")
