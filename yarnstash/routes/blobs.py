"""Signed blob URLs served by the local blob store.

Tokens are the authorization here; no identity is required.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from yarnstash.config import Config
from yarnstash.errors import NotFoundError, ValidationError
from yarnstash.routes.deps import get_blob_store, get_config
from yarnstash.storage import InvalidBlobToken, LocalBlobStore, guess_content_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blobs", tags=["blobs"])


def _local_store(request: Request) -> LocalBlobStore:
    store = get_blob_store(request)
    if not isinstance(store, LocalBlobStore):
        raise NotFoundError("blob")
    return store


@router.get("/{token}")
async def download_blob(
    token: str,
    store: LocalBlobStore = Depends(_local_store),
) -> Response:
    try:
        grant = store.resolve(token, "GET")
    except InvalidBlobToken as exc:
        logger.info("Rejected blob download: %s", exc)
        raise NotFoundError("blob") from exc

    if not await store.exists(grant.key):
        raise NotFoundError("blob")
    data = await store.read(grant.key)
    return Response(content=data, media_type=guess_content_type(grant.key))


@router.put("/{token}", status_code=status.HTTP_204_NO_CONTENT)
async def upload_blob(
    token: str,
    request: Request,
    store: LocalBlobStore = Depends(_local_store),
    settings: Config = Depends(get_config),
) -> Response:
    try:
        grant = store.resolve(token, "PUT")
    except InvalidBlobToken as exc:
        logger.info("Rejected blob upload: %s", exc)
        raise NotFoundError("blob") from exc

    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip()
    if grant.content_type and content_type != grant.content_type:
        raise ValidationError(
            f"Content-Type must be {grant.content_type}", field="content-type"
        )

    data = await request.body()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File exceeds the {settings.MAX_UPLOAD_BYTES} byte upload limit",
            field="file",
        )

    await store.put(grant.key, data, content_type or "application/octet-stream")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
