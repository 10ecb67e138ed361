"""Blob storage for photo and pattern attachments.

The core only ever talks to a :class:`BlobStore`. :class:`LocalBlobStore`
keeps objects under ``MEDIA_ROOT`` and issues signed, expiring URLs that the
``/blobs`` routes serve, which mirrors what an S3-compatible store's
presigned URLs would provide.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import Literal, Protocol

import anyio
from itsdangerous import BadSignature, URLSafeTimedSerializer

logger = logging.getLogger(__name__)

BlobMethod = Literal["GET", "PUT"]


class BlobStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str) -> str: ...

    async def presigned_get_url(self, key: str, ttl_seconds: int) -> str: ...

    async def presigned_put_url(
        self, key: str, content_type: str, ttl_seconds: int
    ) -> str: ...

    async def delete(self, key: str) -> None: ...

    async def exists(self, key: str) -> bool: ...


class InvalidBlobToken(Exception):
    """Signed blob URL is forged, expired, or used with the wrong method."""


@dataclass(frozen=True)
class BlobGrant:
    key: str
    method: BlobMethod
    content_type: str | None = None


def build_blob_key(prefix: str, original_filename: str) -> str:
    """Build a unique key such as ``yarns/<id>/20250101_120000_ab12cd34.jpg``."""
    ext = PurePosixPath(original_filename).suffix.lower()
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    short_uuid = str(uuid.uuid4())[:8]
    return f"{prefix.strip('/')}/{timestamp}_{short_uuid}{ext}"


def guess_content_type(filename: str) -> str:
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def _validate_key(key: str) -> PurePosixPath:
    path = PurePosixPath(key)
    if not key or path.is_absolute() or any(part in (".", "..") for part in path.parts):
        raise ValueError(f"Invalid blob key: {key!r}")
    return path


class LocalBlobStore:
    """Filesystem-backed blob store with signed URLs."""

    def __init__(
        self,
        root: Path,
        signing_secret: str,
        *,
        url_prefix: str = "/blobs",
    ) -> None:
        self.root = root
        self.url_prefix = url_prefix.rstrip("/")
        self._serializer = URLSafeTimedSerializer(signing_secret, salt="yarnstash-blob")

    def _path_for(self, key: str) -> Path:
        return self.root.joinpath(*_validate_key(key).parts)

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await anyio.to_thread.run_sync(_write)
        logger.debug("Stored blob %s (%s, %d bytes)", key, content_type, len(data))
        return key

    async def read(self, key: str) -> bytes:
        path = self._path_for(key)
        return await anyio.to_thread.run_sync(path.read_bytes)

    async def exists(self, key: str) -> bool:
        try:
            path = self._path_for(key)
        except ValueError:
            return False
        return await anyio.to_thread.run_sync(path.is_file)

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        await anyio.to_thread.run_sync(lambda: path.unlink(missing_ok=True))
        logger.debug("Deleted blob %s", key)

    def _sign(self, grant: BlobGrant, ttl_seconds: int) -> str:
        payload = {
            "k": grant.key,
            "m": grant.method,
            "t": ttl_seconds,
        }
        if grant.content_type:
            payload["c"] = grant.content_type
        return self._serializer.dumps(payload)

    async def presigned_get_url(self, key: str, ttl_seconds: int) -> str:
        _validate_key(key)
        token = self._sign(BlobGrant(key=key, method="GET"), ttl_seconds)
        return f"{self.url_prefix}/{token}"

    async def presigned_put_url(
        self, key: str, content_type: str, ttl_seconds: int
    ) -> str:
        _validate_key(key)
        token = self._sign(
            BlobGrant(key=key, method="PUT", content_type=content_type), ttl_seconds
        )
        return f"{self.url_prefix}/{token}"

    def resolve(self, token: str, method: BlobMethod) -> BlobGrant:
        """Check a signed token and return what it grants."""
        try:
            payload, signed_at = self._serializer.loads(token, return_timestamp=True)
        except BadSignature as exc:
            raise InvalidBlobToken("bad signature") from exc

        if not isinstance(payload, dict) or payload.get("m") != method:
            raise InvalidBlobToken("method mismatch")

        age = (datetime.now(UTC) - signed_at).total_seconds()
        if age > int(payload.get("t", 0)):
            raise InvalidBlobToken("expired")

        return BlobGrant(
            key=str(payload["k"]),
            method=method,
            content_type=payload.get("c"),
        )
