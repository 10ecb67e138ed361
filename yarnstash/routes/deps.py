"""Shared route dependencies."""

from __future__ import annotations

from fastapi import Request

from yarnstash.config import Config
from yarnstash.storage import BlobStore


def get_config(request: Request) -> Config:
    settings: Config = request.app.state.config
    return settings


def get_blob_store(request: Request) -> BlobStore:
    store: BlobStore = request.app.state.blob_store
    return store
