"""Main FastAPI application."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from yarnstash import __version__
from yarnstash.config import Config
from yarnstash.config import config as default_config
from yarnstash.database import Database
from yarnstash.errors import register_exception_handlers
from yarnstash.logging_config import ACCESS_LOGGER, configure_logging
from yarnstash.routes import auth, blobs, organization_types, photos, projects, yarns
from yarnstash.services.organization import seed_system_types
from yarnstash.storage import BlobStore, LocalBlobStore

logger = logging.getLogger(__name__)
access_logger = logging.getLogger(ACCESS_LOGGER)


def create_app(
    config: Config | None = None,
    *,
    database: Database | None = None,
    blob_store: BlobStore | None = None,
) -> FastAPI:
    """Build the application.

    A ``database`` or ``blob_store`` passed in is used as is and left for
    the caller to manage; otherwise the lifespan builds the database from
    ``DATABASE_URL``, migrates it and disposes of it at shutdown.
    """
    settings = config or default_config
    owns_database = database is None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        db = app.state.database
        if owns_database:
            db = Database(settings.DATABASE_URL, echo=settings.DEBUG)
            app.state.database = db
            if settings.AUTO_MIGRATE:
                lock_path = settings.MEDIA_ROOT / ".migrate.lock"
                await db.migrate(lock_path)
        async with db.session() as session:
            await seed_system_types(session)
        logger.info("Yarnstash %s ready", __version__)
        try:
            yield
        finally:
            if owns_database:
                await db.dispose()

    app = FastAPI(
        title="Yarnstash",
        description="A self-hosted inventory of yarn and the projects using it",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = settings
    app.state.database = database

    if blob_store is None:
        settings.ensure_media_dirs()
        blob_store = LocalBlobStore(settings.MEDIA_ROOT, settings.blob_signing_secret)
    app.state.blob_store = blob_store

    register_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log one access line per request."""
        response = await call_next(request)
        client_host = "-"
        if request.client is not None:
            client_host = request.client.host or "-"
        access_logger.info(
            '%s - "%s %s" %s',
            client_host,
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    app.include_router(auth.router)
    app.include_router(yarns.router)
    app.include_router(projects.router)
    app.include_router(photos.yarn_photos_router)
    app.include_router(photos.project_photos_router)
    app.include_router(organization_types.router)
    app.include_router(blobs.router)

    return app


configure_logging(debug=default_config.DEBUG)

app = create_app()
