"""Database engine lifecycle and session management."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig
from fastapi import Request
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from yarnstash.models import Base

logger = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent
_ALEMBIC_INI = _PACKAGE_DIR.parent / "alembic.ini"
_ALEMBIC_SCRIPTS = _PACKAGE_DIR / "alembic"
_LOCK_TIMEOUT_SECONDS = 30.0
_LOCK_RETRY_INTERVAL = 0.1


def to_async_url(url: str) -> str:
    if url.startswith("sqlite+aiosqlite:"):
        return url
    if url.startswith("sqlite:"):
        return url.replace("sqlite:", "sqlite+aiosqlite:", 1)
    if url.startswith("postgresql+asyncpg:"):
        return url
    if url.startswith("postgresql:"):
        return url.replace("postgresql:", "postgresql+asyncpg:", 1)
    return url


def to_sync_url(url: str) -> str:
    if url.startswith("sqlite+aiosqlite:"):
        url = url.replace("sqlite+aiosqlite:", "sqlite:", 1)
    elif url.startswith("postgresql+asyncpg:"):
        url = url.replace("postgresql+asyncpg:", "postgresql:", 1)

    if url.startswith("sqlite:///") and ":memory:" not in url:
        db_path = Path(url.replace("sqlite:///", "", 1)).expanduser().resolve()
        return f"sqlite:///{db_path}"

    return url


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE clauses unless asked per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine and hands out sessions.

    Constructed by the process entry point (the FastAPI lifespan or the CLI)
    and disposed of at shutdown.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = to_async_url(url)
        engine_kwargs: dict[str, object] = {"echo": echo}
        if self.url.startswith("postgresql"):
            # Association replacement must behave as one serializable unit.
            engine_kwargs["isolation_level"] = "SERIALIZABLE"
        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)
        if self.url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_foreign_keys)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that rolls back if the block raises."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create tables straight from the models (tests and scratch databases)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def migrate(self, lock_path: Path | None = None) -> None:
        """Bring the schema to the Alembic head revision."""
        sync_url = to_sync_url(self.url)
        await asyncio.to_thread(_run_upgrade, sync_url, lock_path)

    async def dispose(self) -> None:
        await self.engine.dispose()


def _run_upgrade(sync_url: str, lock_path: Path | None) -> None:
    ini_path = str(_ALEMBIC_INI) if _ALEMBIC_INI.exists() else None
    alembic_cfg = AlembicConfig(ini_path)
    alembic_cfg.set_main_option("script_location", str(_ALEMBIC_SCRIPTS))
    alembic_cfg.attributes["database_url"] = sync_url

    lock_fd: int | None = None
    try:
        if lock_path is not None:
            try:
                lock_fd = _acquire_lock(lock_path)
            except TimeoutError as exc:
                logger.error("Failed to acquire migration lock: %s", exc)
                raise

        engine = create_engine(sync_url)
        try:
            with engine.connect() as connection:
                inspector = inspect(connection)
                has_version_table = inspector.has_table("alembic_version")
                existing_tables = [
                    name
                    for name in inspector.get_table_names()
                    if name != "alembic_version"
                ]

            if not has_version_table and existing_tables:
                logger.info("Stamping existing database with current Alembic head")
                command.stamp(alembic_cfg, "head")
            else:
                command.upgrade(alembic_cfg, "head")
        finally:
            engine.dispose()
    finally:
        if lock_fd is not None and lock_path is not None:
            _release_lock(lock_fd, lock_path)


def _acquire_lock(lock_path: Path) -> int:
    """Acquire a simple file-based lock for migration execution."""

    lock_path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + _LOCK_TIMEOUT_SECONDS
    while True:
        try:
            return os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
        except FileExistsError:
            if time.monotonic() > deadline:
                raise TimeoutError("Timed out waiting for migration lock")
            time.sleep(_LOCK_RETRY_INTERVAL)


def _release_lock(fd: int, lock_path: Path) -> None:
    """Release the lock acquired with :func:`_acquire_lock`."""

    os.close(fd)
    try:
        lock_path.unlink()
    except FileNotFoundError:
        pass


async def get_db(request: Request) -> AsyncGenerator[AsyncSession]:
    """Yield a session from the application's database."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
