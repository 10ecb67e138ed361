from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from yarnstash.config import Config
from yarnstash.database import Database
from yarnstash.main import create_app
from yarnstash.routes.auth import get_identity
from yarnstash.services.organization import seed_system_types
from yarnstash.storage import LocalBlobStore
from yarnstash.utils.auth import Identity

ALICE = Identity(user_id="user-alice", email="alice@example.com", name="Alice")
BOB = Identity(user_id="user-bob", email="bob@example.com", name="Bob")


def yarn_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "brand": "Malabrigo",
        "productLine": "Rios",
        "materials": "100% wool",
        "weight": 4,
        "yardsPerOz": "210/3.5",
        "totalWeight": 3.5,
        "totalYards": 210,
    }
    payload.update(overrides)
    return payload


class IdentitySwitch:
    """Identity returned by the overridden auth dependency."""

    def __init__(self) -> None:
        self.identity: Identity = ALICE

    def use(self, identity: Identity) -> None:
        self.identity = identity


@pytest.fixture
def settings(tmp_path) -> Config:
    settings = Config()
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.IDENTITY_SECRET = "test-identity-secret"
    settings.BLOB_SIGNING_SECRET = "test-blob-secret"
    settings.AUTO_MIGRATE = False
    settings.MAX_UPLOAD_BYTES = 64 * 1024
    return settings


@pytest.fixture
async def database(tmp_path) -> AsyncIterator[Database]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.create_all()
    async with database.session() as session:
        await seed_system_types(session)
    yield database
    await database.dispose()


@pytest.fixture
def blob_store(settings: Config) -> LocalBlobStore:
    settings.ensure_media_dirs()
    return LocalBlobStore(settings.MEDIA_ROOT, settings.blob_signing_secret)


@pytest.fixture
def identity() -> IdentitySwitch:
    return IdentitySwitch()


@pytest.fixture
def app(
    settings: Config,
    database: Database,
    blob_store: LocalBlobStore,
    identity: IdentitySwitch,
) -> FastAPI:
    app = create_app(settings, database=database, blob_store=blob_store)

    async def override_identity() -> Identity:
        return identity.identity

    app.dependency_overrides[get_identity] = override_identity
    return app


@pytest.fixture
async def test_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def system_types(test_client: AsyncClient) -> dict[str, str]:
    response = await test_client.get("/yarn-organization-types")
    assert response.status_code == 200
    return {item["name"]: item["id"] for item in response.json()}


@pytest.fixture
def yarn_data():
    """Build a valid yarn create payload with overrides."""
    return yarn_payload


@pytest.fixture
def create_yarn(test_client: AsyncClient):
    async def _create(**overrides: Any) -> dict[str, Any]:
        response = await test_client.post("/yarns", json=yarn_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_project(test_client: AsyncClient):
    async def _create(name: str = "Sweater", **fields: Any) -> dict[str, Any]:
        response = await test_client.post("/projects", json={"name": name, **fields})
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def bob() -> Identity:
    return BOB


@pytest.fixture
def alice() -> Identity:
    return ALICE
