import pytest
from httpx import AsyncClient
from sqlalchemy import select

from yarnstash.config import Config
from yarnstash.database import Database
from yarnstash.models import (
    AuditLog,
    OrganizationEntry,
    OrganizationType,
    Photo,
    Project,
    Tag,
    User,
    Yarn,
    project_yarns,
)
from yarnstash.scripts import cli
from yarnstash.storage import LocalBlobStore
from yarnstash.utils.auth import Identity, decode_identity_token


def test_mint_token_round_trips() -> None:
    token = cli.mint_token("idp|7", email="seven@example.com", name="Seven")
    identity = decode_identity_token(token)
    assert identity is not None
    assert identity.user_id == "idp|7"
    assert identity.email == "seven@example.com"
    assert identity.name == "Seven"


def test_token_command_prints_token(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["token", "cli-user", "--expires-minutes", "5"])
    token = capsys.readouterr().out.strip()
    identity = decode_identity_token(token)
    assert identity is not None
    assert identity.user_id == "cli-user"


def test_parser_requires_a_command() -> None:
    parser = cli.build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args([])

    args = parser.parse_args(["serve", "--port", "9000", "--reload"])
    assert (args.command, args.port, args.reload) == ("serve", 9000, True)

    args = parser.parse_args(["api", "--token", "t", "yarns"])
    assert args.api_command == "yarns"


@pytest.mark.asyncio
async def test_add_and_list_users(
    database: Database, capsys: pytest.CaptureFixture[str]
) -> None:
    await cli.add_user(database, "u-1", "one@example.com", "One")
    await cli.add_user(database, "u-1", name="Uno")
    users = await cli.list_users(database)

    output = capsys.readouterr().out
    assert "Created user u-1" in output
    assert "Updated user u-1" in output
    assert "one@example.com" in output
    assert [(u.id, u.email, u.name) for u in users] == [
        ("u-1", "one@example.com", "Uno")
    ]


@pytest.mark.asyncio
async def test_delete_user_removes_owned_data(
    test_client: AsyncClient,
    database: Database,
    blob_store: LocalBlobStore,
    settings: Config,
    create_yarn,
    create_project,
    alice: Identity,
    capsys: pytest.CaptureFixture[str],
) -> None:
    drawer = await test_client.post(
        "/yarn-organization-types", json={"name": "Drawer"}
    )
    yarn = await create_yarn(
        tags=["stash"],
        organization=[{"typeId": drawer.json()["id"], "quantity": 2}],
    )
    project = await create_project(yarnIds=[yarn["id"]])

    keys = []
    for url in (f"/yarns/{yarn['id']}", f"/projects/{project['id']}"):
        response = await test_client.post(
            f"{url}/photos", files={"file": ("pic.jpg", b"jpeg", "image/jpeg")}
        )
        assert response.status_code == 201, response.text
        keys.append(response.json()["key"])
    assert all((settings.MEDIA_ROOT / key).exists() for key in keys)

    assert await cli.delete_user(database, alice.user_id, blob_store) is True
    assert "and 2 photo file(s)" in capsys.readouterr().out
    assert await cli.delete_user(database, alice.user_id, blob_store) is False

    async with database.session() as session:
        assert await session.get(User, alice.user_id) is None
        for column in (
            Yarn.id,
            Project.id,
            Tag.id,
            Photo.id,
            OrganizationEntry.id,
            AuditLog.id,
            project_yarns.c.yarn_id,
        ):
            remaining = await session.execute(select(column))
            assert remaining.first() is None, column
        private = await session.execute(
            select(OrganizationType.id).where(OrganizationType.is_system.is_(False))
        )
        assert private.first() is None

    assert not any((settings.MEDIA_ROOT / key).exists() for key in keys)


@pytest.mark.asyncio
async def test_seed_reports_nothing_new(
    database: Database, capsys: pytest.CaptureFixture[str]
) -> None:
    assert await cli.seed(database) == 0
    assert "Seeded 0 organization types" in capsys.readouterr().out
