"""CLI tool for Yarnstash."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
import uvicorn
from sqlalchemy import or_, select

from yarnstash.config import config
from yarnstash.database import Database
from yarnstash.models import Photo, Project, User, Yarn
from yarnstash.services.organization import seed_system_types
from yarnstash.services.photos import purge_blobs
from yarnstash.storage import BlobStore, LocalBlobStore
from yarnstash.utils.auth import Identity, create_identity_token


@asynccontextmanager
async def open_database(url: str | None = None) -> AsyncIterator[Database]:
    """Open (and migrate) the configured database for one command."""
    database = Database(url or config.DATABASE_URL)
    try:
        await database.migrate(config.MEDIA_ROOT / ".migrate.lock")
        yield database
    finally:
        await database.dispose()


async def add_user(
    database: Database,
    user_id: str,
    email: str | None = None,
    name: str | None = None,
) -> User:
    """Create a user row ahead of its first login, or update its profile."""
    async with database.session() as session:
        user = await session.get(User, user_id)
        if user is None:
            user = User(id=user_id, email=email, name=name)
            session.add(user)
            await session.commit()
            print(f"Created user {user_id}")
            return user

        if email is not None:
            user.email = email
        if name is not None:
            user.name = name
        await session.commit()
        print(f"Updated user {user_id}")
        return user


async def list_users(database: Database) -> list[User]:
    async with database.session() as session:
        result = await session.execute(select(User).order_by(User.created_at))
        users = list(result.scalars())
    for user in users:
        print(f"ID: {user.id}, Email: {user.email or '-'}, Name: {user.name or '-'}")
    return users


async def delete_user(
    database: Database, user_id: str, store: BlobStore | None = None
) -> bool:
    """Delete a user and everything they own, photo files included."""
    if store is None:
        store = LocalBlobStore(config.MEDIA_ROOT, config.blob_signing_secret)

    async with database.session() as session:
        user = await session.get(User, user_id)
        if user is None:
            print(f"User {user_id} not found.", file=sys.stderr)
            return False

        owned_yarns = select(Yarn.id).where(Yarn.owner_id == user_id)
        owned_projects = select(Project.id).where(Project.owner_id == user_id)
        result = await session.execute(
            select(Photo.key).where(
                or_(
                    Photo.yarn_id.in_(owned_yarns),
                    Photo.project_id.in_(owned_projects),
                )
            )
        )
        keys = list(result.scalars())

        await session.delete(user)
        await session.commit()

    await purge_blobs(store, keys)
    print(f"Deleted user {user_id} and {len(keys)} photo file(s)")
    return True


async def seed(database: Database) -> int:
    async with database.session() as session:
        created = await seed_system_types(session)
    print(f"Seeded {created} organization types")
    return created


def mint_token(
    user_id: str,
    email: str | None = None,
    name: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Mint a development identity token for ``user_id``."""
    expires = timedelta(minutes=expires_minutes) if expires_minutes else None
    return create_identity_token(
        Identity(user_id=user_id, email=email, name=name), expires_delta=expires
    )


async def api_request(url: str, endpoint: str, token: str) -> None:
    """Make an authenticated API request."""
    async with httpx.AsyncClient() as client:
        resp = await client.get(
            f"{url}{endpoint}",
            headers={"Authorization": f"Bearer {token}"},
        )

    if resp.status_code == 200:
        try:
            print(json.dumps(resp.json(), indent=2))
        except json.JSONDecodeError:
            print(resp.text)
    else:
        print(f"Error: {resp.status_code}", file=sys.stderr)
        print(resp.text, file=sys.stderr)
        sys.exit(1)


async def migrate() -> None:
    async with open_database():
        pass
    print("Database is at the latest revision")


async def _with_database(action, *args):
    async with open_database() as database:
        return await action(database, *args)


def serve(host: str, port: int, reload: bool) -> None:
    uvicorn.run("yarnstash.main:app", host=host, port=port, reload=reload)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Yarnstash CLI tool.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # User management
    user_parser = subparsers.add_parser("user", help="Manage users")
    user_subparsers = user_parser.add_subparsers(dest="user_command", required=True)

    add_parser = user_subparsers.add_parser("add", help="Create or update a user")
    add_parser.add_argument("user_id", help="Identity provider subject")
    add_parser.add_argument("--email", help="User email")
    add_parser.add_argument("--name", help="Display name")

    user_subparsers.add_parser("list", help="List all users")

    delete_parser = user_subparsers.add_parser("delete", help="Delete a user")
    delete_parser.add_argument("user_id", help="Identity provider subject")

    # Development tokens
    token_parser = subparsers.add_parser("token", help="Mint a development token")
    token_parser.add_argument("user_id", help="Token subject")
    token_parser.add_argument("--email", help="Email claim")
    token_parser.add_argument("--name", help="Name claim")
    token_parser.add_argument(
        "--expires-minutes", type=int, help="Lifetime (default one week)"
    )

    subparsers.add_parser("seed", help="Create the system organization types")
    subparsers.add_parser("migrate", help="Upgrade the database schema")

    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=config.PORT)
    serve_parser.add_argument("--reload", action="store_true")

    # API interaction
    api_parser = subparsers.add_parser("api", help="Interact with the API")
    api_parser.add_argument(
        "--url", default=f"http://localhost:{config.PORT}", help="API URL"
    )
    api_parser.add_argument("--token", required=True, help="Identity token")
    api_subparsers = api_parser.add_subparsers(dest="api_command", required=True)
    api_subparsers.add_parser("projects", help="List projects")
    api_subparsers.add_parser("yarns", help="List yarns")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.command == "user":
        if args.user_command == "add":
            asyncio.run(_with_database(add_user, args.user_id, args.email, args.name))
        elif args.user_command == "list":
            asyncio.run(_with_database(list_users))
        elif args.user_command == "delete":
            if not asyncio.run(_with_database(delete_user, args.user_id)):
                sys.exit(1)

    elif args.command == "token":
        print(mint_token(args.user_id, args.email, args.name, args.expires_minutes))

    elif args.command == "seed":
        asyncio.run(_with_database(seed))

    elif args.command == "migrate":
        asyncio.run(migrate())

    elif args.command == "serve":
        serve(args.host, args.port, args.reload)

    elif args.command == "api":
        endpoint = "/projects" if args.api_command == "projects" else "/yarns"
        asyncio.run(api_request(args.url, endpoint, args.token))


if __name__ == "__main__":
    main()
