"""Tests for yarn CRUD routes."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from yarnstash.config import Config
from yarnstash.database import Database
from yarnstash.models import (
    AuditLog,
    OrganizationEntry,
    Photo,
    Project,
    Tag,
    project_yarns,
)


@pytest.mark.asyncio
async def test_create_yarn_returns_entity_with_relations(
    test_client: AsyncClient, system_types: dict[str, str], create_project
) -> None:
    project = await create_project("Cardigan")
    response = await test_client.post(
        "/yarns",
        json={
            "brand": "Malabrigo",
            "productLine": "Rios",
            "materials": "100% wool",
            "weight": 4,
            "yardsPerOz": "210/3.5",
            "totalWeight": 3.5,
            "totalYards": 210,
            "currentColor": "Natural",
            "notes": "Bought at the fair",
            "tags": ["worsted", "superwash"],
            "organization": [{"typeId": system_types["Skein"], "quantity": 2}],
            "projectIds": [project["id"]],
        },
    )
    assert response.status_code == 201, response.text
    yarn = response.json()

    assert yarn["brand"] == "Malabrigo"
    assert yarn["productLine"] == "Rios"
    assert yarn["dyeState"] == "NOT_TO_BE_DYED"
    assert yarn["currentColor"] == "Natural"
    assert yarn["nextColor"] is None
    assert [tag["name"] for tag in yarn["tags"]] == ["worsted", "superwash"]
    assert yarn["organization"][0]["quantity"] == 2
    assert yarn["organization"][0]["type"]["name"] == "Skein"
    assert [p["id"] for p in yarn["projects"]] == [project["id"]]
    assert yarn["photos"] == []


@pytest.mark.asyncio
async def test_get_yarn(test_client: AsyncClient, create_yarn) -> None:
    created = await create_yarn()
    response = await test_client.get(f"/yarns/{created['id']}")
    assert response.status_code == 200
    assert response.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_missing_yarn_is_not_found(test_client: AsyncClient) -> None:
    response = await test_client.get("/yarns/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "message": "Yarn not found"}


@pytest.mark.asyncio
async def test_other_users_yarn_is_not_found(
    test_client: AsyncClient, identity, bob, create_yarn
) -> None:
    created = await create_yarn()
    identity.use(bob)

    for method, kwargs in (
        ("GET", {}),
        ("PATCH", {"json": {"brand": "Stolen"}}),
        ("DELETE", {}),
    ):
        response = await test_client.request(
            method, f"/yarns/{created['id']}", **kwargs
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Yarn not found"

    listing = await test_client.get("/yarns")
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("weight", 8),
        ("weight", 0),
        ("totalWeight", 0),
        ("totalYards", -5),
        ("yardsPerOz", "210 per 3.5"),
        ("yardsPerOz", "210/0"),
        ("yardsPerOz", "210/0.0"),
        ("weight", True),
        ("dyeState", "SORT_OF_DYED"),
        ("brand", "   "),
    ],
)
async def test_invalid_fields_are_rejected(
    test_client: AsyncClient, yarn_data, field: str, value: object
) -> None:
    response = await test_client.post("/yarns", json=yarn_data(**{field: value}))
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation_error"
    assert body["details"]["field"] == field


@pytest.mark.asyncio
async def test_missing_required_field(test_client: AsyncClient, yarn_data) -> None:
    payload = yarn_data()
    del payload["materials"]
    response = await test_client.post("/yarns", json=payload)
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "materials"


@pytest.mark.asyncio
async def test_weight_seven_is_accepted(create_yarn) -> None:
    yarn = await create_yarn(weight=7)
    assert yarn["weight"] == 7


@pytest.mark.asyncio
async def test_dye_delimiter_wins_over_selector(create_yarn) -> None:
    yarn = await create_yarn(
        currentColor="StoneGray --> Light Blue", dyeState="HAS_BEEN_DYED"
    )
    assert yarn["dyeState"] == "TO_BE_DYED"
    assert yarn["currentColor"] == "StoneGray"
    assert yarn["nextColor"] == "Light Blue"


@pytest.mark.asyncio
async def test_patch_with_delimiter(test_client: AsyncClient, create_yarn) -> None:
    yarn = await create_yarn(currentColor="Natural")
    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={"currentColor": "Natural --> Indigo", "dyeState": "NOT_TO_BE_DYED"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["currentColor"] == "Natural"
    assert body["nextColor"] == "Indigo"
    assert body["dyeState"] == "TO_BE_DYED"


@pytest.mark.asyncio
async def test_patch_plain_color_keeps_dye_fields(
    test_client: AsyncClient, create_yarn
) -> None:
    yarn = await create_yarn(currentColor="Natural --> Indigo")
    response = await test_client.patch(
        f"/yarns/{yarn['id']}", json={"currentColor": "Indigo"}
    )
    body = response.json()
    assert body["currentColor"] == "Indigo"
    assert body["nextColor"] == "Indigo"
    assert body["dyeState"] == "TO_BE_DYED"

    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={"dyeState": "HAS_BEEN_DYED", "previousColor": "Natural"},
    )
    body = response.json()
    assert body["dyeState"] == "HAS_BEEN_DYED"
    assert body["previousColor"] == "Natural"


@pytest.mark.asyncio
async def test_patch_only_changes_supplied_fields(
    test_client: AsyncClient, create_yarn
) -> None:
    yarn = await create_yarn(tags=["soft"], notes="keep me")
    response = await test_client.patch(f"/yarns/{yarn['id']}", json={"totalYards": 150})
    assert response.status_code == 200
    body = response.json()
    assert body["totalYards"] == 150
    assert body["notes"] == "keep me"
    assert [tag["name"] for tag in body["tags"]] == ["soft"]
    assert body["brand"] == "Malabrigo"


@pytest.mark.asyncio
async def test_patch_can_clear_optional_field(
    test_client: AsyncClient, create_yarn
) -> None:
    yarn = await create_yarn(notes="temporary")
    response = await test_client.patch(f"/yarns/{yarn['id']}", json={"notes": None})
    assert response.status_code == 200
    assert response.json()["notes"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["brand", "weight", "tags", "projectIds"])
async def test_patch_rejects_null_for_required_fields(
    test_client: AsyncClient, create_yarn, field: str
) -> None:
    yarn = await create_yarn()
    response = await test_client.patch(f"/yarns/{yarn['id']}", json={field: None})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_list_yarns_filters(test_client: AsyncClient, create_yarn) -> None:
    await create_yarn(brand="Malabrigo", currentColor="Teal", tags=["worsted"])
    await create_yarn(
        brand="Drops",
        productLine="Alpaca",
        materials="alpaca",
        weight=2,
        totalYards=400,
        totalWeight=1.75,
        currentColor="Rust --> Red",
        tags=["fingering"],
    )
    await create_yarn(brand="Drops", productLine="Nepal", totalYards=90)

    async def brands(**params: object) -> list[str]:
        response = await test_client.get("/yarns", params=params)
        assert response.status_code == 200, response.text
        return sorted(yarn["brand"] for yarn in response.json()["yarns"])

    assert await brands() == ["Drops", "Drops", "Malabrigo"]
    assert await brands(brand="Drops") == ["Drops", "Drops"]
    assert await brands(search="teal") == ["Malabrigo"]
    assert await brands(search="ALPACA") == ["Drops"]
    assert await brands(search="red") == ["Drops"]
    assert await brands(weight=2) == ["Drops"]
    assert await brands(dye_state="TO_BE_DYED") == ["Drops"]
    assert await brands(tag="worsted") == ["Malabrigo"]
    assert await brands(min_yards=200) == ["Drops", "Malabrigo"]
    assert await brands(max_yards=100) == ["Drops"]
    assert await brands(max_weight=2) == ["Drops"]
    assert await brands(min_weight=3, brand="Drops") == ["Drops"]


@pytest.mark.asyncio
async def test_search_matches_wildcards_literally(
    test_client: AsyncClient, create_yarn
) -> None:
    await create_yarn(brand="Wool Co", materials="100% wool")
    await create_yarn(brand="Acrylic Co", materials="1000 acrylic")
    await create_yarn(brand="Sock_Yarn Co", materials="merino")

    async def brands(search: str) -> list[str]:
        response = await test_client.get("/yarns", params={"search": search})
        assert response.status_code == 200, response.text
        return [yarn["brand"] for yarn in response.json()["yarns"]]

    assert await brands("100%") == ["Wool Co"]
    assert await brands("k_y") == ["Sock_Yarn Co"]
    assert await brands("100_") == []
    assert await brands("%") == ["Wool Co"]


@pytest.mark.asyncio
async def test_list_yarns_pagination(test_client: AsyncClient, create_yarn) -> None:
    for index in range(5):
        await create_yarn(productLine=f"Line {index}")

    response = await test_client.get("/yarns", params={"limit": 2, "page": 3})
    body = response.json()
    assert body["total"] == 5
    assert body["pages"] == 3
    assert body["page"] == 3
    assert len(body["yarns"]) == 1

    everything = (await test_client.get("/yarns")).json()
    assert len(everything["yarns"]) == 5
    assert everything["pages"] == 1

    largest = await test_client.get(
        "/yarns", params={"limit": Config.MAX_PAGE_SIZE}
    )
    assert largest.status_code == 200

    bad_limit = await test_client.get(
        "/yarns", params={"limit": Config.MAX_PAGE_SIZE + 1}
    )
    assert bad_limit.status_code == 400


@pytest.mark.asyncio
async def test_list_orders_by_last_update(
    test_client: AsyncClient, create_yarn
) -> None:
    first = await create_yarn(productLine="First")
    await create_yarn(productLine="Second")
    await test_client.patch(f"/yarns/{first['id']}", json={"notes": "touched"})

    response = await test_client.get("/yarns")
    lines = [yarn["productLine"] for yarn in response.json()["yarns"]]
    assert lines == ["First", "Second"]


@pytest.mark.asyncio
async def test_delete_yarn_cascades_dependents(
    test_client: AsyncClient,
    database: Database,
    system_types: dict[str, str],
    create_yarn,
    create_project,
) -> None:
    first = await create_project("Hat")
    second = await create_project("Mittens")
    yarn = await create_yarn(
        tags=["a"],
        organization=[
            {"typeId": system_types["Skein"], "quantity": 1},
            {"typeId": system_types["Ball"], "quantity": 2},
            {"typeId": system_types["Cake"], "quantity": 3},
        ],
        projectIds=[first["id"], second["id"]],
    )
    for name in ("front.jpg", "back.jpg"):
        upload = await test_client.post(
            f"/yarns/{yarn['id']}/photos",
            files={"file": (name, b"\xff\xd8 fake jpeg", "image/jpeg")},
        )
        assert upload.status_code == 201

    response = await test_client.delete(f"/yarns/{yarn['id']}")
    assert response.status_code == 200
    assert response.json() == {"message": "Yarn deleted"}

    async with database.session() as session:
        photos = await session.scalar(select(func.count()).select_from(Photo))
        entries = await session.scalar(
            select(func.count()).select_from(OrganizationEntry)
        )
        tags = await session.scalar(select(func.count()).select_from(Tag))
        links = await session.scalar(select(func.count()).select_from(project_yarns))
        projects = await session.scalar(select(func.count()).select_from(Project))
    assert (photos, entries, tags, links) == (0, 0, 0, 0)
    assert projects == 2

    for project in (first, second):
        detail = await test_client.get(f"/projects/{project['id']}")
        assert detail.status_code == 200
        assert detail.json()["yarns"] == []

    assert (await test_client.get(f"/yarns/{yarn['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_mutations_write_audit_rows(
    test_client: AsyncClient, database: Database, create_yarn
) -> None:
    yarn = await create_yarn()
    await test_client.patch(
        f"/yarns/{yarn['id']}", json={"brand": "Manos", "tags": ["x"]}
    )

    history = await test_client.get(f"/yarns/{yarn['id']}/history")
    assert history.status_code == 200
    entries = history.json()
    assert [entry["action"] for entry in entries] == ["updated", "created"]
    assert entries[0]["details"]["changes"]["brand"] == {
        "old": "Malabrigo",
        "new": "Manos",
    }
    assert entries[0]["details"]["replaced"] == ["tags"]
    assert entries[0]["actorUserId"] == "user-alice"

    await test_client.delete(f"/yarns/{yarn['id']}")
    async with database.session() as session:
        result = await session.execute(
            select(AuditLog.action)
            .where(AuditLog.entity_id == yarn["id"])
            .order_by(AuditLog.id)
        )
        assert list(result.scalars()) == ["created", "updated", "deleted"]
