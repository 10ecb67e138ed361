"""Replace-all semantics for tags, organization entries and project links."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from yarnstash.database import Database
from yarnstash.errors import ConflictError
from yarnstash.models import OrganizationEntry, Tag, project_yarns
from yarnstash.services.associations import (
    link_project_yarn,
    replace_project_yarns,
)


async def _link_count(database: Database) -> int:
    async with database.session() as session:
        result = await session.execute(
            select(func.count()).select_from(project_yarns)
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_yarn_and_project_links_are_visible_both_ways(
    test_client: AsyncClient, create_yarn, create_project
) -> None:
    yarn = await create_yarn(brand="Malabrigo", productLine="Rios")
    project = await create_project("Sweater")

    response = await test_client.patch(
        f"/projects/{project['id']}", json={"yarnIds": [yarn["id"]]}
    )
    assert response.status_code == 200
    assert [y["id"] for y in response.json()["yarns"]] == [yarn["id"]]
    assert response.json()["yarns"][0]["brand"] == "Malabrigo"

    fetched = await test_client.get(f"/yarns/{yarn['id']}")
    assert [p["name"] for p in fetched.json()["projects"]] == ["Sweater"]

    by_yarn = await test_client.get("/projects", params={"yarn_id": yarn["id"]})
    assert [p["id"] for p in by_yarn.json()["projects"]] == [project["id"]]


@pytest.mark.asyncio
async def test_replacement_is_idempotent(
    test_client: AsyncClient,
    database: Database,
    system_types: dict[str, str],
    create_yarn,
    create_project,
) -> None:
    yarn = await create_yarn()
    first = await create_project("Hat")
    second = await create_project("Scarf")
    payload = {
        "tags": ["soft", "gift"],
        "organization": [
            {"typeId": system_types["Ball"], "quantity": 3},
            {"typeId": system_types["Cake"], "quantity": 1},
        ],
        "projectIds": [first["id"], second["id"]],
    }

    once = await test_client.patch(f"/yarns/{yarn['id']}", json=payload)
    twice = await test_client.patch(f"/yarns/{yarn['id']}", json=payload)
    assert once.status_code == twice.status_code == 200

    body = twice.json()
    assert [t["name"] for t in body["tags"]] == ["soft", "gift"]
    assert [(e["type"]["name"], e["quantity"]) for e in body["organization"]] == [
        ("Ball", 3),
        ("Cake", 1),
    ]
    assert {p["id"] for p in body["projects"]} == {first["id"], second["id"]}

    async with database.session() as session:
        tags = await session.execute(select(func.count()).select_from(Tag))
        entries = await session.execute(
            select(func.count()).select_from(OrganizationEntry)
        )
        assert tags.scalar_one() == 2
        assert entries.scalar_one() == 2
    assert await _link_count(database) == 2


@pytest.mark.asyncio
async def test_replacement_overwrites_previous_set(
    test_client: AsyncClient, system_types: dict[str, str], create_yarn
) -> None:
    yarn = await create_yarn(
        tags=["old"],
        organization=[{"typeId": system_types["Skein"], "quantity": 4}],
    )

    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={
            "tags": ["new", "newer"],
            "organization": [{"typeId": system_types["Hank"], "quantity": 1}],
        },
    )
    body = response.json()
    assert [t["name"] for t in body["tags"]] == ["new", "newer"]
    assert [e["type"]["name"] for e in body["organization"]] == ["Hank"]


@pytest.mark.asyncio
async def test_empty_lists_clear_relations(
    test_client: AsyncClient,
    database: Database,
    system_types: dict[str, str],
    create_yarn,
    create_project,
) -> None:
    project = await create_project()
    yarn = await create_yarn(
        tags=["a"],
        organization=[{"typeId": system_types["Skein"], "quantity": 1}],
        projectIds=[project["id"]],
    )

    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={"tags": [], "organization": [], "projectIds": []},
    )
    body = response.json()
    assert body["tags"] == []
    assert body["organization"] == []
    assert body["projects"] == []
    assert await _link_count(database) == 0

    still_there = await test_client.get(f"/projects/{project['id']}")
    assert still_there.status_code == 200
    assert still_there.json()["yarns"] == []


@pytest.mark.asyncio
async def test_omitted_relations_are_untouched(
    test_client: AsyncClient, create_yarn, create_project
) -> None:
    project = await create_project()
    yarn = await create_yarn(tags=["keep"], projectIds=[project["id"]])

    response = await test_client.patch(f"/yarns/{yarn['id']}", json={"notes": "hi"})
    body = response.json()
    assert [t["name"] for t in body["tags"]] == ["keep"]
    assert [p["id"] for p in body["projects"]] == [project["id"]]


@pytest.mark.asyncio
async def test_duplicate_project_ids_collapse(
    test_client: AsyncClient, database: Database, create_yarn, create_project
) -> None:
    project = await create_project()
    yarn = await create_yarn()

    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={"projectIds": [project["id"], project["id"]]},
    )
    assert response.status_code == 200
    assert len(response.json()["projects"]) == 1
    assert await _link_count(database) == 1


@pytest.mark.asyncio
async def test_duplicate_tags_are_kept(create_yarn) -> None:
    yarn = await create_yarn(tags=["wool", "wool"])
    assert [t["name"] for t in yarn["tags"]] == ["wool", "wool"]


@pytest.mark.asyncio
async def test_unknown_project_rolls_back_whole_update(
    test_client: AsyncClient, database: Database, create_yarn, create_project
) -> None:
    project = await create_project()
    yarn = await create_yarn(tags=["before"], projectIds=[project["id"]])

    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={
            "brand": "Changed",
            "tags": ["after"],
            "projectIds": [project["id"], "no-such-project"],
        },
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Project not found"

    fetched = (await test_client.get(f"/yarns/{yarn['id']}")).json()
    assert fetched["brand"] == "Malabrigo"
    assert [t["name"] for t in fetched["tags"]] == ["before"]
    assert [p["id"] for p in fetched["projects"]] == [project["id"]]
    assert await _link_count(database) == 1


@pytest.mark.asyncio
async def test_unknown_organization_type_is_not_found(
    test_client: AsyncClient, system_types: dict[str, str], create_yarn
) -> None:
    yarn = await create_yarn(
        organization=[{"typeId": system_types["Cone"], "quantity": 2}]
    )

    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={"organization": [{"typeId": "no-such-type", "quantity": 1}]},
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Organization type not found"

    fetched = (await test_client.get(f"/yarns/{yarn['id']}")).json()
    assert [(e["type"]["name"], e["quantity"]) for e in fetched["organization"]] == [
        ("Cone", 2)
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -1, 1.5])
async def test_organization_quantity_must_be_positive_integer(
    test_client: AsyncClient, system_types: dict[str, str], create_yarn, quantity
) -> None:
    yarn = await create_yarn()
    response = await test_client.patch(
        f"/yarns/{yarn['id']}",
        json={"organization": [{"typeId": system_types["Ball"], "quantity": quantity}]},
    )
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "organization.0.quantity"


@pytest.mark.asyncio
async def test_cannot_link_another_users_project(
    test_client: AsyncClient, identity, alice, bob, create_yarn, create_project
) -> None:
    identity.use(bob)
    foreign = await create_project("Bob's blanket")

    identity.use(alice)
    yarn = await create_yarn()
    response = await test_client.patch(
        f"/yarns/{yarn['id']}", json={"projectIds": [foreign["id"]]}
    )
    assert response.status_code == 404

    create = await test_client.post(
        "/projects", json={"name": "Mine", "yarnIds": [yarn["id"]]}
    )
    assert create.status_code == 201

    identity.use(bob)
    response = await test_client.patch(
        f"/projects/{foreign['id']}", json={"yarnIds": [yarn["id"]]}
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Yarn not found"


@pytest.mark.asyncio
async def test_other_users_private_type_is_not_usable(
    test_client: AsyncClient, identity, alice, bob, create_yarn
) -> None:
    identity.use(bob)
    created = await test_client.post(
        "/yarn-organization-types", json={"name": "Bob's bag"}
    )
    assert created.status_code == 201

    identity.use(alice)
    response = await test_client.post(
        "/yarns",
        json={
            "brand": "Cascade",
            "productLine": "220",
            "materials": "wool",
            "weight": 4,
            "yardsPerOz": "220/3.5",
            "totalWeight": 3.5,
            "totalYards": 220,
            "organization": [{"typeId": created.json()["id"], "quantity": 1}],
        },
    )
    assert response.status_code == 404
    listing = await test_client.get("/yarns")
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_vanished_yarn_during_replacement_is_a_conflict(
    database: Database, create_yarn, create_project
) -> None:
    yarn = await create_yarn()
    project = await create_project(yarnIds=[yarn["id"]])

    # The id passed validation but the row is gone by the time links are written.
    async with database.session() as session:
        with pytest.raises(ConflictError) as excinfo:
            await replace_project_yarns(
                session, project["id"], [yarn["id"], "deleted-meanwhile"]
            )
    assert excinfo.value.context == {"relation": "yarnIds"}

    async with database.session() as session:
        with pytest.raises(ConflictError):
            await link_project_yarn(session, project["id"], "deleted-meanwhile")

    assert await _link_count(database) == 1
