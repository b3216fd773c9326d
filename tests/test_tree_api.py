import json

import pytest
from httpx import AsyncClient


async def _build_family(client: AsyncClient, register) -> dict:
    dad = await register("tree-dad@example.com", name="Dad", family_name="Tree Family", gender="MALE")
    await client.put(
        "/members/profile",
        json={"personal_info": {"birth_date": "1960-05-01"}},
        headers=dad["headers"],
    )

    async def add(name: str, relationships: list, **extra) -> str:
        res = await client.post(
            "/members",
            json={"name": name, "family_id": dad["family_id"], "initial_relationships": relationships, **extra},
            headers=dad["headers"],
        )
        assert res.status_code == 201, res.text
        return res.json()["id"]

    mom = await add(
        "Mom",
        [{"related_member_id": dad["member_id"], "relationship_type": "SPOUSE"}],
        gender="FEMALE",
        personal_info={"birth_date": "1962-01-01"},
    )
    kid1 = await add(
        "Kid One",
        [
            {"related_member_id": dad["member_id"], "relationship_type": "PARENT"},
            {"related_member_id": mom, "relationship_type": "PARENT"},
        ],
        personal_info={"birth_date": "1990-03-03"},
    )
    kid2 = await add(
        "Kid Two",
        [{"related_member_id": dad["member_id"], "relationship_type": "PARENT"}],
        status="INACTIVE",
        personal_info={"birth_year": 1992},
    )
    return {**dad, "dad": dad["member_id"], "mom": mom, "kid1": kid1, "kid2": kid2}


@pytest.mark.asyncio
async def test_tree_is_centered_on_the_viewer(client: AsyncClient, register) -> None:
    family = await _build_family(client, register)

    res = await client.get(f"/tree/{family['family_id']}", headers=family["headers"])

    assert res.status_code == 200
    tree = res.json()
    assert tree["family_name"] == "Tree Family"
    assert tree["total_members"] == 4
    assert tree["generations"] == 2
    assert tree["center_node_id"] == family["dad"]
    levels = {node["name"]: node["level"] for node in tree["nodes"]}
    assert levels == {"Dad": 0, "Mom": 0, "Kid One": 1, "Kid Two": 1}
    dad_node = next(node for node in tree["nodes"] if node["name"] == "Dad")
    assert (dad_node["x"], dad_node["y"]) == (0, 0)
    assert sorted(dad_node["children_ids"]) == sorted([family["kid1"], family["kid2"]])

    spouse_edges = [c for c in tree["connections"] if c["type"] == "spouse"]
    assert len(spouse_edges) == 1
    assert {spouse_edges[0]["from"], spouse_edges[0]["to"]} == {family["dad"], family["mom"]}


@pytest.mark.asyncio
async def test_tree_can_be_recentered(client: AsyncClient, register) -> None:
    family = await _build_family(client, register)

    res = await client.get(
        f"/tree/{family['family_id']}",
        params={"center_member_id": family["kid1"]},
        headers=family["headers"],
    )

    tree = res.json()
    assert tree["center_node_id"] == family["kid1"]
    levels = {node["name"]: node["level"] for node in tree["nodes"]}
    assert levels["Kid One"] == 0
    assert levels["Dad"] == -1
    assert levels["Mom"] == -1


@pytest.mark.asyncio
async def test_center_outside_the_family_falls_back_to_first_member(client: AsyncClient, register) -> None:
    family = await _build_family(client, register)
    outsider = await register("tree-outsider@example.com", name="Outsider")

    res = await client.get(
        f"/tree/{family['family_id']}",
        params={"center_member_id": outsider["member_id"]},
        headers=family["headers"],
    )

    assert res.status_code == 200
    tree = res.json()
    assert tree["center_node_id"] == family["dad"]
    levels = {node["name"]: node["level"] for node in tree["nodes"]}
    assert levels == {"Dad": 0, "Mom": 0, "Kid One": 1, "Kid Two": 1}


@pytest.mark.asyncio
async def test_tree_statistics(client: AsyncClient, register) -> None:
    family = await _build_family(client, register)

    res = await client.get(f"/tree/{family['family_id']}/statistics", headers=family["headers"])

    assert res.status_code == 200
    stats = res.json()
    assert stats["total_members"] == 4
    assert stats["total_families"] == 1
    assert stats["total_generations"] == 2
    assert stats["average_children_per_member"] == pytest.approx(0.75)
    assert stats["oldest_member"]["name"] == "Dad"
    assert stats["oldest_member"]["birth_year"] == 1960
    assert stats["youngest_member"]["name"] == "Kid Two"
    assert stats["gender_distribution"] == {"male": 1, "female": 1, "other": 0, "unspecified": 2}
    assert stats["status_distribution"] == {"active": 3, "inactive": 1, "deceased": 0, "archived": 0}


@pytest.mark.asyncio
async def test_generation_breakdown_and_member_relationships(client: AsyncClient, register) -> None:
    family = await _build_family(client, register)

    gen_res = await client.get(f"/tree/{family['family_id']}/generations", headers=family["headers"])
    assert gen_res.status_code == 200
    generations = gen_res.json()["generations"]
    assert sorted(member["name"] for member in generations["0"]) == ["Dad", "Mom"]
    assert sorted(member["name"] for member in generations["1"]) == ["Kid One", "Kid Two"]

    rel_res = await client.get(
        f"/tree/{family['family_id']}/relationships/{family['kid1']}",
        headers=family["headers"],
    )
    assert rel_res.status_code == 200
    body = rel_res.json()
    assert body["member"]["name"] == "Kid One"
    direct = {(item["name"], item["relationship"]) for item in body["direct_relationships"]}
    assert direct == {("Dad", "parent"), ("Mom", "parent")}
    assert [(item["name"], item["relationship"]) for item in body["indirect_relationships"]] == [
        ("Kid Two", "sibling")
    ]


@pytest.mark.asyncio
async def test_tree_export_formats(client: AsyncClient, register) -> None:
    family = await _build_family(client, register)

    json_res = await client.post(
        "/tree/export",
        json={"family_id": family["family_id"], "format": "json"},
        headers=family["headers"],
    )
    assert json_res.status_code == 200
    assert json_res.headers["content-type"].startswith("application/json")
    assert json_res.headers["content-disposition"] == (
        f'attachment; filename="family-tree-{family["family_id"]}.json"'
    )
    exported = json.loads(json_res.content)
    assert exported["total_members"] == 3
    assert "Kid Two" not in [node["name"] for node in exported["nodes"]]
    assert all("personal_info" not in node for node in exported["nodes"])
    assert all("from" in connection for connection in exported["connections"])

    csv_res = await client.post(
        "/tree/export",
        json={
            "family_id": family["family_id"],
            "format": "csv",
            "include_personal_info": True,
            "include_inactive_members": True,
        },
        headers=family["headers"],
    )
    assert csv_res.status_code == 200
    lines = csv_res.text.strip().split("\n")
    assert lines[0].endswith("Personal Info")
    assert len(lines) == 5

    pdf_res = await client.post(
        "/tree/export",
        json={"family_id": family["family_id"], "format": "pdf"},
        headers=family["headers"],
    )
    assert pdf_res.headers["content-type"] == "application/pdf"
    assert pdf_res.text.startswith("Family Tree: Tree Family")


@pytest.mark.asyncio
async def test_tree_is_private_to_family_members(client: AsyncClient, register) -> None:
    family = await _build_family(client, register)
    outsider = await register("tree-outsider@example.com")

    res = await client.get(f"/tree/{family['family_id']}", headers=outsider["headers"])
    assert res.status_code == 403

    rel_res = await client.get(
        f"/tree/{outsider['family_id']}/relationships/{family['kid1']}",
        headers=outsider["headers"],
    )
    assert rel_res.status_code == 403
