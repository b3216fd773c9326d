import pytest
from httpx import AsyncClient


async def _add_member(client: AsyncClient, owner: dict, name: str, relationships: list | None = None) -> str:
    res = await client.post(
        "/members",
        json={
            "name": name,
            "family_id": owner["family_id"],
            "initial_relationships": relationships or [],
        },
        headers=owner["headers"],
    )
    assert res.status_code == 201, res.text
    return res.json()["id"]


@pytest.mark.asyncio
async def test_create_list_get_and_update_family(client: AsyncClient, register) -> None:
    owner = await register("fam-owner@example.com", name="Owner", family_name="First Family")

    create_res = await client.post(
        "/families",
        json={"name": "  Second Family ", "description": "Another branch"},
        headers=owner["headers"],
    )
    assert create_res.status_code == 201
    second = create_res.json()
    assert second["name"] == "Second Family"
    assert second["creator_id"] == owner["member_id"]
    assert second["head_of_family_id"] == owner["member_id"]
    assert second["is_sub_family"] is False

    list_res = await client.get("/families", headers=owner["headers"])
    assert [family["name"] for family in list_res.json()] == ["First Family", "Second Family"]

    details_res = await client.get(f"/families/{second['id']}", headers=owner["headers"])
    assert details_res.status_code == 200
    details = details_res.json()
    assert [(m["name"], m["role"], m["type"]) for m in details["members"]] == [("Owner", "ADMIN", "MAIN")]
    assert details["sub_families"] == []

    update_res = await client.put(
        f"/families/{second['id']}",
        json={"name": "Renamed", "description": "Updated"},
        headers=owner["headers"],
    )
    assert update_res.status_code == 200
    assert update_res.json()["name"] == "Renamed"
    assert update_res.json()["description"] == "Updated"


@pytest.mark.asyncio
async def test_family_access_is_limited_to_members(client: AsyncClient, register, invite_member) -> None:
    owner = await register("access-owner@example.com")
    outsider = await register("access-outsider@example.com")
    member = await invite_member(owner, "access-member@example.com")

    outsider_res = await client.get(f"/families/{owner['family_id']}", headers=outsider["headers"])
    assert outsider_res.status_code == 403

    member_res = await client.get(f"/families/{owner['family_id']}", headers=member["headers"])
    assert member_res.status_code == 200

    member_update = await client.put(
        f"/families/{owner['family_id']}",
        json={"name": "Hijacked"},
        headers=member["headers"],
    )
    assert member_update.status_code == 403

    bad_id = await client.get("/families/not-a-uuid", headers=owner["headers"])
    assert bad_id.status_code == 422


@pytest.mark.asyncio
async def test_membership_management(client: AsyncClient, register, invite_member) -> None:
    owner = await register("members-owner@example.com", name="Owner")
    member = await invite_member(owner, "members-member@example.com", name="Cousin")
    family_id = owner["family_id"]

    second_res = await client.post("/families", json={"name": "Second"}, headers=owner["headers"])
    second_id = second_res.json()["id"]

    head_res = await client.put(
        f"/families/{second_id}",
        json={"head_of_family_id": member["member_id"]},
        headers=owner["headers"],
    )
    assert head_res.status_code == 400
    assert head_res.json()["detail"] == "New head must be a member of this family"

    add_res = await client.post(
        f"/families/{second_id}/members",
        json={"member_id": member["member_id"], "role": "CONTRIBUTOR"},
        headers=owner["headers"],
    )
    assert add_res.status_code == 200
    assert add_res.json() == {"success": True, "message": "Member added to family successfully"}

    duplicate_res = await client.post(
        f"/families/{second_id}/members",
        json={"member_id": member["member_id"]},
        headers=owner["headers"],
    )
    assert duplicate_res.status_code == 400

    patch_res = await client.patch(
        f"/families/{family_id}/members/{member['member_id']}",
        json={"role": "MODERATOR"},
        headers=owner["headers"],
    )
    assert patch_res.status_code == 200
    details = (await client.get(f"/families/{family_id}", headers=owner["headers"])).json()
    assert {m["name"]: m["role"] for m in details["members"]} == {"Owner": "ADMIN", "Cousin": "MODERATOR"}

    creator_res = await client.delete(
        f"/families/{family_id}/members/{owner['member_id']}",
        headers=owner["headers"],
    )
    assert creator_res.status_code == 400
    assert creator_res.json()["detail"] == "Cannot remove family creator"

    remove_res = await client.delete(
        f"/families/{family_id}/members/{member['member_id']}",
        headers=owner["headers"],
    )
    assert remove_res.status_code == 200
    details = (await client.get(f"/families/{family_id}", headers=owner["headers"])).json()
    assert [m["name"] for m in details["members"]] == ["Owner"]

    removed_view = await client.get(f"/families/{family_id}", headers=member["headers"])
    assert removed_view.status_code == 403


@pytest.mark.asyncio
async def test_sub_family_recalculation_enrols_descendants_and_spouses(client: AsyncClient, register) -> None:
    owner = await register("sub-owner@example.com", name="Grandpa", family_name="Main Family")
    son = await _add_member(
        client,
        owner,
        "Son",
        [{"related_member_id": owner["member_id"], "relationship_type": "PARENT"}],
    )
    await _add_member(client, owner, "Daughter In Law", [{"related_member_id": son, "relationship_type": "SPOUSE"}])
    await _add_member(client, owner, "Grandchild", [{"related_member_id": son, "relationship_type": "PARENT"}])
    await _add_member(client, owner, "Unrelated")

    sub_res = await client.post(
        "/families",
        json={"name": "Son Branch", "parent_family_id": owner["family_id"], "head_of_family_id": son},
        headers=owner["headers"],
    )
    assert sub_res.status_code == 201
    sub = sub_res.json()
    assert sub["is_sub_family"] is True
    assert sub["parent_family_id"] == owner["family_id"]
    assert sub["head_of_family_id"] == son

    recalc_res = await client.post(f"/families/{sub['id']}/subfamily/recalculate", headers=owner["headers"])
    assert recalc_res.status_code == 200
    assert recalc_res.json()["message"] == "Sub-family memberships recalculated successfully (3 members)"

    details = (await client.get(f"/families/{sub['id']}", headers=owner["headers"])).json()
    roles = {m["name"]: (m["role"], m["type"]) for m in details["members"]}
    assert roles == {
        "Grandpa": ("ADMIN", "SUB"),
        "Son": ("HEAD", "SUB"),
        "Daughter In Law": ("MEMBER", "SUB"),
        "Grandchild": ("MEMBER", "SUB"),
    }

    main = (await client.get(f"/families/{owner['family_id']}", headers=owner["headers"])).json()
    assert [family["name"] for family in main["sub_families"]] == ["Son Branch"]

    not_sub = await client.post(f"/families/{owner['family_id']}/subfamily/recalculate", headers=owner["headers"])
    assert not_sub.status_code == 400
    assert not_sub.json()["detail"] == "Invalid sub-family for membership calculation"


@pytest.mark.asyncio
async def test_soft_delete_restore_and_hard_delete(client: AsyncClient, register, invite_member) -> None:
    owner = await register("delete-owner@example.com", family_name="Doomed Family")
    member = await invite_member(owner, "delete-member@example.com")
    family_id = owner["family_id"]

    sub_res = await client.post(
        "/families",
        json={"name": "Doomed Branch", "parent_family_id": family_id},
        headers=owner["headers"],
    )
    sub_id = sub_res.json()["id"]

    forbidden = await client.delete(f"/families/{family_id}", headers=member["headers"])
    assert forbidden.status_code == 403
    assert forbidden.json()["detail"] == "Only family creator can delete the family"

    soft_res = await client.delete(f"/families/{family_id}", headers=owner["headers"])
    assert soft_res.status_code == 200
    assert soft_res.json()["message"] == "Family deleted successfully"
    listed = await client.get("/families", headers=owner["headers"])
    assert family_id not in [family["id"] for family in listed.json()]
    assert (await client.get(f"/families/{family_id}", headers=owner["headers"])).status_code == 404

    restore_res = await client.post(f"/families/{family_id}/restore", headers=owner["headers"])
    assert restore_res.status_code == 200
    assert restore_res.json()["message"] == "Family restored successfully"
    again = await client.post(f"/families/{family_id}/restore", headers=owner["headers"])
    assert again.status_code == 400

    blocked = await client.delete(f"/families/{family_id}/hard", headers=owner["headers"])
    assert blocked.status_code == 400
    assert blocked.json()["detail"] == "Cannot delete family with sub-families. Delete sub-families first."

    sub_hard = await client.delete(f"/families/{sub_id}/hard", headers=owner["headers"])
    assert sub_hard.status_code == 200
    hard_res = await client.delete(f"/families/{family_id}/hard", headers=owner["headers"])
    assert hard_res.status_code == 200
    assert hard_res.json()["message"] == "Family permanently deleted successfully"

    gone = await client.post(f"/families/{family_id}/restore", headers=owner["headers"])
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_outside_members_are_refused_with_one_message(client: AsyncClient, register) -> None:
    owner = await register("access-owner@example.com", name="Owner")
    outsider = await register("access-outsider@example.com", name="Outsider")

    headed = await client.post(
        "/families",
        json={"name": "Borrowed Head", "head_of_family_id": outsider["member_id"]},
        headers=owner["headers"],
    )
    assert headed.status_code == 403
    assert headed.json()["detail"] == "Access denied - member not in your families"

    added = await client.post(
        f"/families/{owner['family_id']}/members",
        json={"member_id": outsider["member_id"]},
        headers=owner["headers"],
    )
    assert added.status_code == 403
    assert added.json()["detail"] == "Access denied - member not in your families"
