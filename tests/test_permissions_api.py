import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_available_permissions_catalogue(client: AsyncClient, register) -> None:
    owner = await register("catalogue@example.com")

    res = await client.get("/families/permissions/available", headers=owner["headers"])

    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 19
    by_name = {item["permission"]: item for item in body["permissions"]}
    assert by_name["view_tree"]["category"] == "VIEWING"
    assert by_name["delete_family"]["display_name"] == "Delete Family"
    assert by_name["create_posts"]["category"] == "COMMUNICATION"


@pytest.mark.asyncio
async def test_new_member_gets_role_defaults(client: AsyncClient, register, invite_member) -> None:
    owner = await register("perm-owner@example.com", name="Owner")
    member = await invite_member(owner, "perm-member@example.com", name="Member")

    res = await client.get(
        f"/families/{owner['family_id']}/members/{member['member_id']}/permissions",
        headers=owner["headers"],
    )

    assert res.status_code == 200
    body = res.json()
    assert body["member"]["role"] == "MEMBER"
    assert sorted(item["permission"] for item in body["permissions"]) == [
        "create_posts",
        "edit_own_profile",
        "send_messages",
        "view_family_info",
        "view_members",
        "view_tree",
    ]


@pytest.mark.asyncio
async def test_grant_replace_reset_and_revoke(client: AsyncClient, register, invite_member) -> None:
    owner = await register("grant-owner@example.com", name="Owner")
    member = await invite_member(owner, "grant-member@example.com", name="Member")
    base = f"/families/{owner['family_id']}/members/{member['member_id']}/permissions"

    grant_res = await client.post(base, json={"permission": "add_members"}, headers=owner["headers"])
    assert grant_res.status_code == 200
    assert grant_res.json()["message"] == "Permission granted successfully"
    assert grant_res.json()["permission"]["granted_by"] == owner["member_id"]

    again_res = await client.post(base, json={"permission": "add_members"}, headers=owner["headers"])
    assert again_res.status_code == 403
    assert again_res.json()["detail"] == "Member already has this permission"

    unknown_res = await client.post(base, json={"permission": "fly"}, headers=owner["headers"])
    assert unknown_res.status_code == 422

    replace_res = await client.put(
        base,
        json={"permissions": ["view_tree", "view_tree", "export_data"]},
        headers=owner["headers"],
    )
    assert replace_res.status_code == 200
    assert replace_res.json()["granted_permissions"] == 2

    revoke_res = await client.delete(f"{base}/export_data", headers=owner["headers"])
    assert revoke_res.status_code == 200
    assert revoke_res.json()["message"] == "Permission revoked successfully"

    missing_res = await client.delete(f"{base}/export_data", headers=owner["headers"])
    assert missing_res.status_code == 404

    reset_res = await client.post(f"{base}/reset", headers=owner["headers"])
    assert reset_res.status_code == 200
    assert reset_res.json() == {
        "message": "Permissions reset to role defaults",
        "granted_permissions": 6,
        "role": "MEMBER",
    }

    family_res = await client.get(f"/families/{owner['family_id']}/permissions", headers=owner["headers"])
    assert family_res.status_code == 200
    counts = {entry["member"]["name"]: entry["permission_count"] for entry in family_res.json()}
    assert counts == {"Member": 6, "Owner": 19}


@pytest.mark.asyncio
async def test_members_without_manage_permissions_are_denied(
    client: AsyncClient,
    register,
    invite_member,
) -> None:
    owner = await register("deny-owner@example.com")
    member = await invite_member(owner, "deny-member@example.com")

    res = await client.get(f"/families/{owner['family_id']}/permissions", headers=member["headers"])
    assert res.status_code == 403
    assert res.json()["detail"] == "You do not have permission to perform this action"

    grant_res = await client.post(
        f"/families/{owner['family_id']}/members/{member['member_id']}/permissions",
        json={"permission": "manage_permissions"},
        headers=member["headers"],
    )
    assert grant_res.status_code == 403


@pytest.mark.asyncio
async def test_granted_permission_unlocks_guarded_route(client: AsyncClient, register, invite_member) -> None:
    owner = await register("unlock-owner@example.com")
    member = await invite_member(owner, "unlock-member@example.com")
    payload = {"name": "New Cousin", "family_id": owner["family_id"]}

    denied = await client.post("/members", json=payload, headers=member["headers"])
    assert denied.status_code == 403

    await client.post(
        f"/families/{owner['family_id']}/members/{member['member_id']}/permissions",
        json={"permission": "add_members"},
        headers=owner["headers"],
    )

    allowed = await client.post("/members", json=payload, headers=member["headers"])
    assert allowed.status_code == 201
    assert allowed.json()["name"] == "New Cousin"
