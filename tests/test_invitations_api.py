from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.models.invitation import Invitation, InvitationStatus
from app.models.member import Member

PASSWORD = "Passw0rd!"


@pytest.mark.asyncio
async def test_create_validate_and_accept_invitation(client: AsyncClient, register) -> None:
    owner = await register("inviter@example.com", name="Grace Hopper", family_name="Hopper Family")

    create_res = await client.post(
        "/invitations",
        json={"family_id": owner["family_id"], "member_stub": {"name": "Ada"}},
        headers=owner["headers"],
    )
    assert create_res.status_code == 201
    invitation = create_res.json()
    assert invitation["family_name"] == "Hopper Family"
    assert invitation["inviter_name"] == "Grace Hopper"
    assert invitation["status"] == "VALID"

    validate_res = await client.get("/invitations/validate", params={"code": invitation["code"]})
    assert validate_res.status_code == 200
    validation = validate_res.json()
    assert validation["is_valid"] is True
    assert validation["family_name"] == "Hopper Family"
    assert validation["member_stub"] == {"name": "Ada"}

    accept_res = await client.post(
        "/invitations/accept",
        json={
            "invitation_code": invitation["code"],
            "email": "ada@example.com",
            "password": PASSWORD,
            "name": "Ada Lovelace",
        },
    )
    assert accept_res.status_code == 201
    accepted = accept_res.json()
    assert accepted["message"] == "Invitation accepted successfully"
    assert accepted["family_id"] == owner["family_id"]

    ada_headers = {"Authorization": f"Bearer {accepted['access_token']}"}
    members_res = await client.get(f"/members/family/{owner['family_id']}", headers=ada_headers)
    assert members_res.status_code == 200
    assert sorted(member["name"] for member in members_res.json()) == ["Ada Lovelace", "Grace Hopper"]

    used_res = await client.get("/invitations/validate", params={"code": invitation["code"]})
    assert used_res.json()["is_valid"] is False

    listing_res = await client.get(f"/invitations/family/{owner['family_id']}", headers=owner["headers"])
    assert listing_res.status_code == 200
    assert [item["status"] for item in listing_res.json()] == ["USED"]

    mine_res = await client.get("/invitations/my-invitations", headers=owner["headers"])
    assert mine_res.status_code == 200
    assert len(mine_res.json()) == 1


@pytest.mark.asyncio
async def test_garbage_code_is_invalid(client: AsyncClient) -> None:
    validate_res = await client.get("/invitations/validate", params={"code": "not-a-jwt"})
    assert validate_res.status_code == 200
    assert validate_res.json() == {
        "is_valid": False,
        "family_name": "",
        "inviter_name": "",
        "member_stub": None,
        "expires_at": None,
    }

    accept_res = await client.post(
        "/invitations/accept",
        json={
            "invitation_code": "not-a-jwt",
            "email": "nobody@example.com",
            "password": PASSWORD,
            "name": "Nobody",
        },
    )
    assert accept_res.status_code == 400
    assert accept_res.json()["detail"] == "Invalid or expired invitation code"


@pytest.mark.asyncio
async def test_only_family_admins_can_invite(client: AsyncClient, register) -> None:
    owner = await register("admin-invite@example.com", family_name="Admin Family")
    outsider = await register("outsider-invite@example.com", family_name="Other Family")

    outsider_res = await client.post(
        "/invitations",
        json={"family_id": owner["family_id"]},
        headers=outsider["headers"],
    )
    assert outsider_res.status_code == 403
    assert outsider_res.json()["detail"] == "Family not found or insufficient permissions"

    list_res = await client.get(f"/invitations/family/{owner['family_id']}", headers=outsider["headers"])
    assert list_res.status_code == 403

    invite_res = await client.post(
        "/invitations",
        json={"family_id": owner["family_id"]},
        headers=owner["headers"],
    )
    accept_res = await client.post(
        "/invitations/accept",
        json={
            "invitation_code": invite_res.json()["code"],
            "email": "plain-member@example.com",
            "password": PASSWORD,
            "name": "Plain Member",
        },
    )
    member_headers = {"Authorization": f"Bearer {accept_res.json()['access_token']}"}

    member_invite_res = await client.post(
        "/invitations",
        json={"family_id": owner["family_id"]},
        headers=member_headers,
    )
    assert member_invite_res.status_code == 403


@pytest.mark.asyncio
async def test_accept_rejects_taken_email(client: AsyncClient, register) -> None:
    owner = await register("taken-owner@example.com")
    invite_res = await client.post(
        "/invitations",
        json={"family_id": owner["family_id"]},
        headers=owner["headers"],
    )

    accept_res = await client.post(
        "/invitations/accept",
        json={
            "invitation_code": invite_res.json()["code"],
            "email": "taken-owner@example.com",
            "password": PASSWORD,
            "name": "Copycat",
        },
    )
    assert accept_res.status_code == 409

    still_valid = await client.get("/invitations/validate", params={"code": invite_res.json()["code"]})
    assert still_valid.json()["is_valid"] is True


@pytest.mark.asyncio
async def test_accept_rejects_invitation_past_its_expiry(
    client: AsyncClient,
    register,
    session_maker: async_sessionmaker[AsyncSession],
) -> None:
    owner = await register("expiry-owner@example.com")
    code = (
        await client.post("/invitations", json={"family_id": owner["family_id"]}, headers=owner["headers"])
    ).json()["code"]

    async with session_maker() as session:
        invitation = (await session.execute(select(Invitation).where(Invitation.code == code))).scalar_one()
        invitation.expires_at = datetime.now(UTC).replace(tzinfo=None) - timedelta(days=1)
        session.add(invitation)
        await session.commit()

    accept_res = await client.post(
        "/invitations/accept",
        json={"invitation_code": code, "email": "late@example.com", "password": PASSWORD, "name": "Late"},
    )
    assert accept_res.status_code == 400
    assert accept_res.json()["detail"] == "Invitation has expired"

    async with session_maker() as session:
        invitation = (await session.execute(select(Invitation).where(Invitation.code == code))).scalar_one()
    assert invitation.status == InvitationStatus.EXPIRED


def test_model_timestamps_default_to_utc() -> None:
    member = Member(name="Stamp")
    assert member.created_at.tzinfo is not None
    assert member.created_at.utcoffset() == timedelta(0)
