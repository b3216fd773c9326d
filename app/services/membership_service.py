from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.family import Family, FamilyMembership, FamilyRole, MembershipType
from app.models.user import User
from app.services.permission_service import BYPASS_ROLES, seed_default_permissions


def parse_id(value: str, field_name: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {field_name}",
        ) from exc


def require_member_id(user: User) -> UUID:
    if not user.member_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member profile not found",
        )
    return user.member_id


async def list_active_family_ids(session: AsyncSession, member_id: UUID) -> list[UUID]:
    result = await session.execute(
        select(FamilyMembership.family_id)
        .join(Family, Family.id == FamilyMembership.family_id)
        .where(
            FamilyMembership.member_id == member_id,
            FamilyMembership.is_active.is_(True),
            Family.is_deleted.is_(False),
        )
    )
    return list(result.scalars().all())


async def get_family_or_404(
    session: AsyncSession,
    family_id: UUID,
    *,
    include_deleted: bool = False,
) -> Family:
    stmt = select(Family).where(Family.id == family_id)
    if not include_deleted:
        stmt = stmt.where(Family.is_deleted.is_(False))
    result = await session.execute(stmt)
    family = result.scalar_one_or_none()
    if not family:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Family not found",
        )
    return family


async def verify_family_access(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    detail: str = "Access denied to this family",
) -> FamilyMembership:
    member_id = require_member_id(user)
    result = await session.execute(
        select(FamilyMembership).where(
            FamilyMembership.member_id == member_id,
            FamilyMembership.family_id == family_id,
            FamilyMembership.is_active.is_(True),
        )
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return membership


async def verify_family_admin(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    detail: str = "Admin access required for this family",
) -> FamilyMembership:
    membership = await verify_family_access(session, user=user, family_id=family_id, detail=detail)
    if FamilyRole(membership.role) not in BYPASS_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return membership


async def shared_family_ids(
    session: AsyncSession,
    *,
    member_id: UUID,
    other_member_id: UUID,
) -> list[UUID]:
    mine = set(await list_active_family_ids(session, member_id))
    if not mine:
        return []
    theirs = await list_active_family_ids(session, other_member_id)
    return [family_id for family_id in theirs if family_id in mine]


async def verify_member_access(
    session: AsyncSession,
    *,
    user: User,
    member_id: UUID,
    detail: str = "Access denied - member not in your families",
) -> None:
    viewer_id = require_member_id(user)
    if viewer_id == member_id:
        return
    if not await shared_family_ids(session, member_id=viewer_id, other_member_id=member_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


async def create_membership(
    session: AsyncSession,
    *,
    member_id: UUID,
    family_id: UUID,
    role: FamilyRole = FamilyRole.MEMBER,
    membership_type: MembershipType = MembershipType.MAIN,
    auto_enrolled: bool = False,
    manually_edited: bool = False,
    granted_by: UUID | None = None,
) -> FamilyMembership:
    membership = FamilyMembership(
        member_id=member_id,
        family_id=family_id,
        role=role,
        type=membership_type,
        auto_enrolled=auto_enrolled,
        manually_edited=manually_edited,
    )
    session.add(membership)
    await session.flush()
    await seed_default_permissions(session, membership=membership, granted_by=granted_by)
    return membership
