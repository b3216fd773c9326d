from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.logging import get_logger
from app.models.family import (
    Family,
    FamilyMemberPermission,
    FamilyMembership,
    FamilyRole,
    MembershipType,
)
from app.models.invitation import Invitation
from app.models.member import Member, utc_now
from app.models.post import Post
from app.models.user import User
from app.schemas.family import (
    AddFamilyMemberRequest,
    FamilyCreateRequest,
    FamilyDetailsResponse,
    FamilyMemberEntry,
    FamilyResponse,
    FamilyUpdateRequest,
    UpdateMembershipRequest,
)
from app.services.membership_service import (
    create_membership,
    get_family_or_404,
    parse_id,
    require_member_id,
    verify_family_access,
    verify_family_admin,
    verify_member_access,
)
from app.services.permission_service import get_membership
from app.services.relationship_service import collect_descendants, load_relation_maps

logger = get_logger("families")


def to_family_response(family: Family) -> FamilyResponse:
    return FamilyResponse(
        id=str(family.id),
        name=family.name,
        description=family.description,
        is_sub_family=family.is_sub_family,
        parent_family_id=str(family.parent_family_id) if family.parent_family_id else None,
        creator_id=str(family.creator_id),
        head_of_family_id=str(family.head_of_family_id) if family.head_of_family_id else None,
        is_deleted=family.is_deleted,
        created_at=family.created_at,
        updated_at=family.updated_at,
    )


async def create_family(
    session: AsyncSession,
    *,
    user: User,
    payload: FamilyCreateRequest,
) -> FamilyResponse:
    member_id = require_member_id(user)
    parent_family_id = None
    is_sub_family = payload.is_sub_family
    if payload.parent_family_id:
        parent_family_id = parse_id(payload.parent_family_id, "parent_family_id")
        await verify_family_access(session, user=user, family_id=parent_family_id)
        is_sub_family = True

    head_id = member_id
    if payload.head_of_family_id:
        head_id = parse_id(payload.head_of_family_id, "head_of_family_id")
        await verify_member_access(session, user=user, member_id=head_id)

    membership_type = MembershipType.SUB if is_sub_family else MembershipType.MAIN
    family = Family(
        name=payload.name.strip(),
        description=payload.description,
        is_sub_family=is_sub_family,
        parent_family_id=parent_family_id,
        creator_id=member_id,
        head_of_family_id=head_id,
    )
    session.add(family)
    await session.flush()

    await create_membership(
        session,
        member_id=member_id,
        family_id=family.id,
        role=FamilyRole.ADMIN,
        membership_type=membership_type,
        granted_by=member_id,
    )
    if head_id != member_id:
        await create_membership(
            session,
            member_id=head_id,
            family_id=family.id,
            role=FamilyRole.HEAD,
            membership_type=membership_type,
            auto_enrolled=True,
            granted_by=member_id,
        )

    await session.commit()
    await session.refresh(family)
    logger.info("Family %s created by member %s", family.id, member_id)
    return to_family_response(family)


async def list_families(session: AsyncSession, *, user: User) -> list[FamilyResponse]:
    member_id = require_member_id(user)
    result = await session.execute(
        select(Family)
        .join(FamilyMembership, FamilyMembership.family_id == Family.id)
        .where(
            FamilyMembership.member_id == member_id,
            FamilyMembership.is_active.is_(True),
            Family.is_deleted.is_(False),
        )
        .order_by(Family.created_at.asc())
    )
    return [to_family_response(family) for family in result.scalars().all()]


async def get_family_details(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
) -> FamilyDetailsResponse:
    await verify_family_access(session, user=user, family_id=family_id)
    family = await get_family_or_404(session, family_id)

    members_result = await session.execute(
        select(FamilyMembership, Member)
        .join(Member, Member.id == FamilyMembership.member_id)
        .where(
            FamilyMembership.family_id == family_id,
            FamilyMembership.is_active.is_(True),
        )
        .order_by(FamilyMembership.join_date.asc())
    )
    sub_result = await session.execute(
        select(Family)
        .where(Family.parent_family_id == family_id, Family.is_deleted.is_(False))
        .order_by(Family.created_at.asc())
    )
    return FamilyDetailsResponse(
        **to_family_response(family).model_dump(),
        members=[
            FamilyMemberEntry(
                id=str(member.id),
                name=member.name,
                role=FamilyRole(membership.role).value,
                type=MembershipType(membership.type).value,
                is_active=membership.is_active,
                join_date=membership.join_date,
            )
            for membership, member in members_result.all()
        ],
        sub_families=[to_family_response(sub) for sub in sub_result.scalars().all()],
    )


async def update_family(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    payload: FamilyUpdateRequest,
) -> FamilyResponse:
    await verify_family_admin(session, user=user, family_id=family_id)
    family = await get_family_or_404(session, family_id)

    if payload.head_of_family_id:
        head_id = parse_id(payload.head_of_family_id, "head_of_family_id")
        await verify_member_access(session, user=user, member_id=head_id)
        if not await get_membership(session, member_id=head_id, family_id=family_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="New head must be a member of this family",
            )
        family.head_of_family_id = head_id
    if payload.name is not None:
        family.name = payload.name.strip()
    if payload.description is not None:
        family.description = payload.description

    family.updated_at = utc_now()
    session.add(family)
    await session.commit()
    await session.refresh(family)
    return to_family_response(family)


async def add_member_to_family(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    payload: AddFamilyMemberRequest,
) -> None:
    admin = await verify_family_admin(session, user=user, family_id=family_id)
    member_id = parse_id(payload.member_id, "member_id")
    await verify_member_access(session, user=user, member_id=member_id)

    existing = await get_membership(session, member_id=member_id, family_id=family_id, active_only=False)
    if existing:
        if existing.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Member is already in this family",
            )
        existing.is_active = True
        existing.role = payload.role
        existing.type = payload.type
        session.add(existing)
    else:
        await create_membership(
            session,
            member_id=member_id,
            family_id=family_id,
            role=payload.role,
            membership_type=payload.type,
            manually_edited=True,
            granted_by=admin.member_id,
        )
    await session.commit()


async def _membership_or_404(session: AsyncSession, *, member_id: UUID, family_id: UUID) -> FamilyMembership:
    membership = await get_membership(session, member_id=member_id, family_id=family_id, active_only=False)
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Membership not found",
        )
    return membership


async def update_family_membership(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    member_id: UUID,
    payload: UpdateMembershipRequest,
) -> None:
    await verify_family_admin(session, user=user, family_id=family_id)
    membership = await _membership_or_404(session, member_id=member_id, family_id=family_id)
    if payload.role is not None:
        membership.role = payload.role
    if payload.type is not None:
        membership.type = payload.type
    if payload.is_active is not None:
        membership.is_active = payload.is_active
    membership.manually_edited = True
    session.add(membership)
    await session.commit()


async def remove_member_from_family(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    member_id: UUID,
) -> None:
    await verify_family_admin(session, user=user, family_id=family_id)
    family = await get_family_or_404(session, family_id)
    if family.creator_id == member_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove family creator",
        )
    membership = await _membership_or_404(session, member_id=member_id, family_id=family_id)
    membership.is_active = False
    session.add(membership)
    await session.commit()


async def recalculate_sub_family_memberships(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
) -> int:
    """Auto-enrol the head, their spouses, and every descendant with spouses."""
    await verify_family_admin(session, user=user, family_id=family_id)
    family = await get_family_or_404(session, family_id)
    if not family.is_sub_family or not family.head_of_family_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid sub-family for membership calculation",
        )

    head_id = family.head_of_family_id
    lineage = [head_id, *await collect_descendants(session, head_id)]
    relations = await load_relation_maps(session, lineage)
    enrolled: list[UUID] = []
    for member_id in lineage:
        for candidate in (member_id, *relations[member_id].spouse_ids):
            if candidate not in enrolled:
                enrolled.append(candidate)

    for member_id in enrolled:
        existing = await get_membership(session, member_id=member_id, family_id=family_id, active_only=False)
        if existing:
            if not existing.manually_edited:
                existing.is_active = True
                existing.auto_enrolled = True
                session.add(existing)
            continue
        await create_membership(
            session,
            member_id=member_id,
            family_id=family_id,
            role=FamilyRole.HEAD if member_id == head_id else FamilyRole.MEMBER,
            membership_type=MembershipType.SUB,
            auto_enrolled=True,
            granted_by=user.member_id,
        )

    await session.commit()
    logger.info("Recalculated %d sub-family memberships for %s", len(enrolled), family_id)
    return len(enrolled)


def _require_creator(family: Family, user: User, action: str) -> None:
    if family.creator_id != user.member_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only family creator can {action} the family",
        )


async def soft_delete_family(session: AsyncSession, *, user: User, family_id: UUID) -> None:
    require_member_id(user)
    family = await get_family_or_404(session, family_id)
    _require_creator(family, user, "delete")
    family.is_deleted = True
    family.deleted_at = utc_now()
    session.add(family)
    await session.commit()


async def restore_family(session: AsyncSession, *, user: User, family_id: UUID) -> None:
    require_member_id(user)
    family = await get_family_or_404(session, family_id, include_deleted=True)
    _require_creator(family, user, "restore")
    if not family.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Family is not deleted",
        )
    family.is_deleted = False
    family.deleted_at = None
    family.updated_at = utc_now()
    session.add(family)
    await session.commit()


async def hard_delete_family(session: AsyncSession, *, user: User, family_id: UUID) -> None:
    require_member_id(user)
    family = await get_family_or_404(session, family_id, include_deleted=True)
    _require_creator(family, user, "delete")

    sub_result = await session.execute(select(Family.id).where(Family.parent_family_id == family_id))
    if sub_result.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete family with sub-families. Delete sub-families first.",
        )

    membership_ids = select(FamilyMembership.id).where(FamilyMembership.family_id == family_id)
    await session.execute(
        delete(FamilyMemberPermission).where(FamilyMemberPermission.membership_id.in_(membership_ids))
    )
    await session.execute(delete(FamilyMembership).where(FamilyMembership.family_id == family_id))
    await session.execute(delete(Invitation).where(Invitation.family_id == family_id))
    await session.execute(update(Post).where(Post.family_id == family_id).values(family_id=None))
    await session.delete(family)
    await session.commit()
    logger.info("Family %s permanently deleted", family_id)
