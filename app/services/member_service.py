from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.family import Family, FamilyMembership, FamilyRole, MembershipType
from app.models.member import Member, MemberStatus, utc_now
from app.models.user import User
from app.schemas.member import (
    BulkRelationshipRequest,
    BulkRelationshipResponse,
    MemberCreateRequest,
    MemberDetailsResponse,
    MemberProfileUpdateRequest,
    MemberResponse,
    MembershipEntry,
    RelationshipRequest,
    RelationshipResult,
    RelationshipSummary,
    SimpleMember,
)
from app.services.membership_service import (
    create_membership,
    parse_id,
    require_member_id,
    verify_family_access,
    verify_member_access,
)
from app.services.relationship_service import (
    RelationshipType,
    connect,
    disconnect,
    ensure_not_self,
    get_member_or_404,
    load_relation_maps,
)


async def _memberships(
    session: AsyncSession,
    member_id: UUID,
    *,
    family_id: UUID | None = None,
) -> list[MembershipEntry]:
    stmt = (
        select(FamilyMembership, Family.name)
        .join(Family, Family.id == FamilyMembership.family_id)
        .where(FamilyMembership.member_id == member_id, Family.is_deleted.is_(False))
        .order_by(FamilyMembership.join_date.asc())
    )
    if family_id is not None:
        stmt = stmt.where(FamilyMembership.family_id == family_id)
    result = await session.execute(stmt)
    return [
        MembershipEntry(
            id=str(membership.id),
            family_id=str(membership.family_id),
            family_name=family_name,
            role=FamilyRole(membership.role).value,
            type=MembershipType(membership.type).value,
            auto_enrolled=membership.auto_enrolled,
            manually_edited=membership.manually_edited,
            is_active=membership.is_active,
            join_date=membership.join_date,
        )
        for membership, family_name in result.all()
    ]


async def to_member_response(
    session: AsyncSession,
    member: Member,
    *,
    family_id: UUID | None = None,
) -> MemberResponse:
    return MemberResponse(
        id=str(member.id),
        name=member.name,
        gender=member.gender.value if member.gender else None,
        status=MemberStatus(member.status).value,
        color=member.color,
        personal_info=member.personal_info or {},
        created_at=member.created_at,
        updated_at=member.updated_at,
        family_memberships=await _memberships(session, member.id, family_id=family_id),
    )


async def _simple_members(session: AsyncSession, member_ids: list[UUID]) -> list[SimpleMember]:
    if not member_ids:
        return []
    result = await session.execute(select(Member).where(Member.id.in_(member_ids)))
    by_id = {member.id: member for member in result.scalars().all()}
    return [
        SimpleMember(
            id=str(member_id),
            name=by_id[member_id].name,
            gender=by_id[member_id].gender.value if by_id[member_id].gender else None,
        )
        for member_id in member_ids
        if member_id in by_id
    ]


async def to_member_details(session: AsyncSession, member: Member) -> MemberDetailsResponse:
    relations = (await load_relation_maps(session, [member.id]))[member.id]
    base = await to_member_response(session, member)
    return MemberDetailsResponse(
        **base.model_dump(),
        parents=await _simple_members(session, relations.parent_ids),
        children=await _simple_members(session, relations.children_ids),
        spouses=await _simple_members(session, relations.spouse_ids),
    )


def _apply_update(member: Member, payload: MemberProfileUpdateRequest) -> None:
    if payload.name:
        member.name = payload.name.strip()
    if payload.gender:
        member.gender = payload.gender
    if payload.status:
        member.status = payload.status
    if payload.color:
        member.color = payload.color
    if payload.personal_info is not None:
        member.personal_info = payload.personal_info
    member.updated_at = utc_now()


async def get_profile(session: AsyncSession, *, user: User) -> MemberDetailsResponse:
    member_id = require_member_id(user)
    member = await get_member_or_404(session, member_id, detail="Member profile not found")
    return await to_member_details(session, member)


async def update_profile(
    session: AsyncSession,
    *,
    user: User,
    payload: MemberProfileUpdateRequest,
) -> MemberResponse:
    member_id = require_member_id(user)
    member = await get_member_or_404(session, member_id, detail="Member profile not found")
    _apply_update(member, payload)
    session.add(member)
    await session.commit()
    await session.refresh(member)
    return await to_member_response(session, member)


async def get_member_details(
    session: AsyncSession,
    *,
    user: User,
    member_id: UUID,
) -> MemberDetailsResponse:
    await verify_member_access(session, user=user, member_id=member_id)
    member = await get_member_or_404(session, member_id)
    return await to_member_details(session, member)


async def update_member(
    session: AsyncSession,
    *,
    user: User,
    member_id: UUID,
    payload: MemberProfileUpdateRequest,
) -> MemberResponse:
    await verify_member_access(session, user=user, member_id=member_id)
    member = await get_member_or_404(session, member_id)
    _apply_update(member, payload)
    session.add(member)
    await session.commit()
    await session.refresh(member)
    return await to_member_response(session, member)


async def _link(
    session: AsyncSession,
    *,
    user: User,
    subject_id: UUID,
    payload: RelationshipRequest,
    remove: bool,
) -> str:
    related_id = parse_id(payload.related_member_id, "related_member_id")
    if subject_id != user.member_id:
        await verify_member_access(session, user=user, member_id=subject_id)
        await get_member_or_404(session, subject_id, detail="Target member not found")
    await verify_member_access(session, user=user, member_id=related_id)
    await get_member_or_404(session, related_id, detail="Related member not found")
    ensure_not_self(subject_id, related_id)

    if remove:
        await disconnect(
            session,
            member_id=subject_id,
            related_member_id=related_id,
            relationship_type=payload.relationship_type,
        )
        return f"{payload.relationship_type.value.lower()} relationship removed successfully"
    await connect(
        session,
        member_id=subject_id,
        related_member_id=related_id,
        relationship_type=payload.relationship_type,
    )
    return f"{payload.relationship_type.value.lower()} relationship added successfully"


async def change_relationship(
    session: AsyncSession,
    *,
    user: User,
    payload: RelationshipRequest,
    member_id: UUID | None = None,
    remove: bool = False,
) -> str:
    """Adds or removes one edge around `member_id`, defaulting to the requester."""
    subject_id = member_id or require_member_id(user)
    message = await _link(session, user=user, subject_id=subject_id, payload=payload, remove=remove)
    await session.commit()
    return message


async def add_bulk_relationships(
    session: AsyncSession,
    *,
    user: User,
    payload: BulkRelationshipRequest,
) -> BulkRelationshipResponse:
    subject_id = require_member_id(user)
    results: list[RelationshipResult] = []
    for relationship in payload.relationships:
        summary = RelationshipSummary(**relationship.model_dump())
        try:
            message = await _link(
                session,
                user=user,
                subject_id=subject_id,
                payload=relationship,
                remove=False,
            )
        except HTTPException as exc:
            results.append(RelationshipResult(relationship=summary, success=False, message=str(exc.detail)))
            continue
        results.append(RelationshipResult(relationship=summary, success=True, message=message))
    await session.commit()

    succeeded = sum(1 for item in results if item.success)
    return BulkRelationshipResponse(
        success=succeeded > 0,
        message=f"{succeeded}/{len(payload.relationships)} relationships added successfully",
        results=results,
    )


async def create_member(
    session: AsyncSession,
    *,
    user: User,
    payload: MemberCreateRequest,
) -> MemberResponse:
    family_id = parse_id(payload.family_id, "family_id")
    await verify_family_access(
        session,
        user=user,
        family_id=family_id,
        detail="Access denied - not a member of this family",
    )
    related_ids = [
        parse_id(item.related_member_id, "related_member_id") for item in payload.initial_relationships
    ]
    for related_id in related_ids:
        await get_member_or_404(session, related_id, detail="Related member not found")

    member = Member(
        name=payload.name.strip(),
        gender=payload.gender,
        status=payload.status or MemberStatus.ACTIVE,
        color=payload.color,
        personal_info=payload.personal_info or {},
    )
    session.add(member)
    await session.flush()
    await create_membership(
        session,
        member_id=member.id,
        family_id=family_id,
        role=payload.role,
        manually_edited=True,
        granted_by=user.member_id,
    )
    for item, related_id in zip(payload.initial_relationships, related_ids):
        await connect(
            session,
            member_id=member.id,
            related_member_id=related_id,
            relationship_type=RelationshipType(item.relationship_type),
        )
    await session.commit()
    await session.refresh(member)
    return await to_member_response(session, member)


async def list_family_members(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
) -> list[MemberResponse]:
    await verify_family_access(
        session,
        user=user,
        family_id=family_id,
        detail="Access denied - not a member of this family",
    )
    result = await session.execute(
        select(Member)
        .join(FamilyMembership, FamilyMembership.member_id == Member.id)
        .where(
            FamilyMembership.family_id == family_id,
            FamilyMembership.is_active.is_(True),
        )
        .order_by(Member.name.asc())
    )
    return [
        await to_member_response(session, member, family_id=family_id)
        for member in result.scalars().all()
    ]
