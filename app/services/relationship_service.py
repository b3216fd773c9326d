from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.member import Member, MemberParentLink, MemberSpouseLink


class RelationshipType(str, Enum):
    PARENT = "PARENT"
    CHILD = "CHILD"
    SPOUSE = "SPOUSE"


@dataclass
class RelationSet:
    parent_ids: list[UUID] = field(default_factory=list)
    children_ids: list[UUID] = field(default_factory=list)
    spouse_ids: list[UUID] = field(default_factory=list)


def _append_unique(values: list[UUID], value: UUID) -> None:
    if value not in values:
        values.append(value)


async def load_relation_maps(
    session: AsyncSession,
    member_ids: Iterable[UUID],
) -> dict[UUID, RelationSet]:
    """Parents, children and spouses for every id, spouse edges read in both directions."""
    ids = list(dict.fromkeys(member_ids))
    relations = {member_id: RelationSet() for member_id in ids}
    if not ids:
        return relations

    parent_result = await session.execute(
        select(MemberParentLink).where(
            or_(MemberParentLink.parent_id.in_(ids), MemberParentLink.child_id.in_(ids))
        )
    )
    for link in parent_result.scalars().all():
        if link.child_id in relations:
            _append_unique(relations[link.child_id].parent_ids, link.parent_id)
        if link.parent_id in relations:
            _append_unique(relations[link.parent_id].children_ids, link.child_id)

    spouse_result = await session.execute(
        select(MemberSpouseLink).where(
            or_(MemberSpouseLink.member_id.in_(ids), MemberSpouseLink.spouse_id.in_(ids))
        )
    )
    for link in spouse_result.scalars().all():
        if link.member_id in relations:
            _append_unique(relations[link.member_id].spouse_ids, link.spouse_id)
        if link.spouse_id in relations:
            _append_unique(relations[link.spouse_id].spouse_ids, link.member_id)
    return relations


async def link_parent(session: AsyncSession, *, parent_id: UUID, child_id: UUID) -> bool:
    existing = await session.execute(
        select(MemberParentLink).where(
            MemberParentLink.parent_id == parent_id,
            MemberParentLink.child_id == child_id,
        )
    )
    if existing.scalar_one_or_none():
        return False
    session.add(MemberParentLink(parent_id=parent_id, child_id=child_id))
    await session.flush()
    return True


async def link_spouses(session: AsyncSession, *, member_id: UUID, spouse_id: UUID) -> bool:
    existing = await session.execute(
        select(MemberSpouseLink).where(
            or_(
                and_(MemberSpouseLink.member_id == member_id, MemberSpouseLink.spouse_id == spouse_id),
                and_(MemberSpouseLink.member_id == spouse_id, MemberSpouseLink.spouse_id == member_id),
            )
        )
    )
    if existing.scalars().first():
        return False
    session.add(MemberSpouseLink(member_id=member_id, spouse_id=spouse_id))
    await session.flush()
    return True


async def connect(
    session: AsyncSession,
    *,
    member_id: UUID,
    related_member_id: UUID,
    relationship_type: RelationshipType,
) -> None:
    """Record `related_member_id` as the parent/child/spouse of `member_id`."""
    if relationship_type == RelationshipType.PARENT:
        await link_parent(session, parent_id=related_member_id, child_id=member_id)
    elif relationship_type == RelationshipType.CHILD:
        await link_parent(session, parent_id=member_id, child_id=related_member_id)
    else:
        await link_spouses(session, member_id=member_id, spouse_id=related_member_id)


async def disconnect(
    session: AsyncSession,
    *,
    member_id: UUID,
    related_member_id: UUID,
    relationship_type: RelationshipType,
) -> None:
    if relationship_type == RelationshipType.PARENT:
        stmt = delete(MemberParentLink).where(
            MemberParentLink.parent_id == related_member_id,
            MemberParentLink.child_id == member_id,
        )
    elif relationship_type == RelationshipType.CHILD:
        stmt = delete(MemberParentLink).where(
            MemberParentLink.parent_id == member_id,
            MemberParentLink.child_id == related_member_id,
        )
    else:
        stmt = delete(MemberSpouseLink).where(
            or_(
                and_(
                    MemberSpouseLink.member_id == member_id,
                    MemberSpouseLink.spouse_id == related_member_id,
                ),
                and_(
                    MemberSpouseLink.member_id == related_member_id,
                    MemberSpouseLink.spouse_id == member_id,
                ),
            )
        )
    await session.execute(stmt)


async def get_member_or_404(
    session: AsyncSession,
    member_id: UUID,
    *,
    detail: str = "Member not found",
) -> Member:
    result = await session.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return member


def ensure_not_self(member_id: UUID, related_member_id: UUID) -> None:
    if member_id == related_member_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot create relationship with yourself",
        )


async def collect_descendants(session: AsyncSession, root_id: UUID) -> list[UUID]:
    """Every descendant of `root_id`, breadth first; cycles are tolerated."""
    seen: set[UUID] = {root_id}
    order: list[UUID] = []
    frontier = [root_id]
    while frontier:
        result = await session.execute(
            select(MemberParentLink.child_id).where(MemberParentLink.parent_id.in_(frontier))
        )
        next_frontier: list[UUID] = []
        for child_id in result.scalars().all():
            if child_id in seen:
                continue
            seen.add(child_id)
            order.append(child_id)
            next_frontier.append(child_id)
        frontier = next_frontier
    return order
