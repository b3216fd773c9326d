from __future__ import annotations

import io
from collections import deque
from datetime import date
from uuid import UUID

from fastapi import HTTPException, status
from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.family import Family, FamilyMembership, FamilyRole
from app.models.member import Member, MemberStatus, utc_now
from app.models.user import User
from app.schemas.export import (
    FamilyDataExportRequest,
    FolderFamily,
    FolderMember,
    FolderRelative,
    FolderTreeDataResponse,
)
from app.services.membership_service import parse_id, require_member_id
from app.services.relationship_service import RelationSet, load_relation_maps

EXPORT_FORMATS = {
    "pdf": ("application/pdf", "pdf"),
    "excel": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
}
MEMBER_SHEET_HEADERS = ["Family", "Name", "Gender", "Role", "Generation", "Parents", "Children", "Spouses"]


def generation_levels(member_ids: set[UUID], relations: dict[UUID, RelationSet]) -> dict[UUID, int]:
    """Depth of each member below its oldest ancestor inside the same family.

    Parents are settled before their children (Kahn's order), so every member
    is visited once. Members caught in a parent cycle take one more than their
    deepest settled parent.
    """
    parents = {
        member_id: [p for p in relations[member_id].parent_ids if p in member_ids and p != member_id]
        for member_id in member_ids
    }
    pending = {member_id: len(parent_ids) for member_id, parent_ids in parents.items()}
    children: dict[UUID, list[UUID]] = {member_id: [] for member_id in member_ids}
    for member_id, parent_ids in parents.items():
        for parent_id in parent_ids:
            children[parent_id].append(member_id)

    levels = dict.fromkeys(member_ids, 0)
    queue = deque(member_id for member_id, count in pending.items() if count == 0)
    while queue:
        member_id = queue.popleft()
        for child_id in children[member_id]:
            levels[child_id] = max(levels[child_id], levels[member_id] + 1)
            pending[child_id] -= 1
            if pending[child_id] == 0:
                queue.append(child_id)
    return levels


def _relative(member: Member) -> FolderRelative:
    return FolderRelative(
        id=str(member.id),
        name=member.name,
        gender=member.gender.value if member.gender else None,
        status=MemberStatus(member.status).value,
    )


async def _viewer_memberships(session: AsyncSession, member_id: UUID) -> list[tuple[FamilyMembership, Family]]:
    result = await session.execute(
        select(FamilyMembership, Family)
        .join(Family, Family.id == FamilyMembership.family_id)
        .where(
            FamilyMembership.member_id == member_id,
            FamilyMembership.is_active.is_(True),
            Family.is_deleted.is_(False),
        )
        .order_by(FamilyMembership.join_date.asc())
    )
    return list(result.all())


async def _folder_family(session: AsyncSession, family: Family, *, include_personal_info: bool) -> FolderFamily:
    result = await session.execute(
        select(FamilyMembership, Member)
        .join(Member, Member.id == FamilyMembership.member_id)
        .where(FamilyMembership.family_id == family.id, FamilyMembership.is_active.is_(True))
    )
    rows = result.all()
    roles = {member.id: FamilyRole(membership.role).value for membership, member in rows}
    direct = {member.id: member for _, member in rows}
    relations = await load_relation_maps(session, direct.keys())

    # spouses from outside the family are listed as indirect members
    indirect_ids = {
        spouse_id
        for relation in relations.values()
        for spouse_id in relation.spouse_ids
        if spouse_id not in direct
    }
    related_ids = {
        related_id
        for relation in relations.values()
        for related_id in (*relation.parent_ids, *relation.children_ids, *relation.spouse_ids)
    }
    lookup = dict(direct)
    missing = (related_ids | indirect_ids) - direct.keys()
    if missing:
        extra = await session.execute(select(Member).where(Member.id.in_(missing)))
        lookup.update({member.id: member for member in extra.scalars().all()})
    if indirect_ids:
        relations.update(await load_relation_maps(session, indirect_ids))

    levels = generation_levels(set(direct), relations)
    members: list[FolderMember] = []
    for member_id in [*direct, *sorted(indirect_ids)]:
        member = lookup.get(member_id)
        if not member:
            continue
        relation = relations[member_id]
        spouse_levels = [levels[s] for s in relation.spouse_ids if s in levels]
        members.append(
            FolderMember(
                id=str(member.id),
                name=member.name,
                gender=member.gender.value if member.gender else None,
                role=roles.get(member_id),
                generation=levels.get(member_id, min(spouse_levels, default=0)),
                parents=[_relative(lookup[x]) for x in relation.parent_ids if x in lookup],
                children=[_relative(lookup[x]) for x in relation.children_ids if x in lookup],
                spouses=[_relative(lookup[x]) for x in relation.spouse_ids if x in lookup],
                personal_info=(member.personal_info or {}) if include_personal_info else None,
                is_direct_member=member_id in direct,
            )
        )
    members.sort(key=lambda item: (item.generation, item.name.lower()))
    return FolderFamily(id=str(family.id), name=family.name, members=members)


async def get_folder_tree_data(
    session: AsyncSession,
    *,
    user: User,
    family_ids: list[UUID] | None = None,
    include_personal_info: bool = True,
) -> FolderTreeDataResponse:
    member_id = require_member_id(user)
    memberships = await _viewer_memberships(session, member_id)
    families = [family for _, family in memberships]
    if family_ids is not None:
        families = [family for family in families if family.id in family_ids]

    folders = [
        await _folder_family(session, family, include_personal_info=include_personal_info)
        for family in sorted(families, key=lambda item: item.name.lower())
    ]
    seen: set[str] = set()
    members_list: list[FolderMember] = []
    for folder in folders:
        for member in folder.members:
            if member.id not in seen:
                seen.add(member.id)
                members_list.append(member)
    return FolderTreeDataResponse(families=folders, members_list=members_list, generated_at=utc_now())


def render_text_report(data: FolderTreeDataResponse) -> str:
    lines = ["Family Tree Export", f"Generated: {data.generated_at.isoformat(timespec='seconds')}", ""]
    for folder in data.families:
        lines.append(f"Family: {folder.name} ({len(folder.members)} members)")
        generation = None
        for member in folder.members:
            if member.generation != generation:
                generation = member.generation
                lines.append(f"  Generation {generation}:")
            marker = "" if member.is_direct_member else " [related]"
            lines.append(f"    - {member.name} ({member.gender or 'Unknown'}){marker}")
        lines.append("")
    lines.append(f"Total unique members: {len(data.members_list)}")
    return "\n".join(lines)


def _names(relatives: list[FolderRelative]) -> str:
    return ", ".join(relative.name for relative in relatives)


def render_workbook(data: FolderTreeDataResponse) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Members"
    sheet.append(MEMBER_SHEET_HEADERS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for folder in data.families:
        for member in folder.members:
            sheet.append(
                [
                    folder.name,
                    member.name,
                    member.gender or "",
                    member.role or "",
                    member.generation,
                    _names(member.parents),
                    _names(member.children),
                    _names(member.spouses),
                ]
            )
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


async def export_family_data(
    session: AsyncSession,
    *,
    user: User,
    request: FamilyDataExportRequest,
    today: date | None = None,
) -> tuple[bytes, str, str]:
    """Returns (content, media type, filename)."""
    member_id = require_member_id(user)
    family_ids: list[UUID] | None = None
    if request.scope == "current-family":
        memberships = await _viewer_memberships(session, member_id)
        family_ids = [memberships[0][1].id] if memberships else []
    elif request.scope == "selected-families":
        if not request.family_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="family_ids are required for selected-families scope",
            )
        family_ids = [parse_id(value, "family_id") for value in request.family_ids]

    data = await get_folder_tree_data(
        session,
        user=user,
        family_ids=family_ids,
        include_personal_info=request.include_personal_info,
    )
    media_type, extension = EXPORT_FORMATS[request.format]
    if request.format == "excel":
        content = render_workbook(data)
    else:
        content = render_text_report(data).encode("utf-8")
    stamp = (today or date.today()).isoformat()
    return content, media_type, f"family-tree-{request.format}-{stamp}.{extension}"
