from __future__ import annotations

import csv
import io
import json
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.family import Family, FamilyMembership
from app.models.member import Gender, Member, MemberStatus
from app.models.user import User
from app.schemas.tree import (
    FamilyTreeResponse,
    GenderDistribution,
    GenerationMember,
    MemberBirthSummary,
    MemberRelationshipsResponse,
    RelationshipEntry,
    StatusDistribution,
    TreeConnectionResponse,
    TreeExportRequest,
    TreeNodeResponse,
    TreeStatisticsResponse,
)
from app.services.membership_service import (
    get_family_or_404,
    list_active_family_ids,
    require_member_id,
    verify_family_access,
)
from app.services.relationship_service import RelationSet, load_relation_maps
from app.services.tree.layout import LayoutMember, compute_layout

CSV_HEADERS = [
    "ID",
    "Name",
    "Gender",
    "Status",
    "Level",
    "Parents",
    "Children",
    "Spouses",
    "Created",
    "Updated",
]


def _enum_value(value) -> str | None:
    if value is None:
        return None
    return value.value if hasattr(value, "value") else str(value)


async def load_visible_members(
    session: AsyncSession,
    *,
    family_id: UUID,
    viewer_member_id: UUID,
) -> tuple[list[Member], dict[UUID, RelationSet]]:
    """Active members of the family plus relation lists trimmed to what the viewer may see.

    A relative outside the family stays in a member's id lists only when the
    viewer independently belongs to one of that relative's families.
    """
    result = await session.execute(
        select(Member)
        .join(FamilyMembership, FamilyMembership.member_id == Member.id)
        .where(
            FamilyMembership.family_id == family_id,
            FamilyMembership.is_active.is_(True),
        )
        .order_by(FamilyMembership.join_date.asc(), Member.name.asc())
    )
    members = list(result.scalars().unique().all())
    member_ids = {member.id for member in members}
    relations = await load_relation_maps(session, member_ids)

    outside_ids = {
        related_id
        for relation in relations.values()
        for related_id in (*relation.parent_ids, *relation.children_ids, *relation.spouse_ids)
        if related_id not in member_ids
    }
    visible_ids = set(member_ids)
    if outside_ids:
        viewer_families = await list_active_family_ids(session, viewer_member_id)
        if viewer_families:
            allowed = await session.execute(
                select(FamilyMembership.member_id).where(
                    FamilyMembership.member_id.in_(list(outside_ids)),
                    FamilyMembership.family_id.in_(viewer_families),
                    FamilyMembership.is_active.is_(True),
                )
            )
            visible_ids.update(allowed.scalars().all())

    for relation in relations.values():
        relation.parent_ids = [x for x in relation.parent_ids if x in visible_ids]
        relation.children_ids = [x for x in relation.children_ids if x in visible_ids]
        relation.spouse_ids = [x for x in relation.spouse_ids if x in visible_ids]
    return members, relations


def build_tree(
    family: Family,
    members: list[Member],
    relations: dict[UUID, RelationSet],
    center_member_id: UUID | None,
) -> FamilyTreeResponse:
    member_ids = {member.id for member in members}
    if center_member_id not in member_ids:
        center_member_id = members[0].id if members else None

    layout = compute_layout(
        [
            LayoutMember(
                id=member.id,
                parent_ids=relations[member.id].parent_ids,
                children_ids=relations[member.id].children_ids,
                spouse_ids=relations[member.id].spouse_ids,
            )
            for member in members
        ],
        center_member_id,
    )

    nodes = []
    for member in members:
        placement = layout.placements[member.id]
        relation = relations[member.id]
        nodes.append(
            TreeNodeResponse(
                id=str(member.id),
                name=member.name,
                gender=_enum_value(member.gender),
                status=_enum_value(member.status) or MemberStatus.ACTIVE.value,
                personal_info=member.personal_info or {},
                color=member.color,
                level=placement.level,
                x=placement.x,
                y=placement.y,
                parent_ids=[str(x) for x in relation.parent_ids],
                children_ids=[str(x) for x in relation.children_ids],
                spouse_ids=[str(x) for x in relation.spouse_ids],
                created_at=member.created_at.isoformat(),
                updated_at=member.updated_at.isoformat(),
            )
        )

    connections = [
        TreeConnectionResponse(
            from_=str(connection.from_id),
            to=str(connection.to_id),
            type=connection.type,
            strength=connection.strength,
        )
        for connection in layout.connections
    ]
    return FamilyTreeResponse(
        nodes=nodes,
        connections=connections,
        center_node_id=str(layout.center_id) if layout.center_id else None,
        family_id=str(family.id),
        family_name=family.name,
        total_members=len(nodes),
        generations=layout.generations,
    )


async def get_family_tree(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    center_member_id: UUID | None = None,
) -> FamilyTreeResponse:
    viewer_member_id = require_member_id(user)
    await verify_family_access(session, user=user, family_id=family_id)
    family = await get_family_or_404(session, family_id)
    members, relations = await load_visible_members(
        session,
        family_id=family_id,
        viewer_member_id=viewer_member_id,
    )
    return build_tree(family, members, relations, center_member_id or viewer_member_id)


def _birth_year(personal_info: dict | None) -> int | None:
    info = personal_info or {}
    for key in ("birth_year", "birthYear"):
        value = info.get(key)
        if isinstance(value, int):
            return value
    for key in ("birth_date", "birthDate"):
        value = str(info.get(key) or "").strip()
        if len(value) >= 4 and value[:4].isdigit():
            return int(value[:4])
    return None


async def get_tree_statistics(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
) -> TreeStatisticsResponse:
    tree = await get_family_tree(session, user=user, family_id=family_id)
    family_result = await session.execute(
        select(Family.id).where(
            or_(Family.id == family_id, Family.parent_family_id == family_id),
            Family.is_deleted.is_(False),
        )
    )
    total_families = len(family_result.scalars().all())

    genders = GenderDistribution()
    statuses = StatusDistribution()
    oldest: MemberBirthSummary | None = None
    youngest: MemberBirthSummary | None = None
    total_children = 0
    for node in tree.nodes:
        if node.gender == Gender.MALE.value:
            genders.male += 1
        elif node.gender == Gender.FEMALE.value:
            genders.female += 1
        elif node.gender == Gender.OTHER.value:
            genders.other += 1
        else:
            genders.unspecified += 1

        status_key = node.status.lower()
        if hasattr(statuses, status_key):
            setattr(statuses, status_key, getattr(statuses, status_key) + 1)

        total_children += len(node.children_ids)
        birth_year = _birth_year(node.personal_info)
        if birth_year is None:
            continue
        summary = MemberBirthSummary(id=node.id, name=node.name, birth_year=birth_year)
        if oldest is None or birth_year < (oldest.birth_year or 0):
            oldest = summary
        if youngest is None or birth_year > (youngest.birth_year or 0):
            youngest = summary

    total_members = len(tree.nodes)
    return TreeStatisticsResponse(
        total_members=total_members,
        total_families=total_families,
        total_generations=tree.generations,
        average_children_per_member=(total_children / total_members) if total_members else 0.0,
        oldest_member=oldest,
        youngest_member=youngest,
        gender_distribution=genders,
        status_distribution=statuses,
    )


async def get_generation_breakdown(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
) -> dict[int, list[GenerationMember]]:
    tree = await get_family_tree(session, user=user, family_id=family_id)
    generations: dict[int, list[GenerationMember]] = {}
    for node in tree.nodes:
        generations.setdefault(node.level, []).append(
            GenerationMember(id=node.id, name=node.name, gender=node.gender, status=node.status)
        )
    return dict(sorted(generations.items()))


async def get_member_relationships(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    member_id: UUID,
) -> MemberRelationshipsResponse:
    tree = await get_family_tree(session, user=user, family_id=family_id)
    nodes = {node.id: node for node in tree.nodes}
    target = nodes.get(str(member_id))
    if not target:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this member",
        )

    def entry(node_id: str, relationship: str) -> RelationshipEntry | None:
        node = nodes.get(node_id)
        if not node:
            return None
        return RelationshipEntry(member_id=node.id, name=node.name, relationship=relationship)

    direct = [
        item
        for item in (
            *(entry(x, "parent") for x in target.parent_ids),
            *(entry(x, "child") for x in target.children_ids),
            *(entry(x, "spouse") for x in target.spouse_ids),
        )
        if item
    ]
    sibling_ids: list[str] = []
    for parent_id in target.parent_ids:
        parent = nodes.get(parent_id)
        if not parent:
            continue
        for child_id in parent.children_ids:
            if child_id != target.id and child_id not in sibling_ids:
                sibling_ids.append(child_id)
    indirect = [item for item in (entry(x, "sibling") for x in sibling_ids) if item]

    return MemberRelationshipsResponse(
        member=GenerationMember(
            id=target.id,
            name=target.name,
            gender=target.gender,
            status=target.status,
        ),
        direct_relationships=direct,
        indirect_relationships=indirect,
    )


def _filter_inactive(tree: FamilyTreeResponse) -> FamilyTreeResponse:
    hidden = {MemberStatus.INACTIVE.value, MemberStatus.ARCHIVED.value}
    kept = [node for node in tree.nodes if node.status not in hidden]
    kept_ids = {node.id for node in kept}
    return tree.model_copy(
        update={
            "nodes": kept,
            "connections": [
                c for c in tree.connections if c.from_ in kept_ids and c.to in kept_ids
            ],
            "total_members": len(kept),
        }
    )


def export_as_json(tree: FamilyTreeResponse, *, include_personal_info: bool) -> str:
    data = tree.model_dump(by_alias=True)
    if not include_personal_info:
        for node in data["nodes"]:
            node.pop("personal_info", None)
    return json.dumps(data, indent=2)


def export_as_csv(tree: FamilyTreeResponse, *, include_personal_info: bool) -> str:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, lineterminator="\n")
    headers = list(CSV_HEADERS)
    if include_personal_info:
        headers.append("Personal Info")
    writer.writerow(headers)
    for node in tree.nodes:
        row = [
            node.id,
            node.name,
            node.gender or "",
            node.status,
            str(node.level),
            ";".join(node.parent_ids),
            ";".join(node.children_ids),
            ";".join(node.spouse_ids),
            node.created_at,
            node.updated_at,
        ]
        if include_personal_info:
            row.append(json.dumps(node.personal_info or {}))
        writer.writerow(row)
    return buffer.getvalue()


def export_as_text_pdf(tree: FamilyTreeResponse) -> str:
    lines = [
        f"Family Tree: {tree.family_name}",
        "",
        f"Total Members: {tree.total_members}",
        f"Generations: {tree.generations}",
        "",
    ]
    lines.extend(f"{node.name} ({node.gender or 'Unknown'}, {node.status})" for node in tree.nodes)
    return "\n".join(lines)


EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv; charset=utf-8",
    "pdf": "application/pdf",
}


async def export_family_tree(
    session: AsyncSession,
    *,
    user: User,
    request: TreeExportRequest,
    family_id: UUID,
) -> tuple[str, str, str]:
    """Returns (content, media type, filename)."""
    tree = await get_family_tree(session, user=user, family_id=family_id)
    if not request.include_inactive_members:
        tree = _filter_inactive(tree)

    if request.format == "json":
        content = export_as_json(tree, include_personal_info=request.include_personal_info)
    elif request.format == "csv":
        content = export_as_csv(tree, include_personal_info=request.include_personal_info)
    else:
        content = export_as_text_pdf(tree)
    filename = f"family-tree-{family_id}.{request.format}"
    return content, EXPORT_MEDIA_TYPES[request.format], filename
