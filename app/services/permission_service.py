from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.family import FamilyMemberPermission, FamilyMembership, FamilyRole
from app.models.member import Member


class FamilyPermission(str, Enum):
    VIEW_TREE = "view_tree"
    VIEW_MEMBERS = "view_members"
    VIEW_FAMILY_INFO = "view_family_info"
    ADD_MEMBERS = "add_members"
    EDIT_MEMBERS = "edit_members"
    EDIT_OWN_PROFILE = "edit_own_profile"
    REMOVE_MEMBERS = "remove_members"
    MANAGE_INVITATIONS = "manage_invitations"
    SEND_INVITATIONS = "send_invitations"
    CANCEL_INVITATIONS = "cancel_invitations"
    MANAGE_PERMISSIONS = "manage_permissions"
    MANAGE_FAMILY_SETTINGS = "manage_family_settings"
    DELETE_FAMILY = "delete_family"
    UPLOAD_PHOTOS = "upload_photos"
    MANAGE_DOCUMENTS = "manage_documents"
    EXPORT_DATA = "export_data"
    SEND_MESSAGES = "send_messages"
    CREATE_POSTS = "create_posts"
    MODERATE_CONTENT = "moderate_content"


_VIEWER_PERMISSIONS = [
    FamilyPermission.VIEW_TREE,
    FamilyPermission.VIEW_MEMBERS,
    FamilyPermission.VIEW_FAMILY_INFO,
]
_MEMBER_PERMISSIONS = _VIEWER_PERMISSIONS + [
    FamilyPermission.EDIT_OWN_PROFILE,
    FamilyPermission.SEND_MESSAGES,
    FamilyPermission.CREATE_POSTS,
]
_CONTRIBUTOR_PERMISSIONS = _MEMBER_PERMISSIONS + [
    FamilyPermission.ADD_MEMBERS,
    FamilyPermission.EDIT_MEMBERS,
    FamilyPermission.SEND_INVITATIONS,
    FamilyPermission.UPLOAD_PHOTOS,
]
_MODERATOR_PERMISSIONS = _CONTRIBUTOR_PERMISSIONS + [
    FamilyPermission.REMOVE_MEMBERS,
    FamilyPermission.MANAGE_INVITATIONS,
    FamilyPermission.CANCEL_INVITATIONS,
    FamilyPermission.MODERATE_CONTENT,
    FamilyPermission.MANAGE_DOCUMENTS,
    FamilyPermission.EXPORT_DATA,
]

DEFAULT_ROLE_PERMISSIONS: dict[FamilyRole, list[FamilyPermission]] = {
    FamilyRole.VIEWER: _VIEWER_PERMISSIONS,
    FamilyRole.MEMBER: _MEMBER_PERMISSIONS,
    FamilyRole.CONTRIBUTOR: _CONTRIBUTOR_PERMISSIONS,
    FamilyRole.MODERATOR: _MODERATOR_PERMISSIONS,
    FamilyRole.HEAD: list(FamilyPermission),
    FamilyRole.ADMIN: list(FamilyPermission),
}

BYPASS_ROLES = frozenset({FamilyRole.ADMIN, FamilyRole.HEAD})

PERMISSION_CATEGORIES: dict[str, list[FamilyPermission]] = {
    "VIEWING": _VIEWER_PERMISSIONS,
    "MEMBER_MANAGEMENT": [
        FamilyPermission.ADD_MEMBERS,
        FamilyPermission.EDIT_MEMBERS,
        FamilyPermission.EDIT_OWN_PROFILE,
        FamilyPermission.REMOVE_MEMBERS,
    ],
    "INVITATIONS": [
        FamilyPermission.MANAGE_INVITATIONS,
        FamilyPermission.SEND_INVITATIONS,
        FamilyPermission.CANCEL_INVITATIONS,
    ],
    "ADMINISTRATION": [
        FamilyPermission.MANAGE_PERMISSIONS,
        FamilyPermission.MANAGE_FAMILY_SETTINGS,
        FamilyPermission.DELETE_FAMILY,
    ],
    "CONTENT": [
        FamilyPermission.UPLOAD_PHOTOS,
        FamilyPermission.MANAGE_DOCUMENTS,
        FamilyPermission.EXPORT_DATA,
    ],
    "COMMUNICATION": [
        FamilyPermission.SEND_MESSAGES,
        FamilyPermission.CREATE_POSTS,
        FamilyPermission.MODERATE_CONTENT,
    ],
}

PERMISSION_DISPLAY_NAMES: dict[FamilyPermission, str] = {
    FamilyPermission.VIEW_TREE: "View Family Tree",
    FamilyPermission.VIEW_MEMBERS: "View Family Members",
    FamilyPermission.VIEW_FAMILY_INFO: "View Family Information",
    FamilyPermission.ADD_MEMBERS: "Add Family Members",
    FamilyPermission.EDIT_MEMBERS: "Edit Family Members",
    FamilyPermission.EDIT_OWN_PROFILE: "Edit Own Profile",
    FamilyPermission.REMOVE_MEMBERS: "Remove Family Members",
    FamilyPermission.MANAGE_INVITATIONS: "Manage Invitations",
    FamilyPermission.SEND_INVITATIONS: "Send Invitations",
    FamilyPermission.CANCEL_INVITATIONS: "Cancel Invitations",
    FamilyPermission.MANAGE_PERMISSIONS: "Manage Permissions",
    FamilyPermission.MANAGE_FAMILY_SETTINGS: "Manage Family Settings",
    FamilyPermission.DELETE_FAMILY: "Delete Family",
    FamilyPermission.UPLOAD_PHOTOS: "Upload Photos",
    FamilyPermission.MANAGE_DOCUMENTS: "Manage Documents",
    FamilyPermission.EXPORT_DATA: "Export Family Data",
    FamilyPermission.SEND_MESSAGES: "Send Messages",
    FamilyPermission.CREATE_POSTS: "Create Posts",
    FamilyPermission.MODERATE_CONTENT: "Moderate Content",
}

PERMISSION_DESCRIPTIONS: dict[FamilyPermission, str] = {
    FamilyPermission.VIEW_TREE: "Can view the family tree structure and relationships",
    FamilyPermission.VIEW_MEMBERS: "Can view detailed information about family members",
    FamilyPermission.VIEW_FAMILY_INFO: "Can view general family information and settings",
    FamilyPermission.ADD_MEMBERS: "Can add new members to the family",
    FamilyPermission.EDIT_MEMBERS: "Can edit information of existing family members",
    FamilyPermission.EDIT_OWN_PROFILE: "Can edit their own profile information",
    FamilyPermission.REMOVE_MEMBERS: "Can remove members from the family",
    FamilyPermission.MANAGE_INVITATIONS: "Can manage all family invitations",
    FamilyPermission.SEND_INVITATIONS: "Can send invitations to join the family",
    FamilyPermission.CANCEL_INVITATIONS: "Can cancel pending invitations",
    FamilyPermission.MANAGE_PERMISSIONS: "Can manage member permissions and roles",
    FamilyPermission.MANAGE_FAMILY_SETTINGS: "Can modify family settings and configuration",
    FamilyPermission.DELETE_FAMILY: "Can delete the entire family (dangerous)",
    FamilyPermission.UPLOAD_PHOTOS: "Can upload and manage family photos",
    FamilyPermission.MANAGE_DOCUMENTS: "Can upload and manage family documents",
    FamilyPermission.EXPORT_DATA: "Can export family data and reports",
    FamilyPermission.SEND_MESSAGES: "Can send messages to family members",
    FamilyPermission.CREATE_POSTS: "Can create posts on the family feed",
    FamilyPermission.MODERATE_CONTENT: "Can moderate posts and content",
}


def _role_of(membership: FamilyMembership) -> FamilyRole:
    return FamilyRole(membership.role)


def category_of(permission: FamilyPermission) -> str:
    for category, members in PERMISSION_CATEGORIES.items():
        if permission in members:
            return category
    return "OTHER"


def describe_permission(permission: str) -> dict[str, str]:
    try:
        known = FamilyPermission(permission)
    except ValueError:
        return {"permission": permission, "display_name": permission, "description": "", "category": "OTHER"}
    return {
        "permission": known.value,
        "display_name": PERMISSION_DISPLAY_NAMES[known],
        "description": PERMISSION_DESCRIPTIONS[known],
        "category": category_of(known),
    }


def available_permissions() -> list[dict[str, str]]:
    return [describe_permission(permission.value) for permission in FamilyPermission]


async def get_membership(
    session: AsyncSession,
    *,
    member_id: UUID,
    family_id: UUID,
    active_only: bool = True,
) -> FamilyMembership | None:
    stmt = select(FamilyMembership).where(
        FamilyMembership.member_id == member_id,
        FamilyMembership.family_id == family_id,
    )
    if active_only:
        stmt = stmt.where(FamilyMembership.is_active.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def require_membership(
    session: AsyncSession,
    *,
    member_id: UUID,
    family_id: UUID,
) -> FamilyMembership:
    membership = await get_membership(session, member_id=member_id, family_id=family_id, active_only=False)
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found in this family",
        )
    return membership


async def list_granted_permissions(
    session: AsyncSession,
    *,
    membership_id: UUID,
) -> list[FamilyMemberPermission]:
    result = await session.execute(
        select(FamilyMemberPermission)
        .where(FamilyMemberPermission.membership_id == membership_id)
        .order_by(FamilyMemberPermission.granted_at.asc())
    )
    return list(result.scalars().all())


async def has_permissions(
    session: AsyncSession,
    *,
    membership: FamilyMembership,
    required: Iterable[FamilyPermission | str],
) -> bool:
    if _role_of(membership) in BYPASS_ROLES:
        return True
    required_values = {FamilyPermission(item).value for item in required}
    if not required_values:
        return True
    granted = await list_granted_permissions(session, membership_id=membership.id)
    return required_values.issubset({row.permission for row in granted})


async def seed_default_permissions(
    session: AsyncSession,
    *,
    membership: FamilyMembership,
    granted_by: UUID | None = None,
) -> int:
    defaults = DEFAULT_ROLE_PERMISSIONS.get(_role_of(membership), [])
    for permission in defaults:
        session.add(
            FamilyMemberPermission(
                membership_id=membership.id,
                permission=permission.value,
                granted_by=granted_by,
            )
        )
    return len(defaults)


async def grant_permission(
    session: AsyncSession,
    *,
    family_id: UUID,
    member_id: UUID,
    permission: FamilyPermission,
    granted_by: UUID | None,
) -> FamilyMemberPermission:
    membership = await require_membership(session, member_id=member_id, family_id=family_id)
    existing = await session.execute(
        select(FamilyMemberPermission).where(
            FamilyMemberPermission.membership_id == membership.id,
            FamilyMemberPermission.permission == permission.value,
        )
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Member already has this permission",
        )
    row = FamilyMemberPermission(
        membership_id=membership.id,
        permission=permission.value,
        granted_by=granted_by,
    )
    session.add(row)
    await session.commit()
    await session.refresh(row)
    return row


async def revoke_permission(
    session: AsyncSession,
    *,
    family_id: UUID,
    member_id: UUID,
    permission: FamilyPermission,
) -> None:
    membership = await require_membership(session, member_id=member_id, family_id=family_id)
    result = await session.execute(
        select(FamilyMemberPermission).where(
            FamilyMemberPermission.membership_id == membership.id,
            FamilyMemberPermission.permission == permission.value,
        )
    )
    row = result.scalar_one_or_none()
    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Permission not found",
        )
    await session.delete(row)
    await session.commit()


async def replace_permissions(
    session: AsyncSession,
    *,
    family_id: UUID,
    member_id: UUID,
    permissions: list[FamilyPermission],
    granted_by: UUID | None,
) -> int:
    membership = await require_membership(session, member_id=member_id, family_id=family_id)
    await session.execute(
        delete(FamilyMemberPermission).where(FamilyMemberPermission.membership_id == membership.id)
    )
    unique_permissions = list(dict.fromkeys(permissions))
    for permission in unique_permissions:
        session.add(
            FamilyMemberPermission(
                membership_id=membership.id,
                permission=permission.value,
                granted_by=granted_by,
            )
        )
    await session.commit()
    return len(unique_permissions)


async def reset_permissions(
    session: AsyncSession,
    *,
    family_id: UUID,
    member_id: UUID,
    granted_by: UUID | None,
) -> tuple[FamilyRole, int]:
    membership = await require_membership(session, member_id=member_id, family_id=family_id)
    await session.execute(
        delete(FamilyMemberPermission).where(FamilyMemberPermission.membership_id == membership.id)
    )
    count = await seed_default_permissions(session, membership=membership, granted_by=granted_by)
    await session.commit()
    return _role_of(membership), count


async def list_family_permissions(
    session: AsyncSession,
    *,
    family_id: UUID,
) -> list[tuple[FamilyMembership, Member, list[FamilyMemberPermission]]]:
    result = await session.execute(
        select(FamilyMembership, Member)
        .join(Member, Member.id == FamilyMembership.member_id)
        .where(FamilyMembership.family_id == family_id)
        .order_by(Member.name.asc())
    )
    rows = result.all()
    membership_ids = [membership.id for membership, _ in rows]
    grants: dict[UUID, list[FamilyMemberPermission]] = {mid: [] for mid in membership_ids}
    if membership_ids:
        grant_result = await session.execute(
            select(FamilyMemberPermission).where(
                FamilyMemberPermission.membership_id.in_(membership_ids)
            )
        )
        for grant in grant_result.scalars().all():
            grants[grant.membership_id].append(grant)
    return [(membership, member, grants[membership.id]) for membership, member in rows]
