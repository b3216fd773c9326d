from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.api.permissions import require_permissions
from app.core.db import get_session
from app.models.family import FamilyMemberPermission, FamilyRole
from app.models.member import Member
from app.models.user import User
from app.schemas.family import MessageResponse
from app.schemas.permission import (
    AvailablePermissionsResponse,
    FamilyPermissionEntry,
    GrantedPermission,
    GrantPermissionRequest,
    GrantPermissionResponse,
    MemberPermissionsResponse,
    PermissionInfo,
    PermissionMember,
    PermissionUpdateResponse,
    ReplacePermissionsRequest,
)
from app.services import permission_service
from app.services.permission_service import FamilyPermission
from app.services.relationship_service import get_member_or_404

router = APIRouter(prefix="/families", tags=["family-permissions"])

manage_permissions = require_permissions(FamilyPermission.MANAGE_PERMISSIONS)


def _to_granted(row: FamilyMemberPermission) -> GrantedPermission:
    info = permission_service.describe_permission(row.permission)
    return GrantedPermission(
        permission=row.permission,
        display_name=info["display_name"],
        description=info["description"],
        granted_by=str(row.granted_by) if row.granted_by else None,
        granted_at=row.granted_at,
    )


def _ids(family_id: str, member_id: str) -> tuple[UUID, UUID]:
    return parse_uuid(family_id, "family_id"), parse_uuid(member_id, "member_id")


@router.get("/permissions/available", response_model=AvailablePermissionsResponse)
async def list_available_permissions(
    current_user: User = Depends(get_current_user),
) -> AvailablePermissionsResponse:
    permissions = [PermissionInfo(**item) for item in permission_service.available_permissions()]
    return AvailablePermissionsResponse(permissions=permissions, total=len(permissions))


@router.get("/{family_id}/permissions", response_model=list[FamilyPermissionEntry])
async def list_family_permissions(
    family_id: str,
    current_user: User = Depends(manage_permissions),
    session: AsyncSession = Depends(get_session),
) -> list[FamilyPermissionEntry]:
    rows = await permission_service.list_family_permissions(
        session,
        family_id=parse_uuid(family_id, "family_id"),
    )
    return [
        FamilyPermissionEntry(
            member=PermissionMember(
                id=str(member.id),
                name=member.name,
                gender=member.gender.value if member.gender else None,
                role=FamilyRole(membership.role).value,
            ),
            permissions=[_to_granted(grant) for grant in grants],
            permission_count=len(grants),
        )
        for membership, member, grants in rows
    ]


@router.get("/{family_id}/members/{member_id}/permissions", response_model=MemberPermissionsResponse)
async def get_member_permissions(
    family_id: str,
    member_id: str,
    current_user: User = Depends(manage_permissions),
    session: AsyncSession = Depends(get_session),
) -> MemberPermissionsResponse:
    family_uuid, member_uuid = _ids(family_id, member_id)
    membership = await permission_service.require_membership(
        session,
        member_id=member_uuid,
        family_id=family_uuid,
    )
    member: Member = await get_member_or_404(session, member_uuid)
    grants = await permission_service.list_granted_permissions(session, membership_id=membership.id)
    return MemberPermissionsResponse(
        member=PermissionMember(
            id=str(member.id),
            name=member.name,
            gender=member.gender.value if member.gender else None,
            role=FamilyRole(membership.role).value,
        ),
        permissions=[_to_granted(grant) for grant in grants],
    )


@router.post("/{family_id}/members/{member_id}/permissions", response_model=GrantPermissionResponse)
async def grant_permission(
    family_id: str,
    member_id: str,
    payload: GrantPermissionRequest,
    current_user: User = Depends(manage_permissions),
    session: AsyncSession = Depends(get_session),
) -> GrantPermissionResponse:
    family_uuid, member_uuid = _ids(family_id, member_id)
    row = await permission_service.grant_permission(
        session,
        family_id=family_uuid,
        member_id=member_uuid,
        permission=payload.permission,
        granted_by=current_user.member_id,
    )
    return GrantPermissionResponse(message="Permission granted successfully", permission=_to_granted(row))


@router.put("/{family_id}/members/{member_id}/permissions", response_model=PermissionUpdateResponse)
async def replace_permissions(
    family_id: str,
    member_id: str,
    payload: ReplacePermissionsRequest,
    current_user: User = Depends(manage_permissions),
    session: AsyncSession = Depends(get_session),
) -> PermissionUpdateResponse:
    family_uuid, member_uuid = _ids(family_id, member_id)
    count = await permission_service.replace_permissions(
        session,
        family_id=family_uuid,
        member_id=member_uuid,
        permissions=payload.permissions,
        granted_by=current_user.member_id,
    )
    return PermissionUpdateResponse(message="Permissions updated successfully", granted_permissions=count)


@router.post("/{family_id}/members/{member_id}/permissions/reset", response_model=PermissionUpdateResponse)
async def reset_permissions(
    family_id: str,
    member_id: str,
    current_user: User = Depends(manage_permissions),
    session: AsyncSession = Depends(get_session),
) -> PermissionUpdateResponse:
    family_uuid, member_uuid = _ids(family_id, member_id)
    role, count = await permission_service.reset_permissions(
        session,
        family_id=family_uuid,
        member_id=member_uuid,
        granted_by=current_user.member_id,
    )
    return PermissionUpdateResponse(
        message="Permissions reset to role defaults",
        granted_permissions=count,
        role=role.value,
    )


@router.delete(
    "/{family_id}/members/{member_id}/permissions/{permission}",
    response_model=MessageResponse,
)
async def revoke_permission(
    family_id: str,
    member_id: str,
    permission: FamilyPermission,
    current_user: User = Depends(manage_permissions),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    family_uuid, member_uuid = _ids(family_id, member_id)
    await permission_service.revoke_permission(
        session,
        family_id=family_uuid,
        member_id=member_uuid,
        permission=permission,
    )
    return MessageResponse(message="Permission revoked successfully")
