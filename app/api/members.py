from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.api.permissions import require_permissions
from app.core.db import get_session
from app.models.user import User
from app.schemas.family import MessageResponse
from app.schemas.member import (
    BulkRelationshipRequest,
    BulkRelationshipResponse,
    MemberCreateRequest,
    MemberDetailsResponse,
    MemberProfileUpdateRequest,
    MemberResponse,
    RelationshipRequest,
)
from app.services import member_service
from app.services.permission_service import FamilyPermission

router = APIRouter(prefix="/members", tags=["members"])


@router.get("/profile", response_model=MemberDetailsResponse)
async def get_profile(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MemberDetailsResponse:
    return await member_service.get_profile(session, user=current_user)


@router.put("/profile", response_model=MemberResponse)
async def update_profile(
    payload: MemberProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MemberResponse:
    return await member_service.update_profile(session, user=current_user, payload=payload)


@router.get("/family/{family_id}", response_model=list[MemberResponse])
async def list_family_members(
    family_id: str,
    current_user: User = Depends(require_permissions(FamilyPermission.VIEW_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> list[MemberResponse]:
    return await member_service.list_family_members(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def create_member(
    payload: MemberCreateRequest,
    current_user: User = Depends(require_permissions(FamilyPermission.ADD_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> MemberResponse:
    return await member_service.create_member(session, user=current_user, payload=payload)


@router.post("/relationships", response_model=MessageResponse)
async def add_relationship(
    payload: RelationshipRequest,
    current_user: User = Depends(require_permissions(FamilyPermission.EDIT_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    message = await member_service.change_relationship(session, user=current_user, payload=payload)
    return MessageResponse(message=message)


@router.delete("/relationships", response_model=MessageResponse)
async def remove_relationship(
    payload: RelationshipRequest,
    current_user: User = Depends(require_permissions(FamilyPermission.EDIT_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    message = await member_service.change_relationship(
        session,
        user=current_user,
        payload=payload,
        remove=True,
    )
    return MessageResponse(message=message)


@router.post("/relationships/bulk", response_model=BulkRelationshipResponse)
async def add_bulk_relationships(
    payload: BulkRelationshipRequest,
    current_user: User = Depends(require_permissions(FamilyPermission.EDIT_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> BulkRelationshipResponse:
    return await member_service.add_bulk_relationships(session, user=current_user, payload=payload)


@router.get("/{member_id}", response_model=MemberDetailsResponse)
async def get_member(
    member_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MemberDetailsResponse:
    return await member_service.get_member_details(
        session,
        user=current_user,
        member_id=parse_uuid(member_id, "member_id"),
    )


@router.put("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: str,
    payload: MemberProfileUpdateRequest,
    current_user: User = Depends(require_permissions(FamilyPermission.EDIT_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> MemberResponse:
    return await member_service.update_member(
        session,
        user=current_user,
        member_id=parse_uuid(member_id, "member_id"),
        payload=payload,
    )


@router.post("/{member_id}/relationships", response_model=MessageResponse)
async def add_member_relationship(
    member_id: str,
    payload: RelationshipRequest,
    current_user: User = Depends(require_permissions(FamilyPermission.EDIT_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    message = await member_service.change_relationship(
        session,
        user=current_user,
        payload=payload,
        member_id=parse_uuid(member_id, "member_id"),
    )
    return MessageResponse(message=message)


@router.delete("/{member_id}/relationships", response_model=MessageResponse)
async def remove_member_relationship(
    member_id: str,
    payload: RelationshipRequest,
    current_user: User = Depends(require_permissions(FamilyPermission.EDIT_MEMBERS)),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    message = await member_service.change_relationship(
        session,
        user=current_user,
        payload=payload,
        member_id=parse_uuid(member_id, "member_id"),
        remove=True,
    )
    return MessageResponse(message=message)
