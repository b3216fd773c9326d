from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.core.db import get_session
from app.models.user import User
from app.schemas.family import (
    AddFamilyMemberRequest,
    FamilyCreateRequest,
    FamilyDetailsResponse,
    FamilyResponse,
    FamilyUpdateRequest,
    MessageResponse,
    UpdateMembershipRequest,
)
from app.services import family_service

router = APIRouter(prefix="/families", tags=["families"])


@router.post("", response_model=FamilyResponse, status_code=status.HTTP_201_CREATED)
async def create_family(
    payload: FamilyCreateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FamilyResponse:
    return await family_service.create_family(session, user=current_user, payload=payload)


@router.get("", response_model=list[FamilyResponse])
async def list_families(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[FamilyResponse]:
    return await family_service.list_families(session, user=current_user)


@router.get("/{family_id}", response_model=FamilyDetailsResponse)
async def get_family(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FamilyDetailsResponse:
    return await family_service.get_family_details(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )


@router.put("/{family_id}", response_model=FamilyResponse)
async def update_family(
    family_id: str,
    payload: FamilyUpdateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FamilyResponse:
    return await family_service.update_family(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
        payload=payload,
    )


@router.post("/{family_id}/members", response_model=MessageResponse)
async def add_member(
    family_id: str,
    payload: AddFamilyMemberRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await family_service.add_member_to_family(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
        payload=payload,
    )
    return MessageResponse(message="Member added to family successfully")


@router.patch("/{family_id}/members/{member_id}", response_model=MessageResponse)
async def update_membership(
    family_id: str,
    member_id: str,
    payload: UpdateMembershipRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await family_service.update_family_membership(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
        member_id=parse_uuid(member_id, "member_id"),
        payload=payload,
    )
    return MessageResponse(message="Membership updated successfully")


@router.delete("/{family_id}/members/{member_id}", response_model=MessageResponse)
async def remove_member(
    family_id: str,
    member_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await family_service.remove_member_from_family(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
        member_id=parse_uuid(member_id, "member_id"),
    )
    return MessageResponse(message="Member removed from family successfully")


@router.post("/{family_id}/subfamily/recalculate", response_model=MessageResponse)
async def recalculate_sub_family(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    count = await family_service.recalculate_sub_family_memberships(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )
    return MessageResponse(message=f"Sub-family memberships recalculated successfully ({count} members)")


@router.delete("/{family_id}", response_model=MessageResponse)
async def delete_family(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await family_service.soft_delete_family(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )
    return MessageResponse(message="Family deleted successfully")


@router.post("/{family_id}/restore", response_model=MessageResponse)
async def restore_family(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await family_service.restore_family(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )
    return MessageResponse(message="Family restored successfully")


@router.delete("/{family_id}/hard", response_model=MessageResponse)
async def hard_delete_family(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await family_service.hard_delete_family(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )
    return MessageResponse(message="Family permanently deleted successfully")
