from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.core.db import get_session
from app.models.user import User
from app.schemas.invitation import (
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationCreateRequest,
    InvitationResponse,
    InvitationValidationResponse,
)
from app.services import invitation_service
from app.services.auth import issue_tokens

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post("", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    payload: InvitationCreateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> InvitationResponse:
    return await invitation_service.create_invitation(
        session,
        user=current_user,
        family_id=parse_uuid(payload.family_id, "family_id"),
        member_stub=payload.member_stub,
    )


@router.get("/validate", response_model=InvitationValidationResponse)
async def validate_invitation(
    code: str = Query(min_length=1),
    session: AsyncSession = Depends(get_session),
) -> InvitationValidationResponse:
    return await invitation_service.validate_invitation_code(session, code)


@router.post("/accept", response_model=InvitationAcceptResponse, status_code=status.HTTP_201_CREATED)
async def accept_invitation(
    payload: InvitationAcceptRequest,
    session: AsyncSession = Depends(get_session),
) -> InvitationAcceptResponse:
    user, invitation = await invitation_service.accept_invitation(session, payload=payload)
    tokens = issue_tokens(user)
    return InvitationAcceptResponse(
        message="Invitation accepted successfully",
        access_token=tokens["access_token"],
        refresh_token=tokens["refresh_token"],
        token_type=tokens["token_type"],
        user_id=str(user.id),
        member_id=str(user.member_id),
        family_id=str(invitation.family_id),
    )


@router.get("/family/{family_id}", response_model=list[InvitationResponse])
async def list_family_invitations(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[InvitationResponse]:
    return await invitation_service.list_family_invitations(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )


@router.get("/my-invitations", response_model=list[InvitationResponse])
async def list_my_invitations(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[InvitationResponse]:
    return await invitation_service.list_user_invitations(session, user=current_user)
