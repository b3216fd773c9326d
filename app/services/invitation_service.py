from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.logging import get_logger
from app.core.security import create_invitation_code, decode_invitation_code
from app.models.family import Family, FamilyRole
from app.models.invitation import Invitation, InvitationStatus
from app.models.member import Member, as_utc, utc_now
from app.models.user import User
from app.schemas.invitation import (
    InvitationAcceptRequest,
    InvitationResponse,
    InvitationValidationResponse,
)
from app.services.auth.accounts import (
    create_user_with_member,
    ensure_identity_available,
    normalize_email,
    normalize_phone,
    require_identity,
)
from app.services.membership_service import (
    create_membership,
    get_family_or_404,
    require_member_id,
    verify_family_access,
    verify_family_admin,
)

logger = get_logger("invitations")


async def _inviter_name(session: AsyncSession, invitation: Invitation) -> str:
    result = await session.execute(
        select(User.email, Member.name)
        .join(Member, Member.id == User.member_id, isouter=True)
        .where(User.id == invitation.inviter_user_id)
    )
    row = result.first()
    if not row:
        return "Unknown"
    email, member_name = row
    return member_name or email or "Unknown"


async def to_invitation_response(
    session: AsyncSession,
    invitation: Invitation,
    *,
    family_name: str | None = None,
) -> InvitationResponse:
    if family_name is None:
        family = await session.get(Family, invitation.family_id)
        family_name = family.name if family else ""
    return InvitationResponse(
        id=str(invitation.id),
        code=invitation.code,
        family_id=str(invitation.family_id),
        family_name=family_name,
        inviter_name=await _inviter_name(session, invitation),
        member_stub=invitation.member_stub,
        status=invitation.status.value if hasattr(invitation.status, "value") else str(invitation.status),
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
    )


async def create_invitation(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
    member_stub: dict | None = None,
) -> InvitationResponse:
    await verify_family_admin(
        session,
        user=user,
        family_id=family_id,
        detail="Family not found or insufficient permissions",
    )
    family = await get_family_or_404(session, family_id)

    code, expires_at = create_invitation_code(
        {
            "family_id": str(family_id),
            "inviter_id": str(user.id),
            "inviter_type": "USER",
            "member_stub": member_stub,
        }
    )
    invitation = Invitation(
        code=code,
        family_id=family_id,
        inviter_user_id=user.id,
        member_stub=member_stub,
        expires_at=expires_at,
    )
    session.add(invitation)
    await session.commit()
    await session.refresh(invitation)
    logger.info("Invitation %s created for family %s", invitation.id, family_id)
    return await to_invitation_response(session, invitation, family_name=family.name)


async def load_valid_invitation(session: AsyncSession, code: str) -> Invitation:
    try:
        decode_invitation_code(code)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired invitation code",
        ) from exc

    result = await session.execute(select(Invitation).where(Invitation.code == code))
    invitation = result.scalar_one_or_none()
    if not invitation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitation not found",
        )
    if invitation.status != InvitationStatus.VALID:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation is no longer valid",
        )
    if as_utc(invitation.expires_at) < utc_now():
        invitation.status = InvitationStatus.EXPIRED
        session.add(invitation)
        await session.commit()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation has expired",
        )
    return invitation


def mark_invitation_used(invitation: Invitation, *, accepted_by: UUID) -> None:
    invitation.status = InvitationStatus.USED
    invitation.used_at = utc_now()
    invitation.accepted_by = accepted_by


async def validate_invitation_code(session: AsyncSession, code: str) -> InvitationValidationResponse:
    try:
        invitation = await load_valid_invitation(session, code)
    except HTTPException:
        return InvitationValidationResponse(is_valid=False)
    family = await session.get(Family, invitation.family_id)
    return InvitationValidationResponse(
        is_valid=True,
        family_name=family.name if family else "",
        inviter_name=await _inviter_name(session, invitation),
        member_stub=invitation.member_stub,
        expires_at=invitation.expires_at,
    )


async def join_family_with_invitation(
    session: AsyncSession,
    *,
    invitation: Invitation,
    user: User,
) -> None:
    """Adds the new member to the invited family and consumes the invitation; caller commits."""
    await create_membership(
        session,
        member_id=user.member_id,
        family_id=invitation.family_id,
        role=FamilyRole.MEMBER,
    )
    mark_invitation_used(invitation, accepted_by=user.id)
    session.add(invitation)


async def accept_invitation(
    session: AsyncSession,
    *,
    payload: InvitationAcceptRequest,
) -> tuple[User, Invitation]:
    invitation = await load_valid_invitation(session, payload.invitation_code)
    email = normalize_email(payload.email)
    phone = normalize_phone(payload.phone)
    require_identity(email, phone)
    await ensure_identity_available(session, email=email, phone=phone)

    user, _ = await create_user_with_member(
        session,
        email=email,
        phone=phone,
        password=payload.password,
        name=payload.name,
        personal_info=payload.personal_info,
    )
    await join_family_with_invitation(session, invitation=invitation, user=user)
    await session.commit()
    await session.refresh(user)
    logger.info("Invitation %s accepted by user %s", invitation.id, user.id)
    return user, invitation


async def list_family_invitations(
    session: AsyncSession,
    *,
    user: User,
    family_id: UUID,
) -> list[InvitationResponse]:
    await verify_family_access(
        session,
        user=user,
        family_id=family_id,
        detail="Family not found or access denied",
    )
    family = await get_family_or_404(session, family_id)
    result = await session.execute(
        select(Invitation)
        .where(Invitation.family_id == family_id)
        .order_by(Invitation.created_at.desc())
    )
    return [
        await to_invitation_response(session, invitation, family_name=family.name)
        for invitation in result.scalars().all()
    ]


async def list_user_invitations(session: AsyncSession, *, user: User) -> list[InvitationResponse]:
    require_member_id(user)
    result = await session.execute(
        select(Invitation)
        .where(Invitation.inviter_user_id == user.id)
        .order_by(Invitation.created_at.desc())
    )
    return [await to_invitation_response(session, invitation) for invitation in result.scalars().all()]
