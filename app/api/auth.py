from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.api.deps import get_current_user
from app.core.db import get_session
from app.core.logging import get_logger
from app.core.security import REFRESH_TOKEN_TYPE, decode_token
from app.models.family import Family, FamilyRole
from app.models.member import Member
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    FamilySummary,
    LoginRequest,
    MemberSummary,
    RefreshRequest,
    RegisterRequest,
    RegistrationType,
    TokenResponse,
    UserResponse,
)
from app.services.auth import (
    authenticate_user,
    create_user_with_member,
    ensure_identity_available,
    issue_tokens,
    normalize_email,
    normalize_phone,
    require_identity,
)
from app.services.invitation_service import join_family_with_invitation, load_valid_invitation
from app.services.membership_service import create_membership

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger("auth")


async def to_user_response(session: AsyncSession, user: User) -> UserResponse:
    member = await session.get(Member, user.member_id) if user.member_id else None
    return UserResponse(
        id=str(user.id),
        email=user.email,
        phone=user.phone,
        member=MemberSummary(
            id=str(member.id),
            name=member.name,
            gender=member.gender.value if member.gender else None,
        )
        if member
        else None,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    email = normalize_email(payload.email)
    phone = normalize_phone(payload.phone)
    require_identity(email, phone)

    family_name = (payload.family_name or "").strip()
    invitation_code = (payload.invitation_code or "").strip()
    if payload.registration_type == RegistrationType.CREATE_FAMILY and not family_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Family name is required when creating a new family",
        )
    if payload.registration_type == RegistrationType.JOIN_FAMILY and not invitation_code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation code is required when joining a family",
        )

    await ensure_identity_available(session, email=email, phone=phone)
    invitation = None
    if payload.registration_type == RegistrationType.JOIN_FAMILY:
        invitation = await load_valid_invitation(session, invitation_code)

    user, member = await create_user_with_member(
        session,
        email=email,
        phone=phone,
        password=payload.password,
        name=payload.name,
        gender=payload.gender,
        personal_info=payload.personal_info,
    )

    family_summary = None
    if invitation is None:
        family = Family(
            name=family_name,
            description=payload.family_description,
            creator_id=member.id,
            head_of_family_id=member.id,
        )
        session.add(family)
        await session.flush()
        await create_membership(
            session,
            member_id=member.id,
            family_id=family.id,
            role=FamilyRole.ADMIN,
            granted_by=member.id,
        )
        family_summary = FamilySummary(
            id=str(family.id),
            name=family.name,
            description=family.description,
            role=FamilyRole.ADMIN.value,
        )
        message = "Registration successful. New family created."
    else:
        await join_family_with_invitation(session, invitation=invitation, user=user)
        message = "Registration successful. Welcome to the family!"

    await session.commit()
    await session.refresh(user)
    logger.info("Registered user %s (%s)", user.id, payload.registration_type.value)

    return AuthResponse(
        message=message,
        token=TokenResponse(**issue_tokens(user)),
        user=await to_user_response(session, user),
        family=family_summary,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    user = await authenticate_user(session, payload.email_or_phone, payload.password)
    return AuthResponse(
        token=TokenResponse(**issue_tokens(user)),
        user=await to_user_response(session, user),
    )


@router.post("/token", response_model=TokenResponse)
async def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session),
) -> TokenResponse:
    # username carries the email or phone number
    user = await authenticate_user(session, form_data.username, form_data.password)
    return TokenResponse(**issue_tokens(user))


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    payload: RefreshRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenResponse:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid refresh token",
    )
    try:
        claims = decode_token(payload.refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        user_id = UUID(str(claims.get("sub")))
    except (ValueError, TypeError):
        raise unauthorized

    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return TokenResponse(**issue_tokens(user))


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UserResponse:
    return await to_user_response(session, current_user)
