from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.security import (
    access_token_lifetime_seconds,
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from app.models.member import Gender, Member
from app.models.user import User


def normalize_email(email: str | None) -> str | None:
    if not email:
        return None
    return email.lower().strip()


def normalize_phone(phone: str | None) -> str | None:
    if not phone:
        return None
    return phone.strip() or None


def require_identity(email: str | None, phone: str | None) -> None:
    if not email and not phone:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either email or phone number is required",
        )


async def ensure_identity_available(
    session: AsyncSession,
    *,
    email: str | None,
    phone: str | None,
) -> None:
    conditions = []
    if email:
        conditions.append(User.email == email)
    if phone:
        conditions.append(User.phone == phone)
    if not conditions:
        return
    result = await session.execute(select(User.id).where(or_(*conditions)))
    if result.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email or phone already exists",
        )


async def create_user_with_member(
    session: AsyncSession,
    *,
    email: str | None,
    phone: str | None,
    password: str,
    name: str,
    gender: Gender | None = None,
    personal_info: dict[str, Any] | None = None,
) -> tuple[User, Member]:
    member = Member(name=name.strip(), gender=gender, personal_info=personal_info or {})
    session.add(member)
    await session.flush()

    user = User(
        email=email,
        phone=phone,
        hashed_password=hash_password(password),
        member_id=member.id,
        email_verified=bool(email),
    )
    session.add(user)
    await session.flush()
    return user, member


async def find_user_by_identifier(session: AsyncSession, identifier: str) -> User | None:
    value = identifier.strip()
    result = await session.execute(
        select(User).where(or_(User.email == value.lower(), User.phone == value))
    )
    return result.scalars().first()


async def authenticate_user(session: AsyncSession, identifier: str, password: str) -> User:
    user = await find_user_by_identifier(session, identifier)
    if not user or not user.is_active or not verify_password(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def issue_tokens(user: User) -> dict[str, Any]:
    claims = {
        "email": user.email,
        "phone": user.phone,
        "member_id": str(user.member_id) if user.member_id else None,
    }
    return {
        "access_token": create_access_token(str(user.id), **claims),
        "refresh_token": create_refresh_token(str(user.id), **claims),
        "token_type": "bearer",
        "expires_in": access_token_lifetime_seconds(),
    }
