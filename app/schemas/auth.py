from enum import Enum
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.security import is_strong_password
from app.models.member import Gender
from app.schemas.base import RequestModel
from app.schemas.invitation import PASSWORD_RULES


class RegistrationType(str, Enum):
    CREATE_FAMILY = "create_family"
    JOIN_FAMILY = "join_family"


class RegisterRequest(RequestModel):
    registration_type: RegistrationType
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    password: str = Field(min_length=8, max_length=32)
    name: str = Field(min_length=1, max_length=100)
    gender: Gender | None = None
    personal_info: dict[str, Any] | None = None
    family_name: str | None = Field(default=None, max_length=100)
    family_description: str | None = Field(default=None, max_length=500)
    invitation_code: str | None = None

    @field_validator("password")
    @classmethod
    def password_is_strong(cls, value: str) -> str:
        if not is_strong_password(value):
            raise ValueError(PASSWORD_RULES)
        return value


class LoginRequest(RequestModel):
    email_or_phone: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshRequest(RequestModel):
    refresh_token: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None


class MemberSummary(BaseModel):
    id: str
    name: str
    gender: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str | None = None
    phone: str | None = None
    member: MemberSummary | None = None


class FamilySummary(BaseModel):
    id: str
    name: str
    description: str | None = None
    role: str


class AuthResponse(BaseModel):
    message: str | None = None
    token: TokenResponse
    user: UserResponse
    family: FamilySummary | None = None
