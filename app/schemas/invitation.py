from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.security import is_strong_password
from app.schemas.base import RequestModel

PASSWORD_RULES = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one digit, and one special character"
)


class InvitationCreateRequest(RequestModel):
    family_id: str
    member_stub: dict[str, Any] | None = None


class InvitationResponse(BaseModel):
    id: str
    code: str
    family_id: str
    family_name: str
    inviter_name: str
    member_stub: dict[str, Any] | None = None
    status: str
    expires_at: datetime
    created_at: datetime


class InvitationValidationResponse(BaseModel):
    is_valid: bool
    family_name: str = ""
    inviter_name: str = ""
    member_stub: dict[str, Any] | None = None
    expires_at: datetime | None = None


class InvitationAcceptRequest(RequestModel):
    invitation_code: str = Field(min_length=1)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    password: str = Field(min_length=8, max_length=32)
    name: str = Field(min_length=2, max_length=100)
    personal_info: dict[str, Any] | None = None

    @field_validator("password")
    @classmethod
    def password_is_strong(cls, value: str) -> str:
        if not is_strong_password(value):
            raise ValueError(PASSWORD_RULES)
        return value


class InvitationAcceptResponse(BaseModel):
    success: bool = True
    message: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_id: str
    member_id: str
    family_id: str
