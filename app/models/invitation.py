from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Text
from sqlmodel import Field, SQLModel

from app.models.member import utc_now


class InvitationStatus(str, Enum):
    VALID = "VALID"
    USED = "USED"
    EXPIRED = "EXPIRED"


class Invitation(SQLModel, table=True):
    __tablename__ = "invitations"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    code: str = Field(sa_column=Column(Text, unique=True, nullable=False))
    family_id: UUID = Field(foreign_key="families.id", nullable=False, index=True)
    inviter_user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    member_stub: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    status: InvitationStatus = Field(default=InvitationStatus.VALID, nullable=False, index=True)
    expires_at: datetime = Field(nullable=False)
    used_at: datetime | None = Field(default=None)
    accepted_by: UUID | None = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
