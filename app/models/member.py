from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """sqlite hands stored timestamps back without tzinfo."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DECEASED = "DECEASED"
    ARCHIVED = "ARCHIVED"


class Member(SQLModel, table=True):
    __tablename__ = "members"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    name: str = Field(nullable=False, max_length=100, index=True)
    gender: Gender | None = Field(default=None)
    status: MemberStatus = Field(default=MemberStatus.ACTIVE, nullable=False)
    color: str | None = Field(default=None, max_length=7)
    personal_info: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)


class MemberParentLink(SQLModel, table=True):
    __tablename__ = "member_parents"
    __table_args__ = (UniqueConstraint("parent_id", "child_id", name="uq_member_parent_pair"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    parent_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    child_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)


class MemberSpouseLink(SQLModel, table=True):
    __tablename__ = "member_spouses"
    __table_args__ = (UniqueConstraint("member_id", "spouse_id", name="uq_member_spouse_pair"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    member_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    spouse_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
