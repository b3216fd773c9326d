from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.member import utc_now


class FamilyRole(str, Enum):
    ADMIN = "ADMIN"
    HEAD = "HEAD"
    MODERATOR = "MODERATOR"
    CONTRIBUTOR = "CONTRIBUTOR"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class MembershipType(str, Enum):
    MAIN = "MAIN"
    SUB = "SUB"


class Family(SQLModel, table=True):
    __tablename__ = "families"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    name: str = Field(nullable=False, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_sub_family: bool = Field(default=False, nullable=False)
    parent_family_id: UUID | None = Field(default=None, foreign_key="families.id", index=True)
    creator_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    head_of_family_id: UUID | None = Field(default=None, foreign_key="members.id", index=True)
    is_deleted: bool = Field(default=False, nullable=False, index=True)
    deleted_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)


class FamilyMembership(SQLModel, table=True):
    __tablename__ = "family_memberships"
    __table_args__ = (UniqueConstraint("member_id", "family_id", name="uq_family_membership"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    member_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    family_id: UUID = Field(foreign_key="families.id", nullable=False, index=True)
    role: FamilyRole = Field(default=FamilyRole.MEMBER, nullable=False)
    type: MembershipType = Field(default=MembershipType.MAIN, nullable=False)
    is_active: bool = Field(default=True, nullable=False, index=True)
    auto_enrolled: bool = Field(default=False, nullable=False)
    manually_edited: bool = Field(default=False, nullable=False)
    join_date: datetime = Field(default_factory=utc_now, nullable=False)


class FamilyMemberPermission(SQLModel, table=True):
    __tablename__ = "family_member_permissions"
    __table_args__ = (
        UniqueConstraint("membership_id", "permission", name="uq_membership_permission"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    membership_id: UUID = Field(foreign_key="family_memberships.id", nullable=False, index=True)
    permission: str = Field(nullable=False, max_length=64)
    granted_by: UUID | None = Field(default=None, foreign_key="members.id")
    granted_at: datetime = Field(default_factory=utc_now, nullable=False)
