from datetime import datetime

from pydantic import BaseModel, Field

from app.models.family import FamilyRole, MembershipType
from app.schemas.base import RequestModel


class FamilyCreateRequest(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_sub_family: bool = False
    parent_family_id: str | None = None
    head_of_family_id: str | None = None


class FamilyUpdateRequest(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    head_of_family_id: str | None = None


class AddFamilyMemberRequest(RequestModel):
    member_id: str
    role: FamilyRole = FamilyRole.MEMBER
    type: MembershipType = MembershipType.MAIN


class UpdateMembershipRequest(RequestModel):
    role: FamilyRole | None = None
    type: MembershipType | None = None
    is_active: bool | None = None


class FamilyResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    is_sub_family: bool
    parent_family_id: str | None = None
    creator_id: str
    head_of_family_id: str | None = None
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime


class FamilyMemberEntry(BaseModel):
    id: str
    name: str
    role: str
    type: str
    is_active: bool
    join_date: datetime


class FamilyDetailsResponse(FamilyResponse):
    members: list[FamilyMemberEntry]
    sub_families: list[FamilyResponse]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
