from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.models.family import FamilyRole
from app.models.member import Gender, MemberStatus
from app.schemas.base import RequestModel
from app.services.relationship_service import RelationshipType


class MemberProfileUpdateRequest(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    gender: Gender | None = None
    status: MemberStatus | None = None
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    personal_info: dict[str, Any] | None = None


class RelationshipRequest(RequestModel):
    related_member_id: str
    relationship_type: RelationshipType
    family_id: str


class BulkRelationshipRequest(RequestModel):
    family_id: str
    relationships: list[RelationshipRequest] = Field(min_length=1)


class InitialRelationship(RequestModel):
    related_member_id: str
    relationship_type: RelationshipType


class MemberCreateRequest(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    gender: Gender | None = None
    status: MemberStatus | None = None
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    personal_info: dict[str, Any] | None = None
    family_id: str
    role: FamilyRole = FamilyRole.MEMBER
    initial_relationships: list[InitialRelationship] = Field(default_factory=list)


class MembershipEntry(BaseModel):
    id: str
    family_id: str
    family_name: str
    role: str
    type: str
    auto_enrolled: bool
    manually_edited: bool
    is_active: bool
    join_date: datetime


class SimpleMember(BaseModel):
    id: str
    name: str
    gender: str | None = None


class MemberResponse(BaseModel):
    id: str
    name: str
    gender: str | None = None
    status: str
    color: str | None = None
    personal_info: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    family_memberships: list[MembershipEntry] = Field(default_factory=list)


class MemberDetailsResponse(MemberResponse):
    parents: list[SimpleMember] = Field(default_factory=list)
    children: list[SimpleMember] = Field(default_factory=list)
    spouses: list[SimpleMember] = Field(default_factory=list)


class RelationshipSummary(BaseModel):
    related_member_id: str
    relationship_type: RelationshipType
    family_id: str


class RelationshipResult(BaseModel):
    relationship: RelationshipSummary
    success: bool
    message: str


class BulkRelationshipResponse(BaseModel):
    success: bool
    message: str
    results: list[RelationshipResult]
