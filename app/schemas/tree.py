from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.base import RequestModel


class TreeNodeResponse(BaseModel):
    id: str
    name: str
    gender: str | None = None
    status: str
    personal_info: dict[str, Any] | None = None
    color: str | None = None
    level: int
    x: float
    y: float
    parent_ids: list[str]
    children_ids: list[str]
    spouse_ids: list[str]
    created_at: str
    updated_at: str


class TreeConnectionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    type: Literal["parent", "spouse", "child"]
    strength: float


class FamilyTreeResponse(BaseModel):
    nodes: list[TreeNodeResponse]
    connections: list[TreeConnectionResponse]
    center_node_id: str | None = None
    family_id: str
    family_name: str
    total_members: int
    generations: int


class MemberBirthSummary(BaseModel):
    id: str
    name: str
    birth_year: int | None = None


class GenderDistribution(BaseModel):
    male: int = 0
    female: int = 0
    other: int = 0
    unspecified: int = 0


class StatusDistribution(BaseModel):
    active: int = 0
    inactive: int = 0
    deceased: int = 0
    archived: int = 0


class TreeStatisticsResponse(BaseModel):
    total_members: int
    total_families: int
    total_generations: int
    average_children_per_member: float
    oldest_member: MemberBirthSummary | None = None
    youngest_member: MemberBirthSummary | None = None
    gender_distribution: GenderDistribution
    status_distribution: StatusDistribution


class GenerationMember(BaseModel):
    id: str
    name: str
    gender: str | None = None
    status: str


class GenerationBreakdownResponse(BaseModel):
    generations: dict[int, list[GenerationMember]]


class RelationshipEntry(BaseModel):
    member_id: str
    name: str
    relationship: Literal["parent", "child", "spouse", "sibling"]


class MemberRelationshipsResponse(BaseModel):
    member: GenerationMember
    direct_relationships: list[RelationshipEntry]
    indirect_relationships: list[RelationshipEntry]


class TreeExportRequest(RequestModel):
    family_id: str
    format: Literal["json", "csv", "pdf"] = "json"
    include_personal_info: bool = False
    include_inactive_members: bool = False
