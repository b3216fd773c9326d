from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.schemas.base import RequestModel


class FolderRelative(BaseModel):
    id: str
    name: str
    gender: str | None = None
    status: str


class FolderMember(BaseModel):
    id: str
    name: str
    gender: str | None = None
    role: str | None = None
    generation: int
    parents: list[FolderRelative] = Field(default_factory=list)
    children: list[FolderRelative] = Field(default_factory=list)
    spouses: list[FolderRelative] = Field(default_factory=list)
    personal_info: dict[str, Any] | None = None
    is_direct_member: bool = True


class FolderFamily(BaseModel):
    id: str
    name: str
    members: list[FolderMember]


class FolderTreeDataResponse(BaseModel):
    families: list[FolderFamily]
    members_list: list[FolderMember]
    generated_at: datetime


class FamilyDataExportRequest(RequestModel):
    format: Literal["pdf", "excel"]
    scope: Literal["current-family", "all-families", "selected-families"]
    family_ids: list[str] = Field(default_factory=list)
    include_personal_info: bool = False
