from datetime import datetime

from pydantic import BaseModel, Field

from app.services.permission_service import FamilyPermission
from app.schemas.base import RequestModel


class PermissionInfo(BaseModel):
    permission: str
    display_name: str
    description: str
    category: str


class AvailablePermissionsResponse(BaseModel):
    permissions: list[PermissionInfo]
    total: int


class GrantedPermission(BaseModel):
    permission: str
    display_name: str
    description: str = ""
    granted_by: str | None = None
    granted_at: datetime


class PermissionMember(BaseModel):
    id: str
    name: str
    gender: str | None = None
    role: str


class MemberPermissionsResponse(BaseModel):
    member: PermissionMember
    permissions: list[GrantedPermission]


class FamilyPermissionEntry(MemberPermissionsResponse):
    permission_count: int


class GrantPermissionRequest(RequestModel):
    permission: FamilyPermission


class ReplacePermissionsRequest(RequestModel):
    permissions: list[FamilyPermission] = Field(default_factory=list)


class GrantPermissionResponse(BaseModel):
    message: str
    permission: GrantedPermission


class PermissionUpdateResponse(BaseModel):
    message: str
    granted_permissions: int
    role: str | None = None
