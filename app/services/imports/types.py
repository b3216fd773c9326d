from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

FileKind = Literal["excel", "json", "unknown"]
ImportStatus = Literal["pending", "processing", "completed", "failed", "rolled_back"]


class ImportPersonalInfo(BaseModel):
    bio: str | None = None
    birth_date: str | None = None
    birth_place: str | None = None
    occupation: str | None = None
    social_links: dict[str, Any] = Field(default_factory=dict)


class ImportMemberData(BaseModel):
    name: str = ""
    gender: str | None = None
    status: str | None = None
    color: str | None = None
    personal_info: ImportPersonalInfo = Field(default_factory=ImportPersonalInfo)
    parent_names: list[str] = Field(default_factory=list)
    spouse_names: list[str] = Field(default_factory=list)
    family_name: str | None = None
    family_role: str | None = None


class ImportFamilyData(BaseModel):
    name: str = ""
    description: str | None = None
    members: list[ImportMemberData] = Field(default_factory=list)


class ImportIssue(BaseModel):
    row: int
    field: str | None = None
    message: str
    data: Any = None


class ParseOutcome(BaseModel):
    members: list[ImportMemberData] = Field(default_factory=list)
    family: ImportFamilyData | None = None
    errors: list[ImportIssue] = Field(default_factory=list)
    warnings: list[ImportIssue] = Field(default_factory=list)


class StructureCheck(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class FileDetection(BaseModel):
    type: FileKind
    confidence: float
    mime_type: str | None = None
    extension: str | None = None


class FileValidation(BaseModel):
    is_valid: bool
    file_type: FileKind
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ValidationOutcome(BaseModel):
    is_valid: bool
    errors: list[ImportIssue] = Field(default_factory=list)
    warnings: list[ImportIssue] = Field(default_factory=list)
    valid_data: list[ImportMemberData] = Field(default_factory=list)


class ImportResult(BaseModel):
    success: bool
    total_records: int
    successful_imports: int
    failed_imports: int
    errors: list[ImportIssue] = Field(default_factory=list)
    warnings: list[ImportIssue] = Field(default_factory=list)
    import_id: str
    family_id: str | None = None


class ImportProgress(BaseModel):
    import_id: str
    import_name: str | None = None
    status: ImportStatus = "pending"
    progress: int = 0
    current_step: str = "Initializing import"
    total_records: int = 0
    processed_records: int = 0
    errors: list[ImportIssue] = Field(default_factory=list)
    warnings: list[ImportIssue] = Field(default_factory=list)
    result: ImportResult | None = None
    start_time: datetime
    end_time: datetime | None = None
