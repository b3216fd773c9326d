from pydantic import BaseModel, Field

from app.services.imports.types import FileKind, ImportProgress


class ImportValidateResponse(BaseModel):
    success: bool
    file_type: FileKind
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ImportStartResponse(BaseModel):
    success: bool = True
    import_id: str
    message: str


class ImportProgressResponse(BaseModel):
    success: bool = True
    progress: ImportProgress
