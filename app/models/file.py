from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from app.models.member import utc_now


class FileType(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    DOCUMENT = "DOCUMENT"


class StoredFile(SQLModel, table=True):
    __tablename__ = "files"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    filename: str = Field(nullable=False, max_length=255, unique=True)
    original_name: str = Field(nullable=False, max_length=255)
    mime_type: str = Field(nullable=False, max_length=120)
    size: int = Field(nullable=False)
    url: str = Field(nullable=False, max_length=500)
    type: FileType = Field(nullable=False)
    uploaded_by: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
