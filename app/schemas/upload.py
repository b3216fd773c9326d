from datetime import datetime

from pydantic import BaseModel


class StoredFileResponse(BaseModel):
    id: str
    filename: str
    original_name: str
    mime_type: str
    size: int
    url: str
    type: str
    uploaded_by: str
    created_at: datetime


class UploadResponse(BaseModel):
    file: StoredFileResponse
    url: str
    message: str
