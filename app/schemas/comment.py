from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.base import RequestModel
from app.schemas.post import AuthorSummary


class CommentCreateRequest(RequestModel):
    content: str = Field(min_length=1, max_length=2000)
    image_url: str | None = Field(default=None, max_length=500)
    parent_comment_id: str | None = None


class CommentUpdateRequest(RequestModel):
    content: str | None = Field(default=None, min_length=1, max_length=2000)
    image_url: str | None = Field(default=None, max_length=500)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    author_id: str
    parent_comment_id: str | None = None
    content: str
    image_url: str | None = None
    author: AuthorSummary | None = None
    likes_count: int
    replies_count: int = 0
    is_liked_by_current_user: bool = False
    replies: list["CommentResponse"] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
