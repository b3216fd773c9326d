from datetime import datetime

from pydantic import BaseModel, Field

from app.models.post import PostVisibility
from app.schemas.base import RequestModel


class AuthorSummary(BaseModel):
    id: str
    name: str
    profile_image: str | None = None


class Pagination(BaseModel):
    current: int
    limit: int
    total: int
    pages: int


class PostCreateRequest(RequestModel):
    content: str = Field(min_length=1, max_length=5000)
    image_urls: list[str] = Field(default_factory=list)
    video_url: str | None = Field(default=None, max_length=500)
    visibility: PostVisibility = PostVisibility.FAMILY
    family_id: str | None = None


class PostUpdateRequest(RequestModel):
    content: str | None = Field(default=None, min_length=1, max_length=5000)
    image_urls: list[str] | None = None
    video_url: str | None = Field(default=None, max_length=500)
    visibility: PostVisibility | None = None


class PostResponse(BaseModel):
    id: str
    content: str
    image_urls: list[str]
    video_url: str | None = None
    visibility: str
    author_id: str
    family_id: str | None = None
    author: AuthorSummary | None = None
    likes_count: int
    comments_count: int
    is_liked_by_current_user: bool = False
    created_at: datetime
    updated_at: datetime


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    pagination: Pagination


class LikeResponse(BaseModel):
    liked: bool
    message: str
