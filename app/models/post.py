from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Text, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.member import utc_now


class PostVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    FAMILY = "FAMILY"
    SUBFAMILY = "SUBFAMILY"


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    author_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    family_id: UUID | None = Field(default=None, foreign_key="families.id", index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    image_urls: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    video_url: str | None = Field(default=None, max_length=500)
    visibility: PostVisibility = Field(default=PostVisibility.FAMILY, nullable=False, index=True)
    likes_count: int = Field(default=0, nullable=False)
    edit_history: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(default_factory=utc_now, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)


class PostLike(SQLModel, table=True):
    __tablename__ = "post_likes"
    __table_args__ = (UniqueConstraint("post_id", "member_id", name="uq_post_like"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    post_id: UUID = Field(foreign_key="posts.id", nullable=False, index=True)
    member_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
