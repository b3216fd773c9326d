from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Text, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.member import utc_now


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    post_id: UUID = Field(foreign_key="posts.id", nullable=False, index=True)
    author_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    parent_comment_id: UUID | None = Field(default=None, foreign_key="comments.id", index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    image_url: str | None = Field(default=None, max_length=500)
    likes_count: int = Field(default=0, nullable=False)
    edit_history: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    created_at: datetime = Field(default_factory=utc_now, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)


class CommentLike(SQLModel, table=True):
    __tablename__ = "comment_likes"
    __table_args__ = (UniqueConstraint("comment_id", "member_id", name="uq_comment_like"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    comment_id: UUID = Field(foreign_key="comments.id", nullable=False, index=True)
    member_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
