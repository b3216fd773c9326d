from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from app.models.member import utc_now


class NotificationType(str, Enum):
    NEW_POST = "NEW_POST"
    POST_LIKE = "POST_LIKE"
    NEW_COMMENT = "NEW_COMMENT"
    COMMENT_LIKE = "COMMENT_LIKE"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    recipient_id: UUID = Field(foreign_key="members.id", nullable=False, index=True)
    type: NotificationType = Field(nullable=False, index=True)
    message: str = Field(nullable=False, max_length=500)
    is_read: bool = Field(default=False, nullable=False, index=True)
    related_member_id: UUID | None = Field(default=None, foreign_key="members.id")
    related_post_id: UUID | None = Field(default=None, foreign_key="posts.id")
    related_comment_id: UUID | None = Field(default=None, foreign_key="comments.id")
    created_at: datetime = Field(default_factory=utc_now, nullable=False, index=True)
