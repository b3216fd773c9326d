from datetime import datetime

from pydantic import BaseModel

from app.schemas.base import RequestModel
from app.schemas.post import AuthorSummary, Pagination


class RelatedContent(BaseModel):
    id: str
    content: str


class NotificationResponse(BaseModel):
    id: str
    type: str
    message: str
    is_read: bool
    related_member: AuthorSummary | None = None
    related_post: RelatedContent | None = None
    related_comment: RelatedContent | None = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    pagination: Pagination
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkReadRequest(RequestModel):
    is_read: bool = True


class BulkNotificationResponse(BaseModel):
    message: str
    count: int
