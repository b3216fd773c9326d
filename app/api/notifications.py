from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.core.db import get_session
from app.models.notification import NotificationType
from app.models.user import User
from app.schemas.family import MessageResponse
from app.schemas.notification import (
    BulkNotificationResponse,
    MarkReadRequest,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from app.services import notification_service
from app.services.membership_service import require_member_id

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    is_read: bool | None = Query(default=None),
    type: NotificationType | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    return await notification_service.list_notifications(
        session,
        member_id=require_member_id(current_user),
        page=page,
        limit=limit,
        is_read=is_read,
        notification_type=type,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UnreadCountResponse:
    count = await notification_service.count_unread(session, member_id=require_member_id(current_user))
    return UnreadCountResponse(unread_count=count)


@router.put("/mark-all-read", response_model=BulkNotificationResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> BulkNotificationResponse:
    count = await notification_service.mark_all_read(session, member_id=require_member_id(current_user))
    return BulkNotificationResponse(message=f"Marked {count} notifications as read", count=count)


@router.delete("/read/clear", response_model=BulkNotificationResponse)
async def clear_read_notifications(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> BulkNotificationResponse:
    count = await notification_service.clear_read(session, member_id=require_member_id(current_user))
    return BulkNotificationResponse(message=f"Deleted {count} read notifications", count=count)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    payload: MarkReadRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    return await notification_service.mark_read(
        session,
        notification_id=parse_uuid(notification_id, "notification_id"),
        member_id=require_member_id(current_user),
        is_read=payload.is_read,
    )


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await notification_service.delete_notification(
        session,
        notification_id=parse_uuid(notification_id, "notification_id"),
        member_id=require_member_id(current_user),
    )
    return MessageResponse(message="Notification deleted successfully")
