from __future__ import annotations

import math
from collections.abc import Iterable
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.comment import Comment
from app.models.member import Member
from app.models.notification import Notification, NotificationType
from app.models.post import Post
from app.schemas.notification import NotificationListResponse, NotificationResponse, RelatedContent
from app.schemas.post import AuthorSummary, Pagination

NOTIFICATION_MESSAGES = {
    NotificationType.NEW_POST: "shared a new post",
    NotificationType.POST_LIKE: "liked your post",
    NotificationType.NEW_COMMENT: "commented on your post",
    NotificationType.COMMENT_LIKE: "liked your comment",
}


def to_author_summary(member: Member | None) -> AuthorSummary | None:
    if not member:
        return None
    info = member.personal_info or {}
    return AuthorSummary(id=str(member.id), name=member.name, profile_image=info.get("profile_image"))


def notify(
    session: AsyncSession,
    *,
    recipient_ids: Iterable[UUID],
    notification_type: NotificationType,
    actor_id: UUID,
    post_id: UUID | None = None,
    comment_id: UUID | None = None,
) -> int:
    """Queue one notification per recipient, skipping the actor. The caller commits."""
    count = 0
    for recipient_id in dict.fromkeys(recipient_ids):
        if recipient_id == actor_id:
            continue
        session.add(
            Notification(
                recipient_id=recipient_id,
                type=notification_type,
                message=NOTIFICATION_MESSAGES[notification_type],
                related_member_id=actor_id,
                related_post_id=post_id,
                related_comment_id=comment_id,
            )
        )
        count += 1
    return count


async def _to_response(session: AsyncSession, notification: Notification) -> NotificationResponse:
    related_member = (
        await session.get(Member, notification.related_member_id) if notification.related_member_id else None
    )
    related_post = await session.get(Post, notification.related_post_id) if notification.related_post_id else None
    related_comment = (
        await session.get(Comment, notification.related_comment_id) if notification.related_comment_id else None
    )
    return NotificationResponse(
        id=str(notification.id),
        type=NotificationType(notification.type).value,
        message=notification.message,
        is_read=notification.is_read,
        related_member=to_author_summary(related_member),
        related_post=RelatedContent(id=str(related_post.id), content=related_post.content) if related_post else None,
        related_comment=(
            RelatedContent(id=str(related_comment.id), content=related_comment.content) if related_comment else None
        ),
        created_at=notification.created_at,
    )


async def count_unread(session: AsyncSession, *, member_id: UUID) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.recipient_id == member_id,
            Notification.is_read.is_(False),
        )
    )
    return int(result.scalar_one())


async def list_notifications(
    session: AsyncSession,
    *,
    member_id: UUID,
    page: int = 1,
    limit: int = 20,
    is_read: bool | None = None,
    notification_type: NotificationType | None = None,
) -> NotificationListResponse:
    conditions = [Notification.recipient_id == member_id]
    if is_read is not None:
        conditions.append(Notification.is_read.is_(is_read))
    if notification_type is not None:
        conditions.append(Notification.type == notification_type)

    total = int((await session.execute(select(func.count(Notification.id)).where(*conditions))).scalar_one())
    result = await session.execute(
        select(Notification)
        .where(*conditions)
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return NotificationListResponse(
        notifications=[await _to_response(session, item) for item in result.scalars().all()],
        pagination=Pagination(current=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        unread_count=await count_unread(session, member_id=member_id),
    )


async def _owned_or_404(session: AsyncSession, *, notification_id: UUID, member_id: UUID) -> Notification:
    result = await session.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == member_id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
    return notification


async def mark_read(
    session: AsyncSession,
    *,
    notification_id: UUID,
    member_id: UUID,
    is_read: bool,
) -> NotificationResponse:
    notification = await _owned_or_404(session, notification_id=notification_id, member_id=member_id)
    notification.is_read = is_read
    session.add(notification)
    await session.commit()
    await session.refresh(notification)
    return await _to_response(session, notification)


async def mark_all_read(session: AsyncSession, *, member_id: UUID) -> int:
    result = await session.execute(
        update(Notification)
        .where(Notification.recipient_id == member_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await session.commit()
    return result.rowcount or 0


async def delete_notification(session: AsyncSession, *, notification_id: UUID, member_id: UUID) -> None:
    notification = await _owned_or_404(session, notification_id=notification_id, member_id=member_id)
    await session.delete(notification)
    await session.commit()


async def clear_read(session: AsyncSession, *, member_id: UUID) -> int:
    result = await session.execute(
        delete(Notification).where(Notification.recipient_id == member_id, Notification.is_read.is_(True))
    )
    await session.commit()
    return result.rowcount or 0
