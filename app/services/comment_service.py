from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.comment import Comment, CommentLike
from app.models.member import Member, utc_now
from app.models.notification import Notification, NotificationType
from app.schemas.comment import CommentCreateRequest, CommentResponse, CommentUpdateRequest
from app.schemas.post import LikeResponse
from app.services.membership_service import parse_id
from app.services.notification_service import notify, to_author_summary
from app.services.post_service import ensure_post_access, get_post_or_404


async def get_comment_or_404(session: AsyncSession, comment_id: UUID) -> Comment:
    comment = await session.get(Comment, comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


async def _to_responses(
    session: AsyncSession,
    comments: list[Comment],
    *,
    member_id: UUID,
) -> list[CommentResponse]:
    if not comments:
        return []
    comment_ids = [comment.id for comment in comments]
    authors_result = await session.execute(
        select(Member).where(Member.id.in_({comment.author_id for comment in comments}))
    )
    authors = {member.id: member for member in authors_result.scalars().all()}
    replies_result = await session.execute(
        select(Comment.parent_comment_id, func.count(Comment.id))
        .where(Comment.parent_comment_id.in_(comment_ids))
        .group_by(Comment.parent_comment_id)
    )
    reply_counts = dict(replies_result.all())
    liked_result = await session.execute(
        select(CommentLike.comment_id).where(
            CommentLike.comment_id.in_(comment_ids),
            CommentLike.member_id == member_id,
        )
    )
    liked = set(liked_result.scalars().all())
    return [
        CommentResponse(
            id=str(comment.id),
            post_id=str(comment.post_id),
            author_id=str(comment.author_id),
            parent_comment_id=str(comment.parent_comment_id) if comment.parent_comment_id else None,
            content=comment.content,
            image_url=comment.image_url,
            author=to_author_summary(authors.get(comment.author_id)),
            likes_count=comment.likes_count,
            replies_count=reply_counts.get(comment.id, 0),
            is_liked_by_current_user=comment.id in liked,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
        for comment in comments
    ]


async def create_comment(
    session: AsyncSession,
    *,
    post_id: UUID,
    member_id: UUID,
    payload: CommentCreateRequest,
) -> CommentResponse:
    post = await get_post_or_404(session, post_id)
    await ensure_post_access(session, post=post, member_id=member_id)

    parent_id = None
    if payload.parent_comment_id:
        parent_id = parse_id(payload.parent_comment_id, "parent_comment_id")
        parent = await session.get(Comment, parent_id)
        if not parent or parent.post_id != post_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Parent comment not found",
            )
        # threads stay two levels deep
        parent_id = parent.parent_comment_id or parent.id

    comment = Comment(
        post_id=post_id,
        author_id=member_id,
        parent_comment_id=parent_id,
        content=payload.content,
        image_url=payload.image_url,
    )
    session.add(comment)
    await session.flush()
    notify(
        session,
        recipient_ids=[post.author_id],
        notification_type=NotificationType.NEW_COMMENT,
        actor_id=member_id,
        post_id=post_id,
        comment_id=comment.id,
    )
    await session.commit()
    await session.refresh(comment)
    return (await _to_responses(session, [comment], member_id=member_id))[0]


async def list_comments(
    session: AsyncSession,
    *,
    post_id: UUID,
    member_id: UUID,
    page: int = 1,
    limit: int = 20,
    include_replies: bool = True,
) -> list[CommentResponse]:
    """Top-level comments newest first, each with its replies oldest first."""
    post = await get_post_or_404(session, post_id)
    await ensure_post_access(session, post=post, member_id=member_id)

    result = await session.execute(
        select(Comment)
        .where(Comment.post_id == post_id, Comment.parent_comment_id.is_(None))
        .order_by(Comment.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    top_level = await _to_responses(session, list(result.scalars().all()), member_id=member_id)
    if not include_replies or not top_level:
        return top_level

    replies_result = await session.execute(
        select(Comment)
        .where(Comment.parent_comment_id.in_([UUID(item.id) for item in top_level]))
        .order_by(Comment.created_at.asc())
    )
    replies = await _to_responses(session, list(replies_result.scalars().all()), member_id=member_id)
    by_parent: dict[str, list[CommentResponse]] = {}
    for reply in replies:
        by_parent.setdefault(reply.parent_comment_id or "", []).append(reply)
    for item in top_level:
        item.replies = by_parent.get(item.id, [])
    return top_level


def _require_author(comment: Comment, member_id: UUID, action: str) -> None:
    if comment.author_id != member_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} your own comments",
        )


async def update_comment(
    session: AsyncSession,
    *,
    comment_id: UUID,
    member_id: UUID,
    payload: CommentUpdateRequest,
) -> CommentResponse:
    comment = await get_comment_or_404(session, comment_id)
    _require_author(comment, member_id, "edit")

    now = utc_now()
    if payload.content is not None and payload.content != comment.content:
        comment.edit_history = [
            *(comment.edit_history or []),
            {"timestamp": now.isoformat(), "previous_content": comment.content},
        ]
        comment.content = payload.content
    if payload.image_url is not None:
        comment.image_url = payload.image_url
    comment.updated_at = now
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    return (await _to_responses(session, [comment], member_id=member_id))[0]


async def delete_comment(session: AsyncSession, *, comment_id: UUID, member_id: UUID) -> None:
    """Deletes the comment together with its replies."""
    comment = await get_comment_or_404(session, comment_id)
    _require_author(comment, member_id, "delete")

    doomed = select(Comment.id).where(
        or_(Comment.id == comment_id, Comment.parent_comment_id == comment_id)
    )
    await session.execute(delete(CommentLike).where(CommentLike.comment_id.in_(doomed)))
    await session.execute(delete(Notification).where(Notification.related_comment_id.in_(doomed)))
    await session.execute(delete(Comment).where(Comment.parent_comment_id == comment_id))
    await session.delete(comment)
    await session.commit()


async def toggle_like(session: AsyncSession, *, comment_id: UUID, member_id: UUID) -> LikeResponse:
    comment = await get_comment_or_404(session, comment_id)
    post = await get_post_or_404(session, comment.post_id)
    await ensure_post_access(session, post=post, member_id=member_id)

    result = await session.execute(
        select(CommentLike).where(
            CommentLike.comment_id == comment_id,
            CommentLike.member_id == member_id,
        )
    )
    existing = result.scalar_one_or_none()
    if existing:
        await session.delete(existing)
        comment.likes_count = max(comment.likes_count - 1, 0)
        session.add(comment)
        await session.commit()
        return LikeResponse(liked=False, message="Comment unliked")

    session.add(CommentLike(comment_id=comment_id, member_id=member_id))
    comment.likes_count += 1
    session.add(comment)
    notify(
        session,
        recipient_ids=[comment.author_id],
        notification_type=NotificationType.COMMENT_LIKE,
        actor_id=member_id,
        comment_id=comment_id,
    )
    await session.commit()
    return LikeResponse(liked=True, message="Comment liked")
