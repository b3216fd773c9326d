from __future__ import annotations

import math
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.logging import get_logger
from app.models.comment import Comment, CommentLike
from app.models.family import FamilyMembership
from app.models.member import Member, utc_now
from app.models.notification import Notification, NotificationType
from app.models.post import Post, PostLike, PostVisibility
from app.schemas.post import (
    LikeResponse,
    Pagination,
    PostCreateRequest,
    PostListResponse,
    PostResponse,
    PostUpdateRequest,
)
from app.services.membership_service import list_active_family_ids, parse_id
from app.services.notification_service import notify, to_author_summary

logger = get_logger("posts")


def _active_family_ids_query(member_id: UUID):
    return select(FamilyMembership.family_id).where(
        FamilyMembership.member_id == member_id,
        FamilyMembership.is_active.is_(True),
    )


def visible_posts_clause(member_id: UUID):
    """Public posts, own posts, posts in one of the viewer's families, and
    family-less posts by someone sharing a family with the viewer."""
    my_families = _active_family_ids_query(member_id)
    relatives = select(FamilyMembership.member_id).where(
        FamilyMembership.family_id.in_(my_families),
        FamilyMembership.is_active.is_(True),
    )
    return or_(
        Post.visibility == PostVisibility.PUBLIC,
        Post.author_id == member_id,
        and_(Post.family_id.is_not(None), Post.family_id.in_(my_families)),
        and_(Post.family_id.is_(None), Post.author_id.in_(relatives)),
    )


async def ensure_post_access(session: AsyncSession, *, post: Post, member_id: UUID) -> None:
    if post.visibility == PostVisibility.PUBLIC or post.author_id == member_id:
        return
    viewer_families = set(await list_active_family_ids(session, member_id))
    if post.family_id is not None:
        allowed = post.family_id in viewer_families
    else:
        allowed = bool(viewer_families & set(await list_active_family_ids(session, post.author_id)))
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this post",
        )


async def get_post_or_404(session: AsyncSession, post_id: UUID) -> Post:
    post = await session.get(Post, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


async def _to_responses(session: AsyncSession, posts: list[Post], *, member_id: UUID) -> list[PostResponse]:
    if not posts:
        return []
    post_ids = [post.id for post in posts]
    authors_result = await session.execute(
        select(Member).where(Member.id.in_({post.author_id for post in posts}))
    )
    authors = {member.id: member for member in authors_result.scalars().all()}
    counts_result = await session.execute(
        select(Comment.post_id, func.count(Comment.id))
        .where(Comment.post_id.in_(post_ids))
        .group_by(Comment.post_id)
    )
    comment_counts = dict(counts_result.all())
    liked_result = await session.execute(
        select(PostLike.post_id).where(PostLike.post_id.in_(post_ids), PostLike.member_id == member_id)
    )
    liked = set(liked_result.scalars().all())

    return [
        PostResponse(
            id=str(post.id),
            content=post.content,
            image_urls=list(post.image_urls or []),
            video_url=post.video_url,
            visibility=PostVisibility(post.visibility).value,
            author_id=str(post.author_id),
            family_id=str(post.family_id) if post.family_id else None,
            author=to_author_summary(authors.get(post.author_id)),
            likes_count=post.likes_count,
            comments_count=comment_counts.get(post.id, 0),
            is_liked_by_current_user=post.id in liked,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )
        for post in posts
    ]


async def to_post_response(session: AsyncSession, post: Post, *, member_id: UUID) -> PostResponse:
    return (await _to_responses(session, [post], member_id=member_id))[0]


async def create_post(
    session: AsyncSession,
    *,
    member_id: UUID,
    payload: PostCreateRequest,
) -> PostResponse:
    family_id = parse_id(payload.family_id, "family_id") if payload.family_id else None
    if family_id and family_id not in await list_active_family_ids(session, member_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this family",
        )

    post = Post(
        author_id=member_id,
        family_id=family_id,
        content=payload.content,
        image_urls=payload.image_urls,
        video_url=payload.video_url,
        visibility=payload.visibility,
        edit_history=[{"action": "created", "timestamp": utc_now().isoformat(), "content": payload.content}],
    )
    session.add(post)
    await session.flush()

    if payload.visibility != PostVisibility.PUBLIC:
        target_families = [family_id] if family_id else await list_active_family_ids(session, member_id)
        recipients: list[UUID] = []
        if target_families:
            result = await session.execute(
                select(FamilyMembership.member_id).where(
                    FamilyMembership.family_id.in_(target_families),
                    FamilyMembership.is_active.is_(True),
                )
            )
            recipients = list(result.scalars().all())
        notify(
            session,
            recipient_ids=recipients,
            notification_type=NotificationType.NEW_POST,
            actor_id=member_id,
            post_id=post.id,
        )

    await session.commit()
    await session.refresh(post)
    return await to_post_response(session, post, member_id=member_id)


async def list_posts(
    session: AsyncSession,
    *,
    member_id: UUID,
    page: int = 1,
    limit: int = 10,
    family_id: UUID | None = None,
    visibility: PostVisibility | None = None,
    author_id: UUID | None = None,
) -> PostListResponse:
    conditions = [visible_posts_clause(member_id)]
    if family_id is not None:
        conditions.append(Post.family_id == family_id)
    if visibility is not None:
        conditions.append(Post.visibility == visibility)
    if author_id is not None:
        conditions.append(Post.author_id == author_id)

    total = int((await session.execute(select(func.count(Post.id)).where(*conditions))).scalar_one())
    result = await session.execute(
        select(Post)
        .where(*conditions)
        .order_by(Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = list(result.scalars().all())
    return PostListResponse(
        posts=await _to_responses(session, posts, member_id=member_id),
        pagination=Pagination(current=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


async def get_post(session: AsyncSession, *, post_id: UUID, member_id: UUID) -> PostResponse:
    post = await get_post_or_404(session, post_id)
    await ensure_post_access(session, post=post, member_id=member_id)
    return await to_post_response(session, post, member_id=member_id)


def _require_author(post: Post, member_id: UUID, action: str) -> None:
    if post.author_id != member_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} your own posts",
        )


async def update_post(
    session: AsyncSession,
    *,
    post_id: UUID,
    member_id: UUID,
    payload: PostUpdateRequest,
) -> PostResponse:
    post = await get_post_or_404(session, post_id)
    _require_author(post, member_id, "edit")

    now = utc_now()
    history = list(post.edit_history or [])
    history.append(
        {
            "action": "edited",
            "timestamp": now.isoformat(),
            "content": payload.content or post.content,
            "previous_content": post.content,
        }
    )
    if payload.content is not None:
        post.content = payload.content
    if payload.image_urls is not None:
        post.image_urls = payload.image_urls
    if payload.video_url is not None:
        post.video_url = payload.video_url
    if payload.visibility is not None:
        post.visibility = payload.visibility
    post.edit_history = history
    post.updated_at = now
    session.add(post)
    await session.commit()
    await session.refresh(post)
    return await to_post_response(session, post, member_id=member_id)


async def delete_post(session: AsyncSession, *, post_id: UUID, member_id: UUID) -> None:
    post = await get_post_or_404(session, post_id)
    _require_author(post, member_id, "delete")

    comment_ids = select(Comment.id).where(Comment.post_id == post_id)
    await session.execute(delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
    await session.execute(
        delete(Notification).where(
            or_(Notification.related_post_id == post_id, Notification.related_comment_id.in_(comment_ids))
        )
    )
    await session.execute(delete(Comment).where(Comment.post_id == post_id))
    await session.execute(delete(PostLike).where(PostLike.post_id == post_id))
    await session.delete(post)
    await session.commit()
    logger.info("Post %s deleted by member %s", post_id, member_id)


async def toggle_like(session: AsyncSession, *, post_id: UUID, member_id: UUID) -> LikeResponse:
    post = await get_post_or_404(session, post_id)
    await ensure_post_access(session, post=post, member_id=member_id)

    result = await session.execute(
        select(PostLike).where(PostLike.post_id == post_id, PostLike.member_id == member_id)
    )
    existing = result.scalar_one_or_none()
    if existing:
        await session.delete(existing)
        post.likes_count = max(post.likes_count - 1, 0)
        session.add(post)
        await session.commit()
        return LikeResponse(liked=False, message="Post unliked")

    session.add(PostLike(post_id=post_id, member_id=member_id))
    post.likes_count += 1
    session.add(post)
    notify(
        session,
        recipient_ids=[post.author_id],
        notification_type=NotificationType.POST_LIKE,
        actor_id=member_id,
        post_id=post_id,
    )
    await session.commit()
    return LikeResponse(liked=True, message="Post liked")
