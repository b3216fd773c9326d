from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.core.db import get_session
from app.models.post import PostVisibility
from app.models.user import User
from app.schemas.comment import CommentCreateRequest, CommentResponse, CommentUpdateRequest
from app.schemas.family import MessageResponse
from app.schemas.post import LikeResponse, PostCreateRequest, PostListResponse, PostResponse, PostUpdateRequest
from app.services import comment_service, post_service
from app.services.membership_service import require_member_id

router = APIRouter(prefix="/posts", tags=["posts"])
comments_router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> PostResponse:
    return await post_service.create_post(session, member_id=require_member_id(current_user), payload=payload)


@router.get("", response_model=PostListResponse)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    family_id: str | None = Query(default=None),
    visibility: PostVisibility | None = Query(default=None),
    author_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> PostListResponse:
    return await post_service.list_posts(
        session,
        member_id=require_member_id(current_user),
        page=page,
        limit=limit,
        family_id=parse_uuid(family_id, "family_id") if family_id else None,
        visibility=visibility,
        author_id=parse_uuid(author_id, "author_id") if author_id else None,
    )


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> PostResponse:
    return await post_service.get_post(
        session,
        post_id=parse_uuid(post_id, "post_id"),
        member_id=require_member_id(current_user),
    )


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    payload: PostUpdateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> PostResponse:
    return await post_service.update_post(
        session,
        post_id=parse_uuid(post_id, "post_id"),
        member_id=require_member_id(current_user),
        payload=payload,
    )


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await post_service.delete_post(
        session,
        post_id=parse_uuid(post_id, "post_id"),
        member_id=require_member_id(current_user),
    )
    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> LikeResponse:
    return await post_service.toggle_like(
        session,
        post_id=parse_uuid(post_id, "post_id"),
        member_id=require_member_id(current_user),
    )


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    payload: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CommentResponse:
    return await comment_service.create_comment(
        session,
        post_id=parse_uuid(post_id, "post_id"),
        member_id=require_member_id(current_user),
        payload=payload,
    )


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    post_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    include_replies: bool = Query(default=True),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[CommentResponse]:
    return await comment_service.list_comments(
        session,
        post_id=parse_uuid(post_id, "post_id"),
        member_id=require_member_id(current_user),
        page=page,
        limit=limit,
        include_replies=include_replies,
    )


@comments_router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    payload: CommentUpdateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CommentResponse:
    return await comment_service.update_comment(
        session,
        comment_id=parse_uuid(comment_id, "comment_id"),
        member_id=require_member_id(current_user),
        payload=payload,
    )


@comments_router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await comment_service.delete_comment(
        session,
        comment_id=parse_uuid(comment_id, "comment_id"),
        member_id=require_member_id(current_user),
    )
    return MessageResponse(message="Comment deleted successfully")


@comments_router.post("/{comment_id}/like", response_model=LikeResponse)
async def like_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> LikeResponse:
    return await comment_service.toggle_like(
        session,
        comment_id=parse_uuid(comment_id, "comment_id"),
        member_id=require_member_id(current_user),
    )
