from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.core.db import get_session
from app.models.user import User
from app.schemas.tree import (
    FamilyTreeResponse,
    GenerationBreakdownResponse,
    MemberRelationshipsResponse,
    TreeExportRequest,
    TreeStatisticsResponse,
)
from app.services.tree import service as tree_service

router = APIRouter(prefix="/tree", tags=["tree"])


@router.post("/export")
async def export_tree(
    payload: TreeExportRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    content, media_type, filename = await tree_service.export_family_tree(
        session,
        user=current_user,
        request=payload,
        family_id=parse_uuid(payload.family_id, "family_id"),
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{family_id}", response_model=FamilyTreeResponse)
async def get_family_tree(
    family_id: str,
    center_member_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FamilyTreeResponse:
    return await tree_service.get_family_tree(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
        center_member_id=parse_uuid(center_member_id, "center_member_id") if center_member_id else None,
    )


@router.get("/{family_id}/statistics", response_model=TreeStatisticsResponse)
async def get_tree_statistics(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> TreeStatisticsResponse:
    return await tree_service.get_tree_statistics(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )


@router.get("/{family_id}/generations", response_model=GenerationBreakdownResponse)
async def get_generation_breakdown(
    family_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> GenerationBreakdownResponse:
    generations = await tree_service.get_generation_breakdown(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
    )
    return GenerationBreakdownResponse(generations=generations)


@router.get("/{family_id}/relationships/{member_id}", response_model=MemberRelationshipsResponse)
async def get_member_relationships(
    family_id: str,
    member_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MemberRelationshipsResponse:
    return await tree_service.get_member_relationships(
        session,
        user=current_user,
        family_id=parse_uuid(family_id, "family_id"),
        member_id=parse_uuid(member_id, "member_id"),
    )
