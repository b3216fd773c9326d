from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.core.db import get_session
from app.core.logging import get_logger
from app.models.user import User
from app.schemas.export import FamilyDataExportRequest, FolderTreeDataResponse
from app.services import export_service

router = APIRouter(prefix="/export", tags=["export"])
logger = get_logger("export")


@router.get("/folder-tree-data", response_model=FolderTreeDataResponse)
async def get_folder_tree_data(
    family_id: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FolderTreeDataResponse:
    return await export_service.get_folder_tree_data(
        session,
        user=current_user,
        family_ids=[parse_uuid(family_id, "family_id")] if family_id else None,
    )


@router.post("/family-data")
async def export_family_data(
    payload: FamilyDataExportRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    content, media_type, filename = await export_service.export_family_data(
        session,
        user=current_user,
        request=payload,
    )
    logger.info("Exported %s (%s) for user %s", filename, payload.scope, current_user.id)
    return Response(
        content=content,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Access-Control-Expose-Headers": "Content-Disposition",
        },
    )
