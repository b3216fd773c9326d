from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, parse_uuid
from app.core.db import get_session
from app.models.user import User
from app.schemas.family import MessageResponse
from app.schemas.upload import StoredFileResponse, UploadResponse
from app.services import upload_service

router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UploadResponse:
    stored = await upload_service.save_upload(
        session,
        user=current_user,
        filename=file.filename,
        mime_type=file.content_type,
        content=await file.read(),
    )
    return UploadResponse(
        file=upload_service.to_file_response(stored),
        url=stored.url,
        message="File uploaded successfully",
    )


@router.post("/profile-image", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_profile_image(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> UploadResponse:
    stored = await upload_service.save_profile_image(
        session,
        user=current_user,
        filename=file.filename,
        mime_type=file.content_type,
        content=await file.read(),
    )
    return UploadResponse(
        file=upload_service.to_file_response(stored),
        url=stored.url,
        message="Profile image uploaded successfully",
    )


@router.get("/user/files", response_model=list[StoredFileResponse])
async def list_my_files(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[StoredFileResponse]:
    files = await upload_service.list_user_files(session, user=current_user)
    return [upload_service.to_file_response(stored) for stored in files]


@router.get("/{file_id}", response_model=StoredFileResponse)
async def get_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> StoredFileResponse:
    stored = await upload_service.get_file_or_404(session, parse_uuid(file_id, "file_id"))
    return upload_service.to_file_response(stored)


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await upload_service.delete_file(session, user=current_user, file_id=parse_uuid(file_id, "file_id"))
    return MessageResponse(message="File deleted successfully")
