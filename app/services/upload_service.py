from __future__ import annotations

from pathlib import Path
from uuid import UUID, uuid4

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.logging import get_logger
from app.models.file import FileType, StoredFile
from app.models.member import Member, utc_now
from app.models.user import User
from app.schemas.upload import StoredFileResponse

logger = get_logger("uploads")

ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "text/plain": ".txt",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/mpeg": ".mp3",
}


def file_type_for(mime_type: str) -> FileType:
    if mime_type.startswith("image/"):
        return FileType.IMAGE
    if mime_type.startswith("video/"):
        return FileType.VIDEO
    if mime_type.startswith("audio/"):
        return FileType.AUDIO
    return FileType.DOCUMENT


def upload_root() -> Path:
    return Path(get_settings().upload_dir)


def public_url(filename: str) -> str:
    return f"{get_settings().app_url.rstrip('/')}/uploads/{filename}"


def to_file_response(stored: StoredFile) -> StoredFileResponse:
    return StoredFileResponse(
        id=str(stored.id),
        filename=stored.filename,
        original_name=stored.original_name,
        mime_type=stored.mime_type,
        size=stored.size,
        url=stored.url,
        type=FileType(stored.type).value,
        uploaded_by=str(stored.uploaded_by),
        created_at=stored.created_at,
    )


def _remove_from_disk(filename: str) -> None:
    path = upload_root() / filename
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Failed to remove uploaded file %s", path, exc_info=True)


async def save_upload(
    session: AsyncSession,
    *,
    user: User,
    filename: str | None,
    mime_type: str | None,
    content: bytes,
) -> StoredFile:
    if not filename or not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    mime_type = (mime_type or "").lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type {mime_type or 'unknown'} is not allowed",
        )
    max_bytes = get_settings().max_upload_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {get_settings().max_upload_mb}MB",
        )

    stored_name = f"{uuid4()}{ALLOWED_MIME_TYPES[mime_type]}"
    root = upload_root()
    root.mkdir(parents=True, exist_ok=True)
    (root / stored_name).write_bytes(content)

    stored = StoredFile(
        filename=stored_name,
        original_name=Path(filename).name,
        mime_type=mime_type,
        size=len(content),
        url=public_url(stored_name),
        type=file_type_for(mime_type),
        uploaded_by=user.id,
    )
    session.add(stored)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        _remove_from_disk(stored_name)
        raise
    await session.refresh(stored)
    logger.info("Stored upload %s (%d bytes) for user %s", stored_name, len(content), user.id)
    return stored


async def get_file_or_404(session: AsyncSession, file_id: UUID) -> StoredFile:
    stored = await session.get(StoredFile, file_id)
    if not stored:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return stored


async def delete_file(session: AsyncSession, *, user: User, file_id: UUID) -> None:
    stored = await get_file_or_404(session, file_id)
    if stored.uploaded_by != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own files",
        )
    await session.delete(stored)
    await session.commit()
    _remove_from_disk(stored.filename)


async def list_user_files(session: AsyncSession, *, user: User) -> list[StoredFile]:
    result = await session.execute(
        select(StoredFile)
        .where(StoredFile.uploaded_by == user.id)
        .order_by(StoredFile.created_at.desc())
    )
    return list(result.scalars().all())


async def save_profile_image(
    session: AsyncSession,
    *,
    user: User,
    filename: str | None,
    mime_type: str | None,
    content: bytes,
) -> StoredFile:
    """Stores the image and points the member's personal_info at it, replacing the previous one."""
    if not (mime_type or "").lower().startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Profile image must be an image file",
        )
    member = await session.get(Member, user.member_id) if user.member_id else None
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    stored = await save_upload(session, user=user, filename=filename, mime_type=mime_type, content=content)

    info = dict(member.personal_info or {})
    previous_id = info.get("profile_image_id")
    info["profile_image"] = stored.url
    info["profile_image_id"] = str(stored.id)
    member.personal_info = info
    member.updated_at = utc_now()
    session.add(member)
    await session.commit()

    if previous_id:
        try:
            previous = await session.get(StoredFile, UUID(str(previous_id)))
        except ValueError:
            previous = None
        if previous and previous.uploaded_by == user.id:
            await session.delete(previous)
            await session.commit()
            _remove_from_disk(previous.filename)
    return stored
