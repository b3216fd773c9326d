from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_current_user, parse_uuid
from app.api.permissions import require_permissions
from app.core.db import get_session_factory
from app.models.user import User
from app.schemas.family import MessageResponse
from app.schemas.imports import ImportProgressResponse, ImportStartResponse, ImportValidateResponse
from app.services.imports import service as import_service
from app.services.imports import templates
from app.services.membership_service import require_member_id
from app.services.permission_service import FamilyPermission

router = APIRouter(prefix="/import", tags=["import"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


async def _read_upload(file: UploadFile | None) -> bytes:
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    return content


@router.post("/validate", response_model=ImportValidateResponse)
async def validate_import_file(
    file: UploadFile | None = File(default=None),
    family_id: str | None = Form(default=None),
    current_user: User = Depends(get_current_user),
) -> ImportValidateResponse:
    content = await _read_upload(file)
    validation = import_service.validate_file(file.filename, file.content_type, content)
    return ImportValidateResponse(
        success=validation.is_valid,
        file_type=validation.file_type,
        errors=validation.errors,
        warnings=validation.warnings,
    )


@router.post("/start", response_model=ImportStartResponse)
async def start_import(
    background_tasks: BackgroundTasks,
    file: UploadFile | None = File(default=None),
    family_id: str | None = Form(default=None),
    import_name: str | None = Form(default=None),
    current_user: User = Depends(require_permissions(FamilyPermission.ADD_MEMBERS)),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ImportStartResponse:
    content = await _read_upload(file)
    importer_member_id = require_member_id(current_user)
    target_family_id = parse_uuid(family_id, "family_id") if family_id else None

    progress = import_service.start_import(import_name=import_name)
    background_tasks.add_task(
        import_service.process_import,
        session_factory,
        import_id=progress.import_id,
        filename=file.filename,
        mime_type=file.content_type,
        content=content,
        importer_member_id=importer_member_id,
        family_id=target_family_id,
    )
    return ImportStartResponse(
        import_id=progress.import_id,
        message="Import started successfully. Use the import ID to check progress.",
    )


@router.get("/progress/{import_id}", response_model=ImportProgressResponse)
async def get_import_progress(
    import_id: str,
    current_user: User = Depends(get_current_user),
) -> ImportProgressResponse:
    return ImportProgressResponse(progress=import_service.get_progress(import_id))


@router.delete("/rollback/{import_id}", response_model=MessageResponse)
async def rollback_import(
    import_id: str,
    current_user: User = Depends(require_permissions(FamilyPermission.MANAGE_FAMILY_SETTINGS)),
) -> MessageResponse:
    import_service.rollback_import(import_id)
    return MessageResponse(message="Import rolled back successfully")


@router.get("/template/json")
async def download_json_template(
    sample_data: bool = Query(default=True),
    size: templates.TemplateSize = Query(default="medium"),
    current_user: User = Depends(get_current_user),
) -> Response:
    filename = templates.template_filename("json", size, sample_data)
    return Response(
        content=templates.generate_json_template(include_sample_data=sample_data, size=size),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/template/excel")
async def download_excel_template(
    sample_data: bool = Query(default=True),
    size: templates.TemplateSize = Query(default="medium"),
    current_user: User = Depends(get_current_user),
) -> Response:
    filename = templates.template_filename("excel", size, sample_data)
    return Response(
        content=templates.generate_excel_template(include_sample_data=sample_data, size=size),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
