from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID, uuid4

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import get_logger
from app.models.family import Family, FamilyRole, MembershipType
from app.models.member import Gender, Member, MemberStatus, utc_now
from app.services.imports.detector import (
    MIN_CONFIDENCE,
    check_file_security,
    detect_file_type,
)
from app.services.imports.excel_parser import (
    ExcelFormatError,
    parse_excel_file,
    validate_excel_structure,
)
from app.services.imports.json_parser import (
    JsonFormatError,
    parse_json_file,
    validate_json_structure,
)
from app.services.imports.types import (
    FileValidation,
    ImportIssue,
    ImportMemberData,
    ImportProgress,
    ImportResult,
    ParseOutcome,
)
from app.services.imports.validator import sanitize_import_data, validate_import_data
from app.services.membership_service import create_membership
from app.services.permission_service import get_membership
from app.services.relationship_service import link_parent, link_spouses

logger = get_logger("imports")

PROGRESS_RETENTION = timedelta(hours=24)
UNSUPPORTED_FILE_MESSAGE = "Unable to determine file type or file type not supported"

_active_imports: dict[str, ImportProgress] = {}


def validate_file(filename: str, mime_type: str | None, content: bytes) -> FileValidation:
    security_error = check_file_security(filename, mime_type, len(content))
    if security_error:
        return FileValidation(is_valid=False, file_type="unknown", errors=[security_error])

    detection = detect_file_type(filename, mime_type, content)
    if detection.type == "unknown" or detection.confidence < MIN_CONFIDENCE:
        return FileValidation(is_valid=False, file_type="unknown", errors=[UNSUPPORTED_FILE_MESSAGE])

    if detection.type == "excel":
        structure = validate_excel_structure(content)
    else:
        structure = validate_json_structure(content)
    return FileValidation(
        is_valid=structure.is_valid,
        file_type=detection.type,
        errors=structure.errors,
        warnings=structure.warnings,
    )


def parse_file(filename: str, mime_type: str | None, content: bytes) -> ParseOutcome:
    detection = detect_file_type(filename, mime_type, content)
    try:
        if detection.type == "excel":
            return parse_excel_file(content)
        if detection.type == "json":
            return parse_json_file(content)
    except (ExcelFormatError, JsonFormatError) as exc:
        return ParseOutcome(errors=[ImportIssue(row=0, message=str(exc))])
    return ParseOutcome(errors=[ImportIssue(row=0, message="Unsupported file type")])


def get_progress(import_id: str) -> ImportProgress:
    progress = _active_imports.get(import_id)
    if not progress:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Import not found or has expired",
        )
    return progress


def cleanup_old_imports(now: datetime | None = None) -> int:
    cutoff = (now or utc_now()) - PROGRESS_RETENTION
    expired = [
        import_id
        for import_id, progress in _active_imports.items()
        if progress.end_time and progress.end_time < cutoff
    ]
    for import_id in expired:
        del _active_imports[import_id]
    return len(expired)


def start_import(*, import_name: str | None = None) -> ImportProgress:
    cleanup_old_imports()
    progress = ImportProgress(
        import_id=str(uuid4()),
        import_name=import_name,
        start_time=utc_now(),
    )
    _active_imports[progress.import_id] = progress
    logger.info("Import %s queued", progress.import_id)
    return progress


def rollback_import(import_id: str) -> ImportProgress:
    progress = _active_imports.get(import_id)
    if not progress or progress.status != "completed":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot rollback this import. It may not exist, be incomplete, or already rolled back.",
        )
    # Only the status changes; committed rows stay in place.
    progress.status = "rolled_back"
    logger.info("Import %s marked as rolled back", import_id)
    return progress


def _fail(progress: ImportProgress, errors: list[ImportIssue]) -> None:
    progress.status = "failed"
    progress.errors = errors
    progress.end_time = utc_now()
    logger.warning("Import %s failed with %d error(s)", progress.import_id, len(errors))


def _map_role(role: str | None) -> FamilyRole:
    value = (role or "").strip().upper()
    if value in (FamilyRole.ADMIN.value, FamilyRole.HEAD.value, FamilyRole.VIEWER.value):
        return FamilyRole(value)
    return FamilyRole.MEMBER


def _new_member(data: ImportMemberData) -> Member:
    return Member(
        name=data.name,
        gender=Gender(data.gender) if data.gender else None,
        status=MemberStatus(data.status) if data.status else MemberStatus.ACTIVE,
        color=data.color,
        personal_info=data.personal_info.model_dump(exclude_none=True),
    )


async def perform_import(
    session: AsyncSession,
    *,
    members: list[ImportMemberData],
    importer_member_id: UUID,
    family_id: UUID | None = None,
    import_id: str | None = None,
) -> ImportResult:
    """Create members, family, memberships and relationships as one unit of work."""
    result = ImportResult(
        success=False,
        total_records=len(members),
        successful_imports=0,
        failed_imports=0,
        import_id=import_id or str(uuid4()),
    )
    member_ids: dict[str, UUID] = {}

    try:
        for row, data in enumerate(members, start=1):
            try:
                member = _new_member(data)
            except ValueError as exc:
                result.failed_imports += 1
                result.errors.append(
                    ImportIssue(
                        row=row,
                        message=f"Failed to create member {data.name}: {exc}",
                        data=data.model_dump(),
                    )
                )
                continue
            session.add(member)
            member_ids[data.name.lower()] = member.id
            result.successful_imports += 1
        await session.flush()

        target_family_id = family_id
        if target_family_id is None:
            family_name = next((data.family_name for data in members if data.family_name), None)
            if family_name:
                family = Family(name=family_name, creator_id=importer_member_id)
                session.add(family)
                await session.flush()
                target_family_id = family.id
                await create_membership(
                    session,
                    member_id=importer_member_id,
                    family_id=family.id,
                    role=FamilyRole.ADMIN,
                    granted_by=importer_member_id,
                )

        if target_family_id is not None:
            for row, data in enumerate(members, start=1):
                member_id = member_ids.get(data.name.lower())
                if not member_id:
                    continue
                existing = await get_membership(
                    session, member_id=member_id, family_id=target_family_id, active_only=False
                )
                if existing:
                    continue
                await create_membership(
                    session,
                    member_id=member_id,
                    family_id=target_family_id,
                    role=_map_role(data.family_role),
                    membership_type=MembershipType.MAIN,
                    granted_by=importer_member_id,
                )

        for row, data in enumerate(members, start=1):
            member_id = member_ids.get(data.name.lower())
            if not member_id:
                continue
            for parent_name in data.parent_names:
                parent_id = member_ids.get(parent_name.lower())
                if parent_id is None:
                    result.warnings.append(
                        ImportIssue(
                            row=row,
                            field="parent_names",
                            message=f'Parent "{parent_name}" could not be resolved',
                        )
                    )
                    continue
                if parent_id != member_id:
                    await link_parent(session, parent_id=parent_id, child_id=member_id)
            for spouse_name in data.spouse_names:
                spouse_id = member_ids.get(spouse_name.lower())
                if spouse_id is None:
                    result.warnings.append(
                        ImportIssue(
                            row=row,
                            field="spouse_names",
                            message=f'Spouse "{spouse_name}" could not be resolved',
                        )
                    )
                    continue
                if spouse_id != member_id:
                    await link_spouses(session, member_id=member_id, spouse_id=spouse_id)

        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise

    result.family_id = str(target_family_id) if target_family_id else None
    result.success = result.failed_imports == 0
    return result


async def process_import(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    import_id: str,
    filename: str,
    mime_type: str | None,
    content: bytes,
    importer_member_id: UUID,
    family_id: UUID | None = None,
) -> None:
    progress = _active_imports.get(import_id)
    if not progress:
        return

    try:
        progress.status = "processing"
        progress.current_step = "Parsing file"
        progress.progress = 10
        parsed = parse_file(filename, mime_type, content)
        progress.warnings.extend(parsed.warnings)
        if parsed.errors:
            _fail(progress, parsed.errors)
            return
        progress.total_records = len(parsed.members)

        progress.current_step = "Validating data"
        progress.progress = 30
        validation = validate_import_data(parsed.members, parsed.family)
        progress.warnings.extend(validation.warnings)
        if not validation.is_valid:
            _fail(progress, validation.errors)
            return
        records = sanitize_import_data(validation.valid_data)

        progress.current_step = "Importing data"
        progress.progress = 50
        async with session_factory() as session:
            result = await perform_import(
                session,
                members=records,
                importer_member_id=importer_member_id,
                family_id=family_id,
                import_id=import_id,
            )

        result.warnings = progress.warnings + result.warnings
        progress.result = result
        progress.warnings = result.warnings
        progress.errors = result.errors
        progress.processed_records = result.successful_imports
        progress.status = "completed"
        progress.current_step = "Import completed"
        progress.progress = 100
        progress.end_time = utc_now()
        logger.info(
            "Import %s completed: %d imported, %d failed",
            import_id,
            result.successful_imports,
            result.failed_imports,
        )
    except Exception as exc:
        logger.exception("Import %s failed", import_id)
        progress.status = "failed"
        progress.errors.append(ImportIssue(row=0, message=f"Import processing failed: {exc}"))
        progress.end_time = utc_now()
