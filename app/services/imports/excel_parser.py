import io
import zipfile
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.services.imports.normalize import (
    FIELD_ALIASES,
    canonical_field,
    clean_text,
    is_social_header,
    normalize_header,
    parse_gender,
    parse_name_list,
    parse_status,
)
from app.services.imports.types import (
    ImportIssue,
    ImportMemberData,
    ParseOutcome,
    StructureCheck,
)


class ExcelFormatError(ValueError):
    pass


def _read_rows(content: bytes) -> list[tuple[Any, ...]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ExcelFormatError("Invalid Excel file format") from exc
    try:
        if not workbook.worksheets:
            raise ExcelFormatError("No worksheets found in Excel file")
        return [tuple(row) for row in workbook.worksheets[0].iter_rows(values_only=True)]
    finally:
        workbook.close()


def _headers(rows: list[tuple[Any, ...]]) -> list[str]:
    if not rows:
        return []
    return [clean_text(cell) for cell in rows[0]]


def _row_is_empty(row: tuple[Any, ...]) -> bool:
    return all(clean_text(cell) == "" for cell in row)


def apply_field(member: ImportMemberData, header: str, value: Any) -> None:
    text = clean_text(value)
    field = canonical_field(header)
    info = member.personal_info

    if field == "name":
        member.name = text
    elif field == "gender":
        member.gender = parse_gender(text)
    elif field == "status":
        member.status = parse_status(text)
    elif field == "color":
        member.color = text
    elif field in {"bio", "birth_date", "birth_place", "occupation"}:
        setattr(info, field, text)
    elif field == "parent_names":
        member.parent_names = parse_name_list(value)
    elif field == "spouse_names":
        member.spouse_names = parse_name_list(value)
    elif field == "family_name":
        member.family_name = text
    elif field == "family_role":
        member.family_role = text
    elif is_social_header(header):
        info.social_links[normalize_header(header)] = text


def parse_excel_file(content: bytes) -> ParseOutcome:
    outcome = ParseOutcome()
    rows = _read_rows(content)
    headers = _headers(rows)

    if not any(headers):
        outcome.errors.append(ImportIssue(row=1, message="No headers found in Excel file"))
        return outcome
    if not any(canonical_field(header) == "name" for header in headers if header):
        outcome.errors.append(ImportIssue(row=1, message="Missing required headers: name"))
        return outcome

    for row_number, row in enumerate(rows[1:], start=2):
        if _row_is_empty(row):
            continue
        member = ImportMemberData()
        for header, value in zip(headers, row):
            if not header or clean_text(value) == "":
                continue
            apply_field(member, header, value)
        outcome.members.append(member)
    return outcome


def validate_excel_structure(content: bytes) -> StructureCheck:
    try:
        rows = _read_rows(content)
    except ExcelFormatError as exc:
        return StructureCheck(is_valid=False, errors=[f"Failed to validate Excel file: {exc}"])

    if len(rows) < 2:
        return StructureCheck(
            is_valid=False,
            errors=["Excel file must contain at least a header row and one data row"],
        )
    headers = [normalize_header(header) for header in _headers(rows) if header]
    if not headers:
        return StructureCheck(is_valid=False, errors=["No column headers found in the first row"])
    if not any(header in FIELD_ALIASES["name"] for header in headers):
        return StructureCheck(is_valid=False, errors=['Excel file must contain a "name" column'])

    warnings = []
    if all(_row_is_empty(row) for row in rows[1:]):
        warnings.append("No data rows found in the Excel file")
    return StructureCheck(is_valid=True, warnings=warnings)
