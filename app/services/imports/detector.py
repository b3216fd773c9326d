import json
import re

from app.services.imports.types import FileDetection, FileKind

MAX_IMPORT_FILE_BYTES = 50 * 1024 * 1024

EXCEL_MIME_TYPES = frozenset(
    {
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-excel.sheet.macroenabled.12",
        "application/vnd.ms-excel.template.macroenabled.12",
        "application/vnd.ms-excel.addin.macroenabled.12",
        "application/vnd.ms-excel.sheet.binary.macroenabled.12",
    }
)
EXCEL_EXTENSIONS = frozenset({".xlsx", ".xls", ".xlsm", ".xltx", ".xltm", ".xlam", ".xlsb"})
JSON_MIME_TYPE = "application/json"
JSON_EXTENSIONS = frozenset({".json"})

DANGEROUS_MIME_TYPES = frozenset(
    {
        "application/x-msdownload",
        "application/x-executable",
        "application/x-dosexec",
        "application/octet-stream",
    }
)
SUSPICIOUS_FILENAME_PATTERNS = (
    re.compile(r"\.\."),
    re.compile(r'[<>:"|?*]'),
    re.compile(r"^\."),
)

ZIP_SIGNATURE = b"PK\x03\x04"
OLE2_SIGNATURES = (
    b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",
    b"\x09\x08\x10\x00\x00\x06\x05\x00",
)
CONTENT_SNIFF_CONFIDENCE = 0.7
MIN_CONFIDENCE = 0.5


def file_extension(filename: str) -> str:
    name = (filename or "").lower()
    dot = name.rfind(".")
    return name[dot:] if dot != -1 else ""


def _confidence(mime_type: str, extension: str, kind: FileKind) -> float:
    score = 0.0
    if kind == "excel":
        if mime_type in EXCEL_MIME_TYPES:
            score += 0.6
        if extension in EXCEL_EXTENSIONS:
            score += 0.4
    elif kind == "json":
        if mime_type == JSON_MIME_TYPE:
            score += 0.6
        if extension in JSON_EXTENSIONS:
            score += 0.4
    return min(score, 1.0)


def sniff_content(content: bytes) -> FileKind:
    if content.startswith(ZIP_SIGNATURE):
        return "excel"
    if any(content.startswith(signature) for signature in OLE2_SIGNATURES):
        return "excel"
    if not content:
        return "unknown"

    head = content[:1000].decode("utf-8", errors="ignore").strip()
    bracketed = (head.startswith("{") and head.endswith("}")) or (
        head.startswith("[") and head.endswith("]")
    )
    if not bracketed:
        return "unknown"
    try:
        json.loads(head)
    except ValueError:
        return "unknown"
    return "json"


def detect_file_type(filename: str, mime_type: str | None, content: bytes) -> FileDetection:
    mime = (mime_type or "").lower().split(";")[0].strip()
    extension = file_extension(filename)

    if mime in EXCEL_MIME_TYPES or extension in EXCEL_EXTENSIONS:
        return FileDetection(
            type="excel",
            confidence=_confidence(mime, extension, "excel"),
            mime_type=mime,
            extension=extension,
        )
    if mime == JSON_MIME_TYPE or extension in JSON_EXTENSIONS:
        return FileDetection(
            type="json",
            confidence=_confidence(mime, extension, "json"),
            mime_type=mime,
            extension=extension,
        )

    sniffed = sniff_content(content)
    if sniffed != "unknown":
        return FileDetection(
            type=sniffed,
            confidence=CONTENT_SNIFF_CONFIDENCE,
            mime_type=mime,
            extension=extension,
        )
    return FileDetection(type="unknown", confidence=0.0, mime_type=mime, extension=extension)


def check_file_security(filename: str, mime_type: str | None, size: int) -> str | None:
    """Returns an error message, or None when the upload looks safe."""
    if size > MAX_IMPORT_FILE_BYTES:
        return "File size exceeds maximum limit of 50MB"
    if (mime_type or "").lower().split(";")[0].strip() in DANGEROUS_MIME_TYPES:
        return "File type not allowed for security reasons"
    if any(pattern.search(filename or "") for pattern in SUSPICIOUS_FILENAME_PATTERNS):
        return "Invalid filename"
    return None
