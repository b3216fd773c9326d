import json
from typing import Any

from app.services.imports.normalize import (
    canonical_field,
    clean_text,
    parse_gender,
    parse_name_list,
    parse_status,
)
from app.services.imports.types import (
    ImportFamilyData,
    ImportIssue,
    ImportMemberData,
    ParseOutcome,
    StructureCheck,
)

DEFAULT_FAMILY_NAME = "Imported Family"
STRUCTURE_SAMPLE_SIZE = 5


class JsonFormatError(ValueError):
    pass


def load_json(content: bytes) -> Any:
    try:
        return json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise JsonFormatError("Invalid JSON file format") from exc


def _canonical_items(data: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in data.items():
        field = canonical_field(key)
        # first non-empty spelling wins
        if field and field not in fields and value not in (None, "", []):
            fields[field] = value
    return fields


def parse_member_object(data: Any) -> ImportMemberData | None:
    if not isinstance(data, dict):
        return None

    fields = _canonical_items(data)
    nested = data.get("personalInfo") or data.get("personal_info") or {}
    if isinstance(nested, dict):
        for field, value in _canonical_items(nested).items():
            fields.setdefault(field, value)

    member = ImportMemberData(name=clean_text(fields.get("name")))
    member.gender = parse_gender(fields.get("gender"))
    member.status = parse_status(fields.get("status"))
    if fields.get("color"):
        member.color = clean_text(fields["color"])

    info = member.personal_info
    for field in ("bio", "birth_date", "birth_place", "occupation"):
        if field in fields:
            setattr(info, field, clean_text(fields[field]))
    social_links = fields.get("social_links")
    if isinstance(social_links, dict):
        info.social_links = dict(social_links)

    if "parent_names" in fields:
        member.parent_names = parse_name_list(fields["parent_names"])
    if "spouse_names" in fields:
        member.spouse_names = parse_name_list(fields["spouse_names"])
    if "family_name" in fields:
        member.family_name = clean_text(fields["family_name"])
    if "family_role" in fields:
        member.family_role = clean_text(fields["family_role"])
    return member


def parse_family_object(data: dict[str, Any]) -> ImportFamilyData:
    family = ImportFamilyData(
        name=clean_text(data.get("name")) or DEFAULT_FAMILY_NAME,
        description=clean_text(data.get("description")) or None,
    )
    raw_members = data.get("members")
    if isinstance(raw_members, list):
        for raw in raw_members:
            member = parse_member_object(raw)
            if member is None:
                continue
            if not member.family_name:
                member.family_name = family.name
            family.members.append(member)
    return family


def parse_json_file(content: bytes) -> ParseOutcome:
    data = load_json(content)
    outcome = ParseOutcome()

    if isinstance(data, list):
        for index, raw in enumerate(data, start=1):
            member = parse_member_object(raw)
            if member is None:
                outcome.warnings.append(
                    ImportIssue(row=index, message="Skipped entry that is not a member object", data=raw)
                )
                continue
            outcome.members.append(member)
        return outcome

    if isinstance(data, dict) and "members" in data:
        family = parse_family_object(data)
        outcome.family = family
        outcome.members = list(family.members)
        return outcome

    member = parse_member_object(data)
    if member is None:
        outcome.errors.append(
            ImportIssue(row=1, message="Failed to parse member object", data=data)
        )
        return outcome
    outcome.members.append(member)
    return outcome


def _has_name(item: dict[str, Any]) -> bool:
    return bool(item.get("name") or item.get("fullName") or item.get("full_name"))


def validate_json_structure(content: bytes) -> StructureCheck:
    try:
        data = load_json(content)
    except JsonFormatError as exc:
        return StructureCheck(is_valid=False, errors=[f"Failed to validate JSON file: {exc}"])

    errors: list[str] = []
    warnings: list[str] = []
    if isinstance(data, list):
        if not data:
            warnings.append("JSON array is empty")
        for index, item in enumerate(data[:STRUCTURE_SAMPLE_SIZE]):
            if not isinstance(item, dict):
                errors.append(f"Invalid member object at index {index}")
            elif not _has_name(item):
                errors.append(f"Member at index {index} is missing a name field")
    elif isinstance(data, dict) and "members" in data:
        if not data.get("name"):
            warnings.append("Family object is missing a name field")
        if not isinstance(data["members"], list):
            errors.append("Family members field must be an array")
        elif not data["members"]:
            warnings.append("Family has no members")
    elif isinstance(data, dict):
        if not _has_name(data):
            errors.append("Member object is missing a name field")
    else:
        errors.append("JSON content must be an object or an array of objects")
    return StructureCheck(is_valid=not errors, errors=errors, warnings=warnings)
