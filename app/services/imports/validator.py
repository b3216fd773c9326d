import re
from datetime import date, datetime

from app.models.member import Gender, MemberStatus
from app.services.imports.types import (
    ImportFamilyData,
    ImportIssue,
    ImportMemberData,
    ImportPersonalInfo,
    ValidationOutcome,
)

MAX_NAME_LENGTH = 100
MAX_BIO_LENGTH = 1000
MAX_PLACE_LENGTH = 100
MAX_SOCIAL_LINK_LENGTH = 500
MAX_FAMILY_DESCRIPTION_LENGTH = 500
MAX_PARENTS = 10
MAX_SPOUSES = 5
MAX_AGE_YEARS = 150
FAMILY_ROW_STRIDE = 1000

IMPORT_FAMILY_ROLES = ("ADMIN", "MEMBER", "HEAD", "VIEWER")
HEX_COLOR = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)
URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)

_GENDERS = [gender.value for gender in Gender]
_STATUSES = [member_status.value for member_status in MemberStatus]


def parse_birth_date(value: str) -> date | None:
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _validate_personal_info(
    info: ImportPersonalInfo,
    row: int,
    errors: list[ImportIssue],
    warnings: list[ImportIssue],
    today: date,
) -> bool:
    valid = True
    if info.bio and len(info.bio) > MAX_BIO_LENGTH:
        errors.append(ImportIssue(row=row, field="bio", message="Biography must be less than 1000 characters"))
        valid = False

    if info.birth_date:
        born = parse_birth_date(info.birth_date)
        if born is None:
            errors.append(
                ImportIssue(
                    row=row,
                    field="birth_date",
                    message="Birth date must be a valid date (YYYY-MM-DD format recommended)",
                )
            )
            valid = False
        elif born > today:
            errors.append(ImportIssue(row=row, field="birth_date", message="Birth date cannot be in the future"))
            valid = False
        elif today.year - born.year > MAX_AGE_YEARS:
            errors.append(
                ImportIssue(
                    row=row,
                    field="birth_date",
                    message=f"Birth date is more than {MAX_AGE_YEARS} years ago",
                )
            )
            valid = False

    if info.birth_place and len(info.birth_place) > MAX_PLACE_LENGTH:
        warnings.append(
            ImportIssue(row=row, field="birth_place", message="Birth place is quite long, consider shortening it")
        )
    if info.occupation and len(info.occupation) > MAX_PLACE_LENGTH:
        warnings.append(
            ImportIssue(row=row, field="occupation", message="Occupation is quite long, consider shortening it")
        )

    for platform, url in info.social_links.items():
        field = f"social_links.{platform}"
        if not isinstance(url, str):
            errors.append(ImportIssue(row=row, field=field, message=f"Social link for {platform} must be a string"))
            valid = False
        elif len(url) > MAX_SOCIAL_LINK_LENGTH:
            errors.append(
                ImportIssue(
                    row=row,
                    field=field,
                    message=f"Social link for {platform} is too long (max 500 characters)",
                )
            )
            valid = False
        elif not URL_PATTERN.match(url):
            warnings.append(
                ImportIssue(
                    row=row,
                    field=field,
                    message=f"Social link for {platform} doesn't appear to be a valid URL",
                )
            )
    return valid


def validate_member(
    member: ImportMemberData,
    row: int,
    outcome: ValidationOutcome,
    *,
    today: date,
) -> None:
    errors = outcome.errors
    warnings = outcome.warnings
    valid = True
    name = member.name.strip()

    if not name:
        errors.append(ImportIssue(row=row, field="name", message="Member name is required"))
        valid = False
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(ImportIssue(row=row, field="name", message="Member name must be less than 100 characters"))
        valid = False

    if member.gender and member.gender not in _GENDERS:
        errors.append(
            ImportIssue(
                row=row,
                field="gender",
                message=f"Invalid gender value: {member.gender}. Must be one of: {', '.join(_GENDERS)}",
            )
        )
        valid = False

    if member.status and member.status not in _STATUSES:
        errors.append(
            ImportIssue(
                row=row,
                field="status",
                message=f"Invalid status value: {member.status}. Must be one of: {', '.join(_STATUSES)}",
            )
        )
        valid = False

    if member.color and not HEX_COLOR.match(member.color.strip()):
        errors.append(
            ImportIssue(row=row, field="color", message="Color must be a valid hex color code (e.g., #FF5733)")
        )
        valid = False

    if not _validate_personal_info(member.personal_info, row, errors, warnings, today):
        valid = False

    if len(member.parent_names) > MAX_PARENTS:
        warnings.append(
            ImportIssue(
                row=row,
                field="parent_names",
                message="Member has many parents listed, please verify this is correct",
            )
        )
    if len(member.spouse_names) > MAX_SPOUSES:
        warnings.append(
            ImportIssue(
                row=row,
                field="spouse_names",
                message="Member has many spouses listed, please verify this is correct",
            )
        )

    if member.family_role and member.family_role.strip().upper() not in IMPORT_FAMILY_ROLES:
        errors.append(
            ImportIssue(
                row=row,
                field="family_role",
                message=(
                    f"Invalid family role: {member.family_role}. "
                    f"Must be one of: {', '.join(IMPORT_FAMILY_ROLES)}"
                ),
            )
        )
        valid = False

    if name and any(existing.name.strip().lower() == name.lower() for existing in outcome.valid_data):
        warnings.append(
            ImportIssue(
                row=row,
                field="name",
                message=f"Duplicate member name found: {name}. This may cause confusion.",
            )
        )

    if valid:
        outcome.valid_data.append(member)


def validate_family(
    family: ImportFamilyData,
    family_index: int,
    outcome: ValidationOutcome,
    *,
    today: date,
) -> None:
    row = family_index + 1
    name = family.name.strip()
    if not name:
        outcome.errors.append(ImportIssue(row=row, field="family_name", message="Family name is required"))
    elif len(name) > MAX_NAME_LENGTH:
        outcome.errors.append(
            ImportIssue(row=row, field="family_name", message="Family name must be less than 100 characters")
        )

    if family.description and len(family.description) > MAX_FAMILY_DESCRIPTION_LENGTH:
        outcome.warnings.append(
            ImportIssue(
                row=row,
                field="family_description",
                message="Family description is quite long, consider shortening it",
            )
        )

    if not family.members:
        outcome.errors.append(ImportIssue(row=row, message="Family must have at least one member"))
        return

    for member_index, member in enumerate(family.members):
        validate_member(
            member,
            family_index * FAMILY_ROW_STRIDE + member_index + 1,
            outcome,
            today=today,
        )


def validate_relationships(members: list[ImportMemberData]) -> list[ImportIssue]:
    names = {member.name.strip().lower() for member in members}
    warnings: list[ImportIssue] = []
    for row, member in enumerate(members, start=1):
        for parent_name in member.parent_names:
            if parent_name.strip().lower() not in names:
                warnings.append(
                    ImportIssue(
                        row=row,
                        field="parent_names",
                        message=f'Parent "{parent_name}" not found in import data',
                    )
                )
        for spouse_name in member.spouse_names:
            if spouse_name.strip().lower() not in names:
                warnings.append(
                    ImportIssue(
                        row=row,
                        field="spouse_names",
                        message=f'Spouse "{spouse_name}" not found in import data',
                    )
                )
    return warnings


def validate_import_data(
    members: list[ImportMemberData],
    family: ImportFamilyData | None = None,
    *,
    today: date | None = None,
) -> ValidationOutcome:
    today = today or date.today()
    outcome = ValidationOutcome(is_valid=True)
    if family is not None:
        validate_family(family, 0, outcome, today=today)
    else:
        for row, member in enumerate(members, start=1):
            validate_member(member, row, outcome, today=today)
    outcome.warnings.extend(validate_relationships(outcome.valid_data))
    outcome.is_valid = not outcome.errors
    return outcome


def sanitize_member(member: ImportMemberData) -> ImportMemberData:
    info = member.personal_info
    return ImportMemberData(
        name=member.name.strip(),
        gender=member.gender,
        status=member.status,
        color=member.color.strip() if member.color else None,
        personal_info=ImportPersonalInfo(
            bio=info.bio.strip() if info.bio else None,
            birth_date=info.birth_date.strip() if info.birth_date else None,
            birth_place=info.birth_place.strip() if info.birth_place else None,
            occupation=info.occupation.strip() if info.occupation else None,
            social_links={
                str(key).strip(): value.strip() if isinstance(value, str) else value
                for key, value in info.social_links.items()
                if str(key).strip() and (not isinstance(value, str) or value.strip())
            },
        ),
        parent_names=[name.strip() for name in member.parent_names if name.strip()],
        spouse_names=[name.strip() for name in member.spouse_names if name.strip()],
        family_name=member.family_name.strip() if member.family_name else None,
        family_role=member.family_role.strip() if member.family_role else None,
    )


def sanitize_import_data(members: list[ImportMemberData]) -> list[ImportMemberData]:
    return [sanitize_member(member) for member in members]
