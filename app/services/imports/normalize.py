import re
from datetime import date, datetime
from typing import Any

from app.models.member import Gender, MemberStatus

NAME_LIST_SPLIT = re.compile(r"[;,]")
SOCIAL_PLATFORMS = frozenset({"facebook", "twitter", "instagram", "linkedin", "website"})

GENDER_ALIASES = {
    "male": Gender.MALE,
    "m": Gender.MALE,
    "man": Gender.MALE,
    "boy": Gender.MALE,
    "female": Gender.FEMALE,
    "f": Gender.FEMALE,
    "woman": Gender.FEMALE,
    "girl": Gender.FEMALE,
    "other": Gender.OTHER,
    "non-binary": Gender.OTHER,
    "prefer not to say": Gender.OTHER,
    "prefer_not_to_say": Gender.PREFER_NOT_TO_SAY,
}

STATUS_ALIASES = {
    "active": MemberStatus.ACTIVE,
    "living": MemberStatus.ACTIVE,
    "alive": MemberStatus.ACTIVE,
    "inactive": MemberStatus.INACTIVE,
    "deceased": MemberStatus.DECEASED,
    "dead": MemberStatus.DECEASED,
    "archived": MemberStatus.ARCHIVED,
}

# canonical field -> accepted header spellings (already lower/underscored)
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "full_name", "fullname"),
    "gender": ("gender", "sex"),
    "status": ("status",),
    "color": ("color", "member_color"),
    "bio": ("bio", "biography"),
    "birth_date": ("birth_date", "birthdate", "date_of_birth", "dob"),
    "birth_place": ("birth_place", "birthplace", "place_of_birth"),
    "occupation": ("occupation", "job", "profession"),
    "parent_names": ("parent_names", "parents"),
    "spouse_names": ("spouse_names", "spouses"),
    "family_name": ("family_name", "family"),
    "family_role": ("family_role", "role"),
    "social_links": ("social_links", "sociallinks"),
}
ALIAS_TO_FIELD = {alias: field for field, aliases in FIELD_ALIASES.items() for alias in aliases}


def normalize_header(value: Any) -> str:
    text = str(value or "").strip()
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text).lower()
    return re.sub(r"[\s\-]+", "_", text)


def canonical_field(header: str) -> str | None:
    return ALIAS_TO_FIELD.get(normalize_header(header))


def is_social_header(header: str) -> bool:
    key = normalize_header(header)
    return "social" in key or "link" in key or key in SOCIAL_PLATFORMS


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_gender(value: Any) -> str | None:
    text = clean_text(value)
    if not text:
        return None
    known = GENDER_ALIASES.get(text.lower())
    if known:
        return known.value
    return text.upper()


def parse_status(value: Any) -> str | None:
    text = clean_text(value)
    if not text:
        return None
    known = STATUS_ALIASES.get(text.lower())
    if known:
        return known.value
    return text.upper()


def parse_name_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [clean_text(item) for item in value if clean_text(item)]
    return [part.strip() for part in NAME_LIST_SPLIT.split(clean_text(value)) if part.strip()]
