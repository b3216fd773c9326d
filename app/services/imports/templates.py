import io
import json
from typing import Any, Literal

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.worksheet.datavalidation import DataValidation

TemplateSize = Literal["small", "medium", "large"]

TEMPLATE_HEADERS = [
    "name",
    "gender",
    "status",
    "color",
    "bio",
    "birth_date",
    "birth_place",
    "occupation",
    "parent_names",
    "spouse_names",
    "family_name",
    "family_role",
    "facebook",
    "linkedin",
    "website",
]
COLUMN_WIDTHS = {"name": 25, "bio": 40, "parent_names": 30, "spouse_names": 30}
VALIDATED_ROWS = 1000

INSTRUCTIONS = [
    ("name", "Yes", "Full name of the family member", "John Smith"),
    ("gender", "No", "MALE, FEMALE, OTHER or PREFER_NOT_TO_SAY", "MALE"),
    ("status", "No", "ACTIVE, INACTIVE, DECEASED or ARCHIVED", "ACTIVE"),
    ("color", "No", "Hex colour used on the tree", "#3B82F6"),
    ("bio", "No", "Short biography, up to 1000 characters", "Retired librarian"),
    ("birth_date", "No", "Date of birth, YYYY-MM-DD", "1950-04-12"),
    ("birth_place", "No", "Place of birth", "Boston, MA"),
    ("occupation", "No", "Occupation", "Engineer"),
    ("parent_names", "No", "Parents in this file, separated by commas", "John Smith, Mary Smith"),
    ("spouse_names", "No", "Spouses in this file, separated by commas", "Jane Smith"),
    ("family_name", "No", "Family to create when none is selected", "Smith Family"),
    ("family_role", "No", "ADMIN, MEMBER, HEAD or VIEWER", "MEMBER"),
    ("facebook / linkedin / website", "No", "Profile links, full URLs", "https://example.com"),
]

_FAMILY_NAME = "Smith Family"
_SAMPLE_MEMBERS: list[dict[str, Any]] = [
    {
        "name": "John Smith",
        "gender": "MALE",
        "status": "ACTIVE",
        "color": "#3B82F6",
        "bio": "Family patriarch and retired engineer",
        "birth_date": "1950-03-15",
        "birth_place": "Boston, MA",
        "occupation": "Engineer",
        "parent_names": [],
        "spouse_names": ["Mary Smith"],
        "family_role": "HEAD",
        "social_links": {"linkedin": "https://linkedin.com/in/johnsmith"},
    },
    {
        "name": "Mary Smith",
        "gender": "FEMALE",
        "status": "ACTIVE",
        "color": "#EC4899",
        "bio": "Retired librarian",
        "birth_date": "1952-07-22",
        "birth_place": "Springfield, IL",
        "occupation": "Teacher",
        "parent_names": [],
        "spouse_names": ["John Smith"],
        "family_role": "ADMIN",
        "social_links": {},
    },
    {
        "name": "David Smith",
        "gender": "MALE",
        "status": "ACTIVE",
        "color": "#10B981",
        "bio": "Software developer",
        "birth_date": "1978-11-02",
        "birth_place": "Boston, MA",
        "occupation": "Software Developer",
        "parent_names": ["John Smith", "Mary Smith"],
        "spouse_names": ["Emily Smith"],
        "family_role": "MEMBER",
        "social_links": {"website": "https://davidsmith.dev"},
    },
    {
        "name": "Emily Smith",
        "gender": "FEMALE",
        "status": "ACTIVE",
        "color": "#F59E0B",
        "bio": "Doctor",
        "birth_date": "1980-01-19",
        "birth_place": "Chicago, IL",
        "occupation": "Doctor",
        "parent_names": [],
        "spouse_names": ["David Smith"],
        "family_role": "MEMBER",
        "social_links": {},
    },
    {
        "name": "Sarah Johnson",
        "gender": "FEMALE",
        "status": "ACTIVE",
        "color": "#8B5CF6",
        "bio": "Architect",
        "birth_date": "1982-05-30",
        "birth_place": "Boston, MA",
        "occupation": "Architect",
        "parent_names": ["John Smith", "Mary Smith"],
        "spouse_names": [],
        "family_role": "MEMBER",
        "social_links": {},
    },
    {
        "name": "Robert Smith",
        "gender": "MALE",
        "status": "DECEASED",
        "color": "#6B7280",
        "bio": "Farmer",
        "birth_date": "1925-09-09",
        "birth_place": "Dayton, OH",
        "occupation": "Farmer",
        "parent_names": [],
        "spouse_names": [],
        "family_role": "VIEWER",
        "social_links": {},
    },
    {
        "name": "Lucy Smith",
        "gender": "FEMALE",
        "status": "ACTIVE",
        "color": "#EF4444",
        "bio": "Student",
        "birth_date": "2008-02-14",
        "birth_place": "Seattle, WA",
        "occupation": "Student",
        "parent_names": ["David Smith", "Emily Smith"],
        "spouse_names": [],
        "family_role": "MEMBER",
        "social_links": {},
    },
    {
        "name": "Tom Smith",
        "gender": "MALE",
        "status": "ACTIVE",
        "color": "#14B8A6",
        "bio": "Student",
        "birth_date": "2011-08-08",
        "birth_place": "Seattle, WA",
        "occupation": "Student",
        "parent_names": ["David Smith", "Emily Smith"],
        "spouse_names": [],
        "family_role": "MEMBER",
        "social_links": {},
    },
    {
        "name": "Mark Johnson",
        "gender": "MALE",
        "status": "ACTIVE",
        "color": "#0EA5E9",
        "bio": "Chef",
        "birth_date": "1981-12-01",
        "birth_place": "Denver, CO",
        "occupation": "Chef",
        "parent_names": [],
        "spouse_names": ["Sarah Johnson"],
        "family_role": "MEMBER",
        "social_links": {"facebook": "https://facebook.com/markjohnson"},
    },
    {
        "name": "Anna Johnson",
        "gender": "FEMALE",
        "status": "ACTIVE",
        "color": "#D946EF",
        "bio": "Musician",
        "birth_date": "2012-06-21",
        "birth_place": "Denver, CO",
        "occupation": "Student",
        "parent_names": ["Sarah Johnson", "Mark Johnson"],
        "spouse_names": [],
        "family_role": "MEMBER",
        "social_links": {},
    },
]

SIZE_COUNTS: dict[str, int] = {"small": 3, "medium": 6, "large": 10}


def sample_members(size: TemplateSize) -> list[dict[str, Any]]:
    """Sample rows, with relationship names trimmed to members inside the sample."""
    selected = _SAMPLE_MEMBERS[: SIZE_COUNTS.get(size, SIZE_COUNTS["medium"])]
    names = {member["name"] for member in selected}
    members = []
    for member in selected:
        row = dict(member)
        row["parent_names"] = [name for name in member["parent_names"] if name in names]
        row["spouse_names"] = [name for name in member["spouse_names"] if name in names]
        row["family_name"] = _FAMILY_NAME
        members.append(row)
    return members


def template_filename(kind: Literal["json", "excel"], size: TemplateSize, include_sample_data: bool) -> str:
    extension = "json" if kind == "json" else "xlsx"
    suffix = "-with-sample-data" if include_sample_data else ""
    return f"family-import-template-{size}{suffix}.{extension}"


def generate_json_template(include_sample_data: bool = True, size: TemplateSize = "medium") -> str:
    if include_sample_data:
        members = sample_members(size)
    else:
        members = [
            {
                "name": "",
                "gender": "",
                "status": "ACTIVE",
                "color": "",
                "bio": "",
                "birth_date": "",
                "birth_place": "",
                "occupation": "",
                "parent_names": [],
                "spouse_names": [],
                "family_role": "MEMBER",
                "social_links": {},
            }
        ]
    template = {
        "name": _FAMILY_NAME,
        "description": "Family imported from a template",
        "members": members,
    }
    return json.dumps(template, indent=2)


def _sample_row(member: dict[str, Any]) -> list[Any]:
    links = member.get("social_links", {})
    values = {
        **member,
        "parent_names": ", ".join(member["parent_names"]),
        "spouse_names": ", ".join(member["spouse_names"]),
        "facebook": links.get("facebook", ""),
        "linkedin": links.get("linkedin", ""),
        "website": links.get("website", ""),
    }
    return [values.get(header, "") for header in TEMPLATE_HEADERS]


def _column_letter(header: str) -> str:
    return chr(ord("A") + TEMPLATE_HEADERS.index(header))


def _list_validation(header: str, values: list[str]) -> DataValidation:
    validation = DataValidation(type="list", formula1=f'"{",".join(values)}"', allow_blank=True)
    letter = _column_letter(header)
    validation.add(f"{letter}2:{letter}{VALIDATED_ROWS}")
    return validation


def generate_excel_template(include_sample_data: bool = True, size: TemplateSize = "medium") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Members"
    sheet.append(TEMPLATE_HEADERS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for header in TEMPLATE_HEADERS:
        sheet.column_dimensions[_column_letter(header)].width = COLUMN_WIDTHS.get(header, 18)

    sheet.add_data_validation(
        _list_validation("gender", ["MALE", "FEMALE", "OTHER", "PREFER_NOT_TO_SAY"])
    )
    sheet.add_data_validation(
        _list_validation("status", ["ACTIVE", "INACTIVE", "DECEASED", "ARCHIVED"])
    )
    sheet.add_data_validation(_list_validation("family_role", ["ADMIN", "MEMBER", "HEAD", "VIEWER"]))

    if include_sample_data:
        for member in sample_members(size):
            sheet.append(_sample_row(member))

    instructions = workbook.create_sheet("Instructions")
    instructions.append(["Field", "Required", "Description", "Example"])
    for cell in instructions[1]:
        cell.font = Font(bold=True)
    for row in INSTRUCTIONS:
        instructions.append(list(row))
    instructions.column_dimensions["A"].width = 28
    instructions.column_dimensions["C"].width = 50
    instructions.column_dimensions["D"].width = 30

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
