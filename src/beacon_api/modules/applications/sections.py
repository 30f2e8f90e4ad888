"""
Application Sections

Section registry and completeness rules for the application form.

Operations:
- strip_protected_fields: drop identity and audit keys the client must not control
- normalize_section: validate and coerce a section payload into its stored shape
- count_missing_fields: required fields absent from one section
- missing_fields_by_section / validate_all_sections: the gate before payment
- application_state: empty, partially-filled, complete-unpaid or paid

A value counts as missing when it is absent, None, an empty or blank
string, or NaN.
"""

import math
from typing import Any

from pydantic import TypeAdapter

from beacon_api.modules.applications.schemas import (
    AcademicInfo,
    AdditionalInfo,
    Documents,
    PersonalInfo,
    SectionModel,
    SportsEntry,
)

# Section name on the wire -> Application column
SECTION_COLUMNS: dict[str, str] = {
    "personalInfo": "personal_info",
    "academicInfo": "academic_info",
    "sportsInfo": "sports_info",
    "additionalInfo": "additional_info",
    "documents": "documents",
}

_OBJECT_SECTIONS: dict[str, type[SectionModel]] = {
    "personalInfo": PersonalInfo,
    "academicInfo": AcademicInfo,
    "additionalInfo": AdditionalInfo,
    "documents": Documents,
}

_sports_adapter = TypeAdapter(list[SportsEntry])

PROTECTED_FIELDS = frozenset(
    {
        "_id",
        "id",
        "userId",
        "user_id",
        "__v",
        "createdAt",
        "created_at",
        "updatedAt",
        "updated_at",
    }
)

REQUIRED_FIELDS: dict[str, list[str]] = {
    "personalInfo": ["fullName", "dob", "gender", "phone", "address", "parentName"],
    "academicInfo": ["schoolName", "grade"],
    "sportsInfo": ["sportType", "position", "level", "clubName", "experience"],
    "additionalInfo": ["householdIncome"],
    "documents": [],
}


def strip_protected_fields(data: Any) -> Any:
    """Remove protected keys from a section payload, including from each list entry."""
    if isinstance(data, dict):
        return {key: value for key, value in data.items() if key not in PROTECTED_FIELDS}
    if isinstance(data, list):
        return [strip_protected_fields(item) for item in data]
    return data


def normalize_section(section: str, data: Any) -> dict[str, Any] | list[dict[str, Any]]:
    """
    Validate a section payload and return its JSON-ready stored form.

    Args:
        section: Section name (see SECTION_COLUMNS)
        data: Raw payload; a list for sportsInfo, an object otherwise.
            A single object for sportsInfo is wrapped into a one-entry list.

    Raises:
        KeyError: Unknown section name
        pydantic.ValidationError: Payload cannot be coerced (e.g. bad date)
    """
    if section not in SECTION_COLUMNS:
        raise KeyError(section)

    data = strip_protected_fields(data)

    if section == "sportsInfo":
        entries = data if isinstance(data, list) else [data]
        validated = _sports_adapter.validate_python(entries)
        return [entry.model_dump(mode="json", by_alias=True, exclude_none=True) for entry in validated]

    model = _OBJECT_SECTIONS[section].model_validate(data)
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def _count_object(data: dict[str, Any] | None, required: list[str]) -> int:
    data = data or {}
    return sum(1 for field in required if is_missing(data.get(field)))


def count_missing_fields(section: str, data: Any) -> int:
    """
    Count required fields missing from one section.

    - academicInfo requires schoolName and grade only while isStudying is
      true; an unanswered flag counts as studying.
    - sportsInfo is checked entry by entry and summed. An empty or absent
      list counts as one blank entry.
    """
    required = REQUIRED_FIELDS[section]

    if section == "academicInfo":
        data = data or {}
        if data.get("isStudying") is False:
            return 0
        return _count_object(data, required)

    if section == "sportsInfo":
        entries = data or [{}]
        return sum(_count_object(entry, required) for entry in entries)

    return _count_object(data, required)


def missing_fields_by_section(sections: dict[str, Any]) -> dict[str, int]:
    """
    Missing-field counts for every section.

    Args:
        sections: Mapping of section name to stored payload (absent sections
            may be omitted or None)
    """
    return {name: count_missing_fields(name, sections.get(name)) for name in SECTION_COLUMNS}


def validate_all_sections(sections: dict[str, Any]) -> bool:
    """True iff no section has a missing required field."""
    return all(count == 0 for count in missing_fields_by_section(sections).values())


def application_state(sections: dict[str, Any], paid: bool) -> str:
    """Position of an application on the empty -> partially-filled -> complete-unpaid -> paid axis."""
    if paid:
        return "paid"
    if not any(sections.get(name) for name in SECTION_COLUMNS):
        return "empty"
    if validate_all_sections(sections):
        return "complete-unpaid"
    return "partially-filled"
