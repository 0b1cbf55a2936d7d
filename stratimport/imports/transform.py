"""
Value coercion and entity defaults.

transform_value() turns one raw cell into the Python value a field type
expects. Failures come back as messages on the result rather than
exceptions, so a bad cell never stops a row from being processed.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from openpyxl.utils.datetime import from_excel

from stratimport.imports.columns import as_text


@dataclass
class TransformResult:
    value: Any = None
    error: Optional[str] = None
    warning: Optional[str] = None


_CURRENCY_CHARS = re.compile(r"[$€£¥,\s]")
_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_EU_DATE = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{4})$")
_TWO_DIGIT_YEAR = re.compile(r"^\d{1,2}[./]\d{1,2}[./]\d{2}$")

# Tried in order once the explicit numeric formats fail
_LOOSE_DATE_FORMATS = (
    "%B %d, %Y", "%b %d, %Y", "%B %d %Y", "%b %d %Y",
    "%d %B %Y", "%d %b %Y", "%Y/%m/%d", "%Y.%m.%d",
    "%d-%b-%Y", "%d-%B-%Y", "%b %Y", "%B %Y",
)

TRUE_VALUES = ("true", "yes", "y", "1", "on", "x", "checked")
FALSE_VALUES = ("false", "no", "n", "0", "off", "", "unchecked")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def transform_value(value: Any, field_type: str) -> TransformResult:
    """Coerce a raw cell to ``field_type``; empty cells give value None."""
    if _is_blank(value):
        return TransformResult()

    if field_type == "number":
        return to_number(value)
    if field_type == "date":
        return to_date(value)
    if field_type == "boolean":
        return to_boolean(value)
    # string, enum and reference values are trimmed text; enum and
    # reference checks happen in the validation pipeline
    return to_string(value)


def to_string(value: Any) -> TransformResult:
    return TransformResult(value=as_text(value).strip())


def to_number(value: Any) -> TransformResult:
    if isinstance(value, bool):
        return TransformResult(error=f'Invalid number: "{value}"')
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return TransformResult(error=f'Invalid number: "{value}"')
        return TransformResult(value=value)

    text = str(value).strip()
    cleaned = _CURRENCY_CHARS.sub("", text)
    # percentages keep their face value: "45%" -> 45
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1]
    try:
        number = float(cleaned)
    except ValueError:
        return TransformResult(error=f'Invalid number: "{value}"')
    if math.isnan(number) or math.isinf(number):
        return TransformResult(error=f'Invalid number: "{value}"')
    return TransformResult(value=number)


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_date(value: Any) -> TransformResult:
    """Dates come back as ISO strings (YYYY-MM-DD)."""
    if isinstance(value, datetime):
        return TransformResult(value=value.date().isoformat())
    if isinstance(value, date):
        return TransformResult(value=value.isoformat())

    # Spreadsheet serial day number
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            converted = from_excel(value)
        except (ValueError, OverflowError, TypeError):
            converted = None
        if isinstance(converted, datetime):
            return TransformResult(value=converted.date().isoformat())

    text = str(value).strip()

    iso = _ISO_PREFIX.match(text)
    if iso:
        parsed = _build_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        if parsed:
            return TransformResult(value=parsed.isoformat())

    # US month-first wins for ambiguous slash dates
    us = _US_DATE.match(text)
    if us:
        parsed = _build_date(int(us.group(3)), int(us.group(1)), int(us.group(2)))
        if parsed:
            return TransformResult(value=parsed.isoformat())

    eu = _EU_DATE.match(text)
    if eu:
        parsed = _build_date(int(eu.group(3)), int(eu.group(2)), int(eu.group(1)))
        if parsed:
            return TransformResult(value=parsed.isoformat())

    if _TWO_DIGIT_YEAR.search(text):
        return TransformResult(
            error=f'Invalid date "{value}": Please use 4-digit year (e.g., 2025)'
        )

    for fmt in _LOOSE_DATE_FORMATS:
        try:
            parsed_dt = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return TransformResult(
            value=parsed_dt.date().isoformat(),
            warning="Date format may be ambiguous",
        )

    return TransformResult(error=f'Invalid date: "{value}"')


def to_boolean(value: Any) -> TransformResult:
    if isinstance(value, bool):
        return TransformResult(value=value)
    if isinstance(value, (int, float)):
        return TransformResult(value=value != 0)

    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return TransformResult(value=True)
    if text in FALSE_VALUES:
        return TransformResult(value=False)
    return TransformResult(
        value=False,
        warning=f'Unrecognized boolean value "{value}", defaulting to false',
    )


def parse_date(value: Any) -> Optional[str]:
    return to_date(value).value


def parse_number(value: Any) -> Optional[float]:
    return to_number(value).value


def parse_boolean(value: Any) -> bool:
    return to_boolean(value).value is True


# ---------------------------------------------------------------------------
# Entity defaults
# ---------------------------------------------------------------------------

ENTITY_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "pillar": {
        "display_order": 0,
        "rag_status": "green",
    },
    "kpi": {
        "previous_value": 0,
        "unit": "number",
    },
    "initiative": {
        "budget": 0,
        "spent_budget": 0,
        "rag_status": "green",
        "description": "",
        "owner_id": "",
    },
    "project": {
        "status": "not_started",
        "rag_status": "green",
        "completion_percentage": 0,
        "budget": 0,
        "spent_budget": 0,
        "department_code": "IT",
        "category": "GROW",
        "description": "",
        "manager_id": "",
    },
    "task": {
        "kanban_status": "todo",
        "estimated_hours": 8,
        "actual_hours": 0,
        "priority": "medium",
        "is_milestone": False,
        "description": "",
        "assignee_id": "",
    },
    "resource": {
        "weekly_capacity": 40,
        "department_code": "IT",
        "email": "",
        "role": "",
        "team": "",
    },
    "milestone": {
        "status": "pending",
        "display_order": 0,
        "linked_task_ids": [],
    },
}

AVATAR_COLORS = (
    "#10b981", "#f59e0b", "#3b82f6", "#8b5cf6",
    "#ec4899", "#06b6d4", "#f97316", "#6366f1",
    "#64748b", "#78716c",
)


def avatar_color(name: str) -> str:
    """Stable palette colour for a name; the same name always gets the same colour."""
    if not name:
        return AVATAR_COLORS[0]

    h = 0
    for ch in name:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return AVATAR_COLORS[abs(h) % len(AVATAR_COLORS)]


def apply_defaults(data: Dict[str, Any], entity_type: str, today: Optional[date] = None) -> Dict[str, Any]:
    """Fill fields left as None from the entity's default table, in place."""
    defaults = dict(ENTITY_DEFAULTS.get(entity_type, {}))
    if entity_type == "project":
        defaults["fiscal_year"] = (today or date.today()).year

    for key, default in defaults.items():
        if data.get(key) is None:
            data[key] = list(default) if isinstance(default, list) else default

    if entity_type == "resource" and data.get("avatar_color") is None:
        data["avatar_color"] = avatar_color(str(data.get("name") or ""))

    return data


def clean_entity_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of data without None values."""
    return {key: value for key, value in data.items() if value is not None}
