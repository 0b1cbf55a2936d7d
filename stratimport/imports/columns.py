"""
Column analysis: infer a column's semantic type from a sample of its cells.

Works on at most SAMPLE_ROW_LIMIT rows. Native cell types (numbers, bools,
dates from openpyxl) are honoured; strings are classified with the regex
patterns below.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from stratimport.imports.policy import DEFAULT_SCORING, ScoringConfig
from stratimport.imports.specs import ColumnAnalysis, Row

SAMPLE_ROW_LIMIT = 10
SAMPLE_VALUE_LIMIT = 5
ENUM_VALUE_LIMIT = 20

# ---------------------------------------------------------------------------
# Value patterns
# ---------------------------------------------------------------------------

EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL = re.compile(r"^(https?://|www\.)\S+$", re.IGNORECASE)
DATE_ISO = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2})?")
DATE_US = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$")
DATE_EU = re.compile(r"^\d{1,2}\.\d{1,2}\.\d{2,4}$")
# A currency symbol, thousands separator or decimal point is required so that
# plain small integers ("8", "40") stay numbers.
CURRENCY = re.compile(r"^(?=.*[$€£¥,.])[$€£¥]?-?\d{1,3}(,\d{3})*(\.\d{2})?$")
PERCENTAGE = re.compile(r"^-?\d+(\.\d+)?%$")
BOOLEAN_TRUE = re.compile(r"^(yes|true|1|y|t|on)$", re.IGNORECASE)
BOOLEAN_FALSE = re.compile(r"^(no|false|0|n|f|off)$", re.IGNORECASE)
INTEGER = re.compile(r"^-?\d+$")
DECIMAL = re.compile(r"^-?\d+\.\d+$")

PATTERNS = {
    "email": EMAIL,
    "url": URL,
    "date (ISO)": DATE_ISO,
    "date (US)": DATE_US,
    "date (EU)": DATE_EU,
    "currency": CURRENCY,
    "percentage": PERCENTAGE,
}

DATE_PATTERNS = ("date (ISO)", "date (US)", "date (EU)")

ID_KEYWORDS = ("id", "key", "code", "identifier", "uuid")
REFERENCE_KEYWORDS = ("parent", "reference", "ref", "linked", "related")

# Which column types can feed each field type
TYPE_COMPATIBILITY: Dict[str, tuple] = {
    "string": ("string", "email", "url", "mixed"),
    "number": ("number", "currency", "percentage"),
    "date": ("date",),
    "boolean": ("boolean",),
    "enum": ("enum", "string"),
    "reference": ("string", "number", "mixed"),
}


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def as_text(value: Any) -> str:
    """Cell value as display text; integral floats drop their ".0"."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def detect_value_type(value: Any) -> str:
    """Classify a single non-empty cell: number | boolean | date | string."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "string" if isinstance(value, float) and math.isnan(value) else "number"
    if isinstance(value, (datetime, date)):
        return "date"

    text = str(value).strip()
    if BOOLEAN_TRUE.match(text) or BOOLEAN_FALSE.match(text):
        return "boolean"
    if INTEGER.match(text) or DECIMAL.match(text):
        return "number"
    if DATE_ISO.match(text) or DATE_US.match(text) or DATE_EU.match(text):
        return "date"
    return "string"


def detect_patterns(values: Sequence[Any], scoring: ScoringConfig = DEFAULT_SCORING) -> List[str]:
    """Names of the patterns matched by at least pattern_match_rate of values."""
    texts = [as_text(v).strip() for v in values if not is_empty(v)]
    if not texts:
        return []

    detected = []
    for name, pattern in PATTERNS.items():
        matches = sum(1 for text in texts if pattern.search(text))
        if matches / len(texts) >= scoring.pattern_match_rate:
            detected.append(name)
    return detected


def infer_data_type(
    values: Sequence[Any],
    patterns: Sequence[str],
    unique_count: int,
    scoring: ScoringConfig = DEFAULT_SCORING,
) -> str:
    """Pick the column type: pattern types first, then dominant value type."""
    non_null = [v for v in values if not is_empty(v)]
    if not non_null:
        return "string"

    if "email" in patterns:
        return "email"
    if "url" in patterns:
        return "url"
    if any(p in patterns for p in DATE_PATTERNS):
        return "date"
    if "currency" in patterns:
        return "currency"
    if "percentage" in patterns:
        return "percentage"

    counts = {"number": 0, "boolean": 0, "date": 0, "string": 0}
    for value in non_null:
        counts[detect_value_type(value)] += 1

    total = len(non_null)
    for value_type in ("number", "boolean", "date"):
        if counts[value_type] / total >= scoring.dominant_type_rate:
            return value_type

    if unique_count <= scoring.enum_max_unique and unique_count / total < scoring.enum_unique_ratio:
        return "enum"

    if counts["number"] > 0 and counts["string"] > 0:
        return "mixed"
    return "string"


def analyze_column(
    column_index: int,
    header_name: str,
    values: Sequence[Any],
    scoring: ScoringConfig = DEFAULT_SCORING,
) -> ColumnAnalysis:
    """Analyze one column's sample values."""
    non_null = [v for v in values if not is_empty(v)]
    unique_texts = list(dict.fromkeys(as_text(v).strip() for v in non_null))
    patterns = detect_patterns(non_null, scoring)
    inferred = infer_data_type(non_null, patterns, len(unique_texts), scoring)

    enum_values: Optional[List[str]] = None
    if inferred == "enum" or (inferred == "string" and 0 < len(unique_texts) <= scoring.enum_max_unique):
        enum_values = unique_texts[:ENUM_VALUE_LIMIT]

    return ColumnAnalysis(
        column_index=column_index,
        header_name=header_name,
        inferred_type=inferred,
        sample_values=list(non_null[:SAMPLE_VALUE_LIMIT]),
        unique_count=len(unique_texts),
        null_count=len(values) - len(non_null),
        total_count=len(values),
        detected_patterns=patterns,
        possible_enum_values=enum_values,
    )


def analyze_columns(
    headers: Sequence[str],
    rows: Sequence[Row],
    scoring: ScoringConfig = DEFAULT_SCORING,
) -> List[ColumnAnalysis]:
    """Analyze every column using the first SAMPLE_ROW_LIMIT rows."""
    sample = list(rows)[:SAMPLE_ROW_LIMIT]
    analyses = []
    for index, header in enumerate(headers):
        values = [row[index] if index < len(row) else None for row in sample]
        analyses.append(analyze_column(index, header, values, scoring))
    return analyses


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_type_compatible(column_type: str, field_type: str) -> bool:
    return column_type in TYPE_COMPATIBILITY.get(field_type, ("string",))


def is_identifier_column(analysis: ColumnAnalysis) -> bool:
    """All sampled values distinct, or a header that reads like a key."""
    if analysis.unique_count == analysis.total_count - analysis.null_count:
        return True
    header = analysis.header_name.lower()
    return any(keyword in header for keyword in ID_KEYWORDS)


def is_reference_column(analysis: ColumnAnalysis) -> bool:
    header = analysis.header_name.lower()
    return any(keyword in header for keyword in REFERENCE_KEYWORDS)


def column_fill_percentage(analysis: ColumnAnalysis) -> float:
    if analysis.total_count == 0:
        return 0.0
    filled = analysis.total_count - analysis.null_count
    return filled / analysis.total_count * 100
