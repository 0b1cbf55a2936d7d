"""
Sheet analysis: detect which entity type a sheet holds and whether it is
importable at all.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from stratimport.core.logging import get_logger
from stratimport.imports.columns import SAMPLE_ROW_LIMIT
from stratimport.imports.fuzzy import fuzzy_match, normalize, round_score
from stratimport.imports.policy import DEFAULT_SCORING, ScoringConfig
from stratimport.imports.schemas import ENTITY_TYPE_KEYWORDS
from stratimport.imports.specs import ParsedWorkbook, RawSheet, RawWorkbook, SheetAnalysis

logger = get_logger("stratimport.imports.sheets")

# Detection order; on equal scores the earlier type wins
DETECTION_ORDER = ("pillar", "kpi", "initiative", "project", "task", "resource", "milestone")

SHEET_NAME_POINTS = 40

HEADER_KEYWORDS: Dict[str, List[str]] = {
    "pillar": ["pillar", "perspective", "bsc"],
    "kpi": ["target value", "current value", "kpi", "metric", "unit"],
    "initiative": ["initiative", "program", "portfolio", "sponsor"],
    "project": ["project", "work id", "department", "category", "fiscal year",
                "manager", "budget"],
    "task": ["task", "assignee", "kanban", "wbs", "estimated hours", "due date", "priority"],
    "resource": ["email", "capacity", "hourly rate", "team", "role"],
    "milestone": ["milestone", "target date", "completed date", "gate"],
}

# Sheets whose names contain these are reference material, not data
NON_DATA_SHEET_KEYWORDS = (
    "lookup", "reference", "ref", "instruction", "help", "summary", "dashboard", "codes",
)

REASON_MINIMUM = 85


def _any_header_contains(normalized_headers: Sequence[str], *needles: str) -> bool:
    return any(needle in header for header in normalized_headers for needle in needles)


def detect_entity_type(
    sheet_name: str,
    headers: Sequence[str],
    scoring: ScoringConfig = DEFAULT_SCORING,
) -> Tuple[Optional[str], int, List[str]]:
    """Score each entity type from sheet name and headers.

    Returns:
        (entity_type, confidence, reasons); (None, 0, []) when nothing scores
        at least ``scoring.entity_minimum``.
    """
    scores = {entity_type: 0 for entity_type in DETECTION_ORDER}
    reasons: Dict[str, List[str]] = {entity_type: [] for entity_type in DETECTION_ORDER}

    normalized_name = normalize(sheet_name)
    for entity_type in DETECTION_ORDER:
        for keyword in ENTITY_TYPE_KEYWORDS[entity_type]:
            if normalize(keyword) in normalized_name:
                scores[entity_type] += SHEET_NAME_POINTS
                reasons[entity_type].append(f'Sheet name contains "{keyword}"')
                break

    for header in headers:
        normalized_header = normalize(header)
        for entity_type in DETECTION_ORDER:
            for keyword in HEADER_KEYWORDS[entity_type]:
                score = fuzzy_match(normalized_header, normalize(keyword))
                if score >= scoring.header_keyword_minimum:
                    scores[entity_type] += round_score(score / 10)
                    if score >= REASON_MINIMUM:
                        reasons[entity_type].append(f'Header "{header}" matches "{keyword}"')

    normalized_headers = [normalize(h) for h in headers]

    if _any_header_contains(normalized_headers, "target") and _any_header_contains(
        normalized_headers, "current"
    ):
        scores["kpi"] += 20
        reasons["kpi"].append("Has target and current value columns")

    if _any_header_contains(normalized_headers, "status", "kanban") and _any_header_contains(
        normalized_headers, "hour"
    ):
        scores["task"] += 15
        reasons["task"].append("Has status and hours columns")

    if _any_header_contains(normalized_headers, "email"):
        scores["resource"] += 15
        reasons["resource"].append("Has email column")

    if _any_header_contains(normalized_headers, "budget") and _any_header_contains(
        normalized_headers, "date"
    ):
        scores["project"] += 10
        reasons["project"].append("Has budget and date columns")

    best_type: Optional[str] = None
    best_score = 0
    for entity_type in DETECTION_ORDER:
        if scores[entity_type] > best_score:
            best_type = entity_type
            best_score = scores[entity_type]

    if best_type is None or best_score < scoring.entity_minimum:
        return None, 0, []

    return best_type, min(100, best_score), reasons[best_type]


def is_data_sheet(analysis: SheetAnalysis) -> bool:
    """False for empty sheets and lookup/help/summary style sheets."""
    return is_data_sheet_name(analysis.sheet_name) and analysis.row_count >= 1


def is_data_sheet_name(sheet_name: str) -> bool:
    lowered = sheet_name.lower()
    if lowered.startswith("_"):
        return False
    return not any(keyword in lowered for keyword in NON_DATA_SHEET_KEYWORDS)


def analyze_sheet(sheet: RawSheet, scoring: ScoringConfig = DEFAULT_SCORING) -> SheetAnalysis:
    """Build the read-only analysis of one decoded sheet."""
    analysis = SheetAnalysis(
        sheet_name=sheet.name,
        headers=list(sheet.headers),
        sample_rows=[list(row) for row in sheet.rows[:SAMPLE_ROW_LIMIT]],
        row_count=len(sheet.rows),
        column_count=len(sheet.headers),
    )

    analysis.importable = is_data_sheet(analysis)
    if not analysis.importable:
        logger.debug("Sheet '%s' skipped: not a data sheet", sheet.name)
        return analysis

    entity_type, confidence, reasons = detect_entity_type(sheet.name, sheet.headers, scoring)
    analysis.suggested_entity_type = entity_type
    analysis.entity_confidence = confidence
    analysis.entity_match_reasons = reasons
    return analysis


def analyze_workbook(
    workbook: RawWorkbook, scoring: ScoringConfig = DEFAULT_SCORING
) -> ParsedWorkbook:
    """Analyze every sheet of a decoded workbook."""
    parsed = ParsedWorkbook(
        file_name=workbook.file_name,
        sheets=[analyze_sheet(sheet, scoring) for sheet in workbook.sheets],
        parse_errors=list(workbook.parse_errors),
    )
    detected = sum(1 for s in parsed.sheets if s.suggested_entity_type)
    logger.info(
        "Analyzed %s: %d sheet(s), %d with a detected entity type",
        workbook.file_name, len(parsed.sheets), detected,
    )
    return parsed


def import_candidates(parsed: ParsedWorkbook) -> List[SheetAnalysis]:
    return [sheet for sheet in parsed.sheets if sheet.importable]


def column_fill_rate(sheet: RawSheet, column_index: int) -> float:
    """Share of data rows (0-1) with a non-empty value in the column."""
    if not sheet.rows:
        return 0.0
    filled = sum(
        1 for row in sheet.rows
        if column_index < len(row) and row[column_index] not in (None, "")
    )
    return filled / len(sheet.rows)


def unique_values(sheet: RawSheet, column_index: int) -> List[str]:
    """Distinct non-empty values of a column as trimmed strings, first-seen order."""
    seen: Dict[str, None] = {}
    for row in sheet.rows:
        if column_index < len(row) and row[column_index] not in (None, ""):
            seen.setdefault(str(row[column_index]).strip(), None)
    return list(seen)
