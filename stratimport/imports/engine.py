"""
Import engine: analysis orchestration and execution.

Ties the workbook adapter, analyzers and mapping engine together for callers
that want a one-shot "decode, analyze, suggest" step, and executes a
validated import through a caller-supplied create function.
"""

import json
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from stratimport.core.logging import get_logger
from stratimport.imports.columns import analyze_columns
from stratimport.imports.mapping import build_sheet_config, generate_mapping_suggestions
from stratimport.imports.policy import ScoringConfig, load_scoring_config
from stratimport.imports.sheets import analyze_workbook, import_candidates
from stratimport.imports.specs import (
    ImportResult,
    ImportValidationResult,
    MappingSuggestion,
    ParsedWorkbook,
    RawWorkbook,
    RowImportResult,
    SheetConfig,
    SheetImportResult,
)
from stratimport.imports.transform import clean_entity_data
from stratimport.imports.workbook import read_workbook

logger = get_logger("stratimport.imports.engine")

CreateFn = Callable[[str, Dict[str, Any]], Optional[str]]


class ImportBlockedError(Exception):
    """Raised when executing a validation result that cannot proceed."""


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def analyze_workbook_file(
    file_bytes: bytes,
    filename: str,
    scoring: Optional[ScoringConfig] = None,
) -> Tuple[RawWorkbook, ParsedWorkbook]:
    """Decode a file and analyze every sheet.

    Raises:
        ValueError: If the file type is unsupported or unreadable
    """
    raw = read_workbook(file_bytes, filename)
    return raw, analyze_workbook(raw, scoring or load_scoring_config())


def suggest_mappings(
    parsed: ParsedWorkbook,
    raw: RawWorkbook,
    scoring: Optional[ScoringConfig] = None,
) -> Dict[str, List[MappingSuggestion]]:
    """Mapping suggestions for every import candidate with a detected type."""
    scoring = scoring or load_scoring_config()
    suggestions: Dict[str, List[MappingSuggestion]] = {}
    for analysis in import_candidates(parsed):
        sheet = raw.get(analysis.sheet_name)
        if sheet is None or not analysis.suggested_entity_type:
            continue
        columns = analyze_columns(sheet.headers, sheet.rows, scoring)
        suggestions[analysis.sheet_name] = generate_mapping_suggestions(
            columns, analysis.suggested_entity_type, scoring
        )
    return suggestions


def auto_configure(
    parsed: ParsedWorkbook,
    raw: RawWorkbook,
    scoring: Optional[ScoringConfig] = None,
) -> List[SheetConfig]:
    """SheetConfigs built from detected entity types and greedy suggestions."""
    by_name = {analysis.sheet_name: analysis for analysis in parsed.sheets}
    configs = []
    for sheet_name, suggestions in suggest_mappings(parsed, raw, scoring).items():
        configs.append(build_sheet_config(by_name[sheet_name], suggestions))
    logger.debug("Auto-configured %d sheet(s) of %s", len(configs), parsed.file_name)
    return configs


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def execute_import(
    validation: ImportValidationResult,
    create_fn: CreateFn,
    *,
    clock: Callable[[], float] = time.perf_counter,
) -> ImportResult:
    """Create one record per valid row via ``create_fn(entity_type, record)``.

    Rows that failed validation are reported as failed with their first
    error. An exception from create_fn fails that row only.

    Raises:
        ImportBlockedError: If the validation result cannot proceed
    """
    if not validation.can_proceed:
        raise ImportBlockedError(
            "Validation result cannot proceed: "
            + ("; ".join(validation.global_errors) or "no valid rows")
        )

    started = clock()
    result = ImportResult()

    for sheet in validation.sheets:
        sheet_result = SheetImportResult(sheet_name=sheet.sheet_name, entity_type=sheet.entity_type)

        for row in sheet.row_results:
            sheet_result.attempted += 1
            if not row.is_valid:
                message = row.errors[0].message if row.errors else "Row failed validation"
                sheet_result.results.append(
                    RowImportResult(row_number=row.row_number, success=False, error=message)
                )
                sheet_result.failed += 1
                continue

            record = clean_entity_data(row.transformed_data)
            try:
                created_id = create_fn(sheet.entity_type, record)
            except Exception as exc:
                logger.warning(
                    "Failed to create %s from sheet '%s' row %d: %s",
                    sheet.entity_type, sheet.sheet_name, row.row_number, exc,
                )
                sheet_result.results.append(
                    RowImportResult(row_number=row.row_number, success=False, error=str(exc))
                )
                sheet_result.failed += 1
                continue

            sheet_result.results.append(RowImportResult(
                row_number=row.row_number,
                success=True,
                entity_id=str(created_id) if created_id is not None else record.get("id"),
            ))
            sheet_result.successful += 1

        result.sheets.append(sheet_result)
        result.total_attempted += sheet_result.attempted
        result.total_successful += sheet_result.successful
        result.total_failed += sheet_result.failed

    result.duration_ms = int(round((clock() - started) * 1000))
    result.success = result.total_failed == 0

    logger.info(
        "Import finished: %d attempted, %d created, %d failed (%d ms)",
        result.total_attempted, result.total_successful, result.total_failed,
        result.duration_ms,
    )
    return result


class RecordCollector:
    """In-memory create function; keeps created records grouped by entity type."""

    def __init__(self):
        self.records: Dict[str, List[Dict[str, Any]]] = {}

    def create(self, entity_type: str, record: Dict[str, Any]) -> Optional[str]:
        self.records.setdefault(entity_type, []).append(dict(record))
        return record.get("id")

    def count(self, entity_type: Optional[str] = None) -> int:
        if entity_type:
            return len(self.records.get(entity_type, []))
        return sum(len(items) for items in self.records.values())

    def to_json(self) -> str:
        return json.dumps(self.records, indent=2, default=str)

    def save(self, path: Path) -> None:
        Path(path).write_text(self.to_json(), encoding="utf-8")
