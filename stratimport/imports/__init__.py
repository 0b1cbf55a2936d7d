"""
Smart spreadsheet import: sheet/column analysis, mapping suggestions,
validation with cross-sheet reference resolution, and execution.

Usage:
    from stratimport.imports import analyze_workbook_file, auto_configure, validate_import
    from stratimport.imports.engine import execute_import, RecordCollector
"""

from stratimport.imports.engine import (
    ImportBlockedError,
    RecordCollector,
    analyze_workbook_file,
    auto_configure,
    execute_import,
    suggest_mappings,
)
from stratimport.imports.policy import ImportPolicy, ScoringConfig, load_policy
from stratimport.imports.specs import (
    ImportResult,
    ImportValidationResult,
    SheetConfig,
)
from stratimport.imports.validation import validate_import

__all__ = [
    "ImportBlockedError",
    "ImportPolicy",
    "ImportResult",
    "ImportValidationResult",
    "RecordCollector",
    "ScoringConfig",
    "SheetConfig",
    "analyze_workbook_file",
    "auto_configure",
    "execute_import",
    "load_policy",
    "suggest_mappings",
    "validate_import",
]
