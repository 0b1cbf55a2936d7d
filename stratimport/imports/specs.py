"""
Import data models.

Shared dataclasses used by the analyzers, the mapping engine, the validation
pipeline and the executor. Nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Cell values as decoded from a workbook: str, int, float, bool, date, datetime or None
CellValue = Any
Row = List[CellValue]

FIELD_TYPES = ("string", "number", "date", "boolean", "enum", "reference")

# Reference resolution and sheet processing follow this order
DEPENDENCY_ORDER = (
    "pillar", "resource", "kpi", "initiative", "project", "task", "milestone",
)


# ---------------------------------------------------------------------------
# Entity schemas
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSchema:
    """Definition for a single importable field of an entity type."""

    name: str                          # Record key (e.g. "pillar_id")
    label: str                         # Human-readable label
    type: str = "string"               # string | number | date | boolean | enum | reference
    required: bool = False
    aliases: Tuple[str, ...] = ()      # Alternative header names
    semantic_tags: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()     # Regexes a value should match (warning otherwise)
    enum_values: Tuple[str, ...] = ()
    reference_type: Optional[str] = None  # Entity type a reference points at
    default_value: Any = None


@dataclass(frozen=True)
class EntitySchema:
    """Importable shape of one entity type."""

    entity_type: str
    label: str
    fields: Tuple[FieldSchema, ...]
    identifier_field: str = "name"
    parent_field: Optional[str] = None
    parent_type: Optional[str] = None

    def get_field(self, name: str) -> Optional[FieldSchema]:
        return self.field_map.get(name)

    @property
    def field_map(self) -> Dict[str, FieldSchema]:
        return {f.name: f for f in self.fields}

    @property
    def required_fields(self) -> List[FieldSchema]:
        return [f for f in self.fields if f.required]


# ---------------------------------------------------------------------------
# Workbook input and analysis
# ---------------------------------------------------------------------------

@dataclass
class RawSheet:
    """A decoded sheet: header row plus data rows, cell types preserved."""

    name: str
    headers: List[str]
    rows: List[Row] = field(default_factory=list)


@dataclass
class RawWorkbook:
    file_name: str
    sheets: List[RawSheet] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)

    def sheet_data(self) -> Dict[str, List[Row]]:
        """Rows keyed by sheet name, the shape the validation pipeline consumes."""
        return {sheet.name: sheet.rows for sheet in self.sheets}

    def get(self, name: str) -> Optional[RawSheet]:
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        return None


@dataclass
class ColumnAnalysis:
    """Inferred shape of one column from a bounded sample of rows."""

    column_index: int
    header_name: str
    inferred_type: str   # string | number | date | boolean | email | url | currency | percentage | enum | mixed
    sample_values: List[CellValue] = field(default_factory=list)
    unique_count: int = 0
    null_count: int = 0
    total_count: int = 0
    detected_patterns: List[str] = field(default_factory=list)
    possible_enum_values: Optional[List[str]] = None


@dataclass
class SheetAnalysis:
    sheet_name: str
    headers: List[str]
    sample_rows: List[Row] = field(default_factory=list)
    row_count: int = 0
    column_count: int = 0
    suggested_entity_type: Optional[str] = None
    entity_confidence: int = 0
    entity_match_reasons: List[str] = field(default_factory=list)
    importable: bool = True


@dataclass
class ParsedWorkbook:
    file_name: str
    sheets: List[SheetAnalysis] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

@dataclass
class AlternativeMapping:
    target_field: str
    confidence: int
    reason: str


@dataclass
class MappingSuggestion:
    """Proposed target field for one source column ("" when unmapped)."""

    source_column_index: int
    source_column_name: str
    target_field: str
    target_field_label: str
    confidence: int
    match_reason: str
    is_required: bool = False
    alternatives: List[AlternativeMapping] = field(default_factory=list)


@dataclass
class ColumnMapping:
    source_column_index: int
    source_column_name: str
    target_field: Optional[str] = None   # None = column ignored


@dataclass
class SheetConfig:
    """Caller-confirmed (or auto-built) import configuration for one sheet."""

    sheet_name: str
    entity_type: str
    column_mappings: List[ColumnMapping] = field(default_factory=list)
    enabled: bool = True


# ---------------------------------------------------------------------------
# Validation results
# ---------------------------------------------------------------------------

@dataclass
class ValidationIssue:
    """A single row-level error or warning."""

    field: str
    field_label: str
    message: str
    value: CellValue = None
    severity: str = "error"   # error | warning


@dataclass
class DuplicateInfo:
    existing_id: str
    existing_name: str
    confidence: float
    match_type: str   # exact | fuzzy


@dataclass
class RowValidationResult:
    row_number: int   # 1-based sheet row, header is row 1
    is_valid: bool = True
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    transformed_data: Dict[str, Any] = field(default_factory=dict)
    raw_data: List[CellValue] = field(default_factory=list)
    duplicate: Optional[DuplicateInfo] = None

    def add_error(self, field_name: str, label: str, message: str, value: Any = None) -> None:
        self.errors.append(ValidationIssue(field_name, label, message, value, "error"))
        self.is_valid = False

    def add_warning(self, field_name: str, label: str, message: str, value: Any = None) -> None:
        self.warnings.append(ValidationIssue(field_name, label, message, value, "warning"))


@dataclass
class SheetValidationResult:
    sheet_name: str
    entity_type: str
    row_results: List[RowValidationResult] = field(default_factory=list)
    valid_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    duplicate_count: int = 0


@dataclass
class ImportValidationResult:
    is_valid: bool = False
    can_proceed: bool = False
    sheets: List[SheetValidationResult] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0
    error_rows: int = 0
    warning_count: int = 0
    duplicate_count: int = 0
    global_errors: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Execution results
# ---------------------------------------------------------------------------

@dataclass
class RowImportResult:
    row_number: int
    success: bool
    entity_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SheetImportResult:
    sheet_name: str
    entity_type: str
    attempted: int = 0
    successful: int = 0
    failed: int = 0
    results: List[RowImportResult] = field(default_factory=list)


@dataclass
class ImportResult:
    success: bool = False
    sheets: List[SheetImportResult] = field(default_factory=list)
    total_attempted: int = 0
    total_successful: int = 0
    total_failed: int = 0
    duration_ms: int = 0
