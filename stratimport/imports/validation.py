"""
Validation and reference-resolution pipeline.

validate_import() is a pure function: it takes sheet configs, raw rows, a
snapshot of existing records and a policy, and returns an
ImportValidationResult. Sheets are processed in dependency order so a
project row can reference an initiative imported earlier in the same batch.

Existing records are passed as ``{entity_type: [record, ...]}`` where each
record has an ``id`` and its identifier field (``title`` for tasks, ``name``
for everything else).
"""

import re
import uuid
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from stratimport.core.logging import get_logger
from stratimport.imports.fuzzy import find_best_match, normalize
from stratimport.imports.policy import DEFAULT_SCORING, ImportPolicy, ScoringConfig
from stratimport.imports.schemas import ENTITY_SCHEMAS, can_reference, get_entity_schema
from stratimport.imports.specs import (
    DEPENDENCY_ORDER,
    DuplicateInfo,
    EntitySchema,
    FieldSchema,
    ImportValidationResult,
    Row,
    RowValidationResult,
    SheetConfig,
    SheetValidationResult,
)
from stratimport.imports.transform import apply_defaults, transform_value
from stratimport.imports.work_id import WorkIdAllocator

logger = get_logger("stratimport.imports.validation")

ExistingRecords = Dict[str, List[Dict[str, Any]]]

# entity_type -> normalized identifier -> (id, display name)
Lookups = Dict[str, Dict[str, Tuple[str, str]]]


def check_existing_records(existing: Any) -> ExistingRecords:
    """Reject a snapshot that is not ``{entity_type: [record, ...]}`` with ValueError."""
    if not isinstance(existing, dict):
        raise ValueError("existing must be an object keyed by entity type")
    for entity_type, records in existing.items():
        if records is None:
            continue
        if not isinstance(records, list):
            raise ValueError(f"existing.{entity_type} must be a list of records")
        if not all(isinstance(record, dict) for record in records):
            raise ValueError(f"existing.{entity_type} records must be objects")
    return existing


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def is_empty_row(row: Sequence[Any]) -> bool:
    return all(_is_blank(cell) for cell in row)


def identifier_field(entity_type: str) -> str:
    return ENTITY_SCHEMAS[entity_type].identifier_field


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def build_lookups(existing: ExistingRecords) -> Lookups:
    """Index existing records by normalized identifier for reference resolution."""
    lookups: Lookups = {entity_type: {} for entity_type in DEPENDENCY_ORDER}
    for entity_type in DEPENDENCY_ORDER:
        name_field = identifier_field(entity_type)
        for record in existing.get(entity_type, []) or []:
            name = record.get(name_field)
            record_id = record.get("id")
            if name and record_id is not None:
                lookups[entity_type].setdefault(normalize(name), (str(record_id), str(name)))
    return lookups


def update_lookups(lookups: Lookups, sheet_result: SheetValidationResult) -> None:
    """Fold a sheet's valid rows into the lookups so later sheets can reference them."""
    name_field = identifier_field(sheet_result.entity_type)
    table = lookups.setdefault(sheet_result.entity_type, {})
    for row in sheet_result.row_results:
        if not row.is_valid:
            continue
        name = row.transformed_data.get(name_field)
        record_id = row.transformed_data.get("id")
        if name and record_id:
            table[normalize(name)] = (record_id, str(name))


def order_by_dependency(configs: Sequence[SheetConfig]) -> List[SheetConfig]:
    """Stable sort of sheet configs by entity dependency order."""
    rank = {entity_type: i for i, entity_type in enumerate(DEPENDENCY_ORDER)}
    return sorted(configs, key=lambda c: rank.get(c.entity_type, len(rank)))


def resolve_reference(
    value: str,
    reference_type: str,
    lookups: Lookups,
    policy: ImportPolicy,
    floor: float = DEFAULT_SCORING.fuzzy_floor,
) -> Optional[str]:
    """Resolve a name to a record id.

    Exact normalized match first. With fuzzy matching enabled, the best fuzzy
    match at or above the policy threshold, then substring containment.
    """
    table = lookups.get(reference_type) or {}
    normalized = normalize(value)
    if not normalized:
        return None

    if normalized in table:
        return table[normalized][0]

    if not policy.references.allow_fuzzy_matching:
        return None

    keys = list(table.keys())
    match = find_best_match(normalized, keys, floor)
    if match and match.score >= policy.references.fuzzy_match_threshold:
        return table[keys[match.index]][0]

    for key in keys:
        if key in normalized or normalized in key:
            return table[key][0]

    return None


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def _validate_enum(
    value: str,
    field_schema: FieldSchema,
    row: RowValidationResult,
    data: Dict[str, Any],
    policy: ImportPolicy,
    floor: float = DEFAULT_SCORING.fuzzy_floor,
) -> None:
    allowed = list(field_schema.enum_values)
    exact = {e.lower(): e for e in allowed}.get(value.strip().lower())
    if exact is None and normalize(value):
        # symbol-only values such as "%" normalize to ""
        canonical = {normalize(e): e for e in allowed if normalize(e)}
        exact = canonical.get(normalize(value))
    if exact is not None:
        data[field_schema.name] = exact
        return

    if policy.references.allow_fuzzy_matching:
        match = find_best_match(value, allowed, floor)
        if match and match.score >= policy.references.fuzzy_match_threshold:
            data[field_schema.name] = match.target
            row.add_warning(
                field_schema.name, field_schema.label,
                f'Value "{value}" matched to "{match.target}" ({match.score:.0f}% confidence)',
                value,
            )
            return

    if field_schema.default_value is not None:
        data[field_schema.name] = field_schema.default_value
        row.add_warning(
            field_schema.name, field_schema.label,
            f'Invalid value "{value}", using default "{field_schema.default_value}"',
            value,
        )
        return

    data.pop(field_schema.name, None)
    row.add_error(
        field_schema.name, field_schema.label,
        f'Invalid value "{value}". Expected: {", ".join(allowed)}',
        value,
    )


def extract_field(
    raw_value: Any,
    field_schema: FieldSchema,
    row: RowValidationResult,
    data: Dict[str, Any],
    policy: ImportPolicy,
    floor: float = DEFAULT_SCORING.fuzzy_floor,
) -> None:
    """Transform one mapped cell into data, recording issues on row."""
    if _is_blank(raw_value):
        if field_schema.default_value is not None:
            data[field_schema.name] = field_schema.default_value
        return

    result = transform_value(raw_value, field_schema.type)
    if result.error:
        row.add_error(field_schema.name, field_schema.label, result.error, raw_value)
        return
    if result.warning:
        row.add_warning(field_schema.name, field_schema.label, result.warning, raw_value)

    data[field_schema.name] = result.value

    if field_schema.type == "enum" and field_schema.enum_values and result.value:
        _validate_enum(result.value, field_schema, row, data, policy, floor)

    if field_schema.patterns and result.value is not None:
        text = str(result.value)
        if not any(re.search(p, text) for p in field_schema.patterns):
            row.add_warning(
                field_schema.name, field_schema.label,
                f'Value "{text}" doesn\'t match expected pattern',
                raw_value,
            )


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------

def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _budget_rule(row: RowValidationResult, data: Dict[str, Any], reject: bool,
                 error_message: str, warning_message: str) -> None:
    budget = _number(data.get("budget"))
    spent = _number(data.get("spent_budget"))
    if budget is None or spent is None or spent <= budget:
        return
    if reject:
        row.add_error("spent_budget", "Spent Budget", error_message, spent)
    else:
        row.add_warning("spent_budget", "Spent Budget", warning_message, spent)


def _project_rules(row: RowValidationResult, data: Dict[str, Any],
                   policy: ImportPolicy, today: date) -> None:
    rules = policy.business_rules

    if rules.enforce_project_date_range:
        start, end = data.get("start_date"), data.get("end_date")
        if start and end and start > end:
            row.add_error("dates", "Dates", "Start date must be before end date",
                          f"{start} - {end}")

    if rules.enforce_budget_positive:
        budget = _number(data.get("budget"))
        if budget is not None and budget < 0:
            row.add_error("budget", "Budget", "Budget cannot be negative", budget)

    if rules.enforce_completion_range:
        completion = _number(data.get("completion_percentage"))
        if completion is not None and not 0 <= completion <= 100:
            clamped = max(0, min(100, completion))
            row.add_warning(
                "completion_percentage", "Completion %",
                "Completion percentage should be between 0 and 100", completion,
            )
            data["completion_percentage"] = clamped

    if rules.check_project_budget:
        _budget_rule(
            row, data, rules.reject_over_budget_projects,
            "Spent budget exceeds allocated budget (rejected by policy)",
            "Spent budget exceeds allocated budget",
        )


def _task_rules(row: RowValidationResult, data: Dict[str, Any],
                policy: ImportPolicy, today: date) -> None:
    rules = policy.business_rules

    if rules.check_task_due_dates:
        due = data.get("due_date")
        if due and due < today.isoformat():
            if rules.reject_overdue_tasks:
                row.add_error("due_date", "Due Date",
                              "Due date is in the past (overdue tasks rejected by policy)", due)
            else:
                row.add_warning("due_date", "Due Date", "Due date is in the past", due)

    if rules.clamp_negative_task_hours:
        hours = _number(data.get("estimated_hours"))
        if hours is not None and hours < 0:
            data["estimated_hours"] = 0
            row.add_warning("estimated_hours", "Estimated Hours",
                            "Hours adjusted to 0 (was negative)", hours)


def _initiative_rules(row: RowValidationResult, data: Dict[str, Any],
                      policy: ImportPolicy, today: date) -> None:
    rules = policy.business_rules
    if rules.check_initiative_budget:
        _budget_rule(
            row, data, rules.reject_over_budget_initiatives,
            "Spent budget exceeds allocated budget (rejected by policy)",
            "Spent budget exceeds allocated budget",
        )


def _milestone_rules(row: RowValidationResult, data: Dict[str, Any],
                     policy: ImportPolicy, today: date) -> None:
    if not policy.business_rules.check_milestone_completion:
        return
    target, completed = data.get("target_date"), data.get("completed_date")
    if target and completed and completed > target:
        row.add_warning("completed_date", "Completed Date",
                        "Milestone was completed after target date", completed)


BUSINESS_RULES: Dict[str, Callable[[RowValidationResult, Dict[str, Any], ImportPolicy, date], None]] = {
    "project": _project_rules,
    "task": _task_rules,
    "initiative": _initiative_rules,
    "milestone": _milestone_rules,
}


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------

def detect_duplicate(
    entity_type: str,
    data: Dict[str, Any],
    existing: ExistingRecords,
    threshold: float,
    floor: float = DEFAULT_SCORING.fuzzy_floor,
) -> Optional[DuplicateInfo]:
    """Compare the row's identifier with existing records of the same type."""
    name_field = identifier_field(entity_type)
    imported = data.get(name_field)
    records = [r for r in existing.get(entity_type, []) or [] if r.get(name_field)]
    if not imported or not records:
        return None

    normalized = normalize(imported)
    for record in records:
        if normalize(record[name_field]) == normalized:
            return DuplicateInfo(str(record.get("id")), str(record[name_field]), 100, "exact")

    names = [str(r[name_field]) for r in records]
    match = find_best_match(str(imported), names, floor)
    if match and match.score >= threshold:
        record = records[match.index]
        return DuplicateInfo(str(record.get("id")), names[match.index], match.score, "fuzzy")
    return None


# ---------------------------------------------------------------------------
# Row and sheet validation
# ---------------------------------------------------------------------------

class _Context:
    """Per-run state shared by all rows of one validate_import() call."""

    def __init__(self, existing: ExistingRecords, policy: ImportPolicy, today: date,
                 id_factory: Callable[[], str], scoring: ScoringConfig = DEFAULT_SCORING):
        self.existing = existing
        self.policy = policy
        self.today = today
        self.id_factory = id_factory
        self.floor = scoring.fuzzy_floor
        self.lookups = build_lookups(existing)
        self.work_ids = WorkIdAllocator(existing.get("project", []) or [])


def _completeness(schema: EntitySchema, config: SheetConfig, row: Row) -> int:
    filled = 0
    for mapping in config.column_mappings:
        if not mapping.target_field or schema.get_field(mapping.target_field) is None:
            continue
        index = mapping.source_column_index
        if index < len(row) and not _is_blank(row[index]):
            filled += 1
    return round(filled / len(schema.fields) * 100) if schema.fields else 100


def validate_row(
    row: Row,
    row_number: int,
    config: SheetConfig,
    schema: EntitySchema,
    ctx: _Context,
) -> RowValidationResult:
    result = RowValidationResult(row_number=row_number, raw_data=list(row))
    data = result.transformed_data
    policy = ctx.policy

    # Mapped columns
    for mapping in config.column_mappings:
        if not mapping.target_field:
            continue
        field_schema = schema.get_field(mapping.target_field)
        if field_schema is None:
            continue
        index = mapping.source_column_index
        raw_value = row[index] if 0 <= index < len(row) else None
        extract_field(raw_value, field_schema, result, data, policy, ctx.floor)

    # Required fields
    for field_schema in schema.required_fields:
        if _is_blank(data.get(field_schema.name)):
            if field_schema.default_value is not None:
                data[field_schema.name] = field_schema.default_value
            elif not any(e.field == field_schema.name for e in result.errors):
                result.add_error(field_schema.name, field_schema.label,
                                 f'Required field "{field_schema.label}" is empty')

    for field_name in policy.additional_required_for(config.entity_type):
        if _is_blank(data.get(field_name)):
            field_schema = schema.get_field(field_name)
            label = field_schema.label if field_schema else field_name
            result.add_error(field_name, label, f'Field "{label}" is required by import policy')

    minimum = policy.fields.minimum_completeness
    if minimum:
        completeness = _completeness(schema, config, row)
        if completeness < minimum:
            result.add_warning("_record", "Record",
                               f"Record is {completeness}% complete (policy minimum {minimum}%)")

    apply_defaults(data, config.entity_type, ctx.today)

    # References
    for field_schema in schema.fields:
        if field_schema.type != "reference":
            continue
        value = data.get(field_schema.name)
        if _is_blank(value):
            continue
        if not can_reference(config.entity_type, field_schema.reference_type):
            result.add_error(
                field_schema.name, field_schema.label,
                f"A {config.entity_type} cannot reference a {field_schema.reference_type}",
                value,
            )
            continue
        resolved = resolve_reference(
            str(value), field_schema.reference_type, ctx.lookups, policy, ctx.floor
        )
        if resolved:
            data[field_schema.name] = resolved
        else:
            result.add_error(field_schema.name, field_schema.label,
                             f'Cannot find {field_schema.reference_type} named "{value}"', value)

    rules = BUSINESS_RULES.get(config.entity_type)
    if rules:
        rules(result, data, policy, ctx.today)

    result.duplicate = detect_duplicate(
        config.entity_type, data, ctx.existing, policy.references.fuzzy_match_threshold,
        ctx.floor,
    )

    if not result.errors:
        data["id"] = ctx.id_factory()
        if config.entity_type == "project":
            work_id = ctx.work_ids.allocate(
                data.get("department_code") or "IT",
                int(_number(data.get("fiscal_year")) or ctx.today.year),
                data.get("category") or "GROW",
            )
            data["sequence_number"] = work_id.sequence_number
            data["work_id"] = str(work_id)

    result.is_valid = not result.errors
    return result


def validate_sheet(config: SheetConfig, rows: Sequence[Row], ctx: _Context) -> SheetValidationResult:
    schema = get_entity_schema(config.entity_type)
    sheet = SheetValidationResult(sheet_name=config.sheet_name, entity_type=config.entity_type)

    for index, row in enumerate(rows):
        if is_empty_row(row):
            continue
        row_result = validate_row(row, index + 2, config, schema, ctx)
        sheet.row_results.append(row_result)
        if row_result.is_valid:
            sheet.valid_count += 1
        else:
            sheet.error_count += 1
        sheet.warning_count += len(row_result.warnings)
        if row_result.duplicate:
            sheet.duplicate_count += 1

    logger.debug(
        "Sheet '%s' (%s): %d valid, %d with errors, %d warnings, %d duplicates",
        config.sheet_name, config.entity_type, sheet.valid_count, sheet.error_count,
        sheet.warning_count, sheet.duplicate_count,
    )
    return sheet


def validate_import(
    sheet_configs: Sequence[SheetConfig],
    sheet_data: Dict[str, Sequence[Row]],
    existing: Optional[ExistingRecords] = None,
    policy: Optional[ImportPolicy] = None,
    *,
    today: Optional[date] = None,
    id_factory: Optional[Callable[[], str]] = None,
    scoring: ScoringConfig = DEFAULT_SCORING,
) -> ImportValidationResult:
    """Validate every enabled sheet and resolve cross-sheet references.

    Args:
        sheet_configs: One SheetConfig per sheet to import
        sheet_data: Data rows (header excluded) keyed by sheet name
        existing: Snapshot of existing records by entity type
        policy: Enforcement policy (default: ImportPolicy())
        today: Reference date for due-date rules and fiscal year defaults
        id_factory: Produces ids for valid rows (default: uuid4 strings)
        scoring: Supplies the fuzzy match floor for references, enums and duplicates
    """
    ctx = _Context(
        existing=existing or {},
        policy=policy or ImportPolicy(),
        today=today or date.today(),
        id_factory=id_factory or (lambda: str(uuid.uuid4())),
        scoring=scoring,
    )
    result = ImportValidationResult()

    enabled = [c for c in sheet_configs if c.enabled]
    if not enabled:
        result.global_errors.append("No sheets are enabled for import")

    for config in order_by_dependency(enabled):
        if config.entity_type not in ENTITY_SCHEMAS:
            result.global_errors.append(
                f'Sheet "{config.sheet_name}" has unknown entity type "{config.entity_type}"'
            )
            continue

        rows = sheet_data.get(config.sheet_name)
        if not rows or all(is_empty_row(r) for r in rows):
            result.global_errors.append(f'Sheet "{config.sheet_name}" has no data')
            continue

        sheet_result = validate_sheet(config, rows, ctx)
        result.sheets.append(sheet_result)
        update_lookups(ctx.lookups, sheet_result)

    valid_with_warnings = 0
    for sheet in result.sheets:
        result.total_rows += len(sheet.row_results)
        result.valid_rows += sheet.valid_count
        result.error_rows += sheet.error_count
        result.warning_count += sheet.warning_count
        result.duplicate_count += sheet.duplicate_count
        valid_with_warnings += sum(1 for r in sheet.row_results if r.is_valid and r.warnings)

    if ctx.policy.fields.treat_warnings_as_errors:
        result.valid_rows -= valid_with_warnings
        result.error_rows += valid_with_warnings

    no_global = not result.global_errors
    result.is_valid = no_global and result.error_rows == 0
    result.can_proceed = no_global and result.valid_rows > 0

    logger.info(
        "Validated %d sheet(s): %d rows, %d valid, %d with errors, %d duplicates",
        len(result.sheets), result.total_rows, result.valid_rows,
        result.error_rows, result.duplicate_count,
    )
    return result
