"""
Mapping suggestion engine. Proposes a target field for every source column.

Each (column, field) pair is scored by four heuristics (header name, data
type, value pattern, semantic keywords) combined with the weights from
ScoringConfig. Pairs are then assigned greedily, best first, so a column gets
at most one field and a field at most one column.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from stratimport.imports.columns import DATE_PATTERNS, as_text, is_type_compatible
from stratimport.imports.fuzzy import composite_match, normalize, round_score
from stratimport.imports.policy import DEFAULT_SCORING, ScoringConfig
from stratimport.imports.schemas import get_entity_schema
from stratimport.imports.specs import (
    AlternativeMapping,
    ColumnAnalysis,
    ColumnMapping,
    FieldSchema,
    MappingSuggestion,
    SheetAnalysis,
    SheetConfig,
)

MAX_ALTERNATIVES = 3

SEMANTIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "title", "label", "identifier", "id"),
    "description": ("desc", "detail", "about", "summary", "note"),
    "date": ("date", "when", "time", "day", "month", "year"),
    "start": ("start", "begin", "from", "kick", "launch"),
    "end": ("end", "finish", "to", "due", "deadline", "target"),
    "budget": ("budget", "cost", "amount", "price", "spend", "money", "dollar"),
    "hours": ("hour", "time", "effort", "duration"),
    "person": ("owner", "manager", "assignee", "responsible", "lead", "resource"),
    "status": ("status", "state", "phase", "stage"),
    "rag": ("rag", "health", "traffic", "light", "color"),
    "parent": ("parent", "linked", "related", "ref"),
    "department": ("dept", "department", "function", "team", "unit"),
    "priority": ("priority", "urgent", "important", "level"),
    "percentage": ("percent", "pct", "progress", "complete"),
    "email": ("email", "mail", "contact"),
}


@dataclass
class HeuristicScore:
    strategy: str
    score: float
    weight: float
    reason: str

    @property
    def weighted(self) -> float:
        return self.score * self.weight


@dataclass
class ConfidenceResult:
    total: int
    scores: List[HeuristicScore] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------

def header_score(header_name: str, field_schema: FieldSchema,
                 scoring: ScoringConfig = DEFAULT_SCORING) -> Tuple[float, str]:
    normalized = normalize(header_name)
    if normalized and normalized == normalize(field_schema.name):
        return 100, f'Exact match: "{field_schema.name}"'
    if normalized and normalized == normalize(field_schema.label):
        return 100, f'Exact match: "{field_schema.label}"'

    result = composite_match(
        header_name, field_schema.name,
        [field_schema.label, *field_schema.aliases],
        report_minimum=scoring.report_minimum,
    )
    return result.score, result.reason


def type_score(column: ColumnAnalysis, field_schema: FieldSchema) -> Tuple[float, str]:
    if column.inferred_type == field_schema.type:
        return 100, f"Type match: {field_schema.type}"
    if is_type_compatible(column.inferred_type, field_schema.type):
        return 70, f"Compatible type: {column.inferred_type} -> {field_schema.type}"
    if column.inferred_type == "string":
        return 40, "String can be converted"
    return 0, "Incompatible types"


def pattern_score(column: ColumnAnalysis, field_schema: FieldSchema) -> Tuple[float, str]:
    if field_schema.patterns and column.sample_values:
        compiled = [re.compile(p) for p in field_schema.patterns]
        samples = [as_text(v) for v in column.sample_values]
        matches = sum(1 for s in samples if any(p.search(s) for p in compiled))
        rate = matches / len(samples)
        if rate >= 0.8:
            return 100, "Values match expected pattern"
        if rate >= 0.5:
            return 70, "Some values match pattern"

    if field_schema.type == "date" and any(p in column.detected_patterns for p in DATE_PATTERNS):
        return 90, "Date pattern detected"
    if field_schema.type == "number" and any(
        p in ("currency", "percentage") for p in column.detected_patterns
    ):
        return 80, "Numeric pattern detected"

    if field_schema.type == "enum" and field_schema.enum_values and column.possible_enum_values:
        allowed = {normalize(e) for e in field_schema.enum_values if normalize(e)}
        overlap = [v for v in column.possible_enum_values
                   if v in field_schema.enum_values or normalize(v) in allowed]
        if overlap:
            rate = len(overlap) / len(column.possible_enum_values)
            return round_score(rate * 100), f"{len(overlap)} enum values match"

    return 50, "No specific pattern match"


def semantic_score(header_name: str, field_schema: FieldSchema) -> Tuple[float, str]:
    if not field_schema.semantic_tags:
        return 50, "No semantic tags defined"

    normalized = normalize(header_name)
    for tag in field_schema.semantic_tags:
        for keyword in SEMANTIC_KEYWORDS.get(tag, ()):
            if normalize(keyword) in normalized:
                return 85, f'Contains "{keyword}" ({tag})'

    for tag in field_schema.semantic_tags:
        if normalize(tag) in normalized:
            return 70, f'Contains semantic tag "{tag}"'

    return 30, "Weak semantic match"


def score_column(
    column: ColumnAnalysis,
    field_schema: FieldSchema,
    scoring: ScoringConfig = DEFAULT_SCORING,
) -> ConfidenceResult:
    """Per-strategy scores and the rounded weighted total for one pair."""
    weights = scoring.weights
    strategies = (
        ("Header Match", weights.header, header_score(column.header_name, field_schema, scoring)),
        ("Type Match", weights.data_type, type_score(column, field_schema)),
        ("Pattern Match", weights.pattern, pattern_score(column, field_schema)),
        ("Semantic Match", weights.semantic, semantic_score(column.header_name, field_schema)),
    )
    scores = [
        HeuristicScore(strategy=name, score=score, weight=weight, reason=reason)
        for name, weight, (score, reason) in strategies
    ]
    total = round_score(sum(s.weighted for s in scores))
    return ConfidenceResult(total=max(0, min(100, total)), scores=scores)


def format_match_reason(scores: Sequence[HeuristicScore], minimum: int = 60) -> str:
    """Reason of the strongest weighted strategy scoring at least ``minimum``."""
    significant = [s for s in scores if s.score >= minimum]
    if not significant:
        return "Low confidence match"
    best = significant[0]
    for s in significant[1:]:
        if s.weighted > best.weighted:
            best = s
    return best.reason


def confidence_level(confidence: float) -> str:
    if confidence >= 80:
        return "high"
    if confidence >= 50:
        return "medium"
    if confidence >= 30:
        return "low"
    return "none"


# ---------------------------------------------------------------------------
# Suggestion generation
# ---------------------------------------------------------------------------

def _alternatives(
    column: ColumnAnalysis,
    fields: Iterable[FieldSchema],
    exclude_field: Optional[str],
    used_fields: Set[str],
    scoring: ScoringConfig,
) -> List[AlternativeMapping]:
    alternatives = []
    for field_schema in fields:
        if field_schema.name == exclude_field or field_schema.name in used_fields:
            continue
        result = score_column(column, field_schema, scoring)
        if result.total >= scoring.assignment_minimum:
            alternatives.append(AlternativeMapping(
                target_field=field_schema.name,
                confidence=result.total,
                reason=format_match_reason(result.scores, scoring.report_minimum),
            ))
    alternatives.sort(key=lambda a: a.confidence, reverse=True)
    return alternatives[:MAX_ALTERNATIVES]


def generate_mapping_suggestions(
    columns: Sequence[ColumnAnalysis],
    entity_type: str,
    scoring: ScoringConfig = DEFAULT_SCORING,
) -> List[MappingSuggestion]:
    """One suggestion per column, ordered by column index.

    Ties in confidence go to the lowest column index, then to the field
    declared first in the schema.
    """
    schema = get_entity_schema(entity_type)
    field_order = {f.name: i for i, f in enumerate(schema.fields)}

    pairs = []
    for column in columns:
        for field_schema in schema.fields:
            result = score_column(column, field_schema, scoring)
            if result.total > 0:
                pairs.append((column, field_schema, result))

    pairs.sort(key=lambda p: (-p[2].total, p[0].column_index, field_order[p[1].name]))

    suggestions: List[MappingSuggestion] = []
    assigned_columns: Set[int] = set()
    used_fields: Set[str] = set()

    for column, field_schema, result in pairs:
        if column.column_index in assigned_columns or field_schema.name in used_fields:
            continue
        if result.total < scoring.assignment_minimum:
            continue

        suggestions.append(MappingSuggestion(
            source_column_index=column.column_index,
            source_column_name=column.header_name,
            target_field=field_schema.name,
            target_field_label=field_schema.label,
            confidence=result.total,
            match_reason=format_match_reason(result.scores, scoring.report_minimum),
            is_required=field_schema.required,
            alternatives=_alternatives(
                column, schema.fields, field_schema.name, used_fields, scoring
            ),
        ))
        assigned_columns.add(column.column_index)
        used_fields.add(field_schema.name)

    for column in columns:
        if column.column_index in assigned_columns:
            continue
        suggestions.append(MappingSuggestion(
            source_column_index=column.column_index,
            source_column_name=column.header_name,
            target_field="",
            target_field_label="",
            confidence=0,
            match_reason="No confident match found",
            is_required=False,
            alternatives=_alternatives(column, schema.fields, None, used_fields, scoring),
        ))

    suggestions.sort(key=lambda s: s.source_column_index)
    return suggestions


def validate_required_mappings(
    suggestions: Sequence[MappingSuggestion], entity_type: str
) -> Tuple[bool, List[str]]:
    """Check every required field has a column.

    Returns:
        (is_valid, labels of unmapped required fields)
    """
    mapped = {s.target_field for s in suggestions if s.target_field}
    missing = [f.label for f in get_entity_schema(entity_type).required_fields
               if f.name not in mapped]
    return not missing, missing


def build_sheet_config(
    analysis: SheetAnalysis,
    suggestions: Sequence[MappingSuggestion],
    entity_type: Optional[str] = None,
    enabled: bool = True,
) -> SheetConfig:
    """Turn suggestions into an editable SheetConfig for the validation pipeline.

    Raises:
        ValueError: If no entity type is given and none was detected
    """
    target_type = entity_type or analysis.suggested_entity_type
    if not target_type:
        raise ValueError(f"No entity type for sheet '{analysis.sheet_name}'")

    by_index = {s.source_column_index: s for s in suggestions}
    mappings = []
    for index, header in enumerate(analysis.headers):
        suggestion = by_index.get(index)
        target = suggestion.target_field if suggestion and suggestion.target_field else None
        mappings.append(ColumnMapping(
            source_column_index=index, source_column_name=header, target_field=target,
        ))
    return SheetConfig(
        sheet_name=analysis.sheet_name,
        entity_type=target_type,
        column_mappings=mappings,
        enabled=enabled,
    )
