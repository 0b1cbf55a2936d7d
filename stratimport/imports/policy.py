"""
Scoring configuration and import policy.

ScoringConfig holds every heuristic weight and threshold used by the
analyzers and the mapping engine. ImportPolicy is the enforcement bundle the
validation pipeline reads: required-field additions, fuzzy reference
matching, and business-rule switches. Both load their values from
config.yaml, with dataclass defaults when a key is absent.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from stratimport.core.config import deep_merge, get_config_value


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoringWeights:
    header: float = 0.40
    data_type: float = 0.25
    pattern: float = 0.20
    semantic: float = 0.15

    def __post_init__(self):
        total = self.header + self.data_type + self.pattern + self.semantic
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0 (got {total:.3f})")


@dataclass(frozen=True)
class ScoringConfig:
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    assignment_minimum: int = 30
    pattern_match_rate: float = 0.5
    dominant_type_rate: float = 0.8
    enum_max_unique: int = 10
    enum_unique_ratio: float = 0.3
    header_keyword_minimum: int = 70
    entity_minimum: int = 30
    fuzzy_floor: int = 50
    report_minimum: int = 60

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoringConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown scoring settings: {', '.join(sorted(unknown))}")
        values = dict(data)
        if "weights" in values and not isinstance(values["weights"], ScoringWeights):
            values["weights"] = ScoringWeights(**values["weights"])
        return cls(**values)


DEFAULT_SCORING = ScoringConfig()


def load_scoring_config() -> ScoringConfig:
    """ScoringConfig with config.yaml's ``scoring`` section laid over the defaults."""
    return ScoringConfig.from_dict(get_config_value("scoring", default={}) or {})


# ---------------------------------------------------------------------------
# Import policy
# ---------------------------------------------------------------------------

@dataclass
class FieldPolicy:
    treat_warnings_as_errors: bool = False
    additional_required: Dict[str, List[str]] = field(default_factory=dict)
    minimum_completeness: int = 0   # percent of schema fields a row must fill


@dataclass
class ReferencePolicy:
    allow_fuzzy_matching: bool = True
    fuzzy_match_threshold: int = 70


@dataclass
class BusinessRulePolicy:
    enforce_project_date_range: bool = True
    enforce_budget_positive: bool = True
    enforce_completion_range: bool = True
    check_project_budget: bool = True
    reject_over_budget_projects: bool = False
    check_task_due_dates: bool = True
    reject_overdue_tasks: bool = False
    clamp_negative_task_hours: bool = True
    check_initiative_budget: bool = True
    reject_over_budget_initiatives: bool = False
    check_milestone_completion: bool = True


_SECTIONS = {
    "fields": FieldPolicy,
    "references": ReferencePolicy,
    "business_rules": BusinessRulePolicy,
}


def _build_section(cls, data: Dict[str, Any], section: str):
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {section} policy settings: {', '.join(sorted(unknown))}")
    return cls(**data)


@dataclass
class ImportPolicy:
    fields: FieldPolicy = field(default_factory=FieldPolicy)
    references: ReferencePolicy = field(default_factory=ReferencePolicy)
    business_rules: BusinessRulePolicy = field(default_factory=BusinessRulePolicy)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ImportPolicy":
        data = data or {}
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ValueError(f"Unknown policy sections: {', '.join(sorted(unknown))}")
        sections = {
            name: _build_section(section_cls, data.get(name) or {}, name)
            for name, section_cls in _SECTIONS.items()
        }
        return cls(**sections)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def additional_required_for(self, entity_type: str) -> List[str]:
        return list(self.fields.additional_required.get(entity_type, []))

    def with_overrides(self, overrides: Dict[str, Any]) -> "ImportPolicy":
        return ImportPolicy.from_dict(deep_merge(self.to_dict(), overrides))


def available_presets() -> List[str]:
    return list((get_config_value("presets", default={}) or {}).keys())


def load_policy(
    preset: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ImportPolicy:
    """Build an ImportPolicy from a config.yaml preset plus optional overrides.

    Args:
        preset: Preset name (default: ``import.preset`` from config.yaml)
        overrides: Nested dict merged over the preset, same shape as a preset

    Raises:
        KeyError: If the preset is not defined in config.yaml
        ValueError: If the preset or overrides contain unknown settings
    """
    name = preset or get_config_value("import", "preset", default="standard")
    presets = get_config_value("presets", default={}) or {}
    if name not in presets:
        raise KeyError(f"Unknown import policy preset: {name}")

    data = presets[name] or {}
    if overrides:
        data = deep_merge(data, overrides)
    return ImportPolicy.from_dict(data)

