"""
Rendering of CLI results as plain text, JSON or a markdown table.

Results are dataclasses from ``stratimport.imports.specs`` or plain dicts.
Text and markdown show top-level fields only; nested record lists are
reduced to a count so a validation summary stays one screen long.
"""

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple


class OutputFormat(str, Enum):
    HUMAN = "human"
    JSON = "json"
    MARKDOWN = "markdown"


def to_dict(result: Any) -> Any:
    """Convert dataclasses (and lists of them) into plain JSON-ready structures."""
    if is_dataclass(result) and not isinstance(result, type):
        return asdict(result)
    if isinstance(result, list):
        return [to_dict(item) for item in result]
    if isinstance(result, dict):
        return {key: to_dict(value) for key, value in result.items()}
    return result


def format_result(
    result: Any,
    fmt: OutputFormat = OutputFormat.HUMAN,
    title: Optional[str] = None,
) -> str:
    if fmt == OutputFormat.JSON:
        return json.dumps(to_dict(result), indent=2, default=str)
    if fmt == OutputFormat.MARKDOWN:
        return _render_markdown(result, title)
    return _render_text(result, title)


def _summarise(value: Any) -> Any:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return f"{len(value)} item(s)"
    if isinstance(value, dict):
        return f"{len(value)} entr{'y' if len(value) == 1 else 'ies'}"
    return value


def _fields(result: Any) -> Iterator[Tuple[str, Any]]:
    """(label, value) pairs for the top level of ``result``."""
    data = to_dict(result)
    if not isinstance(data, dict):
        data = {"value": data}
    for key, value in data.items():
        yield str(key).replace("_", " ").title(), _summarise(value)


def _scalar(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:,.1f}" if abs(value) >= 100 else f"{value:.3f}"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) or "-"
    return str(value)


def _render_text(result: Any, title: Optional[str]) -> str:
    fields: Dict[str, Any] = dict(_fields(result))
    width = max((len(label) for label in fields), default=0) + 1

    out = [title, "=" * len(title), ""] if title else []
    for label, value in fields.items():
        if isinstance(value, list):
            shown = "".join(f"\n  - {v}" for v in value) if value else "(none)"
        else:
            shown = _scalar(value)
        out.append(f"{label:<{width}} : {shown}")
    return "\n".join(out)


def _render_markdown(result: Any, title: Optional[str]) -> str:
    out = [f"# {title}", ""] if title else []
    out.append("| Field | Value |")
    out.append("|-------|-------|")
    out.extend(f"| {label} | {_scalar(value)} |" for label, value in _fields(result))
    return "\n".join(out)
