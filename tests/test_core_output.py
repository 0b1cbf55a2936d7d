"""Tests for CLI output formatting."""

import json

from stratimport.core.output import OutputFormat, format_result, to_dict
from stratimport.imports.specs import RowImportResult, SheetImportResult


def _sheet():
    return SheetImportResult(
        sheet_name="Projects", entity_type="project", attempted=2, successful=1, failed=1,
        results=[
            RowImportResult(row_number=2, success=True, entity_id="id-1"),
            RowImportResult(row_number=3, success=False, error="boom"),
        ],
    )


def test_to_dict_nested():
    data = to_dict({"sheets": [_sheet()]})
    assert data["sheets"][0]["results"][1]["error"] == "boom"


def test_json():
    parsed = json.loads(format_result(_sheet(), OutputFormat.JSON))
    assert parsed["entity_type"] == "project"
    assert len(parsed["results"]) == 2


def test_human_summarises_nested_lists():
    text = format_result(_sheet(), OutputFormat.HUMAN, title="Import")
    assert text.startswith("Import\n======")
    assert "Sheet Name" in text
    assert "2 item(s)" in text


def test_markdown_table():
    text = format_result(_sheet(), OutputFormat.MARKDOWN, title="Import")
    assert "# Import" in text
    assert "| Attempted | 2 |" in text


def test_human_floats():
    assert "0.250" in format_result({"ratio": 0.25})
    assert "1,250.5" in format_result({"amount": 1250.5})
