"""Tests for analysis orchestration and import execution."""

import json

import pytest

from stratimport.imports.engine import (
    ImportBlockedError,
    RecordCollector,
    analyze_workbook_file,
    auto_configure,
    execute_import,
    suggest_mappings,
)
from stratimport.imports.policy import ImportPolicy
from stratimport.imports.specs import ColumnMapping, ImportValidationResult, SheetConfig
from stratimport.imports.validation import validate_import


@pytest.fixture
def analyzed(strategy_xlsx):
    return analyze_workbook_file(strategy_xlsx, "plan.xlsx")


@pytest.fixture
def validation(analyzed, today, id_factory):
    raw, parsed = analyzed
    return validate_import(auto_configure(parsed, raw), raw.sheet_data(), {}, ImportPolicy(),
                           today=today, id_factory=id_factory)


class TestAnalysis:
    def test_sheets_detected(self, analyzed):
        _, parsed = analyzed
        detected = {s.sheet_name: s.suggested_entity_type for s in parsed.sheets}
        assert detected == {
            "Pillars": "pillar",
            "Initiatives": "initiative",
            "Projects": "project",
            "Instructions": None,
        }

    def test_suggestions_only_for_candidates(self, analyzed):
        raw, parsed = analyzed
        suggestions = suggest_mappings(parsed, raw)
        assert set(suggestions) == {"Pillars", "Initiatives", "Projects"}
        assert [s.target_field for s in suggestions["Initiatives"]] == [
            "name", "pillar_id", "budget",
        ]

    def test_auto_configure(self, analyzed):
        raw, parsed = analyzed
        configs = {c.sheet_name: c for c in auto_configure(parsed, raw)}
        projects = configs["Projects"]
        assert projects.entity_type == "project"
        assert [m.target_field for m in projects.column_mappings] == [
            "name", "initiative_id", "start_date", "end_date", "budget",
        ]

    def test_unsupported_file(self):
        with pytest.raises(ValueError):
            analyze_workbook_file(b"x", "plan.pdf")


class TestExecute:
    def test_full_flow(self, validation):
        assert validation.valid_rows == 5
        collector = RecordCollector()
        ticks = iter([1.0, 1.25])

        result = execute_import(validation, collector.create, clock=lambda: next(ticks))

        assert result.success
        assert result.total_attempted == 5
        assert result.total_successful == 5
        assert result.duration_ms == 250
        assert collector.count() == 5
        assert collector.count("project") == 2
        assert [p["work_id"] for p in collector.records["project"]] == [
            "IT-25-GROW-001", "IT-25-GROW-002",
        ]
        initiative_id = collector.records["initiative"][0]["id"]
        assert collector.records["project"][0]["initiative_id"] == initiative_id

    def test_blocked(self):
        with pytest.raises(ImportBlockedError, match="no valid rows"):
            execute_import(ImportValidationResult(), RecordCollector().create)

    def test_blocked_by_global_errors(self):
        validation = ImportValidationResult(global_errors=['Sheet "X" has no data'])
        with pytest.raises(ImportBlockedError, match='Sheet "X" has no data'):
            execute_import(validation, RecordCollector().create)

    def test_collaborator_failure_isolated_to_row(self, validation):
        def create(entity_type, record):
            if record.get("name") == "Data Lake":
                raise RuntimeError("database unavailable")
            return None

        result = execute_import(validation, create)

        assert not result.success
        assert result.total_successful == 4
        assert result.total_failed == 1
        projects = next(s for s in result.sheets if s.entity_type == "project")
        assert projects.results[1].error == "database unavailable"
        # None from the collaborator falls back to the validated id
        assert projects.results[0].entity_id is not None

    def test_invalid_rows_reported(self, today, id_factory):
        config = SheetConfig(
            sheet_name="Pillars", entity_type="pillar",
            column_mappings=[
                ColumnMapping(0, "Pillar Name", "name"),
                ColumnMapping(1, "Description", "description"),
            ],
        )
        validation = validate_import([config], {"Pillars": [["Growth", ""], [None, "orphan"]]},
                                     today=today, id_factory=id_factory)

        result = execute_import(validation, RecordCollector().create)

        (sheet,) = result.sheets
        assert [(r.row_number, r.success) for r in sheet.results] == [(2, True), (3, False)]
        assert sheet.results[0].entity_id == "id-1"
        assert sheet.results[1].error == 'Required field "Pillar Name" is empty'

    def test_records_cleaned_of_none(self, validation):
        collector = RecordCollector()
        execute_import(validation, collector.create)
        for records in collector.records.values():
            for record in records:
                assert None not in record.values()


class TestRecordCollector:
    def test_save(self, tmp_path):
        collector = RecordCollector()
        assert collector.create("pillar", {"id": "p9", "name": "Growth"}) == "p9"
        path = tmp_path / "records.json"
        collector.save(path)
        assert json.loads(path.read_text(encoding="utf-8")) == {
            "pillar": [{"id": "p9", "name": "Growth"}],
        }
