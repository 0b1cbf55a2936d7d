"""Tests for sheet entity detection and workbook analysis."""

from stratimport.imports.policy import ScoringConfig
from stratimport.imports.sheets import (
    analyze_sheet,
    analyze_workbook,
    column_fill_rate,
    detect_entity_type,
    import_candidates,
    is_data_sheet_name,
    unique_values,
)
from stratimport.imports.specs import RawSheet, RawWorkbook


class TestDetectEntityType:
    def test_sheet_name_and_headers(self):
        entity_type, confidence, reasons = detect_entity_type(
            "Projects", ["Project Name", "Budget", "Start Date", "End Date", "Department"]
        )
        assert entity_type == "project"
        assert confidence >= 40
        assert 'Sheet name contains "project"' in reasons
        assert "Has budget and date columns" in reasons

    def test_headers_alone(self):
        entity_type, _, reasons = detect_entity_type(
            "Sheet1", ["KPI Name", "Target Value", "Current Value", "Unit"]
        )
        assert entity_type == "kpi"
        assert "Has target and current value columns" in reasons

    def test_resource_by_email(self):
        entity_type, _, reasons = detect_entity_type("People", ["Name", "Email", "Role"])
        assert entity_type == "resource"
        assert "Has email column" in reasons

    def test_nothing_recognised(self):
        assert detect_entity_type("Data", ["Foo", "Bar"]) == (None, 0, [])

    def test_ties_keep_detection_order(self):
        # "strategy" (pillar) and "metric" (kpi) both score 40
        entity_type, confidence, _ = detect_entity_type("Strategy Metrics", [])
        assert entity_type == "pillar"
        assert confidence == 40

    def test_entity_minimum_from_scoring(self):
        strict = ScoringConfig(entity_minimum=90)
        assert detect_entity_type("Projects", ["Name"], strict)[0] is None

    def test_confidence_capped_at_100(self):
        headers = ["Task", "Assignee", "Kanban", "WBS", "Estimated Hours", "Due Date",
                   "Priority", "Task Status"]
        _, confidence, _ = detect_entity_type("Tasks", headers)
        assert confidence == 100

    def test_task_sheet_with_short_headers(self):
        entity_type, confidence, reasons = detect_entity_type(
            "Tasks", ["Task", "Status", "Est Hours", "Due Date"]
        )
        assert entity_type == "task"
        assert confidence >= 30
        assert 'Sheet name contains "task"' in reasons
        assert "Has status and hours columns" in reasons


class TestDataSheets:
    def test_reference_sheet_names(self):
        assert not is_data_sheet_name("Lookup Values")
        assert not is_data_sheet_name("Instructions")
        assert not is_data_sheet_name("_hidden")
        assert is_data_sheet_name("Projects")

    def test_help_sheet_not_importable(self):
        analysis = analyze_sheet(RawSheet("Instructions", ["Step"], [["Read me"]]))
        assert analysis.importable is False
        assert analysis.suggested_entity_type is None

    def test_empty_sheet_not_importable(self):
        analysis = analyze_sheet(RawSheet("Projects", ["Project Name"], []))
        assert analysis.importable is False

    def test_analyze_sheet_counts(self):
        rows = [["Alpha", 10], ["Beta", 20]]
        analysis = analyze_sheet(RawSheet("Projects", ["Project Name", "Budget"], rows))
        assert analysis.row_count == 2
        assert analysis.column_count == 2
        assert analysis.sample_rows == rows
        assert analysis.suggested_entity_type == "project"


class TestAnalyzeWorkbook:
    def test_candidates_and_errors(self):
        workbook = RawWorkbook(
            file_name="plan.xlsx",
            sheets=[
                RawSheet("Pillars", ["Pillar Name"], [["Customer"]]),
                RawSheet("Codes", ["Code"], [["FIN"]]),
            ],
            parse_errors=["Sheet 'Broken': unreadable"],
        )
        parsed = analyze_workbook(workbook)
        assert parsed.file_name == "plan.xlsx"
        assert parsed.parse_errors == ["Sheet 'Broken': unreadable"]
        assert [s.sheet_name for s in import_candidates(parsed)] == ["Pillars"]
        assert parsed.sheets[0].suggested_entity_type == "pillar"


class TestSheetHelpers:
    def test_fill_rate_and_unique_values(self):
        sheet = RawSheet("Tasks", ["Status"], [["todo"], [None], ["done"], [" todo "]])
        assert column_fill_rate(sheet, 0) == 0.75
        assert unique_values(sheet, 0) == ["todo", "done"]

    def test_fill_rate_empty_sheet(self):
        assert column_fill_rate(RawSheet("Tasks", ["Status"], []), 0) == 0.0
