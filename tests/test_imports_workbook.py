"""Tests for workbook decoding and template generation."""

from datetime import datetime

import pytest
from openpyxl import load_workbook

from stratimport.imports.engine import analyze_workbook_file, auto_configure
from stratimport.imports.policy import ImportPolicy
from stratimport.imports.validation import validate_import
from stratimport.imports.workbook import (
    TEMPLATE_SHEET_NAMES,
    generate_template,
    read_csv,
    read_excel,
    read_workbook,
)


class TestCsv:
    def test_single_sheet_named_after_file(self):
        workbook = read_csv(b"Name,Budget\nAlpha,10\n\nBeta,20\n,\n", "plan.csv")
        (sheet,) = workbook.sheets
        assert sheet.name == "plan"
        assert sheet.headers == ["Name", "Budget"]
        # interior blank row kept, trailing blank row dropped
        assert sheet.rows == [["Alpha", "10"], [None, None], ["Beta", "20"]]

    def test_utf8_bom(self):
        workbook = read_csv(b"\xef\xbb\xbfName\nA\n", "bom.csv")
        assert workbook.sheets[0].headers == ["Name"]

    def test_latin1_fallback(self):
        workbook = read_csv(b"Name\nCaf\xe9\n", "cafe.csv")
        assert workbook.sheets[0].rows == [["Café"]]

    def test_empty_file(self):
        workbook = read_csv(b"", "empty.csv")
        assert workbook.sheets == []
        assert workbook.parse_errors == ["empty.csv: file is empty"]


class TestExcel:
    def test_cell_types_preserved(self, make_xlsx):
        data = make_xlsx({
            "Projects": [
                ["Name", None, "Budget", "Start"],
                ["Portal", "x", 5, datetime(2025, 2, 1)],
            ],
        })
        workbook = read_excel(data, "plan.xlsx")
        sheet = workbook.get("Projects")
        assert sheet.headers == ["Name", "Column 2", "Budget", "Start"]
        assert sheet.rows[0][2] == 5
        assert sheet.rows[0][3] == datetime(2025, 2, 1)

    def test_every_sheet_read(self, strategy_xlsx):
        workbook = read_excel(strategy_xlsx, "plan.xlsx")
        assert [s.name for s in workbook.sheets] == [
            "Pillars", "Initiatives", "Projects", "Instructions",
        ]
        assert workbook.sheet_data()["Projects"][1][0] == "Data Lake"

    def test_unreadable_bytes(self):
        with pytest.raises(ValueError, match="Could not open workbook bad.xlsx"):
            read_excel(b"not a zip file", "bad.xlsx")


class TestReadWorkbook:
    def test_dispatch_by_extension(self, strategy_xlsx):
        assert read_workbook(b"A\n1\n", "data.CSV").sheets[0].name == "data"
        assert len(read_workbook(strategy_xlsx, "plan.xlsx").sheets) == 4

    def test_unsupported_extension(self):
        with pytest.raises(ValueError, match=r"Unsupported file type: \.txt"):
            read_workbook(b"hello", "notes.txt")


class TestTemplate:
    def test_all_sheets_in_dependency_order(self):
        wb = load_workbook(generate_template())
        assert wb.sheetnames == [
            "Strategy Pillars", "Resources", "KPIs", "Initiatives", "Projects",
            "Tasks", "Milestones",
        ]

    def test_required_columns_first_and_bold(self):
        wb = load_workbook(generate_template(["kpi"]))
        ws = wb[TEMPLATE_SHEET_NAMES["kpi"]]
        headers = [cell.value for cell in ws[1]]
        assert headers[:4] == ["KPI Name", "Strategy Pillar", "Target Value", "Current Value"]
        assert ws["A1"].font.bold
        assert not ws.cell(row=1, column=5).font.bold
        assert ws["A2"].value == "Net Promoter Score"

    def test_unknown_entity_type(self):
        with pytest.raises(KeyError, match="Unknown entity type: invoice"):
            generate_template(["pillar", "invoice"])

    def test_filled_template_validates(self, today, id_factory):
        raw, parsed = analyze_workbook_file(generate_template(["pillar"]).getvalue(), "t.xlsx")
        configs = auto_configure(parsed, raw)
        assert [c.entity_type for c in configs] == ["pillar"]

        result = validate_import(configs, raw.sheet_data(), {}, ImportPolicy(),
                                 today=today, id_factory=id_factory)
        assert result.valid_rows == 1
        assert result.sheets[0].row_results[0].transformed_data["name"] == "Customer"
