"""
Shared test fixtures for stratimport.

Provides a CLI runner, a Flask test client, in-memory openpyxl workbooks, a
fixed reference date, deterministic id generation and an existing-records
snapshot.
"""

import itertools
from datetime import date
from io import BytesIO

import pytest
from openpyxl import Workbook


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def client():
    """Flask test client for the import API."""
    from stratimport.api import create_app

    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def today():
    return date(2025, 3, 1)


@pytest.fixture
def id_factory():
    """Sequential ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def existing_records():
    return {
        "pillar": [
            {"id": "p1", "name": "Customer"},
            {"id": "p2", "name": "Financial"},
        ],
        "resource": [{"id": "r1", "name": "Jane Smith"}],
        "initiative": [{"id": "i1", "name": "Digital Experience", "pillar_id": "p1"}],
        "project": [{"id": "pr1", "name": "Legacy Portal", "work_id": "IT-25-GROW-003"}],
        "task": [{"id": "t1", "title": "Foundation", "project_id": "pr1"}],
    }


def build_xlsx(sheets):
    """``{sheet name: [header row, data rows...]}`` -> .xlsx bytes."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_xlsx():
    return build_xlsx


@pytest.fixture
def strategy_sheets():
    """A small, cleanly labelled portfolio workbook plus a help sheet."""
    return {
        "Pillars": [
            ["Pillar Name", "Description"],
            ["Customer", "Customer outcomes"],
            ["Financial", "Revenue and cost"],
        ],
        "Initiatives": [
            ["Initiative Name", "Strategy Pillar", "Budget"],
            ["Digital Experience", "Customer", 250000],
        ],
        "Projects": [
            ["Project Name", "Initiative", "Start Date", "End Date", "Budget"],
            ["Customer Portal", "Digital Experience", date(2025, 2, 1), date(2025, 9, 30), 120000],
            ["Data Lake", "Digital Experience", date(2025, 4, 1), date(2025, 12, 31), 80000],
        ],
        "Instructions": [
            ["Step"],
            ["Fill in one row per record"],
        ],
    }


@pytest.fixture
def strategy_xlsx(strategy_sheets):
    return build_xlsx(strategy_sheets)
