"""Tests for project work identifiers."""

from datetime import date

from stratimport.imports.work_id import (
    WorkId,
    WorkIdAllocator,
    current_fiscal_year,
    generate_work_id,
    is_valid_work_id,
    next_sequence_number,
    parse_work_id,
)


def test_generate_work_id():
    assert generate_work_id("OPS", 2025, "GROW", 12) == "OPS-25-GROW-012"


def test_work_id_str():
    assert str(WorkId("IT", 2026, "RUN", 1)) == "IT-26-RUN-001"


def test_parse_work_id():
    assert parse_work_id("IT-25-RUN-007") == WorkId("IT", 2025, "RUN", 7)


def test_parse_rejects_malformed():
    assert parse_work_id("IT-25-RUN") is None
    assert parse_work_id("XX-25-RUN-001") is None
    assert parse_work_id("IT-25-BUILD-001") is None
    assert parse_work_id("IT-YY-RUN-001") is None
    assert not is_valid_work_id("")
    assert is_valid_work_id("HR-24-TRNS-100")


def test_current_fiscal_year():
    assert current_fiscal_year(date(2025, 1, 1)) == 2025


def test_next_sequence_number_mixed_sources():
    projects = [
        {"work_id": "OPS-25-GROW-003"},
        {"department_code": "OPS", "fiscal_year": 2025, "category": "GROW", "sequence_number": 7},
        {"work_id": "OPS-24-GROW-010"},
        {"work_id": "garbage"},
    ]
    assert next_sequence_number(projects, "OPS", 2025, "GROW") == 8


def test_next_sequence_number_first_in_group():
    assert next_sequence_number([], "FIN", 2025, "RUN") == 1


class TestAllocator:
    def test_continues_existing_sequence(self):
        allocator = WorkIdAllocator([{"work_id": "IT-25-GROW-003"}])
        assert str(allocator.allocate("IT", 2025, "GROW")) == "IT-25-GROW-004"
        assert str(allocator.allocate("IT", 2025, "GROW")) == "IT-25-GROW-005"

    def test_new_group_starts_at_one(self):
        allocator = WorkIdAllocator([{"work_id": "IT-25-GROW-003"}])
        assert str(allocator.allocate("OPS", 2025, "GROW")) == "OPS-25-GROW-001"
        assert str(allocator.allocate("IT", 2026, "GROW")) == "IT-26-GROW-001"
