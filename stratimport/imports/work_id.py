"""
Project work identifiers.

Format: DEPT-YY-CAT-SEQ, e.g. OPS-25-GROW-012. The sequence counts projects
per (department, fiscal year, category).
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional, Tuple

from stratimport.imports.schemas import CATEGORY_CODES, DEPARTMENT_CODES


@dataclass(frozen=True)
class WorkId:
    department_code: str
    fiscal_year: int
    category: str
    sequence_number: int

    def __str__(self) -> str:
        return generate_work_id(
            self.department_code, self.fiscal_year, self.category, self.sequence_number
        )


def generate_work_id(department_code: str, fiscal_year: int, category: str,
                     sequence_number: int) -> str:
    year_short = str(int(fiscal_year))[-2:]
    return f"{department_code}-{year_short}-{category}-{int(sequence_number):03d}"


def parse_work_id(work_id: str) -> Optional[WorkId]:
    """Split a work id into its parts; None when malformed or codes are unknown."""
    parts = str(work_id).split("-")
    if len(parts) != 4:
        return None
    dept, year, category, seq = parts
    if dept not in DEPARTMENT_CODES or category not in CATEGORY_CODES:
        return None
    if not year.isdigit() or not seq.isdigit():
        return None
    return WorkId(dept, 2000 + int(year), category, int(seq))


def is_valid_work_id(work_id: str) -> bool:
    return parse_work_id(work_id) is not None


def current_fiscal_year(today: Optional[date] = None) -> int:
    """Fiscal years start in January."""
    return (today or date.today()).year


def _project_key(project: Dict[str, Any]) -> Optional[Tuple[str, int, str, int]]:
    """(dept, year, category, sequence) for an existing project record."""
    seq = project.get("sequence_number")
    dept = project.get("department_code")
    year = project.get("fiscal_year")
    category = project.get("category")
    if seq is not None and dept and year is not None and category:
        try:
            return dept, int(year), category, int(seq)
        except (TypeError, ValueError):
            return None

    parsed = parse_work_id(project.get("work_id") or "")
    if parsed:
        return (parsed.department_code, parsed.fiscal_year, parsed.category,
                parsed.sequence_number)
    return None


def next_sequence_number(projects: Iterable[Dict[str, Any]], department_code: str,
                         fiscal_year: int, category: str) -> int:
    """Highest sequence among matching projects plus one, or 1 when none match."""
    highest = 0
    for project in projects:
        key = _project_key(project)
        if key and key[:3] == (department_code, int(fiscal_year), category):
            highest = max(highest, key[3])
    return highest + 1


class WorkIdAllocator:
    """Hands out work ids for one import run.

    Seeded from existing projects and advanced on every allocation, so two
    projects in the same batch never share a sequence number.
    """

    def __init__(self, existing_projects: Iterable[Dict[str, Any]] = ()):
        self._highest: Dict[Tuple[str, int, str], int] = {}
        for project in existing_projects:
            key = _project_key(project)
            if key:
                group = key[:3]
                self._highest[group] = max(self._highest.get(group, 0), key[3])

    def allocate(self, department_code: str, fiscal_year: int, category: str) -> WorkId:
        group = (department_code, int(fiscal_year), category)
        sequence = self._highest.get(group, 0) + 1
        self._highest[group] = sequence
        return WorkId(department_code, int(fiscal_year), category, sequence)
