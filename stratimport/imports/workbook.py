"""
Workbook decoding and import template generation.

Reads .xlsx/.xlsm (openpyxl) and .csv files into RawWorkbook structures with
cell types preserved, and writes blank import templates. No Flask imports.
"""

import csv
import io
from io import BytesIO
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from stratimport.core.logging import get_logger
from stratimport.imports.schemas import get_entity_schema
from stratimport.imports.specs import DEPENDENCY_ORDER, RawSheet, RawWorkbook

logger = get_logger("stratimport.imports.workbook")

EXCEL_EXTENSIONS = ("xlsx", "xlsm")


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _headers(raw: Sequence[Any]) -> List[str]:
    """Header cells as trimmed strings; missing ones become "Column N"."""
    headers = []
    for i, value in enumerate(raw):
        text = str(value).strip() if value is not None else ""
        headers.append(text or f"Column {i + 1}")
    return headers


def _build_sheet(name: str, all_rows: List[List[Any]]) -> RawSheet:
    # Drop trailing blank rows; interior blank rows are kept so row numbers line up
    while all_rows and all(_is_blank(c) for c in all_rows[-1]):
        all_rows.pop()
    if not all_rows:
        return RawSheet(name=name, headers=[], rows=[])

    headers = _headers(all_rows[0])
    width = len(headers)
    rows = []
    for row in all_rows[1:]:
        padded = list(row[:width]) + [None] * max(0, width - len(row))
        rows.append(padded)
    return RawSheet(name=name, headers=headers, rows=rows)


def _decode_text(data: bytes) -> str:
    for enc in ("utf-8-sig", "utf-8"):
        try:
            return data.decode(enc)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


def read_csv(data: bytes, filename: str) -> RawWorkbook:
    """A CSV becomes a single-sheet workbook named after the file stem."""
    reader = csv.reader(io.StringIO(_decode_text(data)))
    all_rows: List[List[Any]] = [[cell.strip() for cell in row] for row in reader]
    sheet_name = PurePath(filename).stem or "Sheet1"
    sheet = _build_sheet(sheet_name, all_rows)

    workbook = RawWorkbook(file_name=filename)
    if sheet.headers:
        workbook.sheets.append(sheet)
    else:
        workbook.parse_errors.append(f"{filename}: file is empty")
    return workbook


def read_excel(data: bytes, filename: str) -> RawWorkbook:
    """Read every worksheet; a sheet that fails to read is reported, not fatal."""
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        raise ValueError(f"Could not open workbook {filename}: {exc}") from exc

    workbook = RawWorkbook(file_name=filename)
    try:
        for ws in wb.worksheets:
            try:
                all_rows = [list(row) for row in ws.iter_rows(values_only=True)]
            except Exception as exc:
                logger.warning("Could not read sheet '%s' in %s: %s", ws.title, filename, exc)
                workbook.parse_errors.append(f"Sheet '{ws.title}': {exc}")
                continue

            sheet = _build_sheet(ws.title, all_rows)
            if not sheet.headers:
                logger.debug("Sheet '%s' in %s is empty", ws.title, filename)
            workbook.sheets.append(sheet)
    finally:
        wb.close()

    return workbook


def read_workbook(file_bytes: bytes, filename: str) -> RawWorkbook:
    """Decode CSV or Excel bytes.

    Raises:
        ValueError: If the extension is unsupported or the file can't be opened
    """
    ext = _extension(filename)
    if ext == "csv":
        workbook = read_csv(file_bytes, filename)
    elif ext in EXCEL_EXTENSIONS:
        workbook = read_excel(file_bytes, filename)
    else:
        raise ValueError(f"Unsupported file type: .{ext} (expected .csv or .xlsx)")

    logger.info("Read %s: %d sheet(s)", filename, len(workbook.sheets))
    return workbook


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

# Example rows reference each other so a filled-in template validates as-is
TEMPLATE_EXAMPLES: Dict[str, Dict[str, Any]] = {
    "pillar": {"name": "Customer", "description": "Customer outcomes", "rag_status": "green"},
    "resource": {"name": "Jane Smith", "email": "jane.smith@example.com", "role": "Engineer",
                 "team": "Platform", "weekly_capacity": 40, "department_code": "ENG",
                 "hourly_rate": 95},
    "kpi": {"name": "Net Promoter Score", "pillar_id": "Customer", "target_value": 60,
            "current_value": 45, "unit": "score"},
    "initiative": {"name": "Digital Experience", "pillar_id": "Customer",
                   "owner_id": "Jane Smith", "start_date": "2025-01-01",
                   "end_date": "2025-12-31", "budget": 250000},
    "project": {"name": "Customer Portal", "initiative_id": "Digital Experience",
                "manager_id": "Jane Smith", "status": "in_progress",
                "start_date": "2025-02-01", "end_date": "2025-09-30", "budget": 120000,
                "department_code": "ENG", "category": "GROW", "fiscal_year": 2025},
    "task": {"title": "Design login flow", "project_id": "Customer Portal",
             "assignee_id": "Jane Smith", "kanban_status": "todo",
             "estimated_hours": 16, "priority": "high"},
    "milestone": {"name": "Portal beta", "project_id": "Customer Portal",
                  "target_date": "2025-06-30", "status": "pending"},
}


TEMPLATE_SHEET_NAMES = {
    "pillar": "Strategy Pillars",
    "resource": "Resources",
    "kpi": "KPIs",
    "initiative": "Initiatives",
    "project": "Projects",
    "task": "Tasks",
    "milestone": "Milestones",
}


def template_sheet_name(entity_type: str) -> str:
    return TEMPLATE_SHEET_NAMES[entity_type]


def generate_template(entity_types: Optional[Sequence[str]] = None) -> BytesIO:
    """Excel template with one sheet per entity type, required columns first.

    Raises:
        KeyError: If an entity type is unknown
    """
    wanted = list(entity_types) if entity_types else list(DEPENDENCY_ORDER)
    schemas = [get_entity_schema(t) for t in DEPENDENCY_ORDER if t in wanted]
    unknown = [t for t in wanted if t not in DEPENDENCY_ORDER]
    if unknown:
        raise KeyError(f"Unknown entity type: {unknown[0]}")

    wb = Workbook()
    wb.remove(wb.active)
    bold = Font(bold=True)

    for schema in schemas:
        ws = wb.create_sheet(title=template_sheet_name(schema.entity_type))
        fields = sorted(schema.fields, key=lambda f: not f.required)
        example = TEMPLATE_EXAMPLES.get(schema.entity_type, {})

        for col, field_schema in enumerate(fields, 1):
            cell = ws.cell(row=1, column=col, value=field_schema.label)
            if field_schema.required:
                cell.font = bold
            ws.cell(row=2, column=col, value=example.get(field_schema.name))
            ws.column_dimensions[get_column_letter(col)].width = max(12, len(field_schema.label) + 4)

    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output
