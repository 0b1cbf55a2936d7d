"""
Imports Blueprint: JSON endpoints for the import pipeline.

Thin delivery layer: all analysis, mapping and validation logic lives in
stratimport.imports.
"""

from typing import Any, Dict, List

from flask import Blueprint, jsonify, request, send_file

from stratimport.core.logging import get_logger
from stratimport.core.output import to_dict
from stratimport.imports.engine import analyze_workbook_file, auto_configure, suggest_mappings
from stratimport.imports.policy import load_policy, load_scoring_config
from stratimport.imports.schemas import ENTITY_SCHEMAS, entity_types, schema_to_dict
from stratimport.imports.sheets import analyze_workbook
from stratimport.imports.specs import ColumnMapping, RawSheet, RawWorkbook, SheetConfig
from stratimport.imports.validation import check_existing_records, validate_import
from stratimport.imports.workbook import generate_template

bp = Blueprint("imports", __name__, url_prefix="/api/imports")

logger = get_logger("stratimport.api.imports")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _error(message: str, status: int = 400):
    return jsonify({"error": message}), status


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def _raw_workbook(sheets: Any) -> RawWorkbook:
    """``{name: {headers: [...], rows: [[...]]}}`` -> RawWorkbook."""
    if not isinstance(sheets, dict) or not sheets:
        raise ValueError("sheets must be a non-empty object keyed by sheet name")

    workbook = RawWorkbook(file_name="payload")
    for name, sheet in sheets.items():
        if not isinstance(sheet, dict):
            raise ValueError(f"Sheet '{name}' must be an object with headers and rows")
        headers = sheet.get("headers")
        rows = sheet.get("rows", [])
        if not isinstance(headers, list) or not isinstance(rows, list):
            raise ValueError(f"Sheet '{name}' needs a headers list and a rows list")
        if any(not isinstance(row, list) for row in rows):
            raise ValueError(f"Sheet '{name}' rows must be lists")
        workbook.sheets.append(RawSheet(
            name=name, headers=[str(h) for h in headers], rows=rows,
        ))
    return workbook


def _sheet_configs(configs: Any) -> List[SheetConfig]:
    if not isinstance(configs, list):
        raise ValueError("configs must be a list")

    parsed = []
    for item in configs:
        if not isinstance(item, dict):
            raise ValueError("Each config must be an object")
        sheet_name = item.get("sheet_name")
        entity_type = item.get("entity_type")
        if not sheet_name or not entity_type:
            raise ValueError("Each config needs sheet_name and entity_type")
        mappings = []
        for mapping in item.get("column_mappings") or []:
            if not isinstance(mapping, dict) or "source_column_index" not in mapping:
                raise ValueError(f"Invalid column mapping in config for '{sheet_name}'")
            mappings.append(ColumnMapping(
                source_column_index=int(mapping["source_column_index"]),
                source_column_name=str(mapping.get("source_column_name", "")),
                target_field=mapping.get("target_field") or None,
            ))
        parsed.append(SheetConfig(
            sheet_name=sheet_name,
            entity_type=entity_type,
            column_mappings=mappings,
            enabled=bool(item.get("enabled", True)),
        ))
    return parsed


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@bp.route("/schemas", methods=["GET"])
def api_schemas():
    return jsonify({
        "entity_types": entity_types(),
        "schemas": {name: schema_to_dict(schema) for name, schema in ENTITY_SCHEMAS.items()},
    })


@bp.route("/analyze", methods=["POST"])
def api_analyze():
    if "file" not in request.files:
        return _error("No file provided")
    f = request.files["file"]
    if not f.filename:
        return _error("No file selected")
    file_bytes = f.read()
    if not file_bytes:
        return _error("File is empty")

    logger.info("Analyze upload: %s (%d bytes)", f.filename, len(file_bytes))

    try:
        raw, parsed = analyze_workbook_file(file_bytes, f.filename)
    except ValueError as exc:
        return _error(str(exc))

    return jsonify({
        "workbook": to_dict(parsed),
        "suggestions": to_dict(suggest_mappings(parsed, raw)),
        "configs": to_dict(auto_configure(parsed, raw)),
    })


@bp.route("/validate", methods=["POST"])
def api_validate():
    payload: Dict[str, Any] = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _error("Request body must be a JSON object")

    try:
        workbook = _raw_workbook(payload.get("sheets"))
        if payload.get("configs") is not None:
            configs = _sheet_configs(payload["configs"])
        else:
            configs = auto_configure(analyze_workbook(workbook), workbook)

        existing = check_existing_records(payload.get("existing") or {})
        policy_overrides = payload.get("policy") or None
        if policy_overrides is not None and not isinstance(policy_overrides, dict):
            raise ValueError("policy must be an object")
        policy = load_policy(payload.get("preset"), policy_overrides)
    except KeyError as exc:
        return _error(exc.args[0] if exc.args else str(exc))
    except ValueError as exc:
        return _error(str(exc))

    result = validate_import(
        configs, workbook.sheet_data(), existing, policy, scoring=load_scoring_config()
    )
    return jsonify({"configs": to_dict(configs), "validation": to_dict(result)})


@bp.route("/template", methods=["GET"])
def api_template():
    requested = request.args.getlist("entity")
    try:
        output = generate_template(requested or None)
    except KeyError as exc:
        return _error(exc.args[0] if exc.args else str(exc))

    return send_file(
        output,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name="strategy_import_template.xlsx",
    )
