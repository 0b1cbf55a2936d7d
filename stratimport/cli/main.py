"""
stratimport CLI - Main Entry Point

Usage:
    stratimport version
    stratimport analyze FILE
    stratimport validate FILE [--existing snapshot.json] [--preset strict]
    stratimport run FILE --output records.json
    stratimport template OUT.xlsx [--entity project --entity task]
    stratimport serve
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

import stratimport
from stratimport.core.output import OutputFormat, format_result, to_dict
from stratimport.imports import (
    ImportBlockedError,
    RecordCollector,
    analyze_workbook_file,
    auto_configure,
    execute_import,
    load_policy,
    suggest_mappings,
    validate_import,
)
from stratimport.imports.policy import load_scoring_config
from stratimport.imports.validation import check_existing_records
from stratimport.imports.workbook import generate_template

app = typer.Typer(
    name="stratimport",
    help="Smart spreadsheet import for strategy portfolios.",
    no_args_is_help=True,
)

FILE_ARG = typer.Argument(..., exists=True, dir_okay=False, help="Workbook (.xlsx, .xlsm or .csv)")
FORMAT_OPT = typer.Option(OutputFormat.HUMAN, "--format", "-f", help="Output format")
EXISTING_OPT = typer.Option(None, "--existing", "-e", help="JSON snapshot of existing records")
PRESET_OPT = typer.Option(None, "--preset", "-p", help="Import policy preset (standard, strict, lenient)")


def _fail(exc: Exception):
    message = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _load_existing(path: Optional[Path]) -> Dict[str, List[Dict[str, Any]]]:
    """Existing records as ``{entity_type: [record, ...]}`` from a JSON file."""
    if path is None:
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain an object keyed by entity type")
    return check_existing_records(data)


def _validate_file(file: Path, existing: Optional[Path], preset: Optional[str]):
    policy = load_policy(preset)
    raw, parsed = analyze_workbook_file(file.read_bytes(), file.name)
    configs = auto_configure(parsed, raw)
    validation = validate_import(
        configs, raw.sheet_data(), _load_existing(existing), policy, scoring=load_scoring_config()
    )
    return parsed, configs, validation


def _validation_summary(validation) -> Dict[str, Any]:
    return {
        "is_valid": validation.is_valid,
        "can_proceed": validation.can_proceed,
        "total_rows": validation.total_rows,
        "valid_rows": validation.valid_rows,
        "error_rows": validation.error_rows,
        "warnings": validation.warning_count,
        "duplicates": validation.duplicate_count,
        "global_errors": validation.global_errors,
    }


@app.command()
def version():
    """Show stratimport version."""
    typer.echo(f"stratimport {stratimport.__version__}")


@app.command()
def analyze(file: Path = FILE_ARG, fmt: OutputFormat = FORMAT_OPT):
    """Detect entity types and suggest column mappings for every sheet."""
    try:
        raw, parsed = analyze_workbook_file(file.read_bytes(), file.name)
    except ValueError as exc:
        _fail(exc)
    suggestions = suggest_mappings(parsed, raw)

    if fmt == OutputFormat.JSON:
        payload = {"workbook": parsed, "suggestions": suggestions}
        typer.echo(format_result(payload, fmt=fmt))
        return

    typer.echo(f"{parsed.file_name}: {len(parsed.sheets)} sheet(s)")
    for error in parsed.parse_errors:
        typer.echo(f"  ! {error}")

    for sheet in parsed.sheets:
        typer.echo("")
        if not sheet.importable:
            typer.echo(f"[{sheet.sheet_name}] skipped (not a data sheet)")
            continue
        detected = sheet.suggested_entity_type or "unknown"
        typer.echo(
            f"[{sheet.sheet_name}] {sheet.row_count} rows -> {detected} "
            f"({sheet.entity_confidence}% confidence)"
        )
        for reason in sheet.entity_match_reasons:
            typer.echo(f"    {reason}")
        for s in suggestions.get(sheet.sheet_name, []):
            target = s.target_field or "(ignored)"
            typer.echo(f"  {s.source_column_name:<28} -> {target:<22} {s.confidence:>3}%  {s.match_reason}")


@app.command()
def validate(
    file: Path = FILE_ARG,
    existing: Optional[Path] = EXISTING_OPT,
    preset: Optional[str] = PRESET_OPT,
    fmt: OutputFormat = FORMAT_OPT,
):
    """Auto-configure and validate a workbook. Exits 1 when it cannot be imported."""
    try:
        _, configs, validation = _validate_file(file, existing, preset)
    except (ValueError, KeyError) as exc:
        _fail(exc)

    if fmt == OutputFormat.JSON:
        typer.echo(format_result({"configs": configs, "validation": validation}, fmt=fmt))
    else:
        typer.echo(format_result(_validation_summary(validation), fmt=fmt, title=f"Validation: {file.name}"))
        if fmt == OutputFormat.HUMAN:
            for sheet in validation.sheets:
                typer.echo(f"\n[{sheet.sheet_name}] {sheet.entity_type}: "
                           f"{sheet.valid_count} valid, {sheet.error_count} with errors")
                for row in sheet.row_results:
                    for issue in row.errors + row.warnings:
                        typer.echo(f"  row {row.row_number} {issue.severity}: "
                                   f"{issue.field_label}: {issue.message}")

    if not validation.can_proceed:
        raise typer.Exit(1)


@app.command()
def run(
    file: Path = FILE_ARG,
    output: Path = typer.Option(..., "--output", "-o", help="Where to write the created records (JSON)"),
    existing: Optional[Path] = EXISTING_OPT,
    preset: Optional[str] = PRESET_OPT,
    fmt: OutputFormat = FORMAT_OPT,
):
    """Validate a workbook and write the importable records to a JSON file."""
    try:
        _, _, validation = _validate_file(file, existing, preset)
    except (ValueError, KeyError) as exc:
        _fail(exc)

    collector = RecordCollector()
    try:
        result = execute_import(validation, collector.create)
    except ImportBlockedError as exc:
        _fail(exc)

    collector.save(output)
    summary = {
        "success": result.success,
        "attempted": result.total_attempted,
        "created": result.total_successful,
        "failed": result.total_failed,
        "duration_ms": result.duration_ms,
        "output": str(output),
    }
    if fmt == OutputFormat.JSON:
        typer.echo(format_result({"summary": summary, "result": to_dict(result)}, fmt=fmt))
    else:
        typer.echo(format_result(summary, fmt=fmt, title=f"Import: {file.name}"))


@app.command()
def template(
    out: Path = typer.Argument(..., dir_okay=False, help="Where to write the .xlsx template"),
    entity: Optional[List[str]] = typer.Option(None, "--entity", "-t", help="Entity type (repeatable)"),
):
    """Write a blank import template with an example row per sheet."""
    try:
        buffer = generate_template(entity or None)
    except KeyError as exc:
        _fail(exc)

    out.write_bytes(buffer.getvalue())
    typer.echo(f"Template written to {out}")


@app.command()
def serve(
    port: int = typer.Option(5000, "--port", "-p", help="Port number"),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host address"),
    debug: bool = typer.Option(False, "--debug", help="Use Flask dev server with auto-reload"),
    threads: int = typer.Option(8, "--threads", help="Waitress worker threads (production only)"),
):
    """Launch the import HTTP API.

    Default: Waitress production server. With --debug: Flask dev server.
    """
    from stratimport.api import create_app

    web = create_app()

    if debug:
        typer.echo(f"Starting Flask dev server at http://{host}:{port}")
        web.run(host=host, port=port, debug=True)
        return

    from waitress import serve as waitress_serve

    typer.echo(f"Starting Waitress server on {host}:{port} ({threads} threads)")
    waitress_serve(web, host=host, port=port, threads=threads)


def main():
    """Entry point for the stratimport CLI."""
    app()


if __name__ == "__main__":
    main()
