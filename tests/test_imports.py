"""Import smoke tests for every public module.

A failure here usually means a stale import or a missing dependency.
"""


def test_import_stratimport():
    import stratimport
    assert stratimport.__version__ == "0.1.0"


def test_import_core():
    from stratimport.core import get_config, get_config_value, get_logger  # noqa: F401
    from stratimport.core.output import OutputFormat, format_result  # noqa: F401


def test_import_imports_package():
    from stratimport.imports import (  # noqa: F401
        ImportBlockedError, RecordCollector, analyze_workbook_file, auto_configure,
        execute_import, suggest_mappings, ImportPolicy, ScoringConfig, load_policy,
        ImportResult, ImportValidationResult, SheetConfig, validate_import,
    )


def test_import_analyzers():
    from stratimport.imports.columns import analyze_columns, infer_data_type  # noqa: F401
    from stratimport.imports.sheets import analyze_workbook, detect_entity_type  # noqa: F401
    from stratimport.imports.mapping import generate_mapping_suggestions  # noqa: F401
    from stratimport.imports.fuzzy import composite_match, find_best_match  # noqa: F401


def test_import_pipeline():
    from stratimport.imports.validation import resolve_reference, validate_import  # noqa: F401
    from stratimport.imports.transform import apply_defaults, transform_value  # noqa: F401
    from stratimport.imports.work_id import WorkIdAllocator, generate_work_id  # noqa: F401
    from stratimport.imports.workbook import generate_template, read_workbook  # noqa: F401


def test_import_cli():
    from stratimport.cli.main import app, main  # noqa: F401


def test_import_api():
    from stratimport.api import create_app  # noqa: F401
    from stratimport.api.imports import bp  # noqa: F401
