"""
Backend wiring.
===============

Builds a :class:`SpreadsheetImporter` from settings and runs import/analysis
jobs for the HTTP and CLI front ends.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from sheetmatch.config import Settings, get_settings
from sheetmatch.logger import get_logger, set_level
from sheetmatch.matching.sheet_selector import analyze_sheets
from sheetmatch.pipeline import SpreadsheetImporter
from sheetmatch.sheets.config import NormalizerConfig
from sheetmatch.sheets.reader import WorkbookReader
from sheetmatch.storage.local import LocalFileStorage, load_schema_store
from sheetmatch.storage.sqlite_store import SqliteRowStore
from sheetmatch.templates.registry import get_catalog

logger = get_logger(__name__)

DEFAULT_ANALYSIS_PROFILE = "certificado"


def build_reader(settings: Settings) -> WorkbookReader:
    return WorkbookReader(NormalizerConfig(header_scan_rows=settings.SHEETMATCH_HEADER_SCAN_ROWS))


def build_importer(
    settings: Optional[Settings] = None,
    schema_path: Optional[str] = None,
    db_path: Optional[str] = None,
) -> SpreadsheetImporter:
    """
    Importer backed by the YAML schema, the SQLite row store and local file storage.

    *schema_path* / *db_path* override the corresponding settings.
    """
    settings = settings or get_settings()
    set_level(settings.SHEETMATCH_LOG_LEVEL)
    return SpreadsheetImporter(
        schema_store=load_schema_store(schema_path or settings.SHEETMATCH_SCHEMA_PATH),
        row_store=SqliteRowStore(db_path or settings.SHEETMATCH_DB_PATH),
        file_storage=LocalFileStorage(settings.SHEETMATCH_STORAGE_ROOT),
        reader=build_reader(settings),
        max_workers=settings.SHEETMATCH_MAX_WORKERS,
        preview_row_limit=settings.SHEETMATCH_PREVIEW_ROW_LIMIT,
    )


def analyze_file(
    file_path: str,
    profile: str = DEFAULT_ANALYSIS_PROFILE,
    settings: Optional[Settings] = None,
) -> List[Dict[str, Any]]:
    """Template fit of every sheet in *file_path* against the tables of *profile*."""
    settings = settings or get_settings()
    path = Path(file_path).expanduser()
    sheets = build_reader(settings).load(path.name, path.read_bytes())
    catalog = get_catalog(profile)
    templates = list(catalog.tables.values()) if catalog is not None else []
    if not templates:
        logger.warning("No template tables known for profile %r", profile)
    return [vars(a) for a in analyze_sheets(sheets, templates)]
