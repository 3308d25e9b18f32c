"""
API module.
===========

FastAPI backend: ``POST /tables/import/spreadsheet`` imports an uploaded (or
previously stored) spreadsheet into one or more target tables.
Options arrive as multipart form fields holding JSON strings.
"""

import json
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from sheetmatch.errors import ImportInputError, StorageError, WorkbookStructureError
from sheetmatch.logger import get_logger
from sheetmatch.models import ImportRequest, SourceFile
from sheetmatch.pipeline import SpreadsheetImporter
from sheetmatch_service.backend.process import build_importer

logger = get_logger(__name__)

app = FastAPI(title="Spreadsheet Import Service")

_importer: Optional[SpreadsheetImporter] = None


def get_importer() -> SpreadsheetImporter:
    """Process-wide importer built from settings on first use."""
    global _importer
    if _importer is None:
        _importer = build_importer()
    return _importer


def _parse_json_field(raw: Optional[str], name: str, default: Any) -> Any:
    if raw is None or not raw.strip():
        return default
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ImportInputError(f"{name} is not valid JSON") from e
    if not isinstance(value, type(default)):
        raise ImportInputError(f"{name} must be a JSON {type(default).__name__}")
    return value


def _str_list(value: List[Any]) -> List[str]:
    return [v for v in value if isinstance(v, str)]


def _str_map(value: Dict[str, Any]) -> Dict[str, str]:
    return {k: v for k, v in value.items() if isinstance(v, str)}


def _nested_str_map(value: Dict[str, Any], allow_null: bool = False) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for table_id, inner in value.items():
        if not isinstance(inner, dict):
            continue
        out[table_id] = {
            k: v for k, v in inner.items()
            if isinstance(v, str) or (allow_null and v is None)
        }
    return out


def _is_truthy_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/tables/import/spreadsheet")
async def import_spreadsheet(
    preview: Optional[str] = None,
    file: Optional[UploadFile] = File(default=None),
    table_ids: Optional[str] = Form(default=None),
    sheet_assignments: Optional[str] = Form(default=None),
    column_mappings: Optional[str] = Form(default=None),
    manual_values: Optional[str] = Form(default=None),
    existing_bucket: Optional[str] = Form(default=None),
    existing_path: Optional[str] = Form(default=None),
    existing_file_name: Optional[str] = Form(default=None),
    importer: SpreadsheetImporter = Depends(get_importer),
):
    """
    Import a spreadsheet for N target tables.

    Returns the per-table breakdown; ``?preview=1`` returns mappings and sample rows
    without writing. Input problems answer 400, persistence failures 500 with the
    full response body.
    """
    try:
        source = None
        if file is not None and file.filename:
            source = SourceFile(filename=file.filename, content=await file.read())
        request = ImportRequest(
            table_ids=_str_list(_parse_json_field(table_ids, "table_ids", [])),
            file=source,
            existing_bucket=(existing_bucket or "").strip() or None,
            existing_path=(existing_path or "").strip() or None,
            existing_file_name=(existing_file_name or "").strip() or None,
            sheet_assignments=_str_map(_parse_json_field(sheet_assignments, "sheet_assignments", {})),
            column_mappings=_nested_str_map(_parse_json_field(column_mappings, "column_mappings", {}), allow_null=True),
            manual_values=_nested_str_map(_parse_json_field(manual_values, "manual_values", {})),
            preview=_is_truthy_flag(preview),
        )
        response = await run_in_threadpool(importer.run, request)
    except (ImportInputError, StorageError, WorkbookStructureError) as e:
        logger.warning("Import rejected: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e

    body = response.model_dump(mode="json")
    if not response.ok:
        return JSONResponse(status_code=500, content=body)
    return body
