"""
Import pipeline.
================

``SpreadsheetImporter.run`` drives one "import spreadsheet for N target tables"
request:

    load file -> parse sheets -> per table: select sheet -> map columns
    -> extract rows (with fallback) -> preview or persist

Tables are independent. A persistence failure is recorded on its own table and
the remaining tables still run; rows already committed stay committed.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple

from sheetmatch.errors import ImportInputError, PersistenceError
from sheetmatch.extraction.strategies import ExtractionContext, Extractor, choose_strategy
from sheetmatch.logger import get_logger
from sheetmatch.matching.column_matcher import ColumnMatcher
from sheetmatch.matching.sheet_selector import SheetChoice, SheetSelector
from sheetmatch.models import (
    ColumnMapping,
    ExtractedRow,
    ImportRequest,
    ImportResponse,
    MappingPreview,
    ProcessingStatus,
    Provenance,
    Sheet,
    SheetSummary,
    TableResult,
    TargetColumn,
    TargetTable,
    TemplateTableDef,
)
from sheetmatch.sheets.reader import WorkbookReader
from sheetmatch.storage.base import FileStorage, RowStore, SchemaStore
from sheetmatch.templates.registry import recognize_template

logger = get_logger(__name__)

DEFAULT_TABLE_NAME = "Tabla"


def unique_ids(ids: List[str]) -> List[str]:
    """Drop blanks and repeats, keeping first-occurrence order."""
    seen = set()
    out = []
    for tid in ids:
        tid = (tid or "").strip()
        if tid and tid not in seen:
            seen.add(tid)
            out.append(tid)
    return out


class SpreadsheetImporter:
    """
    Orchestrates sheet parsing, matching, extraction and persistence.

    Args:
        schema_store: source of target tables and columns
        row_store: destination of extracted rows and processing status
        file_storage: needed only for requests that reference a stored file
        max_workers: tables processed concurrently (1 = sequential)
        preview_row_limit: sample rows returned per table in preview mode
    """

    def __init__(
        self,
        schema_store: SchemaStore,
        row_store: RowStore,
        file_storage: Optional[FileStorage] = None,
        reader: Optional[WorkbookReader] = None,
        matcher: Optional[ColumnMatcher] = None,
        max_workers: int = 1,
        preview_row_limit: int = 40,
    ):
        self.schema_store = schema_store
        self.row_store = row_store
        self.file_storage = file_storage
        self.reader = reader or WorkbookReader()
        self.matcher = matcher or ColumnMatcher()
        self.selector = SheetSelector(self.matcher)
        self.extractor = Extractor(self.matcher)
        self.max_workers = max(1, int(max_workers))
        self.preview_row_limit = preview_row_limit

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def run(self, request: ImportRequest) -> ImportResponse:
        table_ids = unique_ids(request.table_ids)
        if not table_ids:
            raise ImportInputError("No target tables were requested")

        filename, content = self._load_source(request)
        provenance = self._provenance(request, filename)
        sheets = self.reader.load(filename, content)

        tables = self.schema_store.get_tables(table_ids)
        columns = self.schema_store.get_columns(table_ids)

        def work(tid: str) -> TableResult:
            return self._run_table(tid, tables.get(tid), columns.get(tid, []), sheets, request, provenance)

        if self.max_workers > 1 and len(table_ids) > 1:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(table_ids))) as pool:
                results = list(pool.map(work, table_ids))
        else:
            results = [work(tid) for tid in table_ids]

        errors = [r.error for r in results if r.error]
        response = ImportResponse(
            ok=not errors,
            preview=request.preview,
            source_name=filename,
            inserted=sum(r.inserted for r in results),
            per_table=results,
            error=errors[0] if errors else None,
        )
        logger.info(
            "Import of %s finished: %d table(s), %d row(s)%s%s",
            filename, len(results), response.inserted,
            " (preview)" if request.preview else "",
            f", {len(errors)} failure(s)" if errors else "",
        )
        return response

    def _load_source(self, request: ImportRequest) -> Tuple[str, bytes]:
        if request.file is not None:
            return request.file.filename, request.file.content
        if request.existing_bucket and request.existing_path:
            if self.file_storage is None:
                raise ImportInputError("Stored files are not available in this configuration")
            content = self.file_storage.read(request.existing_bucket, request.existing_path)
            name = request.existing_file_name or PurePosixPath(request.existing_path).name
            return name, content
        raise ImportInputError("A file or an existing bucket/path reference is required")

    @staticmethod
    def _provenance(request: ImportRequest, filename: str) -> Optional[Provenance]:
        # fresh uploads without a stored reference have no document identity
        if not (request.existing_bucket and request.existing_path):
            return None
        return Provenance(
            source_bucket=request.existing_bucket,
            source_path=request.existing_path,
            source_file_name=request.existing_file_name or filename,
        )

    # ------------------------------------------------------------------
    # Per table
    # ------------------------------------------------------------------

    def _run_table(
        self,
        table_id: str,
        table: Optional[TargetTable],
        columns: List[TargetColumn],
        sheets: List[Sheet],
        request: ImportRequest,
        provenance: Optional[Provenance],
    ) -> TableResult:
        table_name = table.name if table is not None else DEFAULT_TABLE_NAME
        result = TableResult(table_id=table_id, table_name=table_name)
        if not columns:
            logger.info("Table %s has no columns, skipping", table_id)
            return result

        profile = (table.settings.spreadsheet_template or "") if table is not None else ""
        template = recognize_template(profile, columns, table_name)
        pinned = (request.sheet_assignments.get(table_id) or "").strip()
        if not pinned and table is not None:
            pinned = (table.settings.pinned_sheet or "").strip()

        choice = self._choose_sheet(sheets, columns, template, profile, pinned or None)
        if choice.sheet is None:
            logger.info("Table %s: no sheet cleared the threshold (best %.3f)", table_id, choice.score)
            return result
        sheet = choice.sheet
        logger.info("Table %s: using sheet %r (%s, score=%.3f)", table_id, sheet.name, choice.reason, choice.score)

        mappings = self._build_mappings(sheet, columns, template, profile, request.column_mappings.get(table_id))
        manual = request.manual_values.get(table_id) or {}
        for m in mappings:
            value = manual.get(m.column.field_key)
            m.manual_override = value if isinstance(value, str) else None
        mapped = sum(1 for m in mappings if m.matched_header)
        logger.info("Table %s: %d/%d column(s) mapped", table_id, mapped, len(mappings))

        strategy = choose_strategy(columns, template, profile, table_name)
        extraction = self.extractor.extract(
            ExtractionContext(sheet=sheet, columns=columns, mappings=mappings, template=template, table_id=table_id),
            strategy,
        )
        rows = extraction.rows
        logger.info(
            "Table %s: %s extracted %d row(s)%s",
            table_id, strategy.value, len(rows), " after fallback" if extraction.fallback_used else "",
        )

        result.sheet_name = sheet.name
        result.strategy = strategy.value
        result.inserted = len(rows)

        if request.preview:
            result.mappings = [
                MappingPreview(
                    field_key=m.column.field_key,
                    label=m.column.label,
                    matched_header=m.matched_header,
                    confidence=round(m.confidence, 4),
                    manual_value=m.manual_override or "",
                )
                for m in mappings
            ]
            result.preview_rows = rows[: self.preview_row_limit]
            result.available_sheets = [
                SheetSummary(name=s.name, headers=s.headers, row_count=len(s.data_rows)) for s in sheets
            ]
            return result

        try:
            result.inserted = self._persist(table_id, rows, provenance)
        except PersistenceError as e:
            logger.error("Table %s: persistence failed: %s", table_id, e, exc_info=True)
            result.inserted = 0
            result.error = str(e)
        return result

    def _choose_sheet(
        self,
        sheets: List[Sheet],
        columns: List[TargetColumn],
        template: Optional[TemplateTableDef],
        profile: str,
        pinned: Optional[str],
    ) -> SheetChoice:
        if template is not None:
            return self.selector.select_for_template(sheets, template, pinned=pinned)
        return self.selector.select(sheets, columns, profile=profile, pinned=pinned)

    def _build_mappings(
        self,
        sheet: Sheet,
        columns: List[TargetColumn],
        template: Optional[TemplateTableDef],
        profile: str,
        explicit: Optional[Dict[str, Optional[str]]],
    ) -> List[ColumnMapping]:
        if explicit is not None:
            return self.matcher.explicit_mappings(sheet, columns, explicit)
        if template is not None:
            return self.matcher.build_template_mappings(sheet.headers, template, columns)
        return self.matcher.build_mappings(sheet.headers, columns, profile)

    def _persist(self, table_id: str, rows: List[dict], provenance: Optional[Provenance]) -> int:
        """
        Store the batch and return how many rows were committed.

        A stored document replaces its previous rows and status in one unit, so a
        failure leaves the earlier import untouched.
        """
        batch = [ExtractedRow(target_table_id=table_id, data=data, provenance=provenance) for data in rows]
        if provenance is None:
            return self.row_store.insert_rows(batch) if batch else 0

        inserted = self.row_store.replace_document_rows(
            table_id,
            provenance.source_path,
            batch,
            ProcessingStatus(
                table_id=table_id,
                source_bucket=provenance.source_bucket,
                source_path=provenance.source_path,
                source_file_name=provenance.source_file_name,
                rows_extracted=len(rows),
            ),
        )
        logger.info("Table %s: replaced rows of %s with %d new row(s)", table_id, provenance.source_path, inserted)
        return inserted
