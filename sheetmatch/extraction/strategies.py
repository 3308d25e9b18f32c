"""
Extraction strategies: mapped sheet rows in, target rows out.

The strategy is chosen once per table from its declared shape:

- ``ROW_PER_RECORD``    one output row per populated source row (default)
- ``DOCUMENT_SUMMARY``  one row describing the whole document; fixed cells,
                        manual values and the richest source row
- ``HORIZONTAL_PIVOT``  month columns ("Mes 1", "Mes 2", ...) unpivoted into one
                        row per month with a running cumulative percentage

Every strategy except the pivot gets a permissive retry when it yields nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from sheetmatch.coercion import ValueCoercer
from sheetmatch.logger import get_logger
from sheetmatch.matching.column_matcher import ColumnMatcher
from sheetmatch.matching.config import CERTIFICADO_PROFILE
from sheetmatch.models import ColumnMapping, Sheet, TargetColumn, TemplateTableDef
from sheetmatch.templates.registry import cell_at
from sheetmatch.text import normalize_text

logger = get_logger(__name__)

MONTH_HEADER_RE = re.compile(r"(?:mes|month)\s*\d+", re.IGNORECASE)
MONTHLY_MARKERS = ("mensual", "monthly")
PROGRESS_MARKERS = ("avance", "progress")

PIVOT_PERIOD_KEY = "periodo"
PIVOT_MONTHLY_KEY = "avance_mensual_pct"
PIVOT_CUMULATIVE_KEY = "avance_acumulado_pct"
PIVOT_TABLE_NAME_MARKER = "curva plan"


class Strategy(str, Enum):
    ROW_PER_RECORD = "row-per-record"
    DOCUMENT_SUMMARY = "document-summary"
    HORIZONTAL_PIVOT = "horizontal-pivot"


def has_value(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def count_values(data: Dict[str, Any]) -> int:
    return sum(1 for v in data.values() if has_value(v))


def is_document_level(columns: Sequence[TargetColumn]) -> bool:
    """True when every column is scoped to the parent document (columns without a scope are item columns)."""
    return bool(columns) and all(c.config.scope == "parent" for c in columns)


def is_pivot_table(columns: Sequence[TargetColumn], table_name: str, profile: str = "") -> bool:
    if profile != CERTIFICADO_PROFILE:
        return False
    keys = {c.field_key for c in columns}
    if {PIVOT_PERIOD_KEY, PIVOT_MONTHLY_KEY, PIVOT_CUMULATIVE_KEY} <= keys:
        return True
    return PIVOT_TABLE_NAME_MARKER in normalize_text(table_name)


def choose_strategy(
    columns: Sequence[TargetColumn],
    template: Optional[TemplateTableDef] = None,
    profile: str = "",
    table_name: str = "",
) -> Strategy:
    if template is not None and template.extraction_mode == "horizontal-pivot":
        return Strategy.HORIZONTAL_PIVOT
    if is_pivot_table(columns, table_name, profile):
        return Strategy.HORIZONTAL_PIVOT
    if template is not None and template.summary_cells:
        return Strategy.DOCUMENT_SUMMARY
    if is_document_level(columns):
        return Strategy.DOCUMENT_SUMMARY
    return Strategy.ROW_PER_RECORD


@dataclass
class ExtractionResult:
    rows: List[Dict[str, Any]]
    strategy: Strategy
    fallback_used: bool = False


@dataclass
class ExtractionContext:
    sheet: Sheet
    columns: List[TargetColumn]
    mappings: List[ColumnMapping]
    template: Optional[TemplateTableDef] = None
    table_id: str = ""


class Extractor:
    """
    Run one strategy (plus fallback) over a mapped sheet.

    Output rows are plain ``field_key -> value`` dicts; provenance is attached by
    the orchestrator.
    """

    def __init__(self, matcher: Optional[ColumnMatcher] = None, coercer: Optional[ValueCoercer] = None):
        self._matcher = matcher or ColumnMatcher()
        self._coercer = coercer or ValueCoercer()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def extract(self, ctx: ExtractionContext, strategy: Strategy) -> ExtractionResult:
        if strategy is Strategy.HORIZONTAL_PIVOT:
            return ExtractionResult(self.horizontal_pivot(ctx), strategy)

        if strategy is Strategy.DOCUMENT_SUMMARY:
            rows = self.document_summary(ctx)
        else:
            rows = self.row_per_record(ctx)

        fallback_used = False
        if not rows:
            logger.info("Table %s: no rows from %s, retrying with permissive header matching", ctx.table_id, strategy.value)
            rows = self.fallback(ctx)
            fallback_used = True

        if strategy is Strategy.DOCUMENT_SUMMARY:
            rows = self.richest_row(rows)
        return ExtractionResult(rows, strategy, fallback_used)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _type_for(self, ctx: ExtractionContext, column: TargetColumn) -> str:
        # template tables coerce with the template's declared type
        if ctx.template is not None:
            tcol = ctx.template.column(column.field_key)
            if tcol is not None:
                return tcol.data_type
        return column.data_type

    def _coerce(self, ctx: ExtractionContext, column: TargetColumn, raw: Any) -> Any:
        return self._coercer.coerce(raw, self._type_for(ctx, column))

    @staticmethod
    def richest_row(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Keep the row with most non-empty values; ties keep the earliest."""
        if len(rows) <= 1:
            return rows
        ranked = sorted(rows, key=count_values, reverse=True)
        return [ranked[0]]

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def row_per_record(self, ctx: ExtractionContext) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for source in ctx.sheet.data_rows:
            data: Dict[str, Any] = {}
            for m in ctx.mappings:
                if m.matched_header:
                    raw = source.get(m.matched_header)
                else:
                    manual = (m.manual_override or "").strip()
                    raw = manual or None
                if not has_value(raw):
                    continue
                value = self._coerce(ctx, m.column, raw)
                if has_value(value):
                    data[m.column.field_key] = value
            if data:
                out.append(data)
        return out

    def document_summary(self, ctx: ExtractionContext) -> List[Dict[str, Any]]:
        """
        Without fixed cells this is row-per-record (reduced to the richest row by
        :meth:`extract`). With fixed cells each field reads manual value, then its
        A1 cell, then the first non-empty value under its mapped header.
        """
        summary_cells = ctx.template.summary_cells if ctx.template is not None else {}
        if not summary_cells:
            return self.row_per_record(ctx)

        data: Dict[str, Any] = {}
        for m in ctx.mappings:
            key = m.column.field_key
            manual = (m.manual_override or "").strip()
            if manual:
                data[key] = self._coerce(ctx, m.column, manual)
                continue

            ref = summary_cells.get(key)
            raw = cell_at(ctx.sheet, ref) if ref else None
            if not has_value(raw) and m.matched_header:
                raw = next(
                    (row.get(m.matched_header) for row in ctx.sheet.data_rows if has_value(row.get(m.matched_header))),
                    None,
                )
            data[key] = self._coerce(ctx, m.column, raw) if has_value(raw) else None

        return [data] if count_values(data) > 0 else []

    def horizontal_pivot(self, ctx: ExtractionContext) -> List[Dict[str, Any]]:
        period = self._find_column(ctx.columns, PIVOT_PERIOD_KEY, "periodo")
        monthly = self._find_column(ctx.columns, PIVOT_MONTHLY_KEY, "mensual")
        cumulative = self._find_column(ctx.columns, PIVOT_CUMULATIVE_KEY, "acumulado")
        if period is None or monthly is None or cumulative is None:
            logger.info("Table %s: pivot fields missing, nothing to unpivot", ctx.table_id)
            return []

        month_headers = [h for h in ctx.sheet.headers if h and MONTH_HEADER_RE.search(h)]
        if not month_headers:
            return []

        marker_row = self._find_marker_row(ctx.sheet)
        if marker_row is None:
            logger.info("Table %s: no monthly progress row on sheet %r", ctx.table_id, ctx.sheet.name)
            return []

        out: List[Dict[str, Any]] = []
        running = 0.0
        for header in month_headers:
            pct = self._coercer.parse_percent(marker_row.get(header))
            running += pct
            out.append({
                period.field_key: header,
                monthly.field_key: pct,
                cumulative.field_key: round(running, 2),
            })
        return out

    @staticmethod
    def _find_column(columns: Sequence[TargetColumn], key: str, label_marker: str) -> Optional[TargetColumn]:
        for c in columns:
            if c.field_key == key:
                return c
        for c in columns:
            if label_marker in normalize_text(c.label):
                return c
        return None

    @staticmethod
    def _find_marker_row(sheet: Sheet) -> Optional[Dict[str, Any]]:
        for row in sheet.data_rows:
            text = " ".join(normalize_text("" if v is None else v) for v in row.values())
            if any(m in text for m in MONTHLY_MARKERS) and any(m in text for m in PROGRESS_MARKERS):
                return row
        return None

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def fallback(self, ctx: ExtractionContext) -> List[Dict[str, Any]]:
        """Permissive pass: header/key containment, no confidence threshold, no manual values."""
        loose = self._matcher.permissive_mappings(ctx.sheet.headers, ctx.columns)
        out: List[Dict[str, Any]] = []
        for source in ctx.sheet.data_rows:
            data: Dict[str, Any] = {}
            for m in loose:
                if not m.matched_header:
                    continue
                raw = source.get(m.matched_header)
                data[m.column.field_key] = self._coerce(ctx, m.column, raw) if has_value(raw) else None
            if count_values(data) > 0:
                out.append(data)
        return out
