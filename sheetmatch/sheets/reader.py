"""
WorkbookReader: turn uploaded bytes into normalised :class:`Sheet` objects.

Encapsulates:
- extension dispatch (CSV vs openpyxl for .xlsx/.xlsm vs xlrd for .xls)
- CSV encoding fallback and delimiter sniffing
- merged-range filling (top-left value copied into every cell of the range)
- header detection and row materialisation
"""

from __future__ import annotations

import csv
import io
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import xlrd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from sheetmatch.errors import ImportInputError, WorkbookStructureError
from sheetmatch.logger import get_logger
from sheetmatch.models import Sheet
from sheetmatch.sheets.config import (
    CSV_DELIMITERS,
    CSV_ENCODINGS,
    CSV_EXTENSIONS,
    CSV_SHEET_NAME,
    DEFAULT_CONFIG,
    NormalizerConfig,
    SUPPORTED_EXTENSIONS,
)
from sheetmatch.sheets.data_cleaner import DataCleaner
from sheetmatch.sheets.header_detector import HeaderDetector

logger = get_logger(__name__)


class WorkbookReader:
    """
    Parse CSV/XLSX/XLS content into a list of sheets ready for matching.

    Sheets without headers or without data rows are skipped; a file that yields
    no sheet at all raises :class:`WorkbookStructureError`.
    """

    def __init__(
        self,
        cfg: NormalizerConfig = DEFAULT_CONFIG,
        header_detector: Optional[HeaderDetector] = None,
    ):
        self._cfg = cfg
        self._hd = header_detector or HeaderDetector(cfg)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def extension_of(filename: str) -> str:
        return Path(filename or "").suffix.lower()

    @classmethod
    def is_supported(cls, filename: str) -> bool:
        return cls.extension_of(filename) in SUPPORTED_EXTENSIONS

    def load(self, filename: str, content: bytes) -> List[Sheet]:
        """Parse *content* according to the extension of *filename*."""
        suffix = self.extension_of(filename)
        if suffix not in SUPPORTED_EXTENSIONS:
            raise ImportInputError(
                f"Unsupported file type {suffix or '(none)'!r}; expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
            )

        if suffix in CSV_EXTENSIONS:
            sheets = self.read_csv(content)
        elif suffix == ".xls":
            sheets = self.read_xls(content)
        else:
            sheets = self.read_xlsx(content)

        if not sheets:
            raise WorkbookStructureError(f"No usable sheets found in {filename}")
        logger.info("Parsed %d sheet(s) from %s", len(sheets), filename)
        return sheets

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def read_csv(self, content: bytes) -> List[Sheet]:
        """
        The first non-empty line is the header row; the rest are data rows.

        CSV input skips structural header detection entirely.
        """
        text = self._decode(content)
        delimiter = self._sniff_delimiter(text)
        records = [
            row for row in csv.reader(io.StringIO(text), delimiter=delimiter)
            if any(cell.strip() for cell in row)
        ]
        if not records:
            return []

        grid = DataCleaner.square_grid(records)
        headers = [DataCleaner.cell_to_str(c) for c in grid[0]]
        sheet = self._build_sheet(CSV_SHEET_NAME, grid, headers, 0)
        return [sheet] if sheet is not None else []

    @staticmethod
    def _decode(content: bytes) -> str:
        for encoding in CSV_ENCODINGS:
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                continue
        raise WorkbookStructureError("CSV content could not be decoded")

    @staticmethod
    def _sniff_delimiter(text: str) -> str:
        sample = "\n".join(text.splitlines()[:20])
        if not sample.strip():
            return ","
        try:
            return csv.Sniffer().sniff(sample, delimiters="".join(CSV_DELIMITERS)).delimiter
        except csv.Error:
            first_line = next((line for line in text.splitlines() if line.strip()), "")
            counts = {d: first_line.count(d) for d in CSV_DELIMITERS}
            best = max(counts, key=lambda d: counts[d])
            return best if counts[best] > 0 else ","

    # ------------------------------------------------------------------
    # Workbooks
    # ------------------------------------------------------------------

    def read_xlsx(self, content: bytes) -> List[Sheet]:
        try:
            wb = load_workbook(io.BytesIO(content), data_only=True)
        except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as e:
            raise WorkbookStructureError(f"Workbook could not be opened: {e}") from e

        sheets: List[Sheet] = []
        try:
            for ws in wb.worksheets:
                grid = [list(r) for r in ws.iter_rows(values_only=True)]
                merges = [
                    (rng.min_row - 1, rng.max_row, rng.min_col - 1, rng.max_col)
                    for rng in ws.merged_cells.ranges
                ]
                sheet = self.sheet_from_grid(ws.title, self._fill_merges(grid, merges))
                if sheet is not None:
                    sheets.append(sheet)
        finally:
            wb.close()
        return sheets

    def read_xls(self, content: bytes) -> List[Sheet]:
        try:
            book = xlrd.open_workbook(file_contents=content, formatting_info=True)
        except (xlrd.XLRDError, OSError, ValueError) as e:
            raise WorkbookStructureError(f"Workbook could not be opened: {e}") from e

        sheets: List[Sheet] = []
        for sh in book.sheets():
            grid = [
                [self._xls_cell_value(sh.cell(r, c), book.datemode) for c in range(sh.ncols)]
                for r in range(sh.nrows)
            ]
            # xlrd reports merges as half-open (rlo, rhi, clo, chi) tuples
            sheet = self.sheet_from_grid(sh.name, self._fill_merges(grid, list(sh.merged_cells)))
            if sheet is not None:
                sheets.append(sheet)
        return sheets

    @staticmethod
    def _xls_cell_value(cell: Any, datemode: int) -> Any:
        if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
            return None
        if cell.ctype == xlrd.XL_CELL_DATE:
            try:
                return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
            except (xlrd.xldate.XLDateError, ValueError, OverflowError):
                return cell.value
        if cell.ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(cell.value)
        return cell.value

    @staticmethod
    def _fill_merges(grid: List[List[Any]], merges: Sequence[Sequence[int]]) -> List[List[Any]]:
        """Copy each range's top-left value into every cell of the range (half-open bounds)."""
        for rlo, rhi, clo, chi in merges:
            if rlo >= len(grid) or clo >= len(grid[rlo]):
                continue
            value = grid[rlo][clo]
            for r in range(rlo, min(rhi, len(grid))):
                row = grid[r]
                for c in range(clo, min(chi, len(row))):
                    row[c] = value
        return grid

    # ------------------------------------------------------------------
    # Materialisation
    # ------------------------------------------------------------------

    def sheet_from_grid(self, name: str, grid: List[List[Any]]) -> Optional[Sheet]:
        """Normalise one raw grid (merges already filled); ``None`` when it has no headers or data."""
        rows = DataCleaner.square_grid(grid)
        layout = self._hd.detect(rows)
        logger.debug(
            "Sheet %r: header row %d (%s, score=%.1f)",
            name, layout.header_row_index, layout.reason, layout.best_score,
        )
        return self._build_sheet(name, rows, layout.headers, layout.header_row_index)

    @staticmethod
    def _build_sheet(name: str, rows: List[List[Any]], headers: List[str], header_row_index: int) -> Optional[Sheet]:
        if not any(headers):
            return None

        data_rows: List[Dict[str, Any]] = []
        for row in rows[header_row_index + 1:]:
            record: Dict[str, Any] = {}
            for c, header in enumerate(headers):
                if not header:
                    continue
                record[header] = row[c] if c < len(row) else None
            if all(DataCleaner.is_empty(v) for v in record.values()):
                continue
            data_rows.append(record)

        if not data_rows:
            return None
        return Sheet(
            name=name,
            headers=headers,
            raw_rows=rows,
            data_rows=data_rows,
            header_row_index=header_row_index,
        )
