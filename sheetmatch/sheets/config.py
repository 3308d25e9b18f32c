"""
Centralised configuration for sheet normalisation.

Header-detection weights, compound-header ratios and CSV sniffing options live
here so that the reader and detector stay free of hard-coded values.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Tuple


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------

def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)).strip())
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

# Cells made only of digits, separators, currency, percent and sign chars count as numeric.
NUMERIC_LIKE_RE = re.compile(r"^[\d.,$ %()\-]+$")


# ---------------------------------------------------------------------------
# File formats
# ---------------------------------------------------------------------------

CSV_EXTENSIONS: Tuple[str, ...] = (".csv",)
WORKBOOK_EXTENSIONS: Tuple[str, ...] = (".xlsx", ".xlsm", ".xls")
SUPPORTED_EXTENSIONS: Tuple[str, ...] = CSV_EXTENSIONS + WORKBOOK_EXTENSIONS

CSV_ENCODINGS: Tuple[str, ...] = ("utf-8-sig", "utf-8", "cp1252", "latin-1")
CSV_DELIMITERS: Tuple[str, ...] = (",", ";", "\t", "|")
CSV_SHEET_NAME = "CSV"


# ---------------------------------------------------------------------------
# NormalizerConfig: tunable thresholds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NormalizerConfig:
    """Immutable bag of header-detection thresholds."""

    # Rows inspected when looking for the header row
    header_scan_rows: int = _env_int("SHEETMATCH_HEADER_SCAN_ROWS", 25)

    # A row needs at least this many string-like cells to score at all
    min_string_cells: int = 3

    # score = unique_ratio*W1 - numeric_ratio*W2 - empty_ratio*W3 + unique_count*W4
    unique_ratio_weight: float = 100.0
    numeric_penalty_weight: float = 50.0
    empty_penalty_weight: float = 20.0
    unique_count_weight: float = 3.0

    # Compound headers: previous row is a title row when it scores >= 20% of the best row,
    # otherwise the next row is the real header when it scores > 40% of the best row.
    title_row_min_ratio: float = 0.2
    subheader_row_min_ratio: float = 0.4


DEFAULT_CONFIG = NormalizerConfig()
