"""
DataCleaner: cell-level string conversion for the normalisation pipeline.

Responsibilities:
- Cell-level string conversion (``cell_to_str``)
- Empty-cell detection
- Grid squaring (ragged row lists -> rectangular matrix)
"""

from __future__ import annotations

import math
from datetime import date, datetime, time
from typing import Any, List, Sequence

import pandas as pd


class DataCleaner:
    """Stateless helper that normalises raw cell values."""

    @staticmethod
    def is_empty(value: Any) -> bool:
        return DataCleaner.cell_to_str(value) == ""

    @staticmethod
    def cell_to_str(value: Any) -> str:
        """Convert an arbitrary cell value to a trimmed string; missing values become ``""``."""
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float):
            if math.isnan(value):
                return ""
            if math.isinf(value):
                return str(value)
            if value.is_integer() and abs(value) < 1e15:
                return str(int(value))
            return repr(value)
        if isinstance(value, (pd.Timestamp, datetime)):
            if pd.isna(value):
                return ""
            if value.time() == time(0, 0):
                return value.date().isoformat()
            return value.isoformat(sep=" ", timespec="seconds")
        if isinstance(value, (date, time)):
            return value.isoformat()
        # Rich-text objects from openpyxl may expose .plain or .text
        plain_attr = getattr(value, "plain", None)
        if isinstance(plain_attr, str):
            return plain_attr.strip()
        text_attr = getattr(value, "text", None)
        if isinstance(text_attr, str):
            return text_attr.strip()
        try:
            if pd.isna(value):
                return ""
        except (TypeError, ValueError):
            pass
        text = str(value).strip()
        if text.lower() in {"nan", "none", "nat"}:
            return ""
        return text

    @staticmethod
    def square_grid(rows: Sequence[Sequence[Any]]) -> List[List[Any]]:
        """
        Pad ragged rows to a common width.

        Missing cells (and pandas NaN placeholders) come back as ``None``.
        """
        if not rows:
            return []
        frame = pd.DataFrame([list(r) for r in rows], dtype=object)
        frame = frame.astype(object).where(pd.notna(frame), None)
        return frame.values.tolist()
