"""
ValueCoercer: raw cell value -> typed value for a target column.

Never raises. A value that cannot be parsed for its declared type comes back as
the original trimmed string, so one malformed cell cannot abort a row.

Numbers are locale-aware: ``"1.234,56"``, ``"1,234.56"`` and ``"$ 1 234,56"``
all read as ``1234.56``.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from sheetmatch.sheets.data_cleaner import DataCleaner

EMPTY_MARKERS = frozenset({"", "-"})

_CURRENCY_PERCENT_SPACE_RE = re.compile(r"[$€£¥%\s ]")
_LEADING_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_THOUSANDS_COMMA_RE = re.compile(r"[+-]?\d{1,3},\d{3}(?!\d)")
_NON_INT_CHARS_RE = re.compile(r"[^0-9-]")
_LEADING_INT_RE = re.compile(r"-?\d+")


def _is_native_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ValueCoercer:
    """Stateless converter used by every extraction strategy."""

    @staticmethod
    def is_blank(value: Any) -> bool:
        return DataCleaner.cell_to_str(value) in EMPTY_MARKERS

    @staticmethod
    def coerce(value: Any, data_type: str) -> Any:
        """
        Convert *value* according to *data_type* (``text``, ``numeric``, ``integer``, ``date``).

        Blank cells and ``"-"`` become ``None`` whatever the type.
        """
        text = DataCleaner.cell_to_str(value)
        if text in EMPTY_MARKERS:
            return None

        if data_type == "numeric":
            if _is_native_number(value):
                return float(value) if math.isfinite(value) else text
            number = ValueCoercer.parse_number(text)
            return text if number is None else number

        if data_type == "integer":
            # native numbers follow the same digits-only rule as their text form
            cleaned = _NON_INT_CHARS_RE.sub("", text)
            match = _LEADING_INT_RE.match(cleaned)
            return int(match.group(0)) if match else text

        # date and text pass through as trimmed strings
        return text

    @staticmethod
    def parse_number(text: str) -> Optional[float]:
        """
        Parse a locale-formatted number, or return ``None``.

        With both separators present the rightmost is the decimal point. A lone
        comma is a thousands separator only in the ``d,ddd`` shape; a lone dot is
        always decimal. Repeated separators are thousands separators. Currency
        symbols, ``%`` and spaces are dropped, then the number at the start of the
        string is read, so ``"45.5%"`` gives 45.5 and ``"12 m2"`` gives 12.
        """
        s = _CURRENCY_PERCENT_SPACE_RE.sub("", text or "")
        if not s:
            return None

        last_dot, last_comma = s.rfind("."), s.rfind(",")
        if last_dot >= 0 and last_comma >= 0:
            if last_comma > last_dot:
                s = s.replace(".", "").replace(",", ".")
            else:
                s = s.replace(",", "")
        elif last_comma >= 0:
            if s.count(",") > 1 or _THOUSANDS_COMMA_RE.match(s):
                s = s.replace(",", "")
            else:
                s = s.replace(",", ".")
        elif s.count(".") > 1:
            s = s.replace(".", "")

        match = _LEADING_NUMBER_RE.match(s)
        if not match:
            return None
        number = float(match.group(0))
        return number if math.isfinite(number) else None

    @staticmethod
    def parse_percent(value: Any) -> float:
        """
        Read a monthly percentage for the pivot strategy.

        ``"45%"``, ``"45"``, ``"0.45"`` and ``"45,5%"`` give 45.0, 45.0, 45.0 and 45.5.
        Bare fractions strictly between 0 and 1 are scaled by 100. Unreadable or
        missing values count as 0. Results are rounded to 2 decimals.
        """
        if value is None:
            return 0.0
        had_percent = False
        if _is_native_number(value):
            number = float(value)
        else:
            raw = DataCleaner.cell_to_str(value)
            had_percent = "%" in raw
            s = raw.replace("%", "").strip()
            if not s:
                return 0.0
            last_dot, last_comma = s.rfind("."), s.rfind(",")
            if last_comma > last_dot:
                s = s.replace(".", "").replace(",", ".", 1)
            elif last_dot > last_comma:
                s = s.replace(",", "")
            match = _LEADING_NUMBER_RE.match(s)
            if not match:
                return 0.0
            number = float(match.group(0))

        if not math.isfinite(number):
            return 0.0
        if not had_percent and 0 < abs(number) < 1:
            return round(number * 100, 2)
        return round(number, 2)
