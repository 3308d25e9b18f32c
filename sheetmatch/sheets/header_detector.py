"""
HeaderDetector: identify which row(s) of a grid hold the column labels.

Scores rows structurally (string vs numeric vs empty cells, label uniqueness)
instead of looking for known field names, then checks the neighbouring rows
for a two-row compound header (a title row spanning several sub-headers).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sheetmatch.sheets.config import NUMERIC_LIKE_RE, NormalizerConfig, DEFAULT_CONFIG
from sheetmatch.sheets.data_cleaner import DataCleaner


@dataclass
class HeaderLayout:
    """
    Result of header detection for one grid.

    ``header_row_index`` is the last physical header row; data starts right after it.
    ``title_row_index`` is set only when a compound header was merged.
    """
    headers: List[str]
    header_row_index: int
    best_row_index: Optional[int] = None
    best_score: float = 0.0
    title_row_index: Optional[int] = None
    reason: str = ""


class HeaderDetector:
    """
    Stateless detector; thresholds come from :class:`NormalizerConfig`.
    """

    def __init__(self, cfg: NormalizerConfig = DEFAULT_CONFIG):
        self._cfg = cfg

    # -----------------------------------------------------------------
    # Scoring
    # -----------------------------------------------------------------

    def score_row(self, row: Optional[Sequence[Any]]) -> float:
        """
        Header-likelihood of a single row; ``0`` means "not a header".

        Rows with fewer than ``min_string_cells`` string-like cells, or whose
        strings are all identical (a merged title smeared across columns), score 0.
        """
        if not row:
            return 0.0
        c = self._cfg
        string_cells = numeric_cells = empty_cells = 0
        unique_strings = set()
        for cell in row:
            val = DataCleaner.cell_to_str(cell)
            if not val:
                empty_cells += 1
            elif NUMERIC_LIKE_RE.match(val):
                numeric_cells += 1
            else:
                string_cells += 1
                unique_strings.add(val.lower())

        total = len(row)
        if string_cells < c.min_string_cells:
            return 0.0
        if len(unique_strings) == 1:
            return 0.0

        return (
            len(unique_strings) / total * c.unique_ratio_weight
            - numeric_cells / total * c.numeric_penalty_weight
            - empty_cells / total * c.empty_penalty_weight
            + len(unique_strings) * c.unique_count_weight
        )

    def select_header_row(self, rows: Sequence[Sequence[Any]]) -> Tuple[int, float]:
        """
        Scan the first ``header_scan_rows`` rows and return ``(best_idx, best_score)``.

        Ties keep the earliest row. Returns ``(-1, 0.0)`` when no row scores above 0.
        """
        best_idx, best_score = -1, 0.0
        for i in range(min(len(rows), self._cfg.header_scan_rows)):
            score = self.score_row(rows[i])
            if score > best_score:
                best_idx, best_score = i, score
        return best_idx, best_score

    @staticmethod
    def first_non_empty_row_idx(rows: Sequence[Sequence[Any]]) -> int:
        """Index of the first row with any content, ``-1`` for an empty grid."""
        for idx, row in enumerate(rows):
            if any(not DataCleaner.is_empty(c) for c in (row or [])):
                return idx
        return -1

    # -----------------------------------------------------------------
    # Layout
    # -----------------------------------------------------------------

    def detect(self, rows: Sequence[Sequence[Any]]) -> HeaderLayout:
        """Detect the header layout of *rows* (a row-major matrix)."""
        best_idx, best_score = self.select_header_row(rows)

        if best_idx < 0:
            idx = self.first_non_empty_row_idx(rows)
            if idx < 0:
                return HeaderLayout(headers=[], header_row_index=0, reason="empty_grid")
            return HeaderLayout(
                headers=[DataCleaner.cell_to_str(c) for c in rows[idx]],
                header_row_index=idx,
                reason="first_non_empty_row",
            )

        primary = list(rows[best_idx])
        prev_row = list(rows[best_idx - 1]) if best_idx > 0 else None
        next_row = list(rows[best_idx + 1]) if best_idx + 1 < len(rows) else None
        prev_score = self.score_row(prev_row) if prev_row is not None else 0.0
        next_score = self.score_row(next_row) if next_row is not None else 0.0

        if prev_row is not None and prev_score > 0 and prev_score >= best_score * self._cfg.title_row_min_ratio:
            return HeaderLayout(
                headers=self.merge_compound(prev_row, primary),
                header_row_index=best_idx,
                best_row_index=best_idx,
                best_score=best_score,
                title_row_index=best_idx - 1,
                reason="compound_title_above",
            )
        if next_row is not None and next_score > best_score * self._cfg.subheader_row_min_ratio:
            return HeaderLayout(
                headers=self.merge_compound(primary, next_row),
                header_row_index=best_idx + 1,
                best_row_index=best_idx,
                best_score=best_score,
                title_row_index=best_idx,
                reason="compound_subheader_below",
            )
        return HeaderLayout(
            headers=[DataCleaner.cell_to_str(c) for c in primary],
            header_row_index=best_idx,
            best_row_index=best_idx,
            best_score=best_score,
            reason="score_max",
        )

    @staticmethod
    def merge_compound(top: Sequence[Any], bottom: Sequence[Any]) -> List[str]:
        """
        Join a title row and a sub-header row into one label per column.

        The title row is forward-filled across blank cells (merged group headers),
        ``"<title> <sub>"`` is used only when both parts exist and differ, and
        repeated labels get a ``" (n)"`` suffix.
        """
        width = max(len(top), len(bottom))
        filled_top: List[str] = []
        last = ""
        for c in range(width):
            val = DataCleaner.cell_to_str(top[c]) if c < len(top) else ""
            if val:
                last = val
            filled_top.append(last)

        compound: List[str] = []
        for c in range(width):
            t = filled_top[c]
            b = DataCleaner.cell_to_str(bottom[c]) if c < len(bottom) else ""
            if t and b and t != b:
                compound.append(f"{t} {b}")
            else:
                compound.append(t or b)

        seen: Dict[str, int] = {}
        for i, label in enumerate(compound):
            if not label:
                continue
            count = seen.get(label, 0)
            seen[label] = count + 1
            if count > 0:
                compound[i] = f"{label} ({count + 1})"
        return compound
