"""
Column matching and sheet selection.

Public API:
  - ColumnMatcher          (header scoring and greedy assignment)
  - SheetSelector          (best sheet per target table)
  - analyze_sheets         (template fit report for every sheet)
  - MatchConfig            (thresholds)
"""

from sheetmatch.matching.column_matcher import ColumnMatcher
from sheetmatch.matching.config import CERTIFICADO_PROFILE, DEFAULT_MATCH_CONFIG, MatchConfig
from sheetmatch.matching.sheet_selector import SheetAnalysis, SheetChoice, SheetSelector, analyze_sheets

__all__ = [
    "CERTIFICADO_PROFILE",
    "ColumnMatcher",
    "DEFAULT_MATCH_CONFIG",
    "MatchConfig",
    "SheetAnalysis",
    "SheetChoice",
    "SheetSelector",
    "analyze_sheets",
]
