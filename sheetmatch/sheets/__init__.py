"""
Sheet normalisation subpackage.

Public API:
  - WorkbookReader         (CSV/XLSX/XLS -> Sheet list, in reader.py)
  - HeaderDetector         (header row and compound header detection)
  - DataCleaner            (cell-level string conversion)
  - NormalizerConfig       (tunable thresholds)
"""

from sheetmatch.sheets.config import NormalizerConfig, DEFAULT_CONFIG
from sheetmatch.sheets.data_cleaner import DataCleaner
from sheetmatch.sheets.header_detector import HeaderDetector, HeaderLayout
from sheetmatch.sheets.reader import WorkbookReader

__all__ = [
    "NormalizerConfig",
    "DEFAULT_CONFIG",
    "DataCleaner",
    "HeaderDetector",
    "HeaderLayout",
    "WorkbookReader",
]
