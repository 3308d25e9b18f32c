"""
sheetmatch: map heterogeneous spreadsheet/CSV exports onto per-table target schemas.
"""

from sheetmatch.errors import (
    ImportInputError,
    PersistenceError,
    SheetMatchError,
    StorageError,
    WorkbookStructureError,
)
from sheetmatch.pipeline import SpreadsheetImporter

__version__ = "0.1.0"

__all__ = [
    "ImportInputError",
    "PersistenceError",
    "SheetMatchError",
    "SpreadsheetImporter",
    "StorageError",
    "WorkbookStructureError",
]
