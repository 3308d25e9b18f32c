"""Fixed document layouts (template tables) and their recognition."""

from sheetmatch.templates.registry import (
    TemplateCatalog,
    a1_to_row_col,
    cell_at,
    get_catalog,
    recognize_template,
)

__all__ = [
    "TemplateCatalog",
    "a1_to_row_col",
    "cell_at",
    "get_catalog",
    "recognize_template",
]
