from sheetmatch.extraction.strategies import (
    ExtractionContext,
    ExtractionResult,
    Extractor,
    Strategy,
    choose_strategy,
    is_document_level,
    is_pivot_table,
)

__all__ = [
    "ExtractionContext",
    "ExtractionResult",
    "Extractor",
    "Strategy",
    "choose_strategy",
    "is_document_level",
    "is_pivot_table",
]
