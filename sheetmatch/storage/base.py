"""
Storage interfaces the orchestrator depends on.

- FileStorage   previously uploaded files, addressed by bucket + path
- SchemaStore   target tables and their column definitions (read-only)
- RowStore      extracted rows and per-document processing status
"""

from __future__ import annotations

from typing import Dict, List, Protocol, Sequence

from sheetmatch.models import ExtractedRow, ProcessingStatus, TargetColumn, TargetTable


class FileStorage(Protocol):
    def read(self, bucket: str, path: str) -> bytes:
        """Return the stored bytes; raise ``StorageError`` when missing."""
        ...


class SchemaStore(Protocol):
    def get_tables(self, table_ids: Sequence[str]) -> Dict[str, TargetTable]:
        ...

    def get_columns(self, table_ids: Sequence[str]) -> Dict[str, List[TargetColumn]]:
        """Columns per table id, in schema order."""
        ...


class RowStore(Protocol):
    def delete_rows(self, table_id: str, source_path: str) -> int:
        """Delete rows of *table_id* produced from *source_path*; return the count removed."""
        ...

    def insert_rows(self, rows: Sequence[ExtractedRow]) -> int:
        ...

    def upsert_status(self, status: ProcessingStatus) -> None:
        """Insert or replace the status keyed by ``(table_id, source_path)``."""
        ...

    def replace_document_rows(
        self,
        table_id: str,
        source_path: str,
        rows: Sequence[ExtractedRow],
        status: ProcessingStatus,
    ) -> int:
        """
        Delete the document's previous rows, insert *rows* and upsert *status* as
        one unit: either all three take effect or none does. Returns the row count.
        """
        ...

    def count_rows(self, table_id: str) -> int:
        ...
