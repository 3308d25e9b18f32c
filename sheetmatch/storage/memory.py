"""In-memory row store for dry runs and tests."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence, Tuple

from sheetmatch.models import ExtractedRow, ProcessingStatus


class InMemoryRowStore:
    """Safe to share between the importer's worker threads."""

    def __init__(self):
        self.rows: List[ExtractedRow] = []
        self.statuses: Dict[Tuple[str, str], ProcessingStatus] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _from_document(row: ExtractedRow, table_id: str, source_path: str) -> bool:
        return bool(
            row.target_table_id == table_id and row.provenance and row.provenance.source_path == source_path
        )

    def delete_rows(self, table_id: str, source_path: str) -> int:
        with self._lock:
            keep = [r for r in self.rows if not self._from_document(r, table_id, source_path)]
            removed = len(self.rows) - len(keep)
            self.rows = keep
        return removed

    def insert_rows(self, rows: Sequence[ExtractedRow]) -> int:
        with self._lock:
            self.rows.extend(rows)
        return len(rows)

    def upsert_status(self, status: ProcessingStatus) -> None:
        with self._lock:
            self.statuses[(status.table_id, status.source_path)] = status

    def replace_document_rows(
        self,
        table_id: str,
        source_path: str,
        rows: Sequence[ExtractedRow],
        status: ProcessingStatus,
    ) -> int:
        with self._lock:
            keep = [r for r in self.rows if not self._from_document(r, table_id, source_path)]
            self.rows = keep + list(rows)
            self.statuses[(status.table_id, status.source_path)] = status
        return len(rows)

    def count_rows(self, table_id: str) -> int:
        with self._lock:
            return sum(1 for r in self.rows if r.target_table_id == table_id)

    def get_status(self, table_id: str, source_path: str) -> Optional[ProcessingStatus]:
        return self.statuses.get((table_id, source_path))
