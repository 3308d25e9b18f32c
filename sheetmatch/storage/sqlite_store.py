"""
SQLite row store.

Rows keep their coerced data as JSON; the provenance columns are indexed so a
document re-import can delete exactly what it produced last time.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from sheetmatch.errors import PersistenceError
from sheetmatch.logger import get_logger
from sheetmatch.models import ExtractedRow, ProcessingStatus

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS table_rows (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    table_id TEXT NOT NULL,
    data TEXT NOT NULL,
    source TEXT NOT NULL DEFAULT 'spreadsheet',
    source_bucket TEXT,
    source_path TEXT,
    source_file_name TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_table_rows_doc ON table_rows (table_id, source_path);

CREATE TABLE IF NOT EXISTS document_processing (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    table_id TEXT NOT NULL,
    source_bucket TEXT NOT NULL,
    source_path TEXT NOT NULL,
    source_file_name TEXT NOT NULL,
    status TEXT NOT NULL,
    rows_extracted INTEGER NOT NULL DEFAULT 0,
    processed_at TEXT NOT NULL,
    UNIQUE (table_id, source_path)
);
"""


def _json_default(value: Any) -> str:
    # dates and other non-JSON scalars are stored as their string form
    return str(value)


class SqliteRowStore:
    """
    One connection per call, one transaction per call. *db_path* must be a file
    (each call opens a fresh connection).

    Every failure surfaces as :class:`PersistenceError` carrying the table id.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_schema(self) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.executescript(SCHEMA_SQL)
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError("", f"Could not initialise database {self.db_path}: {e}") from e
        logger.debug("SQLite row store ready at %s", self.db_path)

    def delete_rows(self, table_id: str, source_path: str) -> int:
        try:
            with closing(self._connect()) as conn, conn:
                return self._delete(conn, table_id, source_path)
        except sqlite3.Error as e:
            raise PersistenceError(table_id, f"Deleting previous rows failed: {e}") from e

    def insert_rows(self, rows: Sequence[ExtractedRow]) -> int:
        if not rows:
            return 0
        try:
            with closing(self._connect()) as conn, conn:
                return self._insert(conn, rows)
        except sqlite3.Error as e:
            raise PersistenceError(rows[0].target_table_id, f"Inserting rows failed: {e}") from e

    def upsert_status(self, status: ProcessingStatus) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                self._upsert(conn, status)
        except sqlite3.Error as e:
            raise PersistenceError(status.table_id, f"Updating processing status failed: {e}") from e

    def replace_document_rows(
        self,
        table_id: str,
        source_path: str,
        rows: Sequence[ExtractedRow],
        status: ProcessingStatus,
    ) -> int:
        """Delete, insert and status upsert in a single transaction."""
        try:
            with closing(self._connect()) as conn, conn:
                removed = self._delete(conn, table_id, source_path)
                inserted = self._insert(conn, rows) if rows else 0
                self._upsert(conn, status)
        except sqlite3.Error as e:
            raise PersistenceError(table_id, f"Replacing rows of {source_path} failed: {e}") from e
        logger.debug("Table %s: replaced %d row(s) of %s with %d", table_id, removed, source_path, inserted)
        return inserted

    # ------------------------------------------------------------------
    # Statements, run inside the caller's transaction
    # ------------------------------------------------------------------

    @staticmethod
    def _delete(conn: sqlite3.Connection, table_id: str, source_path: str) -> int:
        cur = conn.execute(
            "DELETE FROM table_rows WHERE table_id = ? AND source_path = ?",
            (table_id, source_path),
        )
        return cur.rowcount

    @staticmethod
    def _insert(conn: sqlite3.Connection, rows: Sequence[ExtractedRow]) -> int:
        params = []
        for row in rows:
            prov = row.provenance
            params.append((
                row.target_table_id,
                json.dumps(row.data, ensure_ascii=False, default=_json_default),
                prov.source_bucket if prov else None,
                prov.source_path if prov else None,
                prov.source_file_name if prov else None,
            ))
        conn.executemany(
            "INSERT INTO table_rows (table_id, data, source_bucket, source_path, source_file_name) "
            "VALUES (?, ?, ?, ?, ?)",
            params,
        )
        return len(params)

    @staticmethod
    def _upsert(conn: sqlite3.Connection, status: ProcessingStatus) -> None:
        conn.execute(
            """
            INSERT INTO document_processing
                (table_id, source_bucket, source_path, source_file_name, status, rows_extracted, processed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (table_id, source_path) DO UPDATE SET
                source_bucket = excluded.source_bucket,
                source_file_name = excluded.source_file_name,
                status = excluded.status,
                rows_extracted = excluded.rows_extracted,
                processed_at = excluded.processed_at
            """,
            (
                status.table_id,
                status.source_bucket,
                status.source_path,
                status.source_file_name,
                status.status,
                status.rows_extracted,
                status.processed_at.isoformat(),
            ),
        )

    def count_rows(self, table_id: str) -> int:
        with closing(self._connect()) as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM table_rows WHERE table_id = ?", (table_id,)).fetchone()
        return int(n)

    def fetch_rows(self, table_id: str, source_path: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = "SELECT data FROM table_rows WHERE table_id = ?"
        args: List[Any] = [table_id]
        if source_path is not None:
            sql += " AND source_path = ?"
            args.append(source_path)
        with closing(self._connect()) as conn:
            return [json.loads(r[0]) for r in conn.execute(sql + " ORDER BY id", args).fetchall()]

    def get_status(self, table_id: str, source_path: str) -> Optional[Dict[str, Any]]:
        with closing(self._connect()) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM document_processing WHERE table_id = ? AND source_path = ?",
                (table_id, source_path),
            ).fetchone()
        return dict(row) if row is not None else None
