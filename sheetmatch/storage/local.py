"""
Local adapters: directory-backed file storage and a YAML/in-memory schema store.

Schema YAML layout::

    tables:
      - id: curva
        name: Curva Plan
        settings: {spreadsheet_template: certificado}
        columns:
          - {field_key: periodo, label: Periodo, data_type: text}
          - {field_key: avance_mensual_pct, label: Avance Mensual %, data_type: numeric}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

from sheetmatch.errors import SheetMatchError, StorageError
from sheetmatch.logger import get_logger
from sheetmatch.models import TargetColumn, TargetTable

logger = get_logger(__name__)


class LocalFileStorage:
    """Buckets are subdirectories of *root*; paths may not escape their bucket."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, bucket: str, path: str) -> Path:
        if not bucket or not path:
            raise StorageError("Both bucket and path are required")
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if self.root not in bucket_dir.parents or bucket_dir not in target.parents:
            raise StorageError(f"Invalid storage location: {bucket}/{path}")
        return target

    def read(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise StorageError(f"Stored file not found: {bucket}/{path}")
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Stored file could not be read: {bucket}/{path}: {e}") from e

    def write(self, bucket: str, path: str, content: bytes) -> Path:
        target = self._resolve(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return target


class InMemorySchemaStore:
    def __init__(self, tables: Iterable[TargetTable] = (), columns: Iterable[TargetColumn] = ()):
        self._tables: Dict[str, TargetTable] = {t.id: t for t in tables}
        self._columns: Dict[str, List[TargetColumn]] = {}
        for col in columns:
            self._columns.setdefault(col.table_id, []).append(col)

    def add_table(self, table: TargetTable, columns: Sequence[TargetColumn] = ()) -> None:
        self._tables[table.id] = table
        self._columns[table.id] = list(columns)

    def table_ids(self) -> List[str]:
        return list(self._tables)

    def get_tables(self, table_ids: Sequence[str]) -> Dict[str, TargetTable]:
        return {tid: self._tables[tid] for tid in table_ids if tid in self._tables}

    def get_columns(self, table_ids: Sequence[str]) -> Dict[str, List[TargetColumn]]:
        return {tid: list(self._columns.get(tid, [])) for tid in table_ids}


def _ensure_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def schema_store_from_dict(data: Dict[str, Any]) -> InMemorySchemaStore:
    store = InMemorySchemaStore()
    for raw in _ensure_list((data or {}).get("tables")):
        if not isinstance(raw, dict) or not raw.get("id"):
            continue
        table_id = str(raw["id"])
        table = TargetTable(
            id=table_id,
            name=raw.get("name") or "Tabla",
            settings=raw.get("settings") or {},
        )
        columns = []
        for col in _ensure_list(raw.get("columns")):
            if not isinstance(col, dict) or not col.get("field_key"):
                continue
            columns.append(TargetColumn(
                id=str(col.get("id") or f"{table_id}:{col['field_key']}"),
                table_id=table_id,
                field_key=col["field_key"],
                label=col.get("label") or col["field_key"],
                data_type=col.get("data_type", "text"),
                required=bool(col.get("required", False)),
                config=col.get("config"),
            ))
        store.add_table(table, columns)
    return store


def load_schema_store(path: Optional[str]) -> InMemorySchemaStore:
    """Schema store from a YAML file; an empty store when *path* is not set."""
    if not path:
        return InMemorySchemaStore()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise SheetMatchError(f"Schema file could not be loaded from {path}: {e}") from e
    store = schema_store_from_dict(data)
    logger.info("Loaded %d target table(s) from %s", len(store.table_ids()), path)
    return store
