"""
Storage adapters.

Public API:
  - FileStorage / SchemaStore / RowStore   (interfaces)
  - LocalFileStorage                       (bucket = directory)
  - InMemorySchemaStore, load_schema_store (target schema)
  - SqliteRowStore, InMemoryRowStore       (extracted rows + processing status)
"""

from sheetmatch.storage.base import FileStorage, RowStore, SchemaStore
from sheetmatch.storage.local import InMemorySchemaStore, LocalFileStorage, load_schema_store, schema_store_from_dict
from sheetmatch.storage.memory import InMemoryRowStore
from sheetmatch.storage.sqlite_store import SqliteRowStore

__all__ = [
    "FileStorage",
    "RowStore",
    "SchemaStore",
    "InMemorySchemaStore",
    "LocalFileStorage",
    "load_schema_store",
    "schema_store_from_dict",
    "InMemoryRowStore",
    "SqliteRowStore",
]
