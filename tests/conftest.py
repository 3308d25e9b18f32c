"""
Pytest configuration and shared fixtures.
"""
import io
import os
import sys
from typing import Any, Dict, List, Optional

import pytest
from openpyxl import Workbook

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from sheetmatch.models import TargetColumn, TargetTable  # noqa: E402
from sheetmatch.storage.local import InMemorySchemaStore  # noqa: E402


def build_xlsx(sheets: Dict[str, List[List[Any]]], merges: Optional[Dict[str, List[str]]] = None) -> bytes:
    """Workbook bytes with one worksheet per entry, rows appended in order."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
        for rng in (merges or {}).get(name, []):
            ws.merge_cells(rng)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def column(table_id: str, field_key: str, label: str, data_type: str = "text", **config) -> TargetColumn:
    return TargetColumn(
        id=f"{table_id}:{field_key}",
        table_id=table_id,
        field_key=field_key,
        label=label,
        data_type=data_type,
        config=config or None,
    )


@pytest.fixture
def make_xlsx():
    return build_xlsx


@pytest.fixture
def progress_columns():
    """Monthly progress table matched through configured keywords."""
    return [
        column("avance", "periodo", "Periodo", keywords=["mes"]),
        column("avance", "avance_mensual_pct", "Avance Mensual %", "numeric", keywords=["plan"]),
        column("avance", "avance_acumulado_pct", "Avance Acumulado %", "numeric", keywords=["real"]),
    ]


@pytest.fixture
def materials_columns():
    return [
        column("materiales", "codigo", "Codigo"),
        column("materiales", "descripcion", "Descripcion"),
        column("materiales", "cantidad", "Cantidad", "integer"),
        column("materiales", "precio", "Precio", "numeric"),
    ]


@pytest.fixture
def schema_store(materials_columns, progress_columns):
    store = InMemorySchemaStore()
    store.add_table(TargetTable(id="materiales", name="Materiales"), materials_columns)
    store.add_table(TargetTable(id="avance", name="Avance"), progress_columns)
    store.add_table(TargetTable(id="vacia", name="Sin columnas"), [])
    return store


@pytest.fixture
def materials_csv() -> bytes:
    return (
        "Codigo,Descripcion,Cantidad,Precio\n"
        "A-1,Cemento,10,\"1,500.50\"\n"
        "\n"
        "A-2,Arena,5,200\n"
        "A-3,Cal,-,\n"
    ).encode("utf-8")
