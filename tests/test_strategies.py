import pytest

from conftest import column
from sheetmatch.extraction.strategies import ExtractionContext, Extractor, Strategy, choose_strategy
from sheetmatch.matching.column_matcher import ColumnMatcher
from sheetmatch.models import ColumnMapping, Sheet, TemplateColumnDef, TemplateTableDef
from sheetmatch.templates.registry import get_catalog


def _context(sheet, columns, mappings=None, template=None):
    if mappings is None:
        mappings = ColumnMatcher().build_mappings(sheet.headers, columns)
    return ExtractionContext(sheet=sheet, columns=columns, mappings=mappings, template=template, table_id="t")


@pytest.fixture
def summary_columns():
    return [
        column("doc", "obra", "Obra", scope="parent"),
        column("doc", "proveedor", "Proveedor", scope="parent"),
        column("doc", "monto", "Monto", "numeric", scope="parent"),
    ]


# ---------------------------------------------------------------------------
# Strategy choice
# ---------------------------------------------------------------------------

def test_choose_strategy(progress_columns, materials_columns, summary_columns):
    catalog = get_catalog("certificado")

    assert choose_strategy(materials_columns) is Strategy.ROW_PER_RECORD
    assert choose_strategy(summary_columns) is Strategy.DOCUMENT_SUMMARY
    assert choose_strategy(summary_columns + materials_columns[:1]) is Strategy.ROW_PER_RECORD
    assert choose_strategy(materials_columns, catalog.get("curva_plan")) is Strategy.HORIZONTAL_PIVOT
    assert choose_strategy(materials_columns, catalog.get("pmc_resumen")) is Strategy.DOCUMENT_SUMMARY
    assert choose_strategy(materials_columns, catalog.get("pmc_items")) is Strategy.ROW_PER_RECORD


def test_pivot_detection_needs_the_certificado_profile(progress_columns, materials_columns):
    assert choose_strategy(progress_columns, profile="certificado") is Strategy.HORIZONTAL_PIVOT
    assert choose_strategy(progress_columns) is Strategy.ROW_PER_RECORD
    assert choose_strategy(materials_columns, profile="certificado", table_name="Curva Plan 2024") is Strategy.HORIZONTAL_PIVOT


# ---------------------------------------------------------------------------
# Row per record
# ---------------------------------------------------------------------------

def test_row_per_record_coerces_and_skips_empty_rows(materials_columns):
    sheet = Sheet(
        name="Materiales",
        headers=["Codigo", "Descripcion", "Cantidad", "Precio"],
        data_rows=[
            {"Codigo": "A1", "Descripcion": "Cemento", "Cantidad": "10", "Precio": "1.500,50"},
            {"Codigo": "-", "Descripcion": None, "Cantidad": "", "Precio": "-"},
            {"Codigo": "A2", "Descripcion": "Arena", "Cantidad": 5.0, "Precio": "abc"},
        ],
    )

    result = Extractor().extract(_context(sheet, materials_columns), Strategy.ROW_PER_RECORD)

    assert result.fallback_used is False
    assert result.rows == [
        {"codigo": "A1", "descripcion": "Cemento", "cantidad": 10, "precio": 1500.5},
        {"codigo": "A2", "descripcion": "Arena", "cantidad": 5, "precio": "abc"},
    ]


def test_manual_value_fills_unmapped_columns(materials_columns):
    sheet = Sheet(name="Hoja", headers=["Codigo"], data_rows=[{"Codigo": "A1"}, {"Codigo": "A2"}])
    ctx = _context(sheet, materials_columns)
    for m in ctx.mappings:
        if m.column.field_key == "descripcion":
            m.manual_override = "  Sin detalle "

    rows = Extractor().row_per_record(ctx)

    assert rows == [
        {"codigo": "A1", "descripcion": "Sin detalle"},
        {"codigo": "A2", "descripcion": "Sin detalle"},
    ]


def test_template_data_types_win_over_column_types():
    template = TemplateTableDef(
        id="tpl",
        label="Tpl",
        columns=[TemplateColumnDef(key="nro", label="Nro", data_type="integer")],
    )
    columns = [column("doc", "nro", "Nro")]
    sheet = Sheet(name="Hoja", headers=["Nro"], data_rows=[{"Nro": "N° 15"}])

    rows = Extractor().row_per_record(_context(sheet, columns, template=template))

    assert rows == [{"nro": 15}]


# ---------------------------------------------------------------------------
# Document summary
# ---------------------------------------------------------------------------

def test_summary_keeps_the_richest_row(summary_columns):
    sheet = Sheet(
        name="Datos",
        headers=["Obra", "Proveedor", "Monto"],
        data_rows=[
            {"Obra": "Edificio A", "Proveedor": None, "Monto": None},
            {"Obra": "Edificio B", "Proveedor": "", "Monto": "100"},
            {"Obra": "Edificio C", "Proveedor": "Constructora SA", "Monto": "1.234,56"},
            {"Obra": None, "Proveedor": "Otro", "Monto": None},
            {"Obra": "Edificio E", "Proveedor": "X", "Monto": "5"},
        ],
    )

    result = Extractor().extract(_context(sheet, summary_columns), Strategy.DOCUMENT_SUMMARY)

    # rows 3 and 5 tie on three values; the earlier one is kept
    assert result.rows == [{"obra": "Edificio C", "proveedor": "Constructora SA", "monto": 1234.56}]


def test_summary_reads_manual_then_fixed_cell_then_first_value():
    template = TemplateTableDef(
        id="resumen",
        label="Resumen",
        columns=[
            TemplateColumnDef(key="periodo", label="Periodo"),
            TemplateColumnDef(key="monto", label="Monto", data_type="numeric"),
        ],
        summary_cells={"periodo": "B1", "monto": "C5"},
    )
    columns = [column("doc", "periodo", "Periodo"), column("doc", "monto", "Monto"), column("doc", "obra", "Obra")]
    sheet = Sheet(
        name="Resumen",
        headers=["Obra"],
        raw_rows=[
            ["Periodo:", "Marzo 2024", None],
            [None, None, None],
            [None, None, None],
            [None, None, None],
            [None, None, "2.500,75"],
        ],
        data_rows=[{"Obra": None}, {"Obra": "Torre Norte"}, {"Obra": "Torre Sur"}],
    )
    mappings = [
        ColumnMapping(column=columns[0], manual_override="Abril 2024"),
        ColumnMapping(column=columns[1]),
        ColumnMapping(column=columns[2], matched_header="Obra", confidence=1.0),
    ]

    rows = Extractor().document_summary(_context(sheet, columns, mappings, template))

    assert rows == [{"periodo": "Abril 2024", "monto": 2500.75, "obra": "Torre Norte"}]


# ---------------------------------------------------------------------------
# Horizontal pivot
# ---------------------------------------------------------------------------

def _curve_sheet(marker="Avance mensual planificado"):
    return Sheet(
        name="Curva Plan",
        headers=["Concepto", "Mes 1", "Mes 2", "Mes 3"],
        data_rows=[
            {"Concepto": "Avance financiero", "Mes 1": "x", "Mes 2": "x", "Mes 3": "x"},
            {"Concepto": marker, "Mes 1": "10%", "Mes 2": "15,5%", "Mes 3": 0.2},
        ],
    )


def test_pivot_unpivots_months_with_running_total(progress_columns):
    result = Extractor().extract(_context(_curve_sheet(), progress_columns, []), Strategy.HORIZONTAL_PIVOT)

    assert result.rows == [
        {"periodo": "Mes 1", "avance_mensual_pct": 10.0, "avance_acumulado_pct": 10.0},
        {"periodo": "Mes 2", "avance_mensual_pct": 15.5, "avance_acumulado_pct": 25.5},
        {"periodo": "Mes 3", "avance_mensual_pct": 20.0, "avance_acumulado_pct": 45.5},
    ]


def test_pivot_finds_fields_by_label_when_keys_differ():
    columns = [
        column("c", "mes", "Periodo"),
        column("c", "pct", "Avance Mensual"),
        column("c", "acum", "Avance Acumulado"),
    ]
    rows = Extractor().horizontal_pivot(_context(_curve_sheet(), columns, []))
    assert rows[-1] == {"mes": "Mes 3", "pct": 20.0, "acum": 45.5}


def test_pivot_without_marker_row_has_no_fallback(progress_columns):
    result = Extractor().extract(
        _context(_curve_sheet(marker="Certificado acumulado"), progress_columns, []),
        Strategy.HORIZONTAL_PIVOT,
    )
    assert result.rows == []
    assert result.fallback_used is False


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

def test_fallback_maps_headers_by_containment():
    amount = column("doc", "monto", "Monto", "numeric", keywords=["importe", "total", "valor", "precio", "suma", "costo"])
    sheet = Sheet(
        name="Hoja",
        headers=["Monto Neto", "Fecha"],
        data_rows=[{"Monto Neto": "1.500,00", "Fecha": "2024-01-01"}, {"Monto Neto": None, "Fecha": "x"}],
    )
    ctx = _context(sheet, [amount])
    assert ctx.mappings[0].matched_header is None

    result = Extractor().extract(ctx, Strategy.ROW_PER_RECORD)

    assert result.fallback_used is True
    assert result.rows == [{"monto": 1500.0}]


def test_richest_row_of_empty_and_single_lists():
    assert Extractor.richest_row([]) == []
    assert Extractor.richest_row([{"a": 1}]) == [{"a": 1}]
