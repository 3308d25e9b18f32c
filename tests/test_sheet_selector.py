import pytest

from sheetmatch.matching.sheet_selector import SheetSelector, analyze_sheets
from sheetmatch.models import Sheet
from sheetmatch.templates.registry import get_catalog


def _sheet(name, headers, n_rows=2):
    rows = [{h: f"v{i}" for h in headers} for i in range(n_rows)]
    return Sheet(name=name, headers=headers, data_rows=rows)


def _curve_sheet():
    headers = ["Concepto", "Mes 1", "Mes 2", "Mes 3"]
    rows = [
        {"Concepto": "Avance financiero", "Mes 1": "5%", "Mes 2": "5%", "Mes 3": "5%"},
        {"Concepto": "Avance mensual planificado", "Mes 1": "10%", "Mes 2": "15,5%", "Mes 3": 0.2},
    ]
    return Sheet(name="Curva Plan", headers=headers, data_rows=rows)


NOTES = _sheet("Notas", ["Firma", "Observacion", "Responsable"])
MATERIALS = _sheet("Materiales", ["Codigo", "Descripcion", "Cantidad", "Precio"])


def test_select_prefers_best_average_score(materials_columns):
    choice = SheetSelector().select([NOTES, MATERIALS], materials_columns)
    assert choice.sheet.name == "Materiales"
    assert choice.score == 1.0
    assert choice.reason == "score_max"


def test_select_rejects_sheets_below_threshold(materials_columns):
    choice = SheetSelector().select([NOTES], materials_columns)
    assert choice.sheet is None
    assert choice.reason == "below_threshold"


def test_pinned_sheet_wins_when_present(materials_columns):
    selector = SheetSelector()

    pinned = selector.select([MATERIALS, NOTES], materials_columns, pinned="Notas")
    assert pinned.sheet.name == "Notas"
    assert pinned.reason == "pinned"

    missing = selector.select([MATERIALS, NOTES], materials_columns, pinned="No existe")
    assert missing.sheet.name == "Materiales"


def test_average_of_keyword_matches(progress_columns):
    sheet = _sheet("Avance", ["Mes", "Plan", "Real"])
    # 0.45 for periodo, 0.3 each for the percentage columns
    assert SheetSelector().score_sheet(sheet, progress_columns) == pytest.approx(0.35)


def test_name_bonus_last_matching_rule_wins():
    catalog = get_catalog("certificado")
    summary = catalog.get("pmc_resumen")
    items = catalog.get("pmc_items")

    assert SheetSelector.name_bonus("Nota Cert Desac", summary) == pytest.approx(0.1)
    assert SheetSelector.name_bonus("NOTA CERT", summary) == pytest.approx(0.3)
    assert SheetSelector.name_bonus("Certificado 5", items) == pytest.approx(0.3)
    assert SheetSelector.name_bonus("Certificado desacopiado", items) == 0.0


def test_row_bonus_bounds():
    catalog = get_catalog("certificado")
    assert SheetSelector.row_bonus(3, catalog.get("pmc_resumen")) == pytest.approx(0.05)
    assert SheetSelector.row_bonus(6, catalog.get("pmc_resumen")) == 0.0
    assert SheetSelector.row_bonus(10, catalog.get("pmc_items")) == 0.0
    assert SheetSelector.row_bonus(11, catalog.get("pmc_items")) == pytest.approx(0.05)


def test_select_for_template_adds_name_bonus():
    template = get_catalog("certificado").get("curva_plan")
    resumen = _sheet("Resumen", ["Obra", "Proveedor", "Monto"])

    choice = SheetSelector().select_for_template([resumen, _curve_sheet()], template)

    assert choice.sheet.name == "Curva Plan"
    assert choice.reason == "template_score_max"
    # every column reaches 1/3 of its keywords (0.2): "mes" for periodo, "%" for the
    # percentages; the name bonus adds 0.3
    assert choice.score == pytest.approx(0.5)


def test_template_sheet_without_name_bonus_is_accepted_at_the_minimum():
    template = get_catalog("certificado").get("curva_plan")
    sheet = _curve_sheet().model_copy(update={"name": "Hoja1"})

    choice = SheetSelector().select_for_template([sheet], template)

    assert choice.sheet is sheet
    assert choice.score == pytest.approx(0.2)


def test_select_for_template_needs_minimum_score():
    template = get_catalog("certificado").get("curva_plan")
    choice = SheetSelector().select_for_template([NOTES], template)
    assert choice.sheet is None


def test_analyze_sheets_reports_best_template_per_sheet():
    catalog = get_catalog("certificado")

    results = analyze_sheets([_curve_sheet(), NOTES], list(catalog.tables.values()))

    curve, notes = results
    assert curve.best_table_id == "curva_plan"
    assert curve.row_count == 2
    assert curve.score == pytest.approx(0.5)
    assert curve.mappings[0]["field_key"] == "periodo"
    assert curve.mappings[0]["matched_header"] == "Mes 1"
    assert notes.best_table_id is None
    assert notes.mappings == []
