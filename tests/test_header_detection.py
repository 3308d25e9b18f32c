import pytest

from sheetmatch.sheets.header_detector import HeaderDetector


def _wide_header(n=10):
    return [f"Columna {chr(65 + i)}" for i in range(n)]


def _labels(n, prefix):
    return [f"{prefix} {i}" for i in range(n)]


def test_score_row_rejects_rows_with_few_or_identical_strings():
    hd = HeaderDetector()
    assert hd.score_row(["Reporte mensual", None, None, None]) == 0
    assert hd.score_row(["A1", "Cemento", 10, 2.5]) == 0
    assert hd.score_row(["Total", "Total", "Total", "Total"]) == 0
    assert hd.score_row([]) == 0


def test_score_row_formula():
    hd = HeaderDetector()
    # 4 unique strings over 4 cells: 100 - 0 - 0 + 4*3
    assert hd.score_row(["Codigo", "Descripcion", "Cantidad", "Precio"]) == pytest.approx(112)
    # 3 unique strings, 1 numeric, 1 empty over 5 cells: 60 - 10 - 4 + 9
    assert hd.score_row(["Obra", "Rubro", "Monto", "12,50", ""]) == pytest.approx(55)


def test_detect_picks_structural_header_below_title_and_numbers():
    rows = [
        ["Reporte mensual", None, None, None],
        ["Codigo", "Descripcion", "Cantidad", "Precio"],
        ["A1", "Cemento", 10, 2.5],
        ["A2", "Arena", 5, 1.25],
    ]
    layout = HeaderDetector().detect(rows)
    assert layout.header_row_index == 1
    assert layout.headers == ["Codigo", "Descripcion", "Cantidad", "Precio"]
    assert layout.title_row_index is None


def test_detect_falls_back_to_first_non_empty_row():
    rows = [[None, None], ["Solo", 1], ["x", 2]]
    layout = HeaderDetector().detect(rows)
    assert layout.header_row_index == 1
    assert layout.headers == ["Solo", "1"]
    assert layout.reason == "first_non_empty_row"


def test_detect_empty_grid_has_no_headers():
    layout = HeaderDetector().detect([[None, ""], []])
    assert layout.headers == []


def test_title_row_above_merges_into_compound_labels():
    rows = [
        ["Obra", "Obra", "Periodo", "Periodo"],
        ["Codigo", "Descripcion", "Cantidad", "Precio"],
        ["A1", "Cemento", 10, 2.5],
    ]
    layout = HeaderDetector().detect(rows)
    assert layout.header_row_index == 1
    assert layout.title_row_index == 0
    assert layout.headers == ["Obra Codigo", "Obra Descripcion", "Periodo Cantidad", "Periodo Precio"]


def test_title_row_needs_twenty_percent_of_best_score():
    hd = HeaderDetector()
    header = _wide_header()  # 10 unique strings: 130
    below = _labels(3, "Grupo") + [None] * 7  # 30 - 14 + 9 = 25 < 26
    above = _labels(4, "Grupo") + [None] * 6  # 40 - 12 + 12 = 40 >= 26
    data = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]

    assert hd.score_row(header) == pytest.approx(130)
    assert hd.score_row(below) == pytest.approx(25)
    assert hd.score_row(above) == pytest.approx(40)

    plain = hd.detect([below, header, data])
    assert plain.title_row_index is None
    assert plain.headers == header

    merged = hd.detect([above, header, data])
    assert merged.title_row_index == 0
    assert merged.header_row_index == 1
    assert merged.headers[0] == "Grupo 0 Columna A"
    # forward fill of the last title value across blank cells
    assert merged.headers[9] == "Grupo 3 Columna J"


def test_subheader_row_needs_more_than_forty_percent_of_best_score():
    hd = HeaderDetector()
    header = _wide_header()
    weak = _labels(4, "Sub") + [None] * 6  # 40 <= 52
    strong = _labels(5, "Sub") + [None] * 5  # 50 - 10 + 15 = 55 > 52
    data = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]

    assert hd.score_row(strong) == pytest.approx(55)

    plain = hd.detect([header, weak, data])
    assert plain.header_row_index == 0
    assert plain.headers == header

    merged = hd.detect([header, strong, data])
    assert merged.best_row_index == 0
    assert merged.header_row_index == 1
    assert merged.title_row_index == 0
    assert merged.headers[0] == "Columna A Sub 0"
    assert merged.headers[5] == "Columna F"


def test_blanking_neighbour_rows_keeps_the_best_row():
    hd = HeaderDetector()
    header = _wide_header()
    title = _labels(4, "Grupo") + [None] * 6
    data = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]

    with_title = hd.detect([title, header, data])
    blank_title = hd.detect([[None] * 10, header, data])
    assert with_title.best_row_index == blank_title.best_row_index == 1
    assert with_title.header_row_index == blank_title.header_row_index == 1


def test_merge_compound_deduplicates_labels():
    labels = HeaderDetector.merge_compound(["Avance", "", "", ""], ["%", "%", "Obs", ""])
    assert labels == ["Avance %", "Avance % (2)", "Avance Obs", "Avance"]


def test_header_scan_is_limited_to_first_rows():
    rows = [[i] for i in range(30)] + [["Codigo", "Descripcion", "Cantidad"]]
    layout = HeaderDetector().detect(rows)
    assert layout.reason == "first_non_empty_row"
    assert layout.header_row_index == 0
