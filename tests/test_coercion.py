from datetime import datetime

import pytest

from sheetmatch.coercion import ValueCoercer


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("$ 1 234,56", 1234.56),
        ("1,500", 1500.0),
        ("12,5", 12.5),
        ("1.234.567", 1234567.0),
        ("0.75", 0.75),
        ("-42", -42.0),
        ("45.5%", 45.5),
        ("12abc", 12.0),
        ("1,500 m2", 1500.0),
    ],
)
def test_parse_number_is_locale_aware(text, expected):
    assert ValueCoercer.parse_number(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["abc", "", "%", "N° 7", "- "])
def test_parse_number_rejects_text_without_a_leading_number(text):
    assert ValueCoercer.parse_number(text) is None


@pytest.mark.parametrize("value", [None, "", "   ", "-", float("nan")])
def test_blank_values_become_none_for_every_type(value):
    for data_type in ("text", "numeric", "integer", "date"):
        assert ValueCoercer.coerce(value, data_type) is None


def test_numeric_coercion():
    assert ValueCoercer.coerce(10, "numeric") == 10.0
    assert ValueCoercer.coerce("1.234,56", "numeric") == pytest.approx(1234.56)
    assert ValueCoercer.coerce("45,5 %", "numeric") == pytest.approx(45.5)
    # values without a leading number are kept as trimmed text
    assert ValueCoercer.coerce(" aprox. 12 ", "numeric") == "aprox. 12"


def test_integer_coercion_keeps_digits_and_sign():
    assert ValueCoercer.coerce(7.0, "integer") == 7
    assert ValueCoercer.coerce("-12", "integer") == -12
    assert ValueCoercer.coerce("N° 7", "integer") == 7
    assert ValueCoercer.coerce("sin numero", "integer") == "sin numero"


def test_integer_coercion_treats_native_floats_like_their_text():
    assert ValueCoercer.coerce(3.7, "integer") == ValueCoercer.coerce("3.7", "integer") == 37
    assert ValueCoercer.coerce(-2.0, "integer") == -2


def test_text_and_date_pass_through_as_strings():
    assert ValueCoercer.coerce("  Torre Norte ", "text") == "Torre Norte"
    assert ValueCoercer.coerce(datetime(2024, 1, 5), "date") == "2024-01-05"
    assert ValueCoercer.coerce(True, "text") == "true"
    assert ValueCoercer.coerce(1500.0, "text") == "1500"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("45%", 45.0),
        ("0.45", 45.0),
        ("45", 45.0),
        ("45,5%", 45.5),
        ("0.5%", 0.5),
        (0.155, 15.5),
        (1, 1.0),
        (None, 0.0),
        ("n/a", 0.0),
        ("", 0.0),
    ],
)
def test_parse_percent(value, expected):
    assert ValueCoercer.parse_percent(value) == pytest.approx(expected)
