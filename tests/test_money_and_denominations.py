from __future__ import annotations

from decimal import Decimal

import pytest

from modules.exchange_reconciliation.core.denominations import breakdown, count_total, parse_notes
from modules.exchange_reconciliation.core.money import (
    from_minor_units,
    parse_decimal,
    percent_of,
    to_minor_units,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12.50", 1250),
        ("12,5", 1250),
        ("1.234,50", 123450),
        ("1,234.50", 123450),
        (12.1, 1210),
        (7, 700),
        (Decimal("0.01"), 1),
    ],
)
def test_to_minor_units_accepts_major_unit_input(raw, expected) -> None:
    assert to_minor_units(raw, 2) == (expected, None)


@pytest.mark.parametrize("raw", ["12.505", "abc", "", None, True, "NaN"])
def test_to_minor_units_rejects_bad_input(raw) -> None:
    units, error = to_minor_units(raw, 2, label="Cash")
    assert units is None
    assert error and error.startswith("Cash")


def test_from_minor_units_formats_with_currency_precision() -> None:
    assert from_minor_units(1250, 2) == "12.50"
    assert from_minor_units(-80, 2) == "-0.80"
    assert from_minor_units(17, 0) == "17"


def test_percent_of_rounds_half_up_once() -> None:
    assert percent_of(333, Decimal("5")) == 17
    assert percent_of(10, Decimal("5")) == 1
    assert percent_of(9, Decimal("5")) == 0


def test_parse_decimal_reports_label() -> None:
    assert parse_decimal("x", label="VAT rate") == (None, "VAT rate must be a number.")


def test_count_total_matches_face_times_count() -> None:
    assert count_total({1000: 1, 500: 1, 100: 2}) == 1700
    assert count_total({}) == 0


def test_parse_notes_from_text_and_mapping() -> None:
    assert parse_notes("1000:1, 500:1; 100 x 2", decimals=0) == ({1000: 1, 500: 1, 100: 2}, None)
    assert parse_notes({"1000": 2, "5": "0"}, decimals=2) == ({100000: 2}, None)
    assert parse_notes("100:1, 100:2", decimals=0) == ({100: 3}, None)
    assert parse_notes("", decimals=2) == ({}, None)


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"500": -1}, "Note counts cannot be negative."),
        ({"500": "1.5"}, "Note counts must be whole numbers."),
        ("500 notes", "Enter notes as value:count pairs."),
        ({"0": 1}, "Denominations must be positive."),
    ],
)
def test_parse_notes_rejects_bad_counts(raw, message) -> None:
    assert parse_notes(raw, decimals=0) == (None, message)


def test_breakdown_is_greedy_and_reports_remainder() -> None:
    assert breakdown(1780, [10, 1000, 20, 500, 100, 50]) == (
        {1000: 1, 500: 1, 100: 2, 50: 1, 20: 1, 10: 1},
        0,
    )
    assert breakdown(8, [5, 2]) == ({5: 1, 2: 1}, 1)
    assert breakdown(-5, [1]) == ({}, 0)
