from datetime import datetime
from decimal import Decimal

import pytest

from gophermart.mappers import (
    balance_from_row,
    float_to_numeric,
    numeric_to_float,
    order_float_to_numeric,
    order_numeric_to_float,
    withdrawal_from_row,
    withdrawal_from_row as _withdrawal,
)


def parse_time(text):
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


NUMERIC_CASES = [
    ("0", 0.0),
    ("123", 123.0),
    ("-456", -456.0),
    ("123.45", 123.45),
    ("-78.90", -78.90),
    ("0.01", 0.01),
    ("999999.99", 999999.99),
]


@pytest.mark.parametrize("text, expected", NUMERIC_CASES)
def test_numeric_to_float(text, expected):
    assert numeric_to_float(Decimal(text)) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.0, "0.00"),
        (123.0, "123.00"),
        (-456.0, "-456.00"),
        (123.45, "123.45"),
        (-78.90, "-78.90"),
        (0.01, "0.01"),
        (123.456, "123.46"),
    ],
)
def test_float_to_numeric(value, expected):
    numeric = float_to_numeric(value)
    assert numeric == Decimal(expected)
    assert numeric_to_float(numeric) == pytest.approx(float(expected), abs=0.001)


@pytest.mark.parametrize(
    "balance, withdrawn, current_expected, withdrawn_expected",
    [
        ("0", "0", 0.0, 0.0),
        ("1234.56", "789.12", 1234.56, 789.12),
        ("-100.50", "250.75", -100.50, 250.75),
        ("999999.99", "888888.88", 999999.99, 888888.88),
    ],
)
def test_balance_from_row(balance, withdrawn, current_expected, withdrawn_expected):
    result = balance_from_row(Decimal(balance), Decimal(withdrawn))
    assert result.current == current_expected
    assert result.withdrawn == withdrawn_expected


@pytest.mark.parametrize("value", [0.0, 123.45, -67.89, 999.99, 0.01, -0.01])
def test_balance_round_trip(value):
    assert numeric_to_float(float_to_numeric(value)) == pytest.approx(value, abs=0.001)


@pytest.mark.parametrize(
    "order, withdrawn, moment, expected_sum",
    [
        ("12345", "100.50", "2023-12-01T10:30:00Z", 100.50),
        ("00000", "0", "2023-11-15T14:45:30Z", 0.0),
        ("999999999", "9999.99", "2023-01-01T00:00:00Z", 9999.99),
        ("ABC123", "45.67", "2023-06-15T12:00:00Z", 45.67),
        ("MICRO001", "0.01", "2023-08-20T16:30:45Z", 0.01),
        ("", "25.00", "2023-03-10T09:15:00Z", 25.00),
    ],
)
def test_withdrawal_from_row(order, withdrawn, moment, expected_sum):
    result = withdrawal_from_row(order, Decimal(withdrawn), parse_time(moment))
    assert result.order == order
    assert result.sum == expected_sum
    assert result.processed_at == parse_time(moment)


def test_withdrawal_from_row_with_missing_numeric():
    result = withdrawal_from_row("TEST001", None, parse_time("2023-12-01T10:30:00Z"))
    assert result.order == "TEST001"
    assert result.sum == 0.0
    assert result.processed_at == parse_time("2023-12-01T10:30:00Z")


@pytest.mark.parametrize(
    "moment, order",
    [
        ("2023-12-01T10:30:00Z", "UTC001"),
        ("2024-01-15T23:59:59Z", "UTC002"),
        ("1970-01-01T00:00:00Z", "EPOCH001"),
    ],
)
def test_withdrawal_from_row_time_zones(moment, order):
    result = withdrawal_from_row(order, Decimal("100.00"), parse_time(moment))
    assert result.order == order
    assert result.sum == 100.00
    assert result.processed_at == parse_time(moment)


def test_withdrawal_from_row_accepts_text_timestamp():
    result = _withdrawal("FIELD_TEST", Decimal("123.45"), "2023-07-20T14:30:00Z")
    assert result.order == "FIELD_TEST"
    assert result.sum == 123.45
    assert result.processed_at == parse_time("2023-07-20T14:30:00Z")


@pytest.mark.parametrize("text, expected", NUMERIC_CASES)
def test_order_numeric_to_float(text, expected):
    assert order_numeric_to_float(Decimal(text)) == expected


def test_order_numeric_to_float_with_missing_numeric():
    assert order_numeric_to_float(None) == 0.0


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.0, 0.0),
        (123.0, 123.0),
        (-456.0, -456.0),
        (123.45, 123.45),
        (-78.90, -78.90),
        (0.01, 0.01),
        (123.456, 123.46),
        (123.454, 123.45),
    ],
)
def test_order_float_to_numeric(value, expected):
    converted = order_numeric_to_float(order_float_to_numeric(value))
    assert converted == pytest.approx(expected, abs=0.001)


@pytest.mark.parametrize("value", [0.0, 123.45, -67.89, 999.99, 0.01, -0.01, 1000000.50])
def test_order_round_trip(value):
    converted = order_numeric_to_float(order_float_to_numeric(value))
    assert converted == pytest.approx(value, abs=0.01)


def test_order_float_to_numeric_keeps_absence():
    assert order_float_to_numeric(None) is None