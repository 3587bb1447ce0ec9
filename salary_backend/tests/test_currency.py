"""
Currency converter tests.

Pure functions, no database.
"""

import logging
from decimal import Decimal

import pytest

from salary_backend.app.core.exceptions import ValidationError
from salary_backend.app.domain.salary.currency import (
    displayed_total,
    is_supported,
    normalize_currency_code,
    rate_for,
    supported_currencies,
    to_reference,
)


@pytest.mark.parametrize("amount, code, expected", [
    ("1000", "USD", "850.00"),
    ("2000", "USD", "1700.00"),
    ("1000", "GBP", "1150.00"),
    ("1000", "EUR", "1000.00"),
    ("1000", "CAD", "650.00"),
    ("1000", "AUD", "600.00"),
    ("100000", "JPY", "650.00"),
    ("1234.56", "CHF", "1172.83"),
    ("10000", "SEK", "850.00"),
    ("0", "USD", "0.00"),
    ("0.01", "USD", "0.01"),   # 0.0085 rounds half-up
    ("1.01", "USD", "0.86"),   # 0.8585
    ("333", "JPY", "2.16"),    # 2.1645
    ("77", "JPY", "0.50"),     # 0.5005
])
def test_to_reference_table(amount, code, expected):
    assert to_reference(Decimal(amount), code) == Decimal(expected)


def test_reference_currency_is_identity():
    assert rate_for("EUR") == Decimal("1.00")
    assert to_reference(Decimal("1234.57"), "EUR") == Decimal("1234.57")


def test_codes_are_normalized():
    assert normalize_currency_code(" usd ") == "USD"
    assert to_reference(Decimal("1000"), "usd") == Decimal("850.00")


def test_unknown_code_falls_back_to_reference_rate_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        result = to_reference(Decimal("1000"), "XYZ")

    assert result == Decimal("1000.00")
    assert "XYZ" in caplog.text


@pytest.mark.parametrize("code", ["US", "USDX", "12A", "", "U$D"])
def test_malformed_codes_are_rejected(code):
    with pytest.raises(ValidationError) as exc_info:
        to_reference(Decimal("10"), code)
    assert exc_info.value.details["field"] == "currency_code"


def test_non_string_code_is_rejected():
    with pytest.raises(ValidationError):
        normalize_currency_code(None)


def test_supported_currencies():
    codes = supported_currencies()
    assert codes == sorted(codes)
    assert {"USD", "GBP", "EUR", "CAD", "AUD", "JPY"} <= set(codes)
    assert is_supported("gbp")
    assert not is_supported("XYZ")


def test_displayed_total_rounds_sum():
    assert displayed_total(Decimal("850.00"), Decimal("500.00")) == Decimal("1350.00")
    assert displayed_total(Decimal("0.505"), Decimal("0")) == Decimal("0.51")
