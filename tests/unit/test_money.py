"""
Unit tests for money primitives.

Verifies:
- Decimal coercion of caller-supplied values
- convert() rounding (2 decimals, ROUND_HALF_UP)
- 2-decimal comparison
- ISO 4217 validation
"""

from decimal import Decimal

import pytest

from ledger_kernel.db.types import round_money
from ledger_kernel.domain.money import amounts_equal, convert, to_decimal, validate_currency
from ledger_kernel.exceptions import InvalidAmountError, InvalidCurrencyError


class TestToDecimal:
    """Tests for to_decimal coercion."""

    def test_decimal_passthrough(self):
        assert to_decimal(Decimal("100.50")) == Decimal("100.50")

    def test_int(self):
        assert to_decimal(42) == Decimal("42")

    def test_numeric_string(self):
        assert to_decimal(" 12.345 ") == Decimal("12.345")

    def test_float_goes_through_str(self):
        """0.1 stays 0.1 rather than its binary expansion."""
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, True, False, "abc", "", object(), [1]])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(InvalidAmountError):
            to_decimal(value, "amount")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", float("nan")])
    def test_rejects_non_finite(self, value):
        with pytest.raises(InvalidAmountError):
            to_decimal(value)

    def test_error_names_field(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            to_decimal("x", "lines[2].debit")
        assert exc_info.value.field == "lines[2].debit"
        assert exc_info.value.kind == "VALIDATION_ERROR"


class TestConvert:
    """Tests for foreign-to-base conversion."""

    def test_simple(self):
        assert convert(Decimal("100"), Decimal("3.75")) == Decimal("375.00")

    def test_rounds_half_up(self):
        assert convert(Decimal("1"), Decimal("0.125")) == Decimal("0.13")
        assert convert(Decimal("1"), Decimal("0.124")) == Decimal("0.12")

    def test_rate_one_is_identity_at_two_places(self):
        assert convert(Decimal("123.456"), Decimal("1")) == Decimal("123.46")

    def test_result_has_two_places(self):
        assert convert(Decimal("10"), Decimal("3.8")).as_tuple().exponent == -2


class TestAmountsEqual:

    def test_equal_after_rounding(self):
        assert amounts_equal(Decimal("100.004"), Decimal("100.00"))

    def test_each_side_rounded_independently(self):
        assert not amounts_equal(Decimal("100.005"), Decimal("100.00"))

    def test_round_money_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("-2.345")) == Decimal("-2.35")


class TestValidateCurrency:

    def test_normalizes_case(self):
        assert validate_currency("usd") == "USD"

    @pytest.mark.parametrize("code", ["SAR", "USD", "EUR", "JPY"])
    def test_known_codes(self, code):
        assert validate_currency(code) == code

    @pytest.mark.parametrize("code", ["XXX1", "US", "", None, 840, "ZZZ"])
    def test_rejects_unknown(self, code):
        with pytest.raises(InvalidCurrencyError):
            validate_currency(code)
