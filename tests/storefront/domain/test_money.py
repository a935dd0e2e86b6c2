"""Tests for fixed-point money helpers."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError
from storefront.shared.money import (
    line_total,
    money_str,
    percentage_of,
    round_money,
    sum_money,
    to_decimal,
    validate_non_negative,
)


class TestToDecimal:
    def test_parses_strings(self):
        assert to_decimal("12.30") == Decimal("12.30")

    def test_floats_go_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_none_and_empty_read_as_zero(self):
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("") == Decimal("0")

    def test_garbage_is_rejected_with_field_key(self):
        with pytest.raises(ValidationError) as exc:
            to_decimal("twelve", "price")
        assert "price" in exc.value.messages

    def test_non_finite_is_rejected(self):
        with pytest.raises(ValidationError):
            to_decimal("NaN")
        with pytest.raises(ValidationError):
            to_decimal("Infinity")


class TestRounding:
    def test_half_up_to_the_cent(self):
        assert round_money("2.675") == Decimal("2.68")
        assert round_money("2.665") == Decimal("2.67")
        assert round_money("-1.005") == Decimal("-1.01")

    def test_money_str_always_has_two_decimals(self):
        assert money_str(5) == "5.00"
        assert money_str("5.1") == "5.10"


class TestArithmetic:
    def test_line_total(self):
        assert line_total("19.99", 3) == Decimal("59.97")

    def test_percentage_of(self):
        assert percentage_of("100.00", "20") == Decimal("20.00")
        assert percentage_of("33.33", "15") == Decimal("5.00")

    def test_sum_money(self):
        assert sum_money(["0.10", "0.20", None]) == Decimal("0.30")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_non_negative("-0.01", "base_rate")
        assert "base_rate" in exc.value.messages
