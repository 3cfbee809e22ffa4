"""Tests for utils/money.py - display-time rounding and formatting."""

from decimal import Decimal

import pytest

from utils.money import format_currency, round_money


class TestRoundMoney:

    @pytest.mark.parametrize("raw,expected", [
        ("0.015", "0.02"),
        ("0.014", "0.01"),
        ("-0.015", "-0.02"),
        ("210", "210.00"),
    ])
    def test_half_up_to_cents(self, raw, expected):
        assert round_money(Decimal(raw)) == Decimal(expected)
        assert str(round_money(Decimal(raw))) == expected


class TestFormatCurrency:

    def test_rand_default(self):
        assert format_currency(Decimal("1234.5")) == "R1,234.50"

    def test_dollars(self):
        assert format_currency(Decimal("15"), "usd") == "$15.00"

    def test_negative_keeps_sign(self):
        assert format_currency(Decimal("-30"), "USD") == "-$30.00"

    def test_unknown_currency_uses_code(self):
        assert format_currency(Decimal("5"), "JPY") == "JPY 5.00"
