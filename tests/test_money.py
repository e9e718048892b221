import math

import pytest

from propmatch.money import money_equal, normalize_money


class TestNormalizeMoney:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("$1.2M", 1_200_000),
            ("1200K", 1_200_000),
            ("900000", 900_000),
            ("$1,200,000", 1_200_000),
            ("1.5m", 1_500_000),
            ("250k", 250_000),
            ("$ 3,000,000.50", 3_000_000.5),
        ],
    )
    def test_formats(self, raw, expected):
        assert normalize_money(raw) == pytest.approx(expected)

    def test_empty_is_zero(self):
        assert normalize_money("") == 0
        assert normalize_money(None) == 0

    def test_numeric_input_unchanged(self):
        assert normalize_money(1_200_000) == 1_200_000
        assert normalize_money(2.5) == 2.5

    def test_idempotent(self):
        once = normalize_money("$1.2M")
        assert normalize_money(once) == once

    def test_spelled_out_amount_is_nan(self):
        assert math.isnan(normalize_money("Two million Dollars"))
        assert math.isnan(normalize_money("Three hundred thousand Dollars"))

    def test_garbage_is_nan_not_zero(self):
        assert math.isnan(normalize_money("n/a"))
        assert math.isnan(normalize_money("1.2.3"))


class TestMoneyEqual:
    def test_equal_across_formats(self):
        assert money_equal("$1.2M", "1200K")
        assert money_equal("1200000", "$1,200,000")

    def test_different_amounts(self):
        assert not money_equal("1.2M", "1.3M")

    def test_nan_never_equal(self):
        assert not money_equal("Two million Dollars", "Two million Dollars")
        assert not money_equal("Two million Dollars", "2M")

    def test_empty_values_equal(self):
        assert money_equal("", "")
