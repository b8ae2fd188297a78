"""Tests for Skonto (early-payment discount) arithmetic.

Includes property-based tests with Hypothesis: the discounted amount must
never exceed the original nor drop below zero.
"""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from taxfiler.matching.matchers.skonto import calculate_discounted_amount, has_valid_skonto

pytestmark = pytest.mark.unit


class TestHasValidSkonto:
    @pytest.mark.parametrize(
        "percentage,expected",
        [
            (Decimal("2"), True),
            (Decimal("0.5"), True),
            (Decimal("0"), False),
            (Decimal("-3"), False),
            (None, False),
            (Decimal("NaN"), False),
        ],
    )
    def test_valid_skonto(self, percentage, expected):
        assert has_valid_skonto(percentage) is expected


class TestCalculateDiscountedAmount:
    def test_two_percent_discount(self):
        assert calculate_discounted_amount(Decimal("100.00"), Decimal("2")) == Decimal("98.00")

    def test_fractional_percentage(self):
        assert calculate_discounted_amount(Decimal("200.00"), Decimal("2.5")) == Decimal("195.00")

    def test_missing_percentage_returns_total(self):
        assert calculate_discounted_amount(Decimal("100.00"), None) == Decimal("100.00")

    def test_negative_percentage_returns_total(self):
        assert calculate_discounted_amount(Decimal("100.00"), Decimal("-5")) == Decimal("100.00")

    def test_percentage_above_hundred_is_clamped(self):
        """More than 100 % discount is treated as exactly 100 %."""
        assert calculate_discounted_amount(Decimal("100.00"), Decimal("150")) == Decimal("0")

    @pytest.mark.parametrize("total", [Decimal("-100.00"), Decimal("0"), Decimal("0.00")])
    @pytest.mark.parametrize("percentage", [Decimal("2"), Decimal("150")])
    def test_non_positive_total_returned_unchanged(self, total, percentage):
        assert calculate_discounted_amount(total, percentage) == total

    def test_non_finite_total_returned_unchanged(self):
        result = calculate_discounted_amount(Decimal("Infinity"), Decimal("2"))
        assert result == Decimal("Infinity")


class TestSkontoProperties:
    @given(
        total=st.decimals(min_value="0.01", max_value="1000000", places=2),
        percentage=st.decimals(min_value="0.01", max_value="99.99", places=2),
    )
    def test_discount_stays_between_zero_and_total(self, total, percentage):
        result = calculate_discounted_amount(total, percentage)

        assert Decimal("0") < result < total

    @given(
        total=st.decimals(min_value="-1000000", max_value="0", places=2),
        percentage=st.decimals(min_value="0.01", max_value="200", places=2),
    )
    def test_non_positive_total_never_discounted(self, total, percentage):
        assert calculate_discounted_amount(total, percentage) == total

    @given(total=st.decimals(min_value="0.01", max_value="1000000", places=2))
    def test_discount_is_exact(self, total):
        """No rounding happens for terminating inputs."""
        result = calculate_discounted_amount(total, Decimal("3"))

        assert result == total - total * Decimal("3") / Decimal("100")
