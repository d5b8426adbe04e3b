"""Tests for cents rounding at the invoice boundary."""

import pytest

from benefitcalc.sdk.money import from_cents, round_half_up, to_cents


class TestToCents:
    """Dollars to integer cents, half up."""

    @pytest.mark.parametrize("amount,expected", [
        (95.625, 9563),
        (0.005, 1),
        (0.1 + 0.2, 30),
        (240.0, 24000),
        (0, 0),
    ])
    def test_to_cents(self, amount, expected):
        assert to_cents(amount) == expected

    def test_from_cents(self):
        assert from_cents(12345) == pytest.approx(123.45)


class TestRoundHalfUp:
    """Ties go up, unlike round()."""

    def test_ties(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(1627.5) == 1628
        assert round(2.5) == 2

    def test_below_half(self):
        assert round_half_up(1627.3125) == 1627
