"""
Unit Tests for price signal calculators
"""

import pytest
from decimal import Decimal

from smart_dca.core.exceptions import InsufficientDataError, InsufficientHistoryError
from smart_dca.domain.indicators.price_signals import (
    portfolio_drift_adjustment,
    price_deviation_adjustment,
    short_window_volatility,
    trailing_average,
    volatility_guard_adjustment,
)
from smart_dca.domain.models import AdjustmentRules


class TestTrailingAverage:

    def test_averages_most_recent_window(self, price_series):
        # Oldest closes are outside the 6-point window
        prices = price_series("AAA", [500, 500, 10, 20, 30, 40, 50, 60])
        assert trailing_average(prices, 6) == Decimal("35")

    def test_input_order_does_not_matter(self, price_series):
        prices = price_series("AAA", [500, 10, 20, 30, 40, 50, 60])
        assert trailing_average(list(reversed(prices)), 6) == trailing_average(prices, 6)

    def test_insufficient_history_raises(self, price_series):
        prices = price_series("AAA", [100, 101, 102])
        with pytest.raises(InsufficientDataError) as exc_info:
            trailing_average(prices, 6)
        assert exc_info.value.details == {"required": 6, "available": 3}

    def test_alias_is_same_exception(self):
        assert InsufficientDataError is InsufficientHistoryError


class TestShortWindowVolatility:

    def test_flat_prices_have_zero_volatility(self, price_series):
        prices = price_series("AAA", [100, 100, 100])
        assert short_window_volatility(prices, 3) == Decimal("0")

    def test_population_coefficient_of_variation(self, price_series):
        # mean 100, population std sqrt(200/3)
        prices = price_series("AAA", [90, 100, 110])
        cv = short_window_volatility(prices, 3)
        assert abs(cv - Decimal("0.0816496580927726")) < Decimal("1e-12")

    def test_short_history_returns_zero(self, price_series):
        prices = price_series("AAA", [50, 150])
        assert short_window_volatility(prices, 3) == Decimal("0")

    def test_zero_mean_returns_zero(self, price_series):
        prices = price_series("AAA", [0, 0, 0])
        assert short_window_volatility(prices, 3) == Decimal("0")

    def test_uses_newest_closes_only(self, price_series):
        prices = price_series("AAA", [1, 1000, 100, 100, 100])
        assert short_window_volatility(prices, 3) == Decimal("0")


class TestPriceDeviation:

    @pytest.mark.parametrize(
        "current,expected",
        [
            ("85", "0.10"),
            ("89.99", "0.10"),
            ("90", "0"),
            ("100", "0"),
            ("105", "0"),
            ("105.01", "-0.10"),
            ("120", "-0.10"),
        ],
    )
    def test_thresholds(self, current, expected):
        assert price_deviation_adjustment(Decimal(current), Decimal("100")) == Decimal(expected)

    def test_non_positive_average_is_neutral(self):
        assert price_deviation_adjustment(Decimal("10"), Decimal("0")) == Decimal("0")


class TestPortfolioDrift:

    def test_untracked_actual_weight_is_neutral(self):
        assert portfolio_drift_adjustment(None, Decimal("30")) == Decimal("0")

    def test_underweight(self):
        assert portfolio_drift_adjustment(Decimal("24"), Decimal("30")) == Decimal("0.10")

    def test_overweight(self):
        assert portfolio_drift_adjustment(Decimal("36"), Decimal("30")) == Decimal("-0.10")

    def test_within_band(self):
        assert portfolio_drift_adjustment(Decimal("25"), Decimal("30")) == Decimal("0")
        assert portfolio_drift_adjustment(Decimal("35"), Decimal("30")) == Decimal("0")


class TestVolatilityGuard:

    def test_above_threshold(self):
        assert volatility_guard_adjustment(Decimal("0.16")) == Decimal("-0.05")

    def test_at_threshold_is_neutral(self):
        assert volatility_guard_adjustment(Decimal("0.15")) == Decimal("0")

    def test_custom_threshold(self):
        rules = AdjustmentRules(volatility_threshold=Decimal("0.05"))
        assert volatility_guard_adjustment(Decimal("0.06"), rules) == Decimal("-0.05")
