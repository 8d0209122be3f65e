"""
PRICE SIGNALS

Pure calculators over a daily closing-price series.
Inputs may arrive in any order; every calculator sorts newest-first
before slicing its window.
"""

from decimal import Decimal
from typing import List, Optional, Sequence

from smart_dca.core.exceptions import InsufficientDataError
from smart_dca.domain.models import AdjustmentRules, PricePoint

_DEFAULT_RULES = AdjustmentRules()
ZERO = Decimal('0')


def _recent_closes(prices: Sequence[PricePoint], window: int) -> List[Decimal]:
    ordered = sorted(prices, key=lambda p: p.date, reverse=True)
    return [Decimal(str(p.close_price)) for p in ordered[:window]]


def trailing_average(prices: Sequence[PricePoint], window: int = 6) -> Decimal:
    """
    Average close of the `window` most recent observations.

    Raises:
        InsufficientDataError: fewer than `window` observations
    """
    if len(prices) < window:
        raise InsufficientDataError(
            f"Need {window} price points for trailing average, got {len(prices)}",
            details={"required": window, "available": len(prices)},
        )

    closes = _recent_closes(prices, window)
    return sum(closes, ZERO) / Decimal(window)


def short_window_volatility(prices: Sequence[PricePoint], window: int = 3) -> Decimal:
    """
    Coefficient of variation (population std / mean) over the most recent
    `window` closes. Returns 0 when history is too short or the mean is 0.
    """
    if len(prices) < window:
        return ZERO

    closes = _recent_closes(prices, window)
    mean = sum(closes, ZERO) / Decimal(len(closes))
    if mean == ZERO:
        return ZERO

    variance = sum(((c - mean) ** 2 for c in closes), ZERO) / Decimal(len(closes))
    return variance.sqrt() / mean


def price_deviation_adjustment(
    current_price: Decimal,
    average: Decimal,
    rules: AdjustmentRules = _DEFAULT_RULES,
) -> Decimal:
    """+step when price is well below its average, -step when above."""
    if average <= ZERO:
        return ZERO

    ratio = current_price / average
    if ratio < rules.low_price_ratio:
        return rules.price_step
    if ratio > rules.high_price_ratio:
        return -rules.price_step
    return ZERO


def portfolio_drift_adjustment(
    actual_weight: Optional[Decimal],
    target_weight: Decimal,
    rules: AdjustmentRules = _DEFAULT_RULES,
) -> Decimal:
    """+step when underweight, -step when overweight, 0 when not tracked."""
    if actual_weight is None:
        return ZERO

    drift = actual_weight - target_weight
    if drift < -rules.drift_threshold:
        return rules.drift_step
    if drift > rules.drift_threshold:
        return -rules.drift_step
    return ZERO


def volatility_guard_adjustment(
    volatility: Decimal,
    rules: AdjustmentRules = _DEFAULT_RULES,
) -> Decimal:
    if volatility > rules.volatility_threshold:
        return -rules.volatility_step
    return ZERO
