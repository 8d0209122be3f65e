"""
WEIGHT ADJUSTMENT ENGINE
Target weight → signal-adjusted, bounded weight (per stock)

RESPONSIBILITIES:
- Compute price deviation, portfolio drift and volatility signals
- Apply them as a RELATIVE change to the target weight
- Clamp to the stock's [min, max] bounds
- Isolate failures per stock

RULES:
❌ No normalization (see PlanNormalizer)
❌ No currency amounts
❌ No hidden state
✅ Discrete adjustment table only
✅ Deterministic output
"""

import logging
from decimal import Decimal
from typing import List

from smart_dca.core.exceptions import AppException
from smart_dca.domain.indicators.price_signals import (
    portfolio_drift_adjustment,
    price_deviation_adjustment,
    short_window_volatility,
    trailing_average,
    volatility_guard_adjustment,
)
from smart_dca.domain.models import (
    AdjustmentRules,
    DCAInput,
    StockWeightResult,
    WeightAdjustment,
    WeightStatus,
)

logger = logging.getLogger(__name__)


class WeightAdjustmentEngine:
    """
    Weight Adjustment Engine
    Combines price signals into a clamped per-stock weight
    """

    def __init__(self, rules: AdjustmentRules | None = None):
        """
        Initialize weight adjustment engine

        Args:
            rules: Adjustment thresholds (defaults to the standard table)
        """
        self.rules = rules or AdjustmentRules()

    def adjust(self, dca_input: DCAInput) -> StockWeightResult:
        """
        Calculate the adjusted weight for one stock

        Args:
            dca_input: Stock position with prices and budget

        Returns:
            ADJUSTED StockWeightResult

        Raises:
            InsufficientHistoryError: trailing window not covered
        """
        stock = dca_input.stock
        base_weight = stock.target_weight

        average = trailing_average(dca_input.price_history, self.rules.trailing_window)
        volatility = short_window_volatility(
            dca_input.price_history, self.rules.volatility_window
        )

        adjustments = WeightAdjustment(
            price_deviation=price_deviation_adjustment(
                dca_input.current_price, average, self.rules
            ),
            portfolio_drift=portfolio_drift_adjustment(
                dca_input.actual_weight, base_weight, self.rules
            ),
            volatility_guard=volatility_guard_adjustment(volatility, self.rules),
        )

        adjusted = base_weight * (Decimal('1') + adjustments.total)
        final_weight = self.clamp(adjusted, stock.min_weight, stock.max_weight)

        return StockWeightResult(
            symbol=stock.symbol,
            raw_weight=final_weight,
            adjustments=adjustments,
            status=WeightStatus.ADJUSTED,
            current_price=dca_input.current_price,
            trailing_average=average,
        )

    def adjust_all(self, inputs: List[DCAInput]) -> List[StockWeightResult]:
        """
        Calculate weights for every stock independently

        A stock whose signals cannot be computed falls back to its raw
        target weight; the rest of the batch is unaffected.

        Args:
            inputs: One DCAInput per stock

        Returns:
            One StockWeightResult per input, in input order
        """
        results = []
        for dca_input in inputs:
            try:
                results.append(self.adjust(dca_input))
            except (AppException, ArithmeticError, ValueError) as exc:
                logger.warning(
                    "Weight calculation failed for %s, using target weight: %s",
                    dca_input.stock.symbol,
                    exc,
                )
                results.append(self._fallback(dca_input, str(exc)))
        return results

    @staticmethod
    def clamp(weight: Decimal, min_weight: Decimal, max_weight: Decimal) -> Decimal:
        """Clamp a weight into [min_weight, max_weight]"""
        return max(min_weight, min(max_weight, weight))

    @staticmethod
    def _fallback(dca_input: DCAInput, reason: str) -> StockWeightResult:
        return StockWeightResult(
            symbol=dca_input.stock.symbol,
            raw_weight=dca_input.stock.target_weight,
            adjustments=WeightAdjustment(),
            status=WeightStatus.FALLBACK,
            current_price=dca_input.current_price,
            reason=reason,
        )
