"""
PLAN NORMALIZER
Clamped weights → 100% plan → currency amounts

RESPONSIBILITIES:
- Rescale weights proportionally to sum to 100
- Convert weights to amounts under the monthly budget
- Enforce the minimum allocation floor
- Explain each line from the signals that fired

RULES:
✅ Floor may push total amount above budget (accepted, not corrected)
✅ Normalized weights may leave the pre-normalization [min, max] clamp
✅ Zero-sum weights pass through unchanged
"""

from decimal import Decimal
from typing import List, Sequence

from smart_dca.core.exceptions import InvariantViolationError
from smart_dca.domain.models import DCAOutput, StockWeightResult, WeightAdjustment

HUNDRED = Decimal('100')
AMOUNT_QUANT = Decimal('0.01')
WEIGHT_QUANT = Decimal('0.0001')
WEIGHT_SUM_TOLERANCE = Decimal('0.1')

NEUTRAL_REASON = "Near target weight, normal price conditions"


class PlanNormalizer:
    """
    Plan Normalizer
    Builds the final monthly plan from per-stock weights
    """

    def __init__(self, min_amount: Decimal = Decimal('1')):
        """
        Args:
            min_amount: Minimum currency amount per stock (default 1)
        """
        self.min_amount = min_amount

    @staticmethod
    def normalize_weights(weights: Sequence[Decimal]) -> List[Decimal]:
        total = sum(weights, Decimal('0'))
        if total == Decimal('0'):
            return list(weights)
        return [w / total * HUNDRED for w in weights]

    def to_amount(self, weight: Decimal, monthly_budget: Decimal) -> Decimal:
        """Currency amount for a weight, never below the floor"""
        amount = weight / HUNDRED * monthly_budget
        return max(self.min_amount, amount).quantize(AMOUNT_QUANT)

    @staticmethod
    def build_reason(adjustments: WeightAdjustment) -> str:
        """
        Human-readable explanation of which signals fired

        Args:
            adjustments: Signal values for the stock

        Returns:
            Reason text
        """
        if not adjustments.fired:
            return NEUTRAL_REASON

        reasons = []
        if adjustments.price_deviation > 0:
            reasons.append("price is below its trailing average")
        elif adjustments.price_deviation < 0:
            reasons.append("price is above its trailing average")

        if adjustments.portfolio_drift > 0:
            reasons.append("holding is below its target weight")
        elif adjustments.portfolio_drift < 0:
            reasons.append("holding is above its target weight")

        if adjustments.volatility_guard < 0:
            reasons.append("short-term volatility is high")

        summary = " and ".join(reasons)
        summary = summary[0].upper() + summary[1:]
        if adjustments.price_deviation > 0 or adjustments.portfolio_drift > 0:
            return f"{summary}, increasing DCA weight slightly"
        return f"{summary}, reducing DCA weight slightly"

    def build_plan(
        self,
        results: List[StockWeightResult],
        monthly_budget: Decimal,
    ) -> List[DCAOutput]:
        """
        Normalize weights and allocate the budget

        Args:
            results: Per-stock clamped weights
            monthly_budget: Portfolio monthly budget

        Returns:
            One DCAOutput per result, in input order
        """
        if not results:
            return []

        normalized = self.normalize_weights([r.raw_weight for r in results])

        return [
            DCAOutput(
                symbol=result.symbol,
                final_weight=weight.quantize(WEIGHT_QUANT),
                amount=self.to_amount(weight, monthly_budget),
                reason=self.build_reason(result.adjustments),
            )
            for result, weight in zip(results, normalized)
        ]

    @staticmethod
    def validate_plan(outputs: List[DCAOutput], monthly_budget: Decimal) -> None:
        """
        Abort if the plan is inconsistent

        Raises:
            InvariantViolationError: non-positive budget, or weights not ~100
        """
        if monthly_budget <= Decimal('0'):
            raise InvariantViolationError(
                f"Monthly budget must be positive, got {monthly_budget}",
                details={"monthly_budget": str(monthly_budget)},
            )
        if not outputs:
            return

        total_weight = sum((o.final_weight for o in outputs), Decimal('0'))
        if abs(total_weight - HUNDRED) > WEIGHT_SUM_TOLERANCE:
            raise InvariantViolationError(
                f"Plan weights sum to {total_weight}, expected 100",
                details={"total_weight": str(total_weight)},
            )
