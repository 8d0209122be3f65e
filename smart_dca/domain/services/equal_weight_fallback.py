"""
Equal-weight DCA plan, used when price history is too short
for any stock in the portfolio.
"""

from decimal import ROUND_UP, Decimal
from typing import List, Sequence

from smart_dca.domain.models import DCAOutput, PricePoint, StockPosition
from smart_dca.domain.services.plan_normalizer import AMOUNT_QUANT, HUNDRED, WEIGHT_QUANT

FALLBACK_REASON = "Insufficient price history, using equal-weight DCA"


def needs_equal_fallback(
    histories: Sequence[Sequence[PricePoint]],
    required_points: int,
) -> bool:
    """True when ANY stock lacks `required_points` observations."""
    return any(len(history) < required_points for history in histories)


def calculate_equal_plan(
    stocks: Sequence[StockPosition],
    monthly_budget: Decimal,
    min_amount: Decimal = Decimal('1'),
) -> List[DCAOutput]:
    if not stocks:
        return []

    count = Decimal(len(stocks))
    equal_weight = (HUNDRED / count).quantize(WEIGHT_QUANT)
    # Rounded up to the cent so the split never under-spends the budget
    equal_amount = max(min_amount, monthly_budget / count).quantize(
        AMOUNT_QUANT, rounding=ROUND_UP
    )

    return [
        DCAOutput(
            symbol=stock.symbol,
            final_weight=equal_weight,
            amount=equal_amount,
            reason=FALLBACK_REASON,
        )
        for stock in stocks
    ]
