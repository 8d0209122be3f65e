"""
BACKTEST / COMPARISON ENGINE
Replay monthly DCA recommendations against historical closes

RESPONSIBILITIES:
- Plan-weighted replay (amounts exactly as recommended)
- Equal-split replay (same monthly total, split evenly per symbol)
- Month-by-month value and cumulative return series
- Strategy comparison

RULES:
❌ Never buy at a future price
❌ No randomness, no wall clock
✅ Buy at the buy-day close, or the most recent close before it
✅ Missing price → symbol contributes nothing that month
✅ Monthly marks use the buy-day price; the final mark uses the latest price
"""

import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Sequence, Tuple

from smart_dca.core.exceptions import MissingPriceError
from smart_dca.domain.models import (
    BacktestResult,
    ComparisonResult,
    DCARecommendation,
    MonthlyPerformance,
    PricePoint,
)
from smart_dca.utils.time import day_in_month

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')
MONEY_QUANT = Decimal('0.01')
PCT_QUANT = Decimal('0.01')

PriceMap = Mapping[str, Sequence[PricePoint]]
MonthlyOrders = List[Tuple[str, List[Tuple[str, Decimal]]]]


# ----------------------------------------------------------------------
# PRICE LOOKUPS
# ----------------------------------------------------------------------

def price_on_or_before(prices: Sequence[PricePoint], target: date) -> Decimal:
    """
    Historical mark: close on `target`, else the most recent earlier close.

    Raises:
        MissingPriceError: empty history or nothing on/before `target`
    """
    best = None
    for point in prices:
        if point.date == target:
            return Decimal(str(point.close_price))
        if point.date < target and (best is None or point.date > best.date):
            best = point

    if best is None:
        raise MissingPriceError(
            f"No price on or before {target.isoformat()}",
            details={"target_date": target.isoformat()},
        )
    return Decimal(str(best.close_price))


def latest_price(prices: Sequence[PricePoint]) -> Decimal:
    """
    Current mark: close on the most recent available date.

    Raises:
        MissingPriceError: empty history
    """
    if not prices:
        raise MissingPriceError("No price history available")
    newest = max(prices, key=lambda p: p.date)
    return Decimal(str(newest.close_price))


def _return_pct(value: Decimal, invested: Decimal) -> Decimal:
    if invested <= ZERO:
        return ZERO.quantize(PCT_QUANT)
    return ((value - invested) / invested * HUNDRED).quantize(PCT_QUANT)


class BacktestEngine:
    """
    Backtest Engine
    Stateless replay of DCA strategies over historical prices
    """

    def __init__(self, buy_day: int = 2):
        """
        Args:
            buy_day: Calendar day of month on which purchases are simulated
        """
        if buy_day < 1:
            raise ValueError("Buy day must be at least 1")
        self.buy_day = buy_day

    # ------------------------------------------------------------------
    # STRATEGIES
    # ------------------------------------------------------------------

    def run_weighted(
        self,
        recommendations: Sequence[DCARecommendation],
        price_data: PriceMap,
    ) -> BacktestResult:
        """Replay recommendations with their recommended amounts"""
        orders: MonthlyOrders = [
            (month, [(rec.symbol, Decimal(str(rec.amount))) for rec in recs])
            for month, recs in self._group_by_month(recommendations)
        ]
        return self._replay(orders, price_data)

    def run_equal_split(
        self,
        recommendations: Sequence[DCARecommendation],
        price_data: PriceMap,
    ) -> BacktestResult:
        """Replay the same monthly totals split evenly across symbols"""
        orders: MonthlyOrders = []
        for month, recs in self._group_by_month(recommendations):
            symbols = list(OrderedDict.fromkeys(rec.symbol for rec in recs))
            month_budget = sum((Decimal(str(rec.amount)) for rec in recs), ZERO)
            equal_amount = month_budget / Decimal(len(symbols))
            orders.append((month, [(symbol, equal_amount) for symbol in symbols]))
        return self._replay(orders, price_data)

    def compare(
        self,
        recommendations: Sequence[DCARecommendation],
        price_data: PriceMap,
    ) -> ComparisonResult:
        """
        Compare the recommended plan against an equal split

        Returns:
            ComparisonResult with both replays and (smart - equal) differences
        """
        smart = self.run_weighted(recommendations, price_data)
        equal = self.run_equal_split(recommendations, price_data)

        return ComparisonResult(
            smart_dca=smart,
            equal_dca=equal,
            value_diff=smart.current_value - equal.current_value,
            return_diff=smart.return_pct - equal.return_pct,
        )

    # ------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------

    @staticmethod
    def _group_by_month(
        recommendations: Sequence[DCARecommendation],
    ) -> List[Tuple[str, List[DCARecommendation]]]:
        grouped: Dict[str, List[DCARecommendation]] = {}
        for rec in recommendations:
            grouped.setdefault(rec.month, []).append(rec)
        return sorted(grouped.items(), key=lambda item: item[0])

    def _replay(self, orders: MonthlyOrders, price_data: PriceMap) -> BacktestResult:
        shares: Dict[str, Decimal] = {}
        total_invested = ZERO
        monthly_details: List[MonthlyPerformance] = []

        for month, month_orders in orders:
            buy_date = day_in_month(month, self.buy_day)
            month_invested = ZERO

            for symbol, amount in month_orders:
                try:
                    price = price_on_or_before(price_data.get(symbol, []), buy_date)
                except MissingPriceError:
                    logger.debug("No price for %s on/before %s, skipping", symbol, buy_date)
                    continue
                if price <= ZERO:
                    continue

                shares[symbol] = shares.get(symbol, ZERO) + amount / price
                month_invested += amount

            total_invested += month_invested

            invested_q = total_invested.quantize(MONEY_QUANT)
            value_q = self._mark_as_of(shares, price_data, buy_date).quantize(MONEY_QUANT)
            monthly_details.append(MonthlyPerformance(
                month=month,
                invested=month_invested.quantize(MONEY_QUANT),
                shares_accumulated=dict(shares),
                value_at_month=value_q,
                cumulative_return=_return_pct(value_q, invested_q),
            ))

        invested_q = total_invested.quantize(MONEY_QUANT)
        current_value = self._mark_latest(shares, price_data).quantize(MONEY_QUANT)

        return BacktestResult(
            total_invested=invested_q,
            current_value=current_value,
            return_pct=_return_pct(current_value, invested_q),
            monthly_details=monthly_details,
        )

    @staticmethod
    def _mark_as_of(
        shares: Mapping[str, Decimal],
        price_data: PriceMap,
        as_of: date,
    ) -> Decimal:
        total = ZERO
        for symbol, count in shares.items():
            try:
                total += count * price_on_or_before(price_data.get(symbol, []), as_of)
            except MissingPriceError:
                continue
        return total

    @staticmethod
    def _mark_latest(shares: Mapping[str, Decimal], price_data: PriceMap) -> Decimal:
        total = ZERO
        for symbol, count in shares.items():
            try:
                total += count * latest_price(price_data.get(symbol, []))
            except MissingPriceError:
                continue
        return total
