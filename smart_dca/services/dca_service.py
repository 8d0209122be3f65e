"""
DCA PLAN SERVICE

Runs one monthly calculation cycle per portfolio:
load positions and prices → adjusted plan (or equal-weight fallback)
→ invariant check → upsert.

A failed portfolio never blocks the others.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.config import settings
from smart_dca.core.exceptions import BadRequestError, InsufficientHistoryError, NotFoundError
from smart_dca.domain.indicators.price_signals import trailing_average
from smart_dca.domain.models import (
    AdjustmentRules,
    DCAInput,
    DCAOutput,
    DCARecommendation,
    Portfolio,
    PricePoint,
)
from smart_dca.domain.services.equal_weight_fallback import (
    calculate_equal_plan,
    needs_equal_fallback,
)
from smart_dca.domain.services.plan_normalizer import PlanNormalizer
from smart_dca.domain.services.weight_adjustment_engine import WeightAdjustmentEngine
from smart_dca.infrastructure.db.repositories.portfolio_repository import PortfolioRepository
from smart_dca.infrastructure.db.repositories.price_repository import StockPriceRepository
from smart_dca.infrastructure.db.repositories.recommendation_repository import (
    DCARecommendationRepository,
)
from smart_dca.utils.time import current_month, parse_month

logger = logging.getLogger(__name__)


def rules_from_settings() -> AdjustmentRules:
    return AdjustmentRules(
        trailing_window=settings.DCA_TRAILING_WINDOW,
        volatility_window=settings.DCA_VOLATILITY_WINDOW,
        volatility_threshold=Decimal(str(settings.DCA_VOLATILITY_THRESHOLD)),
    )


class DCAPlanService:
    """Monthly DCA calculation cycle"""

    def __init__(
        self,
        rules: Optional[AdjustmentRules] = None,
        min_amount: Optional[Decimal] = None,
        history_limit: Optional[int] = None,
    ):
        self.rules = rules or rules_from_settings()
        self.weight_engine = WeightAdjustmentEngine(self.rules)
        self.normalizer = PlanNormalizer(
            min_amount=min_amount
            if min_amount is not None
            else Decimal(str(settings.DCA_MIN_ALLOCATION_AMOUNT))
        )
        self.history_limit = history_limit or settings.PRICE_HISTORY_LIMIT

    @staticmethod
    def _checked_month(month: Optional[str]) -> str:
        month = month or current_month()
        try:
            parse_month(month)
        except ValueError as exc:
            raise BadRequestError(str(exc), details={"month": month}) from exc
        return month

    # ------------------------------------------------------------------
    # PURE PLAN
    # ------------------------------------------------------------------

    def build_plan(
        self,
        portfolio: Portfolio,
        histories: Dict[str, Sequence[PricePoint]],
    ) -> List[DCAOutput]:
        """
        Build the month's plan for a portfolio

        Args:
            portfolio: Portfolio with positions and budget
            histories: symbol -> recent price points

        Returns:
            Validated plan lines

        Raises:
            InvariantViolationError: plan inconsistent, must not be persisted
        """
        budget = portfolio.monthly_budget
        stock_histories = [histories.get(stock.symbol, []) for stock in portfolio.stocks]

        if needs_equal_fallback(stock_histories, self.rules.trailing_window):
            logger.info(
                "Insufficient history for portfolio %s, using equal-weight DCA",
                portfolio.id,
            )
            outputs = calculate_equal_plan(
                portfolio.stocks, budget, min_amount=self.normalizer.min_amount
            )
        else:
            inputs = []
            for stock, history in zip(portfolio.stocks, stock_histories):
                ordered = sorted(history, key=lambda p: p.date, reverse=True)
                inputs.append(DCAInput(
                    stock=stock,
                    current_price=Decimal(str(ordered[0].close_price)),
                    price_history=ordered,
                    monthly_budget=budget,
                    actual_weight=None,
                ))
            results = self.weight_engine.adjust_all(inputs)
            outputs = self.normalizer.build_plan(results, budget)

        self.normalizer.validate_plan(outputs, budget)
        return outputs

    # ------------------------------------------------------------------
    # CYCLE
    # ------------------------------------------------------------------

    async def _load_histories(
        self,
        session: AsyncSession,
        portfolio: Portfolio,
    ) -> Dict[str, List[PricePoint]]:
        # One AsyncSession cannot run queries concurrently
        price_repo = StockPriceRepository(session)
        return {
            stock.symbol: await price_repo.get_recent(stock.symbol, self.history_limit)
            for stock in portfolio.stocks
        }

    async def calculate_portfolio(
        self,
        session: AsyncSession,
        portfolio_id: int,
        month: Optional[str] = None,
    ) -> List[DCARecommendation]:
        """
        Calculate and upsert one portfolio's plan for a month

        Args:
            session: Database session
            portfolio_id: Portfolio ID
            month: YYYY-MM token (defaults to current month)

        Returns:
            Persisted recommendations ([] for an empty portfolio)
        """
        month = self._checked_month(month)

        portfolio = await PortfolioRepository(session).get(portfolio_id)
        if portfolio is None:
            raise NotFoundError(
                f"Portfolio {portfolio_id} not found",
                details={"portfolio_id": portfolio_id},
            )
        if not portfolio.stocks:
            logger.info("Portfolio %s has no stocks, skipping", portfolio_id)
            return []

        histories = await self._load_histories(session, portfolio)
        outputs = self.build_plan(portfolio, histories)

        recommendations = await DCARecommendationRepository(session).upsert_recommendations(
            portfolio_id, month, outputs
        )
        logger.info(
            "Stored %d recommendations for portfolio %s (%s)",
            len(recommendations), portfolio_id, month,
        )
        return recommendations

    async def run_monthly_cycle(
        self,
        session: AsyncSession,
        month: Optional[str] = None,
    ) -> List[dict]:
        """
        Calculate every portfolio, isolating failures per portfolio

        Returns:
            One status entry per portfolio
        """
        month = self._checked_month(month)

        portfolio_ids = await PortfolioRepository(session).list_ids()
        logger.info("Running DCA cycle for %d portfolios (%s)", len(portfolio_ids), month)

        results = []
        for portfolio_id in portfolio_ids:
            try:
                recommendations = await self.calculate_portfolio(session, portfolio_id, month)
                await session.commit()
            except Exception as exc:
                await session.rollback()
                logger.error("DCA cycle failed for portfolio %s: %s", portfolio_id, exc)
                results.append({
                    "portfolio_id": portfolio_id,
                    "month": month,
                    "status": "error",
                    "recommendations_count": 0,
                    "error": str(exc),
                })
                continue

            results.append({
                "portfolio_id": portfolio_id,
                "month": month,
                "status": "completed" if recommendations else "skipped",
                "recommendations_count": len(recommendations),
                "error": None,
            })

        return results

    # ------------------------------------------------------------------
    # NARRATIVE INPUT
    # ------------------------------------------------------------------

    async def insight_items(
        self,
        session: AsyncSession,
        portfolio_id: int,
        month: str,
    ) -> List[dict]:
        """
        Recommendation lines enriched with price and trailing average,
        in the shape the narrative generator consumes
        """
        recommendations = await DCARecommendationRepository(session).get_for_month(
            portfolio_id, month
        )
        price_repo = StockPriceRepository(session)

        items = []
        for rec in recommendations:
            history = await price_repo.get_recent(rec.symbol, self.history_limit)
            price = history[0].close_price if history else None
            try:
                average = trailing_average(history, self.rules.trailing_window)
            except InsufficientHistoryError:
                average = None
            items.append({
                "symbol": rec.symbol,
                "weight": rec.weight,
                "amount": rec.amount,
                "price": price,
                "trailing_average": average,
                "reason": rec.reason,
            })
        return items
