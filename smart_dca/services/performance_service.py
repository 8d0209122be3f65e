"""
Performance Service
Replays a portfolio's stored recommendations against cached prices
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.config import settings
from smart_dca.core.exceptions import NotFoundError
from smart_dca.domain.models import ComparisonResult
from smart_dca.domain.services.backtest_engine import BacktestEngine
from smart_dca.infrastructure.db.repositories.price_repository import StockPriceRepository
from smart_dca.infrastructure.db.repositories.recommendation_repository import (
    DCARecommendationRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceReport:
    portfolio_id: int
    comparison: ComparisonResult
    months_analyzed: int
    symbols: List[str] = field(default_factory=list)
    oldest_month: Optional[str] = None
    latest_month: Optional[str] = None


class PerformanceService:
    """Smart DCA vs equal-split comparison for one portfolio"""

    def __init__(self, engine: Optional[BacktestEngine] = None):
        self.engine = engine or BacktestEngine(buy_day=settings.BACKTEST_BUY_DAY)

    async def compare_portfolio(
        self,
        session: AsyncSession,
        portfolio_id: int,
    ) -> PerformanceReport:
        """
        Compare the stored plan against an equal split

        Raises:
            NotFoundError: portfolio has no recommendations yet
        """
        recommendations = await DCARecommendationRepository(session).get_for_portfolio(
            portfolio_id
        )
        if not recommendations:
            raise NotFoundError(
                "No DCA history found for this portfolio",
                details={"portfolio_id": portfolio_id},
            )

        symbols = list(dict.fromkeys(rec.symbol for rec in recommendations))
        prices = await StockPriceRepository(session).get_histories(symbols)

        comparison = self.engine.compare(recommendations, prices)
        months = sorted({rec.month for rec in recommendations})

        logger.info(
            "Compared portfolio %s over %d months: value diff %s",
            portfolio_id, len(months), comparison.value_diff,
        )

        return PerformanceReport(
            portfolio_id=portfolio_id,
            comparison=comparison,
            months_analyzed=len(months),
            symbols=symbols,
            oldest_month=months[0],
            latest_month=months[-1],
        )
