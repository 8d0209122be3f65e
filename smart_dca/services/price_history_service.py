"""
Price History Service
Refreshes the local close-price cache from the market data provider
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.infrastructure.db.repositories.price_repository import StockPriceRepository
from smart_dca.infrastructure.market_data.types import PriceHistoryProvider
from smart_dca.utils.time import local_today

logger = logging.getLogger(__name__)


class PriceHistoryService:
    """Fetch-then-store refresh of cached daily closes"""

    def __init__(self, provider: PriceHistoryProvider):
        self.provider = provider

    async def refresh_symbols(
        self,
        session: AsyncSession,
        symbols: Sequence[str],
        lookback_days: int,
        end: Optional[date] = None,
    ) -> Dict[str, int]:
        """
        Fetch recent closes for every symbol and store the new ones

        All fetches complete before anything is written.

        Args:
            session: Database session
            symbols: Symbols to refresh
            lookback_days: Calendar days to look back from `end`
            end: Last date to fetch (defaults to today)

        Returns:
            symbol -> number of rows inserted

        Raises:
            ProviderUnavailableError: a provider fetch failed
        """
        symbols = list(dict.fromkeys(s.strip().upper() for s in symbols if s.strip()))
        if not symbols:
            return {}

        end = end or local_today()
        start = end - timedelta(days=lookback_days)

        logger.info("Refreshing %d symbols (%s → %s)", len(symbols), start, end)
        fetched: List[list] = await asyncio.gather(
            *(self.provider.get_prices(symbol, start, end) for symbol in symbols),
            return_exceptions=True,
        )
        for symbol, result in zip(symbols, fetched):
            if isinstance(result, BaseException):
                logger.error("Price refresh aborted, %s failed: %s", symbol, result)
                raise result

        repo = StockPriceRepository(session)
        inserted = {}
        for symbol, points in zip(symbols, fetched):
            inserted[symbol] = await repo.add_missing(points)
            logger.info(
                "%s: %d fetched, %d new", symbol, len(points), inserted[symbol]
            )
        return inserted
