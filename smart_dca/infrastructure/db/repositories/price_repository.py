"""
Stock Price Repository
Append-only cache of daily closes, unique per (symbol, date)
"""

from decimal import Decimal
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.domain.models import PricePoint
from smart_dca.infrastructure.db.models import StockPriceModel


class StockPriceRepository:
    """Repository for StockPrice rows"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get_recent(self, symbol: str, limit: int) -> List[PricePoint]:
        """
        Most recent closes for a symbol

        Args:
            symbol: Stock symbol
            limit: Maximum number of rows

        Returns:
            Price points, newest first
        """
        result = await self.session.execute(
            select(StockPriceModel)
            .where(StockPriceModel.symbol == symbol.upper())
            .order_by(StockPriceModel.date.desc())
            .limit(limit)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_history(self, symbol: str) -> List[PricePoint]:
        """Full cached history for a symbol, oldest first"""
        result = await self.session.execute(
            select(StockPriceModel)
            .where(StockPriceModel.symbol == symbol.upper())
            .order_by(StockPriceModel.date.asc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_histories(self, symbols: Iterable[str]) -> Dict[str, List[PricePoint]]:
        return {symbol: await self.get_history(symbol) for symbol in symbols}

    async def add_missing(self, points: Iterable[PricePoint]) -> int:
        """
        Insert price points that are not cached yet

        Existing (symbol, date) rows are never modified.

        Returns:
            Number of rows inserted
        """
        by_symbol: Dict[str, Dict] = {}
        for point in points:
            by_symbol.setdefault(point.symbol.upper(), {})[point.date] = point

        inserted = 0
        for symbol, by_date in by_symbol.items():
            result = await self.session.execute(
                select(StockPriceModel.date).where(
                    StockPriceModel.symbol == symbol,
                    StockPriceModel.date.in_(list(by_date.keys())),
                )
            )
            existing = set(result.scalars().all())

            for price_date, point in sorted(by_date.items()):
                if price_date in existing:
                    continue
                self.session.add(StockPriceModel(
                    symbol=symbol,
                    date=price_date,
                    close_price=point.close_price,
                ))
                inserted += 1

        await self.session.flush()
        return inserted

    @staticmethod
    def _to_domain(model: StockPriceModel) -> PricePoint:
        return PricePoint(
            symbol=model.symbol,
            date=model.date,
            close_price=Decimal(model.close_price),
        )
