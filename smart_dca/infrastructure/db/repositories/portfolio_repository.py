"""
Portfolio Repository
Read portfolios and their stock positions
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from smart_dca.domain.models import Portfolio, StockPosition
from smart_dca.infrastructure.db.models import PortfolioModel, PortfolioStockModel


class PortfolioRepository:
    """Repository for Portfolio data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def create(
        self,
        name: str,
        monthly_budget: Decimal,
        stocks: List[StockPosition],
    ) -> Portfolio:
        """
        Create a portfolio with its positions

        Args:
            name: Portfolio name
            monthly_budget: Monthly DCA budget
            stocks: Positions with target weight and bounds

        Returns:
            Created Portfolio
        """
        model = PortfolioModel(
            name=name,
            monthly_budget=monthly_budget,
            stocks=[
                PortfolioStockModel(
                    symbol=stock.symbol.upper(),
                    target_weight=stock.target_weight,
                    min_weight=stock.min_weight,
                    max_weight=stock.max_weight,
                )
                for stock in stocks
            ],
        )
        self.session.add(model)
        await self.session.flush()

        return await self.get(model.id)

    async def get(self, portfolio_id: int) -> Optional[Portfolio]:
        result = await self.session.execute(
            select(PortfolioModel)
            .options(selectinload(PortfolioModel.stocks))
            .where(PortfolioModel.id == portfolio_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_ids(self) -> List[int]:
        """All portfolio IDs, oldest first"""
        result = await self.session.execute(
            select(PortfolioModel.id).order_by(PortfolioModel.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def _to_domain(model: PortfolioModel) -> Portfolio:
        """Convert database model to domain entity"""
        return Portfolio(
            id=model.id,
            name=model.name,
            monthly_budget=Decimal(model.monthly_budget),
            stocks=[
                StockPosition(
                    symbol=stock.symbol,
                    target_weight=Decimal(stock.target_weight),
                    min_weight=Decimal(stock.min_weight),
                    max_weight=Decimal(stock.max_weight),
                )
                for stock in model.stocks
            ],
        )
