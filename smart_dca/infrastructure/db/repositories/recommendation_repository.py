"""
DCA Recommendation Repository
Upsert keyed by (portfolio_id, month, symbol); reruns overwrite
"""

from decimal import Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.domain.models import DCAOutput, DCARecommendation
from smart_dca.infrastructure.db.models import DCARecommendationModel


class DCARecommendationRepository:
    """Repository for DCARecommendation"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def upsert_recommendations(
        self,
        portfolio_id: int,
        month: str,
        outputs: List[DCAOutput],
    ) -> List[DCARecommendation]:
        """
        Replace a month's recommendations with `outputs`

        Rows for symbols absent from `outputs` are deleted in the same flush.

        Args:
            portfolio_id: Portfolio ID
            month: YYYY-MM token
            outputs: Plan lines to persist

        Returns:
            Persisted recommendations
        """
        result = await self.session.execute(
            select(DCARecommendationModel).where(
                DCARecommendationModel.portfolio_id == portfolio_id,
                DCARecommendationModel.month == month,
            )
        )
        existing = {m.symbol: m for m in result.scalars().all()}

        models = []
        for output in outputs:
            model = existing.get(output.symbol)
            if model is None:
                model = DCARecommendationModel(
                    portfolio_id=portfolio_id,
                    month=month,
                    symbol=output.symbol,
                )
                self.session.add(model)
            model.amount = output.amount
            model.weight = output.final_weight
            model.reason_text = output.reason
            models.append(model)

        # Symbols no longer in the plan (position removed) must not linger
        kept = {output.symbol for output in outputs}
        for symbol, model in existing.items():
            if symbol not in kept:
                await self.session.delete(model)

        await self.session.flush()
        return [self._to_domain(m) for m in models]

    async def get_for_month(self, portfolio_id: int, month: str) -> List[DCARecommendation]:
        """A month's recommendations, largest amount first"""
        result = await self.session.execute(
            select(DCARecommendationModel)
            .where(
                DCARecommendationModel.portfolio_id == portfolio_id,
                DCARecommendationModel.month == month,
            )
            .order_by(DCARecommendationModel.amount.desc(), DCARecommendationModel.symbol)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get_for_portfolio(self, portfolio_id: int) -> List[DCARecommendation]:
        """All recommendations for a portfolio, oldest month first"""
        result = await self.session.execute(
            select(DCARecommendationModel)
            .where(DCARecommendationModel.portfolio_id == portfolio_id)
            .order_by(DCARecommendationModel.month.asc(), DCARecommendationModel.id.asc())
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    @staticmethod
    def _to_domain(model: DCARecommendationModel) -> DCARecommendation:
        """Convert database model to domain entity"""
        return DCARecommendation(
            portfolio_id=model.portfolio_id,
            month=model.month,
            symbol=model.symbol,
            amount=Decimal(model.amount),
            weight=Decimal(model.weight),
            reason=model.reason_text,
        )
