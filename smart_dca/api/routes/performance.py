"""
Portfolio Performance Routes
Smart DCA vs equal-split backtest over stored recommendations
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.api.dependencies import get_performance_service
from smart_dca.domain.schemas.dca import (
    BacktestResultSchema,
    ComparisonSchema,
    PerformanceMetadataSchema,
    PerformanceResponseSchema,
)
from smart_dca.infrastructure.db.database import get_db
from smart_dca.services.performance_service import PerformanceService

router = APIRouter()


@router.get("/{portfolio_id}/performance", response_model=PerformanceResponseSchema)
async def get_performance(
    portfolio_id: int,
    db: AsyncSession = Depends(get_db),
    service: PerformanceService = Depends(get_performance_service),
):
    report = await service.compare_portfolio(db, portfolio_id)
    comparison = report.comparison

    return PerformanceResponseSchema(
        portfolio_id=portfolio_id,
        smart_dca=BacktestResultSchema.from_domain(comparison.smart_dca),
        equal_dca=BacktestResultSchema.from_domain(comparison.equal_dca),
        comparison=ComparisonSchema(
            value_diff=float(comparison.value_diff),
            return_diff=float(comparison.return_diff),
        ),
        metadata=PerformanceMetadataSchema(
            months_analyzed=report.months_analyzed,
            symbols=report.symbols,
            oldest_month=report.oldest_month,
            latest_month=report.latest_month,
        ),
    )
