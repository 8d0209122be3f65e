"""
DCA API Routes
Trigger calculation cycles, read monthly recommendations
and push stored plans over Telegram
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.api.dependencies import (
    get_dca_service,
    get_narrative_service,
    get_notification_service,
)
from smart_dca.core.exceptions import NotFoundError
from smart_dca.domain.schemas.dca import (
    CycleEntrySchema,
    CycleResultSchema,
    InsightSchema,
    InsightsResponseSchema,
    NotificationEntrySchema,
    NotificationResponse,
    NotificationResultSchema,
    PortfolioPlanSchema,
    RecommendationSchema,
)
from smart_dca.infrastructure.db.database import get_db
from smart_dca.infrastructure.db.repositories.recommendation_repository import (
    DCARecommendationRepository,
)
from smart_dca.services.dca_service import DCAPlanService
from smart_dca.services.narrative_service import NarrativeService
from smart_dca.services.notification_service import PlanNotificationService
from smart_dca.utils.time import MONTH_PATTERN, current_month

logger = logging.getLogger(__name__)
router = APIRouter()


def _plan_response(portfolio_id: int, month: str, recommendations) -> PortfolioPlanSchema:
    total = sum((rec.amount for rec in recommendations), Decimal("0"))
    return PortfolioPlanSchema(
        portfolio_id=portfolio_id,
        month=month,
        total_amount=float(total),
        recommendations=[RecommendationSchema.from_domain(r) for r in recommendations],
    )


@router.post("/cycle", response_model=CycleResultSchema)
async def run_cycle(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    db: AsyncSession = Depends(get_db),
    service: DCAPlanService = Depends(get_dca_service),
):
    """Calculate recommendations for every portfolio"""
    month = month or current_month()
    results = await service.run_monthly_cycle(db, month)
    failed = sum(1 for r in results if r["status"] == "error")

    logger.info("DCA cycle %s: %d portfolios, %d failed", month, len(results), failed)
    return CycleResultSchema(
        month=month,
        processed=len(results) - failed,
        failed=failed,
        results=[CycleEntrySchema(**r) for r in results],
    )


@router.post("/{portfolio_id}/calculate", response_model=PortfolioPlanSchema)
async def calculate_portfolio(
    portfolio_id: int,
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    db: AsyncSession = Depends(get_db),
    service: DCAPlanService = Depends(get_dca_service),
):
    """Calculate and store one portfolio's plan"""
    month = month or current_month()
    recommendations = await service.calculate_portfolio(db, portfolio_id, month)
    return _plan_response(portfolio_id, month, recommendations)


@router.get("/{portfolio_id}/recommendations", response_model=PortfolioPlanSchema)
async def get_recommendations(
    portfolio_id: int,
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    db: AsyncSession = Depends(get_db),
):
    """Stored recommendations for a month"""
    month = month or current_month()
    recommendations = await DCARecommendationRepository(db).get_for_month(portfolio_id, month)
    if not recommendations:
        raise NotFoundError(
            f"No recommendations for portfolio {portfolio_id} in {month}",
            details={"portfolio_id": portfolio_id, "month": month},
        )
    return _plan_response(portfolio_id, month, recommendations)


@router.get("/{portfolio_id}/insights", response_model=InsightsResponseSchema)
async def get_insights(
    portfolio_id: int,
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    db: AsyncSession = Depends(get_db),
    service: DCAPlanService = Depends(get_dca_service),
    narrative: NarrativeService = Depends(get_narrative_service),
):
    """Optional commentary over a stored plan"""
    month = month or current_month()
    items = await service.insight_items(db, portfolio_id, month)
    if not items:
        raise NotFoundError(
            f"No recommendations for portfolio {portfolio_id} in {month}",
            details={"portfolio_id": portfolio_id, "month": month},
        )

    insights = await narrative.explain(portfolio_id, items)
    return InsightsResponseSchema(
        portfolio_id=portfolio_id,
        month=month,
        insights=[InsightSchema.from_domain(i) for i in insights],
    )


@router.post("/notify", response_model=NotificationResultSchema)
async def notify_all(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    db: AsyncSession = Depends(get_db),
    notifications: PlanNotificationService = Depends(get_notification_service),
):
    """Push every stored plan for a month over Telegram"""
    month = month or current_month()
    results = await notifications.notify_month(db, month)
    sent = sum(1 for r in results if r["status"] == "sent")

    logger.info("Plan notifications %s: %d of %d sent", month, sent, len(results))
    return NotificationResultSchema(
        month=month,
        sent=sent,
        results=[NotificationEntrySchema(**r) for r in results],
    )


@router.post("/{portfolio_id}/notify", response_model=NotificationResponse)
async def notify_portfolio(
    portfolio_id: int,
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    db: AsyncSession = Depends(get_db),
    notifications: PlanNotificationService = Depends(get_notification_service),
):
    """Push one portfolio's stored plan over Telegram"""
    month = month or current_month()
    sent = await notifications.notify_portfolio(db, portfolio_id, month)
    return NotificationResponse(portfolio_id=portfolio_id, month=month, sent=sent)
