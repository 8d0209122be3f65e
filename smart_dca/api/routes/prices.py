"""
Price History Routes
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.api.dependencies import get_price_history_service
from smart_dca.domain.schemas.dca import PriceRefreshRequest, PriceRefreshResponse
from smart_dca.infrastructure.db.database import get_db
from smart_dca.services.price_history_service import PriceHistoryService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/refresh", response_model=PriceRefreshResponse)
async def refresh_prices(
    request: PriceRefreshRequest,
    db: AsyncSession = Depends(get_db),
    service: PriceHistoryService = Depends(get_price_history_service),
):
    """Fetch recent closes from the provider and cache the new ones"""
    inserted = await service.refresh_symbols(db, request.symbols, request.lookback_days)
    return PriceRefreshResponse(inserted=inserted, total_inserted=sum(inserted.values()))
