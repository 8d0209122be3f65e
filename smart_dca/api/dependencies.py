"""
Service dependencies for API routes
Overridable through app.dependency_overrides in tests
"""

from functools import lru_cache

from smart_dca.config import settings
from smart_dca.infrastructure.market_data.yfinance_provider import YFinanceProvider
from smart_dca.services.dca_service import DCAPlanService
from smart_dca.services.narrative_service import NarrativeService
from smart_dca.services.notification_service import PlanNotificationService
from smart_dca.services.performance_service import PerformanceService
from smart_dca.services.price_history_service import PriceHistoryService


def get_dca_service() -> DCAPlanService:
    return DCAPlanService()


def get_performance_service() -> PerformanceService:
    return PerformanceService()


def get_price_history_service() -> PriceHistoryService:
    return PriceHistoryService(YFinanceProvider(settings.YF_SYMBOL_OVERRIDES))


@lru_cache(maxsize=1)
def get_narrative_service() -> NarrativeService:
    # Single instance so the insight cache survives between requests
    return NarrativeService()


def get_notification_service() -> PlanNotificationService:
    return PlanNotificationService()
