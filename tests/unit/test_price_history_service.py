import asyncio
import pytest
from datetime import date

from smart_dca.core.exceptions import ProviderUnavailableError
from smart_dca.services.price_history_service import PriceHistoryService


class SlowAndFailingProvider:
    """AAA fails at once; BBB answers after a few scheduler turns"""

    def __init__(self):
        self.finished = []

    async def get_prices(self, symbol, start, end):
        if symbol == "AAA":
            raise ProviderUnavailableError(f"Price history unavailable for {symbol}")
        for _ in range(5):
            await asyncio.sleep(0)
        self.finished.append(symbol)
        return []


class ExplodingSession:
    """Any database use fails the test"""

    def __getattr__(self, name):
        raise AssertionError(f"session.{name} used after a failed fetch")


@pytest.mark.asyncio
async def test_failed_fetch_settles_other_fetches_and_stores_nothing():
    provider = SlowAndFailingProvider()
    service = PriceHistoryService(provider)

    with pytest.raises(ProviderUnavailableError):
        await service.refresh_symbols(
            ExplodingSession(), ["AAA", "BBB"], lookback_days=30, end=date(2024, 6, 28)
        )

    # No fetch is left running once the error surfaces
    assert provider.finished == ["BBB"]


@pytest.mark.asyncio
async def test_blank_symbols_skip_provider():
    service = PriceHistoryService(SlowAndFailingProvider())
    assert await service.refresh_symbols(ExplodingSession(), [" ", ""], lookback_days=30) == {}
