import pandas as pd
import pytest
from datetime import date
from decimal import Decimal

from smart_dca.core.exceptions import ProviderUnavailableError
from smart_dca.infrastructure.market_data.yfinance_provider import YFinanceProvider


def history_frame():
    index = pd.to_datetime(["2024-01-03", "2024-01-02", "2024-01-04"])
    return pd.DataFrame({"Close": [101.123456, 100.0, float("nan")]}, index=index)


def test_symbol_overrides():
    provider = YFinanceProvider("PTT=PTT.BK, brk.b=BRK-B")
    assert provider.yahoo_symbol("ptt") == "PTT.BK"
    assert provider.yahoo_symbol("BRK.B") == "BRK-B"
    assert provider.yahoo_symbol("AAPL") == "AAPL"


def test_frame_to_points_sorted_and_quantized():
    points = YFinanceProvider.frame_to_points("aapl", history_frame())

    assert [p.date for p in points] == [date(2024, 1, 2), date(2024, 1, 3)]
    assert points[1].close_price == Decimal("101.1235")
    assert all(p.symbol == "AAPL" for p in points)


def test_empty_frame():
    assert YFinanceProvider.frame_to_points("AAPL", pd.DataFrame()) == []


@pytest.mark.asyncio
async def test_get_prices_uses_history(monkeypatch):
    provider = YFinanceProvider()
    seen = {}

    async def fake_history(ticker, **kwargs):
        seen.update(kwargs)
        return history_frame()

    monkeypatch.setattr(provider, "_history", fake_history)
    points = await provider.get_prices("AAPL", date(2024, 1, 1), date(2024, 1, 4))

    assert len(points) == 2
    # yfinance end bound is exclusive
    assert seen["end"] == date(2024, 1, 5)


@pytest.mark.asyncio
async def test_get_prices_wraps_provider_errors(monkeypatch):
    provider = YFinanceProvider()

    async def failing_history(ticker, **kwargs):
        raise ConnectionError("yahoo down")

    monkeypatch.setattr(provider, "_history", failing_history)
    with pytest.raises(ProviderUnavailableError) as exc_info:
        await provider.get_prices("AAPL", date(2024, 1, 1), date(2024, 1, 4))
    assert exc_info.value.status_code == 503
