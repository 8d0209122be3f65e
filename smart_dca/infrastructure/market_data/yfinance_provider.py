"""
YFinance Price History Provider
Async-safe Yahoo Finance integration for daily closes
"""

import asyncio
import logging
import os
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List

import pandas as pd
import yfinance as yf

from smart_dca.core.exceptions import ProviderUnavailableError
from smart_dca.domain.models import PricePoint

logger = logging.getLogger(__name__)


class YFinanceProvider:
    """
    Yahoo Finance price history provider
    Async-safe via thread offloading
    """

    def __init__(self, symbol_overrides: str = ""):
        self.symbol_mapping: Dict[str, str] = {}
        self._apply_symbol_overrides(symbol_overrides or os.getenv("YF_SYMBOL_OVERRIDES", ""))

    def _apply_symbol_overrides(self, raw: str) -> None:
        """
        Apply Yahoo symbol mapping overrides.

        Format: "PTT=PTT.BK,BRK.B=BRK-B"
        """
        raw = raw.strip()
        if not raw:
            return
        for pair in raw.split(","):
            pair = pair.strip()
            if not pair or "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            key = key.strip().upper()
            value = value.strip()
            if key and value:
                self.symbol_mapping[key] = value

    def yahoo_symbol(self, symbol: str) -> str:
        return self.symbol_mapping.get(symbol.upper(), symbol.upper())

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    async def _history(self, ticker: yf.Ticker, **kwargs) -> pd.DataFrame:
        """
        Async-safe wrapper around yfinance history()
        """
        return await asyncio.to_thread(ticker.history, **kwargs)

    @staticmethod
    def _quantize(value: float) -> Decimal:
        return Decimal(str(value)).quantize(Decimal("0.0001"))

    @classmethod
    def frame_to_points(cls, symbol: str, frame: pd.DataFrame) -> List[PricePoint]:
        """Convert a yfinance history frame to PricePoints, oldest first"""
        if frame is None or frame.empty or "Close" not in frame:
            return []

        closes = frame["Close"].dropna()
        points = [
            PricePoint(
                symbol=symbol.upper(),
                date=pd.Timestamp(ts).date(),
                close_price=cls._quantize(float(close)),
            )
            for ts, close in closes.items()
            if float(close) > 0
        ]
        return sorted(points, key=lambda p: p.date)

    # ------------------------------------------------------------------
    # PRICE HISTORY
    # ------------------------------------------------------------------

    async def get_prices(self, symbol: str, start: date, end: date) -> List[PricePoint]:
        """
        Daily closes between start and end (inclusive)

        Raises:
            ProviderUnavailableError: Yahoo request failed
        """
        yf_symbol = self.yahoo_symbol(symbol)
        try:
            ticker = yf.Ticker(yf_symbol)
            frame = await self._history(
                ticker,
                start=start,
                end=end + timedelta(days=1),
                interval="1d",
                auto_adjust=False,
            )
        except Exception as exc:
            logger.error("Error fetching history for %s: %s", yf_symbol, exc)
            raise ProviderUnavailableError(
                f"Price history unavailable for {symbol}",
                details={"symbol": symbol, "provider": "yfinance"},
            ) from exc

        points = self.frame_to_points(symbol, frame)
        if not points:
            logger.warning("No history returned for %s (%s → %s)", yf_symbol, start, end)
        return points
