"""
Price history provider protocol for type hints.
"""

from __future__ import annotations

from typing import Protocol, List
from datetime import date

from smart_dca.domain.models import PricePoint


class PriceHistoryProvider(Protocol):
    async def get_prices(self, symbol: str, start: date, end: date) -> List[PricePoint]:
        """Daily closes in [start, end], oldest first; gaps allowed."""
        ...
