"""
NOTIFICATION SERVICE

Pushes a portfolio's stored monthly plan to Telegram.
Reads recommendations only; never recalculates them.
Delivery failures are logged and reported as not sent.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.config import settings
from smart_dca.core.exceptions import NotFoundError
from smart_dca.domain.models import DCARecommendation
from smart_dca.infrastructure.db.repositories.portfolio_repository import PortfolioRepository
from smart_dca.infrastructure.db.repositories.recommendation_repository import (
    DCARecommendationRepository,
)

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


def format_plan_message(
    portfolio_name: str,
    month: str,
    recommendations: Sequence[DCARecommendation],
    buy_day: int,
) -> str:
    total = sum((rec.amount for rec in recommendations), Decimal("0"))
    lines = [
        f"DCA plan {month}",
        portfolio_name,
        f"Total: {total:.2f}",
        "",
    ]
    for rec in recommendations:
        lines.append(f"{rec.symbol}: {rec.amount:.2f} ({rec.weight:.2f}%)")
        lines.append(rec.reason)
        lines.append("")
    lines.append(f"Buy on day {buy_day} of the month.")
    return "\n".join(lines)


class TelegramNotifier:
    """Thin Telegram Bot API sender"""

    def __init__(
        self,
        token: Optional[str] = None,
        chat_id: Optional[str] = None,
        enabled: Optional[bool] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token if token is not None else settings.TELEGRAM_BOT_TOKEN
        self.chat_id = chat_id if chat_id is not None else settings.TELEGRAM_CHAT_ID
        self.enabled = settings.TELEGRAM_ENABLED if enabled is None else enabled
        self.timeout = timeout or settings.TELEGRAM_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.enabled and self.token and self.chat_id)

    async def send_message(self, text: str) -> bool:
        """Send a text message; False when skipped or failed"""
        if not self.configured:
            logger.info(
                "Telegram message skipped (disabled or missing TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID)"
            )
            return False

        url = f"{TELEGRAM_API_URL}/bot{self.token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": text}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
            return True
        except Exception as exc:
            logger.error(f"Telegram message failed: {exc}")
            return False


class PlanNotificationService:
    """Delivers stored month plans over Telegram"""

    def __init__(self, notifier: Optional[TelegramNotifier] = None, buy_day: Optional[int] = None):
        self.notifier = notifier or TelegramNotifier()
        self.buy_day = buy_day or settings.BACKTEST_BUY_DAY

    async def notify_portfolio(
        self,
        session: AsyncSession,
        portfolio_id: int,
        month: str,
    ) -> bool:
        """
        Send one portfolio's stored plan for a month

        Returns:
            True when the message was delivered

        Raises:
            NotFoundError: unknown portfolio or no plan stored for the month
        """
        portfolio = await PortfolioRepository(session).get(portfolio_id)
        if portfolio is None:
            raise NotFoundError(
                f"Portfolio {portfolio_id} not found",
                details={"portfolio_id": portfolio_id},
            )

        recommendations = await DCARecommendationRepository(session).get_for_month(
            portfolio_id, month
        )
        if not recommendations:
            raise NotFoundError(
                f"No recommendations for portfolio {portfolio_id} in {month}",
                details={"portfolio_id": portfolio_id, "month": month},
            )

        text = format_plan_message(portfolio.name, month, recommendations, self.buy_day)
        sent = await self.notifier.send_message(text)
        logger.info(
            "Plan notification for portfolio %s (%s): %s",
            portfolio_id, month, "sent" if sent else "not sent",
        )
        return sent

    async def notify_month(self, session: AsyncSession, month: str) -> List[dict]:
        """
        Send every portfolio's stored plan for a month

        Portfolios without a stored plan are skipped.
        """
        results = []
        for portfolio_id in await PortfolioRepository(session).list_ids():
            try:
                sent = await self.notify_portfolio(session, portfolio_id, month)
            except NotFoundError:
                logger.info("No plan for portfolio %s in %s, skipping", portfolio_id, month)
                results.append({"portfolio_id": portfolio_id, "status": "skipped"})
                continue
            results.append({
                "portfolio_id": portfolio_id,
                "status": "sent" if sent else "failed",
            })
        return results
