"""
Narrative Service
Optional OpenAI commentary over an already-computed DCA plan.

Never changes weights or amounts. Failures degrade to no commentary.
"""

import json
import logging
import time
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from openai import AsyncOpenAI

from smart_dca.config import settings
from smart_dca.domain.models import NarrativeInsight, RiskLevel
from smart_dca.utils.time import local_today

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a financial analyst providing context for DCA investments. "
    "You provide insights but DO NOT change investment weights. Be concise. "
    "Always respond in valid JSON format."
)


def _fmt(value: Optional[Any], places: int = 2) -> str:
    if value is None:
        return "n/a"
    return f"{Decimal(str(value)):.{places}f}"


def build_prompt(items: Sequence[dict]) -> str:
    lines = []
    for item in items:
        price = item.get("price")
        average = item.get("trailing_average")
        if price is not None and average:
            vs_average = f"{(Decimal(str(price)) / Decimal(str(average)) - 1) * 100:.1f}%"
        else:
            vs_average = "n/a"
        lines.append(
            f"{item['symbol']}:\n"
            f"- Allocated Amount: {_fmt(item.get('amount'))} ({_fmt(item.get('weight'), 1)}%)\n"
            f"- Current Price: {_fmt(price)}\n"
            f"- Trailing Average: {_fmt(average)}\n"
            f"- Price vs Trailing Average: {vs_average}\n"
            f"- Algorithm Decision: {item.get('reason', '')}"
        )

    recommendations = "\n\n".join(lines)
    return f"""The weights below were already calculated by a rule-based algorithm.
Do not change them. Only provide context.

This month's DCA recommendations:

{recommendations}

For each stock, provide:
1. Brief market context (1-2 sentences max)
2. Risk level assessment (low/medium/high)
3. Whether the algorithm's decision aligns with fundamentals

Respond in JSON format:
{{"insights": [{{"symbol": "...", "insight": "...", "riskLevel": "low"}}]}}"""


def parse_insights(content: str) -> List[NarrativeInsight]:
    """Parse the model's JSON payload; unknown risk levels become medium"""
    payload = json.loads(content)
    insights = []
    for raw in payload.get("insights", []):
        symbol = raw.get("symbol")
        text = raw.get("insight")
        if not symbol or not text:
            continue
        try:
            risk = RiskLevel(str(raw.get("riskLevel", "medium")).lower())
        except ValueError:
            risk = RiskLevel.MEDIUM
        insights.append(NarrativeInsight(symbol=str(symbol).upper(), text=text, risk_level=risk))
    return insights


class NarrativeService:
    """
    Narrative generator with a per-(portfolio, day) in-memory cache
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        enabled: Optional[bool] = None,
        cache_ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.enabled = settings.NARRATIVE_ENABLED if enabled is None else enabled
        self.model = model or settings.NARRATIVE_MODEL
        self.cache_ttl_seconds = (
            settings.NARRATIVE_CACHE_TTL_SECONDS
            if cache_ttl_seconds is None
            else cache_ttl_seconds
        )
        self._client = client
        self._clock = clock
        self._cache: Dict[str, Tuple[float, List[NarrativeInsight]]] = {}

    def _get_client(self) -> Optional[AsyncOpenAI]:
        if self._client is None and settings.OPENAI_API_KEY:
            self._client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        return self._client

    def _evict_expired(self, now: float) -> None:
        expired = [
            key for key, (stored_at, _) in self._cache.items()
            if now - stored_at >= self.cache_ttl_seconds
        ]
        for key in expired:
            del self._cache[key]

    async def explain(
        self,
        portfolio_id: int,
        items: Sequence[dict],
        today: Optional[date] = None,
    ) -> List[NarrativeInsight]:
        """
        Commentary for a computed plan, cached per portfolio per day

        Args:
            portfolio_id: Portfolio ID
            items: symbol, weight, amount, price, trailing_average, reason
            today: Cache day (defaults to today)

        Returns:
            Insights, or [] when disabled or on any failure
        """
        if not items:
            return []

        today = today or local_today()
        cache_key = f"{portfolio_id}-{today.isoformat()}"
        now = self._clock()
        self._evict_expired(now)

        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Using cached insights for %s", cache_key)
            return cached[1]

        insights = await self._generate(items)
        if insights:
            self._cache[cache_key] = (now, insights)
        return insights

    async def _generate(self, items: Sequence[dict]) -> List[NarrativeInsight]:
        if not self.enabled:
            return []

        client = self._get_client()
        if client is None:
            logger.warning("OpenAI API key not configured, skipping insights")
            return []

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(items)},
                ],
                response_format={"type": "json_object"},
                temperature=0.3,
                max_tokens=800,
            )
            content = response.choices[0].message.content
            if not content:
                logger.warning("Empty narrative response")
                return []
            insights = parse_insights(content)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse narrative response: %s", exc)
            return []
        except Exception as exc:
            # Commentary is optional; the plan stands without it
            logger.error("Failed to generate insights: %s", exc)
            return []

        logger.info("Generated %d insights", len(insights))
        return insights
