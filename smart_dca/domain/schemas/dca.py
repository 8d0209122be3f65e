from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from smart_dca.config import settings
from smart_dca.domain.models import (
    BacktestResult,
    DCARecommendation,
    MonthlyPerformance,
    NarrativeInsight,
    Portfolio,
)


class RecommendationSchema(BaseModel):
    symbol: str
    month: str
    weight: float
    amount: float
    reason: str

    @classmethod
    def from_domain(cls, rec: DCARecommendation) -> "RecommendationSchema":
        return cls(
            symbol=rec.symbol,
            month=rec.month,
            weight=float(rec.weight),
            amount=float(rec.amount),
            reason=rec.reason,
        )


class PortfolioPlanSchema(BaseModel):
    portfolio_id: int
    month: str
    total_amount: float
    recommendations: List[RecommendationSchema]


class CycleEntrySchema(BaseModel):
    portfolio_id: int
    month: str
    status: str
    recommendations_count: int
    error: Optional[str] = None


class CycleResultSchema(BaseModel):
    month: str
    processed: int
    failed: int
    results: List[CycleEntrySchema]


class InsightSchema(BaseModel):
    symbol: str
    insight: str
    risk_level: str

    @classmethod
    def from_domain(cls, insight: NarrativeInsight) -> "InsightSchema":
        return cls(
            symbol=insight.symbol,
            insight=insight.text,
            risk_level=insight.risk_level.value,
        )


class InsightsResponseSchema(BaseModel):
    portfolio_id: int
    month: str
    insights: List[InsightSchema]


class MonthlyPerformanceSchema(BaseModel):
    month: str
    invested: float
    shares_accumulated: Dict[str, float]
    value_at_month: float
    cumulative_return: float

    @classmethod
    def from_domain(cls, detail: MonthlyPerformance) -> "MonthlyPerformanceSchema":
        return cls(
            month=detail.month,
            invested=float(detail.invested),
            shares_accumulated={k: float(v) for k, v in detail.shares_accumulated.items()},
            value_at_month=float(detail.value_at_month),
            cumulative_return=float(detail.cumulative_return),
        )


class BacktestResultSchema(BaseModel):
    total_invested: float
    current_value: float
    return_pct: float
    monthly_details: List[MonthlyPerformanceSchema]

    @classmethod
    def from_domain(cls, result: BacktestResult) -> "BacktestResultSchema":
        return cls(
            total_invested=float(result.total_invested),
            current_value=float(result.current_value),
            return_pct=float(result.return_pct),
            monthly_details=[
                MonthlyPerformanceSchema.from_domain(d) for d in result.monthly_details
            ],
        )


class ComparisonSchema(BaseModel):
    value_diff: float
    return_diff: float


class PerformanceMetadataSchema(BaseModel):
    months_analyzed: int
    symbols: List[str]
    oldest_month: Optional[str] = None
    latest_month: Optional[str] = None


class PerformanceResponseSchema(BaseModel):
    portfolio_id: int
    smart_dca: BacktestResultSchema
    equal_dca: BacktestResultSchema
    comparison: ComparisonSchema
    metadata: PerformanceMetadataSchema


class PriceRefreshRequest(BaseModel):
    symbols: List[str] = Field(..., min_length=1)
    lookback_days: int = Field(
        default_factory=lambda: settings.PRICE_LOOKBACK_DAYS, ge=1, le=3650
    )


class PriceRefreshResponse(BaseModel):
    inserted: Dict[str, int]
    total_inserted: int


class NotificationResponse(BaseModel):
    portfolio_id: int
    month: str
    sent: bool


class NotificationEntrySchema(BaseModel):
    portfolio_id: int
    status: str


class NotificationResultSchema(BaseModel):
    month: str
    sent: int
    results: List[NotificationEntrySchema]


class StockPositionCreate(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=20)
    target_weight: float = Field(..., ge=0, le=100)
    # Omitted bounds default to target -/+ 5, kept within 0..100
    min_weight: Optional[float] = Field(None, ge=0, le=100)
    max_weight: Optional[float] = Field(None, ge=0, le=100)


class PortfolioCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    monthly_budget: float = Field(..., gt=0)
    stocks: List[StockPositionCreate] = Field(..., min_length=1)


class StockPositionSchema(BaseModel):
    symbol: str
    target_weight: float
    min_weight: float
    max_weight: float


class PortfolioSchema(BaseModel):
    id: int
    name: str
    monthly_budget: float
    stocks: List[StockPositionSchema]

    @classmethod
    def from_domain(cls, portfolio: Portfolio) -> "PortfolioSchema":
        return cls(
            id=portfolio.id,
            name=portfolio.name,
            monthly_budget=float(portfolio.monthly_budget),
            stocks=[
                StockPositionSchema(
                    symbol=s.symbol,
                    target_weight=float(s.target_weight),
                    min_weight=float(s.min_weight),
                    max_weight=float(s.max_weight),
                )
                for s in portfolio.stocks
            ],
        )
