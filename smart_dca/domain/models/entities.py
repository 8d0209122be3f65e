"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional


class WeightStatus(str, Enum):
    """Outcome of a per-stock weight calculation"""
    ADJUSTED = "ADJUSTED"
    FALLBACK = "FALLBACK"


class RiskLevel(str, Enum):
    """Narrative risk assessment"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class StockPosition:
    """Stock held (or planned) within a portfolio - Immutable"""
    symbol: str
    target_weight: Decimal
    min_weight: Decimal
    max_weight: Decimal

    def __post_init__(self):
        if not self.symbol:
            raise ValueError("Stock symbol cannot be empty")
        if not Decimal('0') <= self.target_weight <= Decimal('100'):
            raise ValueError("Target weight must be between 0 and 100")
        if not self.min_weight <= self.target_weight <= self.max_weight:
            raise ValueError(
                f"{self.symbol}: weight bounds must satisfy min <= target <= max"
            )


@dataclass(frozen=True)
class PricePoint:
    """One daily closing price observation - Immutable"""
    symbol: str
    date: date
    close_price: Decimal


@dataclass(frozen=True)
class AdjustmentRules:
    """Thresholds for the rule-based weight adjustment - Immutable"""
    trailing_window: int = 6
    volatility_window: int = 3
    low_price_ratio: Decimal = Decimal('0.90')
    high_price_ratio: Decimal = Decimal('1.05')
    price_step: Decimal = Decimal('0.10')
    drift_threshold: Decimal = Decimal('5')
    drift_step: Decimal = Decimal('0.10')
    volatility_threshold: Decimal = Decimal('0.15')
    volatility_step: Decimal = Decimal('0.05')

    def __post_init__(self):
        if self.trailing_window < 1 or self.volatility_window < 1:
            raise ValueError("Signal windows must be at least 1")


@dataclass(frozen=True)
class DCAInput:
    """Ephemeral input for one stock in one calculation cycle"""
    stock: StockPosition
    current_price: Decimal
    price_history: List[PricePoint]
    monthly_budget: Decimal
    # None means "not tracked", which is different from "on target"
    actual_weight: Optional[Decimal] = None


@dataclass(frozen=True)
class WeightAdjustment:
    """Signal values applied to a base weight (fractions, e.g. 0.10)"""
    price_deviation: Decimal = Decimal('0')
    portfolio_drift: Decimal = Decimal('0')
    volatility_guard: Decimal = Decimal('0')

    @property
    def total(self) -> Decimal:
        return self.price_deviation + self.portfolio_drift + self.volatility_guard

    @property
    def fired(self) -> bool:
        return any(
            v != Decimal('0')
            for v in (self.price_deviation, self.portfolio_drift, self.volatility_guard)
        )


@dataclass(frozen=True)
class StockWeightResult:
    """Per-stock weight outcome, tagged ADJUSTED or FALLBACK"""
    symbol: str
    raw_weight: Decimal
    adjustments: WeightAdjustment
    status: WeightStatus
    current_price: Optional[Decimal] = None
    trailing_average: Optional[Decimal] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class DCAOutput:
    """Final plan line for one stock"""
    symbol: str
    final_weight: Decimal
    amount: Decimal
    reason: str

    def __post_init__(self):
        if self.amount < Decimal('0'):
            raise ValueError("Amount cannot be negative")


@dataclass(frozen=True)
class DCARecommendation:
    """Persisted recommendation for (portfolio, month, symbol)"""
    portfolio_id: int
    month: str
    symbol: str
    amount: Decimal
    weight: Decimal
    reason: str


@dataclass(frozen=True)
class MonthlyPerformance:
    """One month of a backtest replay"""
    month: str
    invested: Decimal
    shares_accumulated: Dict[str, Decimal]
    value_at_month: Decimal
    cumulative_return: Decimal


@dataclass(frozen=True)
class BacktestResult:
    """Replay aggregate for one strategy"""
    total_invested: Decimal
    current_value: Decimal
    return_pct: Decimal
    monthly_details: List[MonthlyPerformance] = field(default_factory=list)


@dataclass(frozen=True)
class ComparisonResult:
    """Adjusted plan vs equal split"""
    smart_dca: BacktestResult
    equal_dca: BacktestResult
    value_diff: Decimal
    return_diff: Decimal


@dataclass(frozen=True)
class NarrativeInsight:
    """Commentary for one stock; never alters plan numbers"""
    symbol: str
    text: str
    risk_level: RiskLevel


@dataclass(frozen=True)
class Portfolio:
    """Portfolio with its monthly budget and positions - Immutable"""
    id: int
    name: str
    monthly_budget: Decimal
    stocks: List[StockPosition] = field(default_factory=list)
