"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    RiskLevel,
    WeightStatus,

    # Entities
    AdjustmentRules,
    BacktestResult,
    ComparisonResult,
    DCAInput,
    DCAOutput,
    DCARecommendation,
    MonthlyPerformance,
    NarrativeInsight,
    Portfolio,
    PricePoint,
    StockPosition,
    StockWeightResult,
    WeightAdjustment,
)

__all__ = [
    # Enums
    "RiskLevel",
    "WeightStatus",

    # Entities
    "AdjustmentRules",
    "BacktestResult",
    "ComparisonResult",
    "DCAInput",
    "DCAOutput",
    "DCARecommendation",
    "MonthlyPerformance",
    "NarrativeInsight",
    "Portfolio",
    "PricePoint",
    "StockPosition",
    "StockWeightResult",
    "WeightAdjustment",
]
