"""
Database Models (SQLAlchemy ORM)
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime,
    ForeignKey, Text, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from smart_dca.infrastructure.db.database import Base
from smart_dca.utils.time import now_utc_naive


class PortfolioModel(Base):
    """User portfolio with a monthly DCA budget"""
    __tablename__ = "portfolio"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    monthly_budget = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive, onupdate=now_utc_naive)

    # Relationships
    stocks = relationship(
        "PortfolioStockModel",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        order_by="PortfolioStockModel.id",
    )


class PortfolioStockModel(Base):
    """Stock position with target weight and bounds"""
    __tablename__ = "portfolio_stock"

    id = Column(Integer, primary_key=True, autoincrement=True)
    portfolio_id = Column(Integer, ForeignKey("portfolio.id", ondelete="CASCADE"), nullable=False)
    symbol = Column(String(20), nullable=False)
    target_weight = Column(Numeric(7, 4), nullable=False)
    min_weight = Column(Numeric(7, 4), nullable=False)
    max_weight = Column(Numeric(7, 4), nullable=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    # Relationships
    portfolio = relationship("PortfolioModel", back_populates="stocks")

    __table_args__ = (
        UniqueConstraint("portfolio_id", "symbol", name="uq_portfolio_stock_symbol"),
    )


class StockPriceModel(Base):
    """Daily close - append-only price cache"""
    __tablename__ = "stock_price"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)
    close_price = Column(Numeric(14, 4), nullable=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    __table_args__ = (
        UniqueConstraint("symbol", "date", name="uq_stock_price_symbol_date"),
        Index("ix_stock_price_symbol_date", "symbol", "date"),
    )


class DCARecommendationModel(Base):
    """Monthly DCA recommendation - upserted per (portfolio, month, symbol)"""
    __tablename__ = "dca_recommendation"

    id = Column(Integer, primary_key=True, autoincrement=True)
    portfolio_id = Column(Integer, ForeignKey("portfolio.id", ondelete="CASCADE"), nullable=False)
    month = Column(String(7), nullable=False)
    symbol = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    weight = Column(Numeric(7, 4), nullable=False)
    reason_text = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    updated_at = Column(DateTime, nullable=False, default=now_utc_naive, onupdate=now_utc_naive)

    __table_args__ = (
        UniqueConstraint("portfolio_id", "month", "symbol", name="uq_dca_recommendation_key"),
        Index("ix_dca_recommendation_portfolio_month", "portfolio_id", "month"),
    )
