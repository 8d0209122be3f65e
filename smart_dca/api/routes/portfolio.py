"""
Portfolio Routes
Create a portfolio with its positions and read it back
"""

import logging
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smart_dca.core.exceptions import BadRequestError, NotFoundError
from smart_dca.domain.models import StockPosition
from smart_dca.domain.schemas.dca import (
    PortfolioCreateRequest,
    PortfolioSchema,
    StockPositionCreate,
)
from smart_dca.infrastructure.db.database import get_db
from smart_dca.infrastructure.db.repositories.portfolio_repository import PortfolioRepository

logger = logging.getLogger(__name__)
router = APIRouter()

DEFAULT_BOUND_SPREAD = Decimal("5")


def to_positions(stocks: List[StockPositionCreate]) -> List[StockPosition]:
    """
    Build validated positions from request rows

    Raises:
        BadRequestError: duplicate symbol or bounds outside min <= target <= max
    """
    positions = []
    seen = set()
    for row in stocks:
        symbol = row.symbol.strip().upper()
        if symbol in seen:
            raise BadRequestError(f"Duplicate symbol {symbol}", details={"symbol": symbol})
        seen.add(symbol)

        target = Decimal(str(row.target_weight))
        low = (
            Decimal(str(row.min_weight))
            if row.min_weight is not None
            else max(Decimal("0"), target - DEFAULT_BOUND_SPREAD)
        )
        high = (
            Decimal(str(row.max_weight))
            if row.max_weight is not None
            else min(Decimal("100"), target + DEFAULT_BOUND_SPREAD)
        )
        try:
            positions.append(StockPosition(
                symbol=symbol, target_weight=target, min_weight=low, max_weight=high
            ))
        except ValueError as exc:
            raise BadRequestError(str(exc), details={"symbol": symbol}) from exc
    return positions


@router.post("", response_model=PortfolioSchema, status_code=201)
async def create_portfolio(
    request: PortfolioCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create a portfolio with its positions"""
    positions = to_positions(request.stocks)
    portfolio = await PortfolioRepository(db).create(
        name=request.name.strip(),
        monthly_budget=Decimal(str(request.monthly_budget)),
        stocks=positions,
    )
    logger.info(
        "Created portfolio %s (%s) with %d stocks", portfolio.id, portfolio.name, len(positions)
    )
    return PortfolioSchema.from_domain(portfolio)


@router.get("/{portfolio_id}", response_model=PortfolioSchema)
async def get_portfolio(
    portfolio_id: int,
    db: AsyncSession = Depends(get_db),
):
    portfolio = await PortfolioRepository(db).get(portfolio_id)
    if portfolio is None:
        raise NotFoundError(
            f"Portfolio {portfolio_id} not found",
            details={"portfolio_id": portfolio_id},
        )
    return PortfolioSchema.from_domain(portfolio)
