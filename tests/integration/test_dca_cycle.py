"""
Integration Tests for the monthly DCA cycle

✅ Adjusted plan from cached prices
✅ All-or-nothing equal-weight fallback
✅ Rerun overwrites the month
✅ One failing portfolio does not block the others
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from smart_dca.core.exceptions import BadRequestError, InvariantViolationError, NotFoundError
from smart_dca.domain.models import Portfolio, StockPosition
from smart_dca.domain.services.equal_weight_fallback import FALLBACK_REASON
from smart_dca.infrastructure.db.models import PortfolioStockModel
from smart_dca.infrastructure.db.repositories.portfolio_repository import PortfolioRepository
from smart_dca.infrastructure.db.repositories.price_repository import StockPriceRepository
from smart_dca.infrastructure.db.repositories.recommendation_repository import (
    DCARecommendationRepository,
)
from smart_dca.services.dca_service import DCAPlanService

MONTH = "2024-06"
LATER = date(2024, 7, 10)


def position(symbol, target, low, high):
    return StockPosition(
        symbol=symbol,
        target_weight=Decimal(target),
        min_weight=Decimal(low),
        max_weight=Decimal(high),
    )


@pytest.fixture
def service():
    return DCAPlanService()


async def create_portfolio(session, stocks, budget="1000", name="Core"):
    return await PortfolioRepository(session).create(
        name=name, monthly_budget=Decimal(budget), stocks=stocks
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjusted_plan_is_normalized_and_stored(db_session, service, price_series):
    portfolio = await create_portfolio(db_session, [
        position("AAA", "50", "30", "70"),
        position("BBB", "50", "30", "70"),
    ])
    prices = StockPriceRepository(db_session)
    # AAA dips to 85% of its trailing average; BBB flat
    await prices.add_missing(price_series("AAA", [103, 103, 103, 103, 103, 85]))
    await prices.add_missing(price_series("BBB", [50, 50, 50, 50, 50, 50]))

    recs = await service.calculate_portfolio(db_session, portfolio.id, MONTH)

    by_symbol = {r.symbol: r for r in recs}
    # 55 and 50 normalized to 100
    assert by_symbol["AAA"].weight == Decimal("52.3810")
    assert by_symbol["BBB"].weight == Decimal("47.6190")
    assert by_symbol["AAA"].amount == Decimal("523.81")
    assert by_symbol["AAA"].reason.startswith("Price is below its trailing average")
    assert sum(r.weight for r in recs) == Decimal("100")

    stored = await DCARecommendationRepository(db_session).get_for_month(portfolio.id, MONTH)
    assert [r.symbol for r in stored] == ["AAA", "BBB"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_short_history_triggers_equal_weight_for_whole_portfolio(
    db_session, service, price_series
):
    portfolio = await create_portfolio(db_session, [
        position("AAA", "50", "30", "70"),
        position("BBB", "30", "20", "40"),
        position("CCC", "20", "10", "30"),
    ], budget="900")
    prices = StockPriceRepository(db_session)
    await prices.add_missing(price_series("AAA", [100] * 10))
    await prices.add_missing(price_series("BBB", [100] * 10))
    await prices.add_missing(price_series("CCC", [100, 101, 102]))

    recs = await service.calculate_portfolio(db_session, portfolio.id, MONTH)

    assert len(recs) == 3
    assert all(r.weight == Decimal("33.3333") for r in recs)
    assert all(r.amount == Decimal("300.00") for r in recs)
    assert all(r.reason == FALLBACK_REASON for r in recs)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rerun_overwrites_month(db_session, service, price_series):
    portfolio = await create_portfolio(db_session, [
        position("AAA", "50", "30", "70"),
        position("BBB", "50", "30", "70"),
    ])
    prices = StockPriceRepository(db_session)
    await prices.add_missing(price_series("AAA", [100, 100, 100]))
    await prices.add_missing(price_series("BBB", [100, 100, 100]))

    first = await service.calculate_portfolio(db_session, portfolio.id, MONTH)
    assert all(r.reason == FALLBACK_REASON for r in first)

    # More history arrives; the same month is recalculated
    await prices.add_missing(price_series("AAA", [103, 103, 103, 103, 103, 85], end=LATER))
    await prices.add_missing(price_series("BBB", [100] * 6, end=LATER))
    await service.calculate_portfolio(db_session, portfolio.id, MONTH)

    stored = await DCARecommendationRepository(db_session).get_for_month(portfolio.id, MONTH)
    assert len(stored) == 2
    assert all(r.reason != FALLBACK_REASON for r in stored)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_portfolio_is_skipped(db_session, service):
    portfolio = await create_portfolio(db_session, [])
    assert await service.calculate_portfolio(db_session, portfolio.id, MONTH) == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_portfolio(db_session, service):
    with pytest.raises(NotFoundError):
        await service.calculate_portfolio(db_session, 999, MONTH)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cycle_isolates_failing_portfolio(db_session, service, price_series):
    broken = await create_portfolio(db_session, [position("AAA", "50", "30", "70")], name="Broken")
    healthy = await create_portfolio(db_session, [
        position("AAA", "50", "30", "70"),
        position("BBB", "50", "30", "70"),
    ], name="Healthy")
    await create_portfolio(db_session, [], name="Empty")

    # Bounds that no longer satisfy min <= target <= max fail on load
    stock_row = (await db_session.execute(
        select(PortfolioStockModel).where(PortfolioStockModel.portfolio_id == broken.id)
    )).scalar_one()
    stock_row.min_weight = Decimal("60")
    await db_session.commit()

    prices = StockPriceRepository(db_session)
    await prices.add_missing(price_series("AAA", [100] * 6))
    await prices.add_missing(price_series("BBB", [100] * 6))
    await db_session.commit()

    results = await service.run_monthly_cycle(db_session, MONTH)

    status = {r["portfolio_id"]: r["status"] for r in results}
    assert status[broken.id] == "error"
    assert status[healthy.id] == "completed"
    assert len(results) == 3
    assert [r["status"] for r in results].count("skipped") == 1

    stored = await DCARecommendationRepository(db_session).get_for_month(healthy.id, MONTH)
    assert len(stored) == 2
    assert await DCARecommendationRepository(db_session).get_for_month(broken.id, MONTH) == []


def test_build_plan_rejects_non_positive_budget(service, price_series):
    portfolio = Portfolio(
        id=1,
        name="Zero",
        monthly_budget=Decimal("0"),
        stocks=[position("AAA", "100", "50", "100")],
    )
    with pytest.raises(InvariantViolationError):
        service.build_plan(portfolio, {"AAA": price_series("AAA", [100] * 6)})


@pytest.mark.asyncio
@pytest.mark.integration
async def test_malformed_month_rejected(db_session, service):
    with pytest.raises(BadRequestError):
        await service.run_monthly_cycle(db_session, "2024-6")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rerun_after_position_removed_matches_budget(db_session, service, price_series):
    portfolio = await create_portfolio(db_session, [
        position("AAA", "50", "30", "70"),
        position("BBB", "50", "30", "70"),
    ])
    prices = StockPriceRepository(db_session)
    await prices.add_missing(price_series("AAA", [100] * 6))
    await prices.add_missing(price_series("BBB", [100] * 6))
    await service.calculate_portfolio(db_session, portfolio.id, MONTH)

    bbb = (await db_session.execute(
        select(PortfolioStockModel).where(
            PortfolioStockModel.portfolio_id == portfolio.id,
            PortfolioStockModel.symbol == "BBB",
        )
    )).scalar_one()
    await db_session.delete(bbb)
    await db_session.flush()

    await service.calculate_portfolio(db_session, portfolio.id, MONTH)

    stored = await DCARecommendationRepository(db_session).get_for_month(portfolio.id, MONTH)
    assert [r.symbol for r in stored] == ["AAA"]
    assert sum(r.amount for r in stored) == Decimal("1000")
