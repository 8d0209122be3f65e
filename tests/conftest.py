from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator, List

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from smart_dca.api import dependencies
from smart_dca.api.routes import dca, health, performance, portfolio, prices
from smart_dca.core.exceptions import register_exception_handlers
from smart_dca.domain.models import PricePoint
from smart_dca.infrastructure.db.database import Base, get_db
from smart_dca.infrastructure.db import models  # noqa: F401
from smart_dca.services.narrative_service import NarrativeService
from smart_dca.services.notification_service import PlanNotificationService, TelegramNotifier


def make_prices(symbol: str, closes: List, end: date = date(2024, 6, 28)) -> List[PricePoint]:
    """Daily closes ending on `end`; the LAST close is the newest"""
    start = end - timedelta(days=len(closes) - 1)
    return [
        PricePoint(symbol=symbol, date=start + timedelta(days=i), close_price=Decimal(str(c)))
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def price_series():
    """Factory for daily PricePoint series"""
    return make_prices


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        future=True,
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture()
async def app(db_session) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(health.router, prefix="/api/v1", tags=["Health"])
    app.include_router(dca.router, prefix="/api/v1/dca", tags=["DCA"])
    app.include_router(portfolio.router, prefix="/api/v1/portfolio", tags=["Portfolio"])
    app.include_router(performance.router, prefix="/api/v1/portfolio", tags=["Performance"])
    app.include_router(prices.router, prefix="/api/v1/prices", tags=["Prices"])

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    # No OpenAI calls from tests
    app.dependency_overrides[dependencies.get_narrative_service] = (
        lambda: NarrativeService(enabled=False)
    )
    # No Telegram calls from tests
    app.dependency_overrides[dependencies.get_notification_service] = (
        lambda: PlanNotificationService(TelegramNotifier(enabled=False))
    )

    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
