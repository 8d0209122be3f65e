"""
FastAPI Main Application
Smart DCA planner: monthly weight adjustment, recommendations and backtests
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_dca.api.routes import dca, health, performance, portfolio, prices
from smart_dca.config import settings
from smart_dca.core.exceptions import register_exception_handlers
from smart_dca.core.logging import setup_logging
from smart_dca.infrastructure.db.database import close_db, init_db

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of shared resources
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting Smart DCA Planner")
    logger.info(f"   🌍 Environment: {settings.APP_ENV}")
    logger.info("=" * 60)

    logger.info("📊 Initializing database...")
    await init_db()
    logger.info("✅ Database initialized")

    logger.info(f"   📈 Trailing window: {settings.DCA_TRAILING_WINDOW} closes")
    logger.info(f"   📉 Volatility guard: CV > {settings.DCA_VOLATILITY_THRESHOLD}")
    logger.info(f"   🗓️  Backtest buy day: {settings.BACKTEST_BUY_DAY}")
    logger.info(f"   🤖 Narrative: {'Enabled' if settings.NARRATIVE_ENABLED else 'Disabled'}")
    logger.info(f"   📨 Telegram: {'Enabled' if settings.TELEGRAM_ENABLED else 'Disabled'}")
    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info("=" * 60)

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down Smart DCA Planner...")
    await close_db()
    logger.info("✅ Database connections closed")


def create_app() -> FastAPI:
    # Interactive docs are not served in production
    expose_docs = settings.APP_ENV != "production"
    app = FastAPI(
        title="Smart DCA Planner",
        description="Rule-based DCA weight adjustment with equal-split backtests",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if expose_docs else None,
        redoc_url="/redoc" if expose_docs else None,
        openapi_url="/openapi.json" if expose_docs else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, prefix="/api/v1", tags=["Health"])
    app.include_router(dca.router, prefix="/api/v1/dca", tags=["DCA"])
    app.include_router(portfolio.router, prefix="/api/v1/portfolio", tags=["Portfolio"])
    app.include_router(performance.router, prefix="/api/v1/portfolio", tags=["Performance"])
    app.include_router(prices.router, prefix="/api/v1/prices", tags=["Prices"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "smart_dca.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
