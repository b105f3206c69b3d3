"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (trading, portfolio, dashboard, health)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Request logging
- The ledger engine and the broker HTTP client

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.engine import Engine

from tradedesk.core.config import Settings, settings
from tradedesk.infrastructure.trading.alpaca_broker_adapter import build_broker_client
from tradedesk.infrastructure.trading.database import build_engine, create_schema
from tradedesk.interfaces.health import router as health_router
from tradedesk.interfaces.trading.dashboard_router import router as dashboard_router
from tradedesk.interfaces.trading.portfolio_router import router as portfolio_router
from tradedesk.interfaces.trading.router import router as trading_router
from tradedesk.shared.errors.handlers import register_error_handlers
from tradedesk.shared.logging import RequestLoggingMiddleware, configure_logging
from tradedesk.shared.security.headers import SecurityHeadersMiddleware
from tradedesk.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: ensure the schema, then release resources on shutdown."""
    if app.state.settings.auto_create_schema:
        create_schema(app.state.engine)

    yield

    if app.state.owns_broker_client:
        app.state.broker_client.close()
    if app.state.owns_engine:
        app.state.engine.dispose()
    logger.info("Shutdown complete")


def create_app(
    app_settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    http_client: Optional[httpx.Client] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Args:
        app_settings: Settings to use instead of the environment-loaded ones.
        engine: Ledger engine; built from settings when omitted.
        http_client: Broker HTTP client; built from settings when omitted.

    Returns:
        A fully configured FastAPI application instance.
    """
    app_settings = app_settings or settings
    configure_logging(level=app_settings.log_level)

    app = FastAPI(
        title=app_settings.project_name,
        version=app_settings.version,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
        lifespan=lifespan,
    )

    # --- Resources ---
    app.state.settings = app_settings
    app.state.owns_engine = engine is None
    app.state.engine = engine if engine is not None else build_engine(app_settings.get_database_dsn())
    app.state.owns_broker_client = http_client is None
    app.state.broker_client = (
        http_client if http_client is not None else build_broker_client(app_settings)
    )

    # --- Rate Limiting ---
    # The limiter is process-wide; the most recently built app sets the switch.
    limiter.enabled = app_settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # --- Security and Logging Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(trading_router, prefix="/api/v1")
    app.include_router(portfolio_router, prefix="/api/v1")
    app.include_router(dashboard_router, prefix="/api/v1")

    return app


app = create_app()
