"""
Dependency injection for the trading bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the trading context.

The SQLAlchemy engine and the broker HTTP client are created once in
``create_app`` and read from ``app.state`` here; tests replace
``get_engine`` and ``get_broker`` through ``app.dependency_overrides``.
"""

from fastapi import Depends, Request
from sqlalchemy.engine import Engine

from tradedesk.application.trading.cancel_order import CancelOrderUseCase
from tradedesk.application.trading.order_queries import GetOrderUseCase, ListOrdersUseCase
from tradedesk.application.trading.position_queries import (
    GetPortfolioSummaryUseCase,
    GetPositionUseCase,
    ListPositionsUseCase,
)
from tradedesk.application.trading.reconcile_positions import ReconcilePositionsUseCase
from tradedesk.application.trading.reporting import (
    GetAnalyticsUseCase,
    GetDashboardUseCase,
    GetDiversificationUseCase,
    GetPerformanceUseCase,
    GetTradingStatsUseCase,
)
from tradedesk.application.trading.submit_order import SubmitOrderUseCase
from tradedesk.application.trading.sync_order_status import SyncOrderStatusUseCase
from tradedesk.core.config import Settings
from tradedesk.domain.trading.ports import (
    AssetRepository,
    BrokerPort,
    OrderRepository,
    PositionRepository,
)
from tradedesk.infrastructure.trading.alpaca_broker_adapter import AlpacaBrokerAdapter
from tradedesk.infrastructure.trading.asset_repository import AssetRepositoryAdapter
from tradedesk.infrastructure.trading.order_repository import OrderRepositoryAdapter
from tradedesk.infrastructure.trading.position_repository import PositionRepositoryAdapter


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_broker(request: Request) -> BrokerPort:
    return AlpacaBrokerAdapter(request.app.state.broker_client)


def get_order_repository(engine: Engine = Depends(get_engine)) -> OrderRepository:
    return OrderRepositoryAdapter(engine)


def get_position_repository(engine: Engine = Depends(get_engine)) -> PositionRepository:
    return PositionRepositoryAdapter(engine)


def get_asset_repository(engine: Engine = Depends(get_engine)) -> AssetRepository:
    return AssetRepositoryAdapter(engine)


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


def get_submit_order_use_case(
    broker: BrokerPort = Depends(get_broker),
    order_repo: OrderRepository = Depends(get_order_repository),
    asset_repo: AssetRepository = Depends(get_asset_repository),
) -> SubmitOrderUseCase:
    """Build SubmitOrderUseCase with its infrastructure dependencies."""
    return SubmitOrderUseCase(broker=broker, order_repo=order_repo, asset_repo=asset_repo)


def get_cancel_order_use_case(
    broker: BrokerPort = Depends(get_broker),
    order_repo: OrderRepository = Depends(get_order_repository),
) -> CancelOrderUseCase:
    """Build CancelOrderUseCase with its infrastructure dependencies."""
    return CancelOrderUseCase(broker=broker, order_repo=order_repo)


def get_reconcile_positions_use_case(
    broker: BrokerPort = Depends(get_broker),
    position_repo: PositionRepository = Depends(get_position_repository),
) -> ReconcilePositionsUseCase:
    """Build ReconcilePositionsUseCase with its infrastructure dependencies."""
    return ReconcilePositionsUseCase(broker=broker, position_repo=position_repo)


def get_sync_order_status_use_case(
    broker: BrokerPort = Depends(get_broker),
    order_repo: OrderRepository = Depends(get_order_repository),
    reconcile: ReconcilePositionsUseCase = Depends(get_reconcile_positions_use_case),
) -> SyncOrderStatusUseCase:
    """Build SyncOrderStatusUseCase with its infrastructure dependencies."""
    return SyncOrderStatusUseCase(broker=broker, order_repo=order_repo, reconcile=reconcile)


def get_list_orders_use_case(
    order_repo: OrderRepository = Depends(get_order_repository),
) -> ListOrdersUseCase:
    return ListOrdersUseCase(order_repo=order_repo)


def get_order_use_case(
    order_repo: OrderRepository = Depends(get_order_repository),
) -> GetOrderUseCase:
    return GetOrderUseCase(order_repo=order_repo)


def get_trading_stats_use_case(
    order_repo: OrderRepository = Depends(get_order_repository),
) -> GetTradingStatsUseCase:
    return GetTradingStatsUseCase(order_repo=order_repo)


# ------------------------------------------------------------------
# Portfolio
# ------------------------------------------------------------------


def get_portfolio_summary_use_case(
    broker: BrokerPort = Depends(get_broker),
    position_repo: PositionRepository = Depends(get_position_repository),
) -> GetPortfolioSummaryUseCase:
    return GetPortfolioSummaryUseCase(broker=broker, position_repo=position_repo)


def get_list_positions_use_case(
    position_repo: PositionRepository = Depends(get_position_repository),
) -> ListPositionsUseCase:
    return ListPositionsUseCase(position_repo=position_repo)


def get_position_use_case(
    position_repo: PositionRepository = Depends(get_position_repository),
) -> GetPositionUseCase:
    return GetPositionUseCase(position_repo=position_repo)


def get_performance_use_case(
    position_repo: PositionRepository = Depends(get_position_repository),
) -> GetPerformanceUseCase:
    return GetPerformanceUseCase(position_repo=position_repo)


def get_diversification_use_case(
    position_repo: PositionRepository = Depends(get_position_repository),
) -> GetDiversificationUseCase:
    return GetDiversificationUseCase(position_repo=position_repo)


# ------------------------------------------------------------------
# Dashboard
# ------------------------------------------------------------------


def get_dashboard_use_case(
    portfolio_summary: GetPortfolioSummaryUseCase = Depends(get_portfolio_summary_use_case),
    order_repo: OrderRepository = Depends(get_order_repository),
    position_repo: PositionRepository = Depends(get_position_repository),
    app_settings: Settings = Depends(get_settings),
) -> GetDashboardUseCase:
    """Build GetDashboardUseCase with its infrastructure dependencies."""
    return GetDashboardUseCase(
        portfolio_summary=portfolio_summary,
        order_repo=order_repo,
        position_repo=position_repo,
        recent_trades_limit=app_settings.recent_trades_limit,
    )


def get_analytics_use_case(
    order_repo: OrderRepository = Depends(get_order_repository),
    position_repo: PositionRepository = Depends(get_position_repository),
) -> GetAnalyticsUseCase:
    return GetAnalyticsUseCase(order_repo=order_repo, position_repo=position_repo)
