"""
Data Transfer Objects for the trading application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from tradedesk.domain.trading.analytics import (
    AllocationSlice,
    MonthlyActivity,
    PerformanceReport,
    PositionSummary,
    RiskMetrics,
    VolumeReport,
)
from tradedesk.domain.trading.entities import BrokerAccount, Order, Position


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


@dataclass(frozen=True)
class SubmitOrderCommand:
    """Input DTO for placing an order.

    Values arrive unparsed so every caller (HTTP, CLI, tests) goes
    through the same validation in SubmitOrderUseCase.

    Attributes:
        symbol: Ticker, case-insensitive.
        quantity: Number of units; anything Decimal() accepts.
        side: "buy" or "sell".
        order_type: "market", "limit", "stop" or "stop_limit".
        time_in_force: "day", "gtc", "ioc" or "fok".
        price: Limit price, if any.
        stop_price: Stop trigger price, if any.
        metadata: Caller tags stored alongside the broker response.
    """

    symbol: str
    quantity: Any
    side: str
    order_type: str = "market"
    time_in_force: str = "day"
    price: Optional[Any] = None
    stop_price: Optional[Any] = None
    metadata: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class CancelOrderResult:
    """Output DTO for a successful cancellation."""

    trade_id: int
    status: str


@dataclass(frozen=True)
class SyncOrderResult:
    """Output DTO for a single order sync.

    Attributes:
        order: The order after merging the broker's view.
        fill_observed: Merged status is filled or partially_filled.
        positions_reconciled: A reconciliation ran and succeeded.
    """

    order: Order
    fill_observed: bool
    positions_reconciled: bool


@dataclass(frozen=True)
class SyncActiveOrdersResult:
    """Output DTO summarising a batch sync run."""

    checked: int
    updated: int
    failed: int
    positions_reconciled: bool


@dataclass(frozen=True)
class ListOrdersQuery:
    """Input DTO for paging through the order ledger."""

    symbol: Optional[str] = None
    status: Optional[str] = None
    side: Optional[str] = None
    page: int = 1
    per_page: int = 25


@dataclass(frozen=True)
class OrderPage:
    items: list[Order]
    total: int
    page: int
    per_page: int


# ------------------------------------------------------------------
# Positions and portfolio
# ------------------------------------------------------------------


@dataclass(frozen=True)
class ReconcilePositionsResult:
    """Output DTO for a reconciliation run."""

    positions_count: int
    upserted: int
    deleted: int
    total_value: Decimal


@dataclass(frozen=True)
class PositionsOverview:
    positions: list[Position]
    summary: PositionSummary


@dataclass(frozen=True)
class PortfolioSummary:
    """Output DTO combining broker balances with the mirrored positions."""

    account: BrokerAccount
    positions: list[Position]
    summary: PositionSummary


# ------------------------------------------------------------------
# Reporting
# ------------------------------------------------------------------


@dataclass(frozen=True)
class TradingStatsQuery:
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass(frozen=True)
class AnalyticsReport:
    """Output DTO for the dashboard analytics view."""

    trading_volume: VolumeReport
    sector_allocation: list[AllocationSlice]
    risk_metrics: RiskMetrics
    monthly_activity: list[MonthlyActivity]


@dataclass(frozen=True)
class DashboardReport:
    """Output DTO for the dashboard landing view.

    ``portfolio`` is None and ``portfolio_error`` is set when the broker
    account could not be read.
    """

    portfolio: Optional[PortfolioSummary]
    recent_trades: list[Order]
    performance: PerformanceReport
    portfolio_error: Optional[str] = None
