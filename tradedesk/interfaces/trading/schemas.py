"""
Pydantic schemas for trading API request/response validation.

These schemas enforce input validation and define the API contract.
Every response is wrapped in the envelope {success, data, message}.
No business logic belongs here.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

SYMBOL_DESCRIPTION = "Ticker symbol, e.g. AAPL"
SYMBOL_MAX_LEN = 10

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    data: Optional[DataT] = None
    message: Optional[str] = None


class FieldErrorItem(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned by the centralized error handlers."""

    success: bool = False
    message: str
    error: Optional[str] = None
    errors: Optional[list[FieldErrorItem]] = None


class HealthResponse(BaseModel):
    """Response schema for health check endpoint."""

    status: str
    version: str


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


class OrderCreateRequest(BaseModel):
    """Request schema for placing an order.

    Attributes:
        symbol: Ticker (1-10 chars, upper-cased).
        quantity: Units to trade, strictly positive.
        side: buy or sell.
        order_type: Sent as ``type``; defaults to market.
        time_in_force: Defaults to day.
        price: Limit price for limit / stop_limit orders.
        stop_price: Trigger price for stop / stop_limit orders.
        metadata: Free-form caller tags stored with the order.
    """

    model_config = ConfigDict(populate_by_name=True)

    symbol: str = Field(
        ..., min_length=1, max_length=SYMBOL_MAX_LEN, description=SYMBOL_DESCRIPTION
    )
    quantity: Decimal = Field(..., gt=0, description="Number of units")
    side: Literal["buy", "sell"]
    order_type: Literal["market", "limit", "stop", "stop_limit"] = Field(
        "market", alias="type"
    )
    time_in_force: Literal["day", "gtc", "ioc", "fok"] = "day"
    price: Optional[Decimal] = Field(None, ge=0)
    stop_price: Optional[Decimal] = Field(None, ge=0)
    metadata: Optional[dict[str, Any]] = None

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class OrderSubmittedData(BaseModel):
    trade_id: int
    external_id: Optional[str]
    symbol: str
    side: str
    type: str
    quantity: Decimal
    price: Optional[Decimal]
    status: str
    submitted_at: Optional[datetime]


class OrderDetailData(BaseModel):
    """Full ledger view of one order."""

    id: int
    external_id: Optional[str]
    symbol: str
    side: str
    type: str
    time_in_force: str
    quantity: Decimal
    price: Optional[Decimal]
    stop_price: Optional[Decimal]
    filled_quantity: Decimal
    filled_avg_price: Optional[Decimal]
    filled_value: Decimal
    fill_percentage: Decimal
    status: str
    is_active: bool
    can_be_canceled: bool
    submitted_at: Optional[datetime]
    filled_at: Optional[datetime]
    canceled_at: Optional[datetime]
    expired_at: Optional[datetime]
    metadata: dict[str, Any]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class OrderSyncData(OrderDetailData):
    positions_reconciled: bool


class OrderPageData(BaseModel):
    items: list[OrderDetailData]
    total: int
    page: int
    per_page: int


class OrderCanceledData(BaseModel):
    trade_id: int
    status: str


class SymbolActivityItem(BaseModel):
    symbol: str
    trade_count: int
    total_quantity: Decimal


class TradingStatsData(BaseModel):
    date_from: date
    date_to: date
    total_trades: int
    filled_trades: int
    canceled_trades: int
    total_volume: Decimal
    buy_orders: int
    sell_orders: int
    most_traded_symbols: list[SymbolActivityItem]


# ------------------------------------------------------------------
# Portfolio
# ------------------------------------------------------------------


class PositionItem(BaseModel):
    symbol: str
    quantity: Decimal
    side: str
    asset_class: str
    avg_entry_price: Decimal
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_plpc: Decimal
    current_price: Decimal
    last_updated: Optional[datetime]
    status_indicator: str


class PositionSummaryData(BaseModel):
    total_positions: int
    total_value: Decimal
    total_unrealized_pl: Decimal
    total_unrealized_pl_percent: Decimal


class PositionsData(BaseModel):
    positions: list[PositionItem]
    summary: PositionSummaryData


class AccountData(BaseModel):
    equity: Decimal
    cash: Decimal
    buying_power: Decimal
    portfolio_value: Decimal
    day_trade_count: int
    pattern_day_trader: bool


class PortfolioData(BaseModel):
    account: AccountData
    positions: list[PositionItem]
    summary: PositionSummaryData


class ReconcileData(BaseModel):
    positions_count: int
    upserted: int
    deleted: int
    total_value: Decimal


class AllocationItem(BaseModel):
    name: str
    value: Decimal
    percentage: Decimal
    positions_count: int


class PerformanceData(BaseModel):
    period_days: int
    current_value: Decimal
    total_unrealized_pl: Decimal
    total_cost_basis: Decimal
    total_return_percent: Decimal
    positions_count: int
    top_performers: list[PositionItem]
    worst_performers: list[PositionItem]
    asset_allocation: list[AllocationItem]


class PositionWeightItem(BaseModel):
    symbol: str
    value: Decimal
    percentage: Decimal


class DiversificationData(BaseModel):
    total_positions: int
    concentration_risk: str
    largest_position_percent: Decimal
    top_5_concentration: Decimal
    asset_classes: list[AllocationItem]
    position_weights: list[PositionWeightItem]


# ------------------------------------------------------------------
# Dashboard
# ------------------------------------------------------------------


class RecentTradeItem(BaseModel):
    id: int
    symbol: str
    side: str
    type: str
    quantity: Decimal
    price: Optional[Decimal]
    status: str
    created_at: Optional[datetime]


class PerformanceMetricsData(BaseModel):
    total_value: Decimal
    total_return: Decimal
    total_return_percent: Decimal


class DashboardData(BaseModel):
    portfolio: Optional[PortfolioData]
    portfolio_error: Optional[str] = None
    recent_trades: list[RecentTradeItem]
    performance: PerformanceMetricsData


class DailyVolumeItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(..., alias="date")
    volume: Decimal


class TradingVolumeData(BaseModel):
    daily_volume: list[DailyVolumeItem]
    total_volume: Decimal
    avg_daily_volume: Decimal


class RiskMetricsData(BaseModel):
    concentration_risk: str
    largest_position_percent: Decimal


class MonthlyActivityItem(BaseModel):
    month: str
    trades: int


class AnalyticsData(BaseModel):
    trading_volume: TradingVolumeData
    sector_allocation: list[AllocationItem]
    risk_metrics: RiskMetricsData
    monthly_activity: list[MonthlyActivityItem]
