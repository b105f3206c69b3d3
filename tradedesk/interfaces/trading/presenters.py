"""
Map application results onto API response schemas.

Shared by the trading, portfolio and dashboard routers.
"""

from datetime import datetime, timezone

from tradedesk.application.trading.dtos import (
    AnalyticsReport,
    DashboardReport,
    OrderPage,
    PortfolioSummary,
    ReconcilePositionsResult,
)
from tradedesk.domain.trading.analytics import (
    AllocationSlice,
    DiversificationReport,
    PerformanceReport,
    PositionSummary,
    TradingStats,
)
from tradedesk.domain.trading.entities import Order, Position
from tradedesk.domain.trading.order_state import can_be_canceled, is_active
from tradedesk.interfaces.trading.schemas import (
    AccountData,
    AllocationItem,
    AnalyticsData,
    DailyVolumeItem,
    DashboardData,
    DiversificationData,
    MonthlyActivityItem,
    OrderDetailData,
    OrderPageData,
    OrderSubmittedData,
    PerformanceData,
    PerformanceMetricsData,
    PortfolioData,
    PositionItem,
    PositionsData,
    PositionSummaryData,
    PositionWeightItem,
    RecentTradeItem,
    ReconcileData,
    RiskMetricsData,
    SymbolActivityItem,
    TradingStatsData,
    TradingVolumeData,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def order_submitted(order: Order) -> OrderSubmittedData:
    return OrderSubmittedData(
        trade_id=order.id,
        external_id=order.external_id,
        symbol=order.symbol,
        side=order.side.value,
        type=order.order_type.value,
        quantity=order.quantity,
        price=order.price,
        status=order.status.value,
        submitted_at=order.submitted_at,
    )


def order_fields(order: Order) -> dict:
    return {
        "id": order.id,
        "external_id": order.external_id,
        "symbol": order.symbol,
        "side": order.side.value,
        "type": order.order_type.value,
        "time_in_force": order.time_in_force.value,
        "quantity": order.quantity,
        "price": order.price,
        "stop_price": order.stop_price,
        "filled_quantity": order.filled_quantity,
        "filled_avg_price": order.filled_avg_price,
        "filled_value": order.filled_value,
        "fill_percentage": order.fill_percentage,
        "status": order.status.value,
        "is_active": is_active(order.status),
        "can_be_canceled": can_be_canceled(order),
        "submitted_at": order.submitted_at,
        "filled_at": order.filled_at,
        "canceled_at": order.canceled_at,
        "expired_at": order.expired_at,
        "metadata": order.metadata,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def order_detail(order: Order) -> OrderDetailData:
    return OrderDetailData(**order_fields(order))


def order_page(page: OrderPage) -> OrderPageData:
    return OrderPageData(
        items=[order_detail(o) for o in page.items],
        total=page.total,
        page=page.page,
        per_page=page.per_page,
    )


def trading_stats(stats: TradingStats) -> TradingStatsData:
    return TradingStatsData(
        date_from=stats.date_from,
        date_to=stats.date_to,
        total_trades=stats.total_trades,
        filled_trades=stats.filled_trades,
        canceled_trades=stats.canceled_trades,
        total_volume=stats.total_volume,
        buy_orders=stats.buy_orders,
        sell_orders=stats.sell_orders,
        most_traded_symbols=[
            SymbolActivityItem(
                symbol=a.symbol, trade_count=a.trade_count, total_quantity=a.total_quantity
            )
            for a in stats.most_traded_symbols
        ],
    )


def position_item(position: Position, stale_minutes: int) -> PositionItem:
    return PositionItem(
        symbol=position.symbol,
        quantity=position.quantity,
        side=position.side.value,
        asset_class=position.asset_class.value,
        avg_entry_price=position.avg_entry_price,
        market_value=position.market_value,
        cost_basis=position.cost_basis,
        unrealized_pl=position.unrealized_pl,
        unrealized_plpc=position.unrealized_plpc,
        current_price=position.current_price,
        last_updated=position.last_updated,
        status_indicator=position.status_indicator(_now(), stale_minutes),
    )


def position_summary(summary: PositionSummary) -> PositionSummaryData:
    return PositionSummaryData(
        total_positions=summary.total_positions,
        total_value=summary.total_value,
        total_unrealized_pl=summary.total_unrealized_pl,
        total_unrealized_pl_percent=summary.total_unrealized_pl_percent,
    )


def positions_data(
    positions: list[Position], summary: PositionSummary, stale_minutes: int
) -> PositionsData:
    return PositionsData(
        positions=[position_item(p, stale_minutes) for p in positions],
        summary=position_summary(summary),
    )


def portfolio(summary: PortfolioSummary, stale_minutes: int) -> PortfolioData:
    account = summary.account
    return PortfolioData(
        account=AccountData(
            equity=account.equity,
            cash=account.cash,
            buying_power=account.buying_power,
            portfolio_value=account.portfolio_value,
            day_trade_count=account.day_trade_count,
            pattern_day_trader=account.pattern_day_trader,
        ),
        positions=[position_item(p, stale_minutes) for p in summary.positions],
        summary=position_summary(summary.summary),
    )


def reconcile(result: ReconcilePositionsResult) -> ReconcileData:
    return ReconcileData(
        positions_count=result.positions_count,
        upserted=result.upserted,
        deleted=result.deleted,
        total_value=result.total_value,
    )


def _allocation(slices: list[AllocationSlice]) -> list[AllocationItem]:
    return [
        AllocationItem(
            name=s.name,
            value=s.value,
            percentage=s.percentage,
            positions_count=s.positions_count,
        )
        for s in slices
    ]


def performance(report: PerformanceReport, stale_minutes: int) -> PerformanceData:
    return PerformanceData(
        period_days=report.period_days,
        current_value=report.current_value,
        total_unrealized_pl=report.total_unrealized_pl,
        total_cost_basis=report.total_cost_basis,
        total_return_percent=report.total_return_percent,
        positions_count=report.positions_count,
        top_performers=[position_item(p, stale_minutes) for p in report.top_performers],
        worst_performers=[position_item(p, stale_minutes) for p in report.worst_performers],
        asset_allocation=_allocation(report.asset_allocation),
    )


def diversification(report: DiversificationReport) -> DiversificationData:
    return DiversificationData(
        total_positions=report.total_positions,
        concentration_risk=report.concentration_risk,
        largest_position_percent=report.largest_position_percent,
        top_5_concentration=report.top_5_concentration,
        asset_classes=_allocation(report.asset_classes),
        position_weights=[
            PositionWeightItem(symbol=w.symbol, value=w.value, percentage=w.percentage)
            for w in report.position_weights
        ],
    )


def dashboard(report: DashboardReport, stale_minutes: int) -> DashboardData:
    perf = report.performance
    return DashboardData(
        portfolio=portfolio(report.portfolio, stale_minutes) if report.portfolio else None,
        portfolio_error=report.portfolio_error,
        recent_trades=[
            RecentTradeItem(
                id=o.id,
                symbol=o.symbol,
                side=o.side.value,
                type=o.order_type.value,
                quantity=o.quantity,
                price=o.price,
                status=o.status.value,
                created_at=o.created_at,
            )
            for o in report.recent_trades
        ],
        performance=PerformanceMetricsData(
            total_value=perf.current_value,
            total_return=perf.total_unrealized_pl,
            total_return_percent=perf.total_return_percent,
        ),
    )


def analytics(report: AnalyticsReport) -> AnalyticsData:
    volume = report.trading_volume
    return AnalyticsData(
        trading_volume=TradingVolumeData(
            daily_volume=[DailyVolumeItem(day=d.day, volume=d.volume) for d in volume.daily_volume],
            total_volume=volume.total_volume,
            avg_daily_volume=volume.avg_daily_volume,
        ),
        sector_allocation=_allocation(report.sector_allocation),
        risk_metrics=RiskMetricsData(
            concentration_risk=report.risk_metrics.concentration_risk,
            largest_position_percent=report.risk_metrics.largest_position_percent,
        ),
        monthly_activity=[
            MonthlyActivityItem(month=m.month, trades=m.trades) for m in report.monthly_activity
        ],
    )
