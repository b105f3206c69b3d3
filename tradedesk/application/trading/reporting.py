"""
Use cases: Portfolio and trading reports.

All reports are computed from the ledger by the pure functions in
``domain.trading.analytics``. Only the dashboard touches the broker
(for account balances), and it degrades to ``portfolio=None`` when
the broker is unavailable.

Each report type has a zeroed fallback so routers running under
BestEffortPolicy can always answer.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from tradedesk.application.trading.dtos import (
    AnalyticsReport,
    DashboardReport,
    TradingStatsQuery,
)
from tradedesk.application.trading.position_queries import GetPortfolioSummaryUseCase
from tradedesk.domain.trading.analytics import (
    DiversificationReport,
    PerformanceReport,
    RiskMetrics,
    TradingStats,
    VolumeReport,
    compute_diversification,
    compute_performance,
    daily_volume,
    monthly_activity,
    risk_metrics,
    sector_allocation,
    trading_stats,
)
from tradedesk.domain.trading.errors import BrokerError, ValidationError
from tradedesk.domain.trading.ports import OrderRepository, PositionRepository

logger = logging.getLogger(__name__)

DEFAULT_STATS_DAYS = 30
VOLUME_DAYS = 30
ACTIVITY_MONTHS = 6
MAX_PERIOD_DAYS = 3650


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _day_end(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


class GetPerformanceUseCase:
    def __init__(self, position_repo: PositionRepository) -> None:
        self._position_repo = position_repo

    def execute(self, days: int = 30) -> PerformanceReport:
        if not 1 <= days <= MAX_PERIOD_DAYS:
            raise ValidationError({"days": f"days must be between 1 and {MAX_PERIOD_DAYS}"})
        return compute_performance(self._position_repo.list_all(), period_days=days)

    @staticmethod
    def fallback(days: int = 30) -> PerformanceReport:
        return PerformanceReport(period_days=days)


class GetDiversificationUseCase:
    def __init__(self, position_repo: PositionRepository) -> None:
        self._position_repo = position_repo

    def execute(self) -> DiversificationReport:
        return compute_diversification(self._position_repo.list_all())

    @staticmethod
    def fallback() -> DiversificationReport:
        return DiversificationReport()


class GetTradingStatsUseCase:
    """Order counts and volumes over a date window (default: last 30 days)."""

    def __init__(
        self,
        order_repo: OrderRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._order_repo = order_repo
        self._clock = clock

    def resolve_window(self, query: TradingStatsQuery) -> tuple[date, date]:
        """Fill in defaults and check the window.

        Raises:
            ValidationError: If ``date_from`` is after ``date_to``.
        """
        date_to = query.date_to or self._clock().date()
        date_from = query.date_from or date_to - timedelta(days=DEFAULT_STATS_DAYS)
        if date_from > date_to:
            raise ValidationError({"from": "from must not be after to"})
        return date_from, date_to

    def execute(self, query: TradingStatsQuery) -> TradingStats:
        date_from, date_to = self.resolve_window(query)
        orders = self._order_repo.list_created_between(_day_start(date_from), _day_end(date_to))
        return trading_stats(orders, date_from, date_to)

    def fallback(self, query: TradingStatsQuery) -> TradingStats:
        date_from, date_to = self.resolve_window(query)
        return TradingStats(date_from=date_from, date_to=date_to)


class GetAnalyticsUseCase:
    """Volume, sector allocation, risk and monthly activity in one report."""

    def __init__(
        self,
        order_repo: OrderRepository,
        position_repo: PositionRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._order_repo = order_repo
        self._position_repo = position_repo
        self._clock = clock

    def execute(self) -> AnalyticsReport:
        now = self._clock()
        first_month = now.replace(day=1)
        for _ in range(ACTIVITY_MONTHS - 1):
            first_month = (first_month - timedelta(days=1)).replace(day=1)
        orders = self._order_repo.list_created_between(_day_start(first_month.date()), now)

        volume_since = (now - timedelta(days=VOLUME_DAYS)).date()
        recent = [o for o in orders if o.created_at is None or o.created_at.date() >= volume_since]

        positions = self._position_repo.list_all()
        return AnalyticsReport(
            trading_volume=daily_volume(recent),
            sector_allocation=sector_allocation(positions),
            risk_metrics=risk_metrics(positions),
            monthly_activity=monthly_activity(orders, now, months=ACTIVITY_MONTHS),
        )

    def fallback(self) -> AnalyticsReport:
        return AnalyticsReport(
            trading_volume=VolumeReport(),
            sector_allocation=[],
            risk_metrics=RiskMetrics(),
            monthly_activity=monthly_activity([], self._clock(), months=ACTIVITY_MONTHS),
        )


class GetDashboardUseCase:
    """Portfolio summary, most recent trades and performance metrics."""

    def __init__(
        self,
        portfolio_summary: GetPortfolioSummaryUseCase,
        order_repo: OrderRepository,
        position_repo: PositionRepository,
        recent_trades_limit: int = 10,
    ) -> None:
        self._portfolio_summary = portfolio_summary
        self._order_repo = order_repo
        self._position_repo = position_repo
        self._recent_trades_limit = recent_trades_limit

    def execute(self) -> DashboardReport:
        portfolio = None
        portfolio_error: Optional[str] = None
        try:
            portfolio = self._portfolio_summary.execute()
        except BrokerError as exc:
            logger.warning("Dashboard portfolio unavailable: %s", exc.message)
            portfolio_error = "Failed to load portfolio data"

        return DashboardReport(
            portfolio=portfolio,
            portfolio_error=portfolio_error,
            recent_trades=self._order_repo.find(offset=0, limit=self._recent_trades_limit),
            performance=compute_performance(self._position_repo.list_all()),
        )

    @staticmethod
    def fallback() -> DashboardReport:
        return DashboardReport(
            portfolio=None,
            portfolio_error="Failed to load portfolio data",
            recent_trades=[],
            performance=PerformanceReport(period_days=30),
        )
