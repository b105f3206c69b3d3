"""
Portfolio analytics over the ledger.

Pure read-and-compute functions. Every function accepts empty input and
returns zeroed results instead of failing. Nothing here writes, and
nothing here talks to the broker.

Concentration risk buckets by the largest position's share of total
market value: above 25% is "high", above 15% is "medium" (a top-5
share above 60% also counts as "medium"), anything else is "low".
Both boundaries are exclusive.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from tradedesk.domain.trading.entities import Order, OrderSide, OrderStatus, Position

ZERO = Decimal("0")
HUNDRED = Decimal("100")

HIGH_CONCENTRATION_PCT = Decimal("25")
MEDIUM_CONCENTRATION_PCT = Decimal("15")
MEDIUM_TOP5_CONCENTRATION_PCT = Decimal("60")

TOP_PERFORMERS = 5
TOP_WEIGHTS = 10
TOP_SYMBOLS = 10

SECTOR_BY_SYMBOL: dict[str, str] = {
    "AAPL": "Technology",
    "MSFT": "Technology",
    "GOOGL": "Technology",
    "TSLA": "Consumer Discretionary",
    "AMZN": "Consumer Discretionary",
    "JPM": "Financials",
    "JNJ": "Healthcare",
    "PG": "Consumer Staples",
    "XOM": "Energy",
}
DEFAULT_SECTOR = "Other"


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


def _round2(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _total(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def concentration_risk(
    largest_position_pct: Decimal, top5_pct: Optional[Decimal] = None
) -> str:
    """Bucket a portfolio's concentration into low/medium/high."""
    if largest_position_pct > HIGH_CONCENTRATION_PCT:
        return "high"
    if largest_position_pct > MEDIUM_CONCENTRATION_PCT:
        return "medium"
    if top5_pct is not None and top5_pct > MEDIUM_TOP5_CONCENTRATION_PCT:
        return "medium"
    return "low"


# ------------------------------------------------------------------
# Positions
# ------------------------------------------------------------------


@dataclass(frozen=True)
class PositionSummary:
    total_positions: int = 0
    total_value: Decimal = ZERO
    total_unrealized_pl: Decimal = ZERO
    total_unrealized_pl_percent: Decimal = ZERO


def summarize_positions(positions: list[Position]) -> PositionSummary:
    """Totals across all positions.

    The P&L percentage is measured against the value the positions had
    before the unrealized gain, i.e. ``pl / (value - pl)``.
    """
    total_value = _total(p.market_value for p in positions)
    total_pl = _total(p.unrealized_pl for p in positions)
    return PositionSummary(
        total_positions=len(positions),
        total_value=total_value,
        total_unrealized_pl=total_pl,
        total_unrealized_pl_percent=(
            _pct(total_pl, total_value - total_pl) if total_value > 0 else ZERO
        ),
    )


@dataclass(frozen=True)
class AllocationSlice:
    """Share of portfolio value held in one group (asset class or sector)."""

    name: str
    value: Decimal
    percentage: Decimal
    positions_count: int


def _allocate(positions: list[Position], key) -> list[AllocationSlice]:
    total_value = _total(p.market_value for p in positions)
    groups: dict[str, list[Position]] = defaultdict(list)
    for position in positions:
        groups[key(position)].append(position)
    slices = []
    for name, members in groups.items():
        value = _total(p.market_value for p in members)
        slices.append(
            AllocationSlice(
                name=name,
                value=value,
                percentage=_pct(value, total_value),
                positions_count=len(members),
            )
        )
    return sorted(slices, key=lambda s: s.value, reverse=True)


def asset_allocation(positions: list[Position]) -> list[AllocationSlice]:
    """Group positions by asset class."""
    if _total(p.market_value for p in positions) == 0:
        return []
    return _allocate(positions, lambda p: p.asset_class.value)


def sector_allocation(positions: list[Position]) -> list[AllocationSlice]:
    """Group positions by sector using the static symbol lookup."""
    return _allocate(positions, lambda p: SECTOR_BY_SYMBOL.get(p.symbol, DEFAULT_SECTOR))


@dataclass(frozen=True)
class PerformanceReport:
    period_days: int
    current_value: Decimal = ZERO
    total_unrealized_pl: Decimal = ZERO
    total_cost_basis: Decimal = ZERO
    total_return_percent: Decimal = ZERO
    positions_count: int = 0
    top_performers: list[Position] = field(default_factory=list)
    worst_performers: list[Position] = field(default_factory=list)
    asset_allocation: list[AllocationSlice] = field(default_factory=list)


def compute_performance(positions: list[Position], period_days: int = 30) -> PerformanceReport:
    total_pl = _total(p.unrealized_pl for p in positions)
    total_cost = _total(p.cost_basis for p in positions)
    by_return = sorted(positions, key=lambda p: p.unrealized_plpc, reverse=True)
    return PerformanceReport(
        period_days=period_days,
        current_value=_total(p.market_value for p in positions),
        total_unrealized_pl=total_pl,
        total_cost_basis=total_cost,
        total_return_percent=_pct(total_pl, total_cost),
        positions_count=len(positions),
        top_performers=by_return[:TOP_PERFORMERS],
        worst_performers=list(reversed(by_return))[:TOP_PERFORMERS],
        asset_allocation=asset_allocation(positions),
    )


@dataclass(frozen=True)
class PositionWeight:
    symbol: str
    value: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class DiversificationReport:
    total_positions: int = 0
    concentration_risk: str = "low"
    largest_position_percent: Decimal = ZERO
    top_5_concentration: Decimal = ZERO
    asset_classes: list[AllocationSlice] = field(default_factory=list)
    position_weights: list[PositionWeight] = field(default_factory=list)


def compute_diversification(positions: list[Position]) -> DiversificationReport:
    if not positions:
        return DiversificationReport()

    total_value = _total(p.market_value for p in positions)
    by_value = sorted(positions, key=lambda p: p.market_value, reverse=True)
    largest_pct = _pct(by_value[0].market_value, total_value)
    top5_pct = _pct(_total(p.market_value for p in by_value[:5]), total_value)

    return DiversificationReport(
        total_positions=len(positions),
        concentration_risk=concentration_risk(largest_pct, top5_pct),
        largest_position_percent=_round2(largest_pct),
        top_5_concentration=_round2(top5_pct),
        asset_classes=_allocate(positions, lambda p: p.asset_class.value),
        position_weights=[
            PositionWeight(
                symbol=p.symbol,
                value=p.market_value,
                percentage=_pct(p.market_value, total_value),
            )
            for p in by_value[:TOP_WEIGHTS]
        ],
    )


@dataclass(frozen=True)
class RiskMetrics:
    concentration_risk: str = "low"
    largest_position_percent: Decimal = ZERO


def risk_metrics(positions: list[Position]) -> RiskMetrics:
    """Concentration of the largest single position."""
    if not positions:
        return RiskMetrics()
    total_value = _total(p.market_value for p in positions)
    largest_pct = _pct(max(p.market_value for p in positions), total_value)
    return RiskMetrics(
        concentration_risk=concentration_risk(largest_pct),
        largest_position_percent=_round2(largest_pct),
    )


# ------------------------------------------------------------------
# Orders
# ------------------------------------------------------------------


@dataclass(frozen=True)
class SymbolActivity:
    symbol: str
    trade_count: int
    total_quantity: Decimal


@dataclass(frozen=True)
class TradingStats:
    date_from: date
    date_to: date
    total_trades: int = 0
    filled_trades: int = 0
    canceled_trades: int = 0
    total_volume: Decimal = ZERO
    buy_orders: int = 0
    sell_orders: int = 0
    most_traded_symbols: list[SymbolActivity] = field(default_factory=list)


def trading_stats(orders: list[Order], date_from: date, date_to: date) -> TradingStats:
    """Counts and volumes over orders already filtered to the window."""
    filled = [o for o in orders if o.status is OrderStatus.FILLED]

    per_symbol: dict[str, list[Order]] = defaultdict(list)
    for order in orders:
        per_symbol[order.symbol].append(order)
    activity = sorted(
        (
            SymbolActivity(
                symbol=symbol,
                trade_count=len(members),
                total_quantity=_total(o.filled_quantity for o in members),
            )
            for symbol, members in per_symbol.items()
        ),
        key=lambda a: (-a.trade_count, a.symbol),
    )

    return TradingStats(
        date_from=date_from,
        date_to=date_to,
        total_trades=len(orders),
        filled_trades=len(filled),
        canceled_trades=sum(1 for o in orders if o.status is OrderStatus.CANCELED),
        total_volume=_total(o.filled_quantity for o in filled),
        buy_orders=sum(1 for o in orders if o.side is OrderSide.BUY),
        sell_orders=sum(1 for o in orders if o.side is OrderSide.SELL),
        most_traded_symbols=activity[:TOP_SYMBOLS],
    )


@dataclass(frozen=True)
class DailyVolume:
    day: date
    volume: Decimal


@dataclass(frozen=True)
class VolumeReport:
    daily_volume: list[DailyVolume] = field(default_factory=list)
    total_volume: Decimal = ZERO
    avg_daily_volume: Decimal = ZERO


def _order_day(order: Order) -> Optional[date]:
    stamp = order.created_at or order.submitted_at
    return stamp.date() if stamp else None


def daily_volume(orders: list[Order]) -> VolumeReport:
    """Filled quantity per calendar day for filled orders."""
    per_day: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for order in orders:
        day = _order_day(order)
        if order.status is OrderStatus.FILLED and day is not None:
            per_day[day] += order.filled_quantity
    days = [DailyVolume(day=d, volume=v) for d, v in sorted(per_day.items())]
    total = _total(d.volume for d in days)
    return VolumeReport(
        daily_volume=days,
        total_volume=total,
        avg_daily_volume=total / len(days) if days else ZERO,
    )


@dataclass(frozen=True)
class MonthlyActivity:
    month: str
    trades: int


def _shift_month(year: int, month: int, back: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) - back
    return index // 12, index % 12 + 1


def monthly_activity(orders: list[Order], now: datetime, months: int = 6) -> list[MonthlyActivity]:
    """Order counts for the last ``months`` calendar months, oldest first."""
    counts: dict[str, int] = defaultdict(int)
    for order in orders:
        day = _order_day(order)
        if day is not None:
            counts[f"{day.year:04d}-{day.month:02d}"] += 1

    result = []
    for back in range(months - 1, -1, -1):
        year, month = _shift_month(now.year, now.month, back)
        key = f"{year:04d}-{month:02d}"
        result.append(MonthlyActivity(month=key, trades=counts.get(key, 0)))
    return result
