"""
Tests for the trading domain layer.

Pure domain objects only: order lifecycle rules, broker-view merging,
position helpers and portfolio analytics. No database, no network.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fakes import FIXED_NOW, make_order
from tradedesk.domain.trading.analytics import (
    compute_diversification,
    compute_performance,
    concentration_risk,
    daily_volume,
    monthly_activity,
    risk_metrics,
    sector_allocation,
    summarize_positions,
    trading_stats,
)
from tradedesk.domain.trading.entities import (
    AssetClass,
    BrokerOrder,
    OrderSide,
    OrderStatus,
    Position,
    PositionSide,
)
from tradedesk.domain.trading.errors import InvalidStateError
from tradedesk.domain.trading.order_state import (
    ACTIVE_STATUSES,
    SETTLING_STATUSES,
    SYNCABLE_STATUSES,
    TERMINAL_STATUSES,
    can_be_canceled,
    ensure_cancelable,
    is_terminal,
    mark_canceled,
    merge_broker_view,
)


def _position(
    symbol: str,
    market_value: str,
    unrealized_pl: str = "0",
    unrealized_plpc: str = "0",
    asset_class: AssetClass = AssetClass.US_EQUITY,
    last_updated=None,
) -> Position:
    value = Decimal(market_value)
    pl = Decimal(unrealized_pl)
    return Position(
        symbol=symbol,
        quantity=Decimal("10"),
        side=PositionSide.LONG,
        avg_entry_price=(value - pl) / 10,
        market_value=value,
        cost_basis=value - pl,
        unrealized_pl=pl,
        unrealized_plpc=Decimal(unrealized_plpc),
        current_price=value / 10,
        asset_class=asset_class,
        last_updated=last_updated,
    )


def _view(status: OrderStatus, filled: str = "0", **fields) -> BrokerOrder:
    return BrokerOrder(
        id="ext-1",
        symbol="AAPL",
        status=status,
        filled_quantity=Decimal(filled),
        **fields,
    )


# ══════════════════════════════════════════════════════════════════════
# Order lifecycle
# ══════════════════════════════════════════════════════════════════════


class TestOrderState:
    """Tests for terminal/active classification and cancel rules."""

    def test_terminal_and_active_sets_are_disjoint(self) -> None:
        assert not TERMINAL_STATUSES & ACTIVE_STATUSES

    def test_every_status_has_exactly_one_group(self) -> None:
        groups = (TERMINAL_STATUSES, ACTIVE_STATUSES, SETTLING_STATUSES)
        for status in OrderStatus:
            assert sum(status in group for group in groups) == 1, status

    def test_settling_orders_are_still_synced(self) -> None:
        assert SETTLING_STATUSES <= SYNCABLE_STATUSES
        assert not TERMINAL_STATUSES & SYNCABLE_STATUSES

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.FILLED, OrderStatus.CANCELED, OrderStatus.EXPIRED, OrderStatus.REJECTED, OrderStatus.REPLACED],
    )
    def test_terminal_statuses(self, status: OrderStatus) -> None:
        assert is_terminal(status)

    def test_working_order_can_be_canceled(self) -> None:
        order = make_order(status=OrderStatus.PARTIALLY_FILLED)
        assert can_be_canceled(order)
        assert ensure_cancelable(order) == "ext-1"

    @pytest.mark.parametrize("status", [OrderStatus.HELD, OrderStatus.DONE_FOR_DAY])
    def test_held_and_done_for_day_orders_can_be_canceled(self, status: OrderStatus) -> None:
        assert can_be_canceled(make_order(status=status))

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.FILLED,
            OrderStatus.CANCELED,
            OrderStatus.PENDING_CANCEL,
            OrderStatus.STOPPED,
            OrderStatus.SUSPENDED,
            OrderStatus.CALCULATED,
        ],
    )
    def test_cancel_refused_outside_working_states(self, status: OrderStatus) -> None:
        order = make_order(status=status)
        with pytest.raises(InvalidStateError) as exc_info:
            ensure_cancelable(order)
        assert status.value in exc_info.value.reason

    def test_cancel_refused_without_external_id(self) -> None:
        order = make_order(external_id=None)
        with pytest.raises(InvalidStateError) as exc_info:
            ensure_cancelable(order)
        assert "external id" in exc_info.value.reason

    def test_mark_canceled_stamps_time(self) -> None:
        order = make_order()
        mark_canceled(order, FIXED_NOW)
        assert order.status is OrderStatus.CANCELED
        assert order.canceled_at == FIXED_NOW


class TestMergeBrokerView:
    """Tests for folding the broker's order view into the local order."""

    def test_fill_overwrites_status_and_fill_fields(self) -> None:
        order = make_order()
        outcome = merge_broker_view(
            order,
            _view(OrderStatus.FILLED, "10", filled_avg_price=Decimal("150.25"), filled_at=FIXED_NOW),
        )
        assert order.status is OrderStatus.FILLED
        assert order.filled_quantity == Decimal("10")
        assert order.filled_avg_price == Decimal("150.25")
        assert order.filled_at == FIXED_NOW
        assert outcome.status_changed
        assert outcome.previous_status is OrderStatus.ACCEPTED

    def test_terminal_status_is_not_replaced_by_working_status(self) -> None:
        order = make_order(status=OrderStatus.CANCELED)
        outcome = merge_broker_view(order, _view(OrderStatus.ACCEPTED))
        assert order.status is OrderStatus.CANCELED
        assert outcome.status_held
        assert not outcome.status_changed

    def test_terminal_status_may_move_to_another_terminal_status(self) -> None:
        order = make_order(status=OrderStatus.CANCELED)
        merge_broker_view(order, _view(OrderStatus.FILLED, "10"))
        assert order.status is OrderStatus.FILLED

    @pytest.mark.parametrize(
        "reported", [OrderStatus.NEW, OrderStatus.ACCEPTED, OrderStatus.PENDING_NEW, OrderStatus.HELD]
    )
    def test_partial_fill_does_not_fall_back_to_pre_fill_status(
        self, reported: OrderStatus, caplog
    ) -> None:
        order = make_order(status=OrderStatus.PARTIALLY_FILLED, filled_quantity=Decimal("4"))
        with caplog.at_level("WARNING"):
            outcome = merge_broker_view(order, _view(reported, "4"))
        assert order.status is OrderStatus.PARTIALLY_FILLED
        assert outcome.status_held
        assert not outcome.status_changed
        assert "keeping partially_filled" in caplog.text

    def test_working_order_moves_forward_to_partial_fill(self) -> None:
        order = make_order(status=OrderStatus.NEW)
        outcome = merge_broker_view(order, _view(OrderStatus.PARTIALLY_FILLED, "3"))
        assert order.status is OrderStatus.PARTIALLY_FILLED
        assert not outcome.status_held

    @pytest.mark.parametrize("reported", [OrderStatus.PENDING_CANCEL, OrderStatus.PENDING_REPLACE])
    def test_pending_transients_pass_through_after_partial_fill(self, reported: OrderStatus) -> None:
        order = make_order(status=OrderStatus.PARTIALLY_FILLED, filled_quantity=Decimal("4"))
        merge_broker_view(order, _view(reported, "4"))
        assert order.status is reported

    def test_filled_quantity_never_decreases(self) -> None:
        order = make_order(status=OrderStatus.PARTIALLY_FILLED, filled_quantity=Decimal("6"))
        merge_broker_view(order, _view(OrderStatus.PARTIALLY_FILLED, "4"))
        assert order.filled_quantity == Decimal("6")

    def test_filled_quantity_clamped_to_order_quantity(self) -> None:
        order = make_order(quantity="10")
        outcome = merge_broker_view(order, _view(OrderStatus.FILLED, "12"))
        assert order.filled_quantity == Decimal("10")
        assert outcome.fill_clamped

    def test_timestamps_are_never_cleared(self) -> None:
        earlier = FIXED_NOW - timedelta(hours=1)
        order = make_order(status=OrderStatus.PARTIALLY_FILLED, filled_at=earlier)
        merge_broker_view(order, _view(OrderStatus.PARTIALLY_FILLED, "5", filled_at=None))
        assert order.filled_at == earlier

    def test_avg_price_kept_when_broker_omits_it(self) -> None:
        order = make_order(filled_avg_price=Decimal("99.5"), filled_quantity=Decimal("2"))
        merge_broker_view(order, _view(OrderStatus.PARTIALLY_FILLED, "3"))
        assert order.filled_avg_price == Decimal("99.5")


class TestOrderEntity:
    def test_derived_fill_properties(self) -> None:
        order = make_order(
            quantity="8", filled_quantity=Decimal("2"), filled_avg_price=Decimal("10")
        )
        assert order.filled_value == Decimal("20")
        assert order.unfilled_quantity == Decimal("6")
        assert order.fill_percentage == Decimal("25")

    def test_unfilled_order_has_zero_value(self) -> None:
        assert make_order().filled_value == Decimal("0")


class TestPositionEntity:
    def test_weight_of_total(self) -> None:
        assert _position("AAPL", "250").weight(Decimal("1000")) == Decimal("25")
        assert _position("AAPL", "250").weight(Decimal("0")) == Decimal("0")

    def test_staleness_accepts_naive_timestamps(self) -> None:
        naive_old = (FIXED_NOW - timedelta(minutes=20)).replace(tzinfo=None)
        assert _position("AAPL", "100", last_updated=naive_old).is_stale(FIXED_NOW)
        assert not _position("AAPL", "100", last_updated=FIXED_NOW).is_stale(FIXED_NOW)

    def test_status_indicator(self) -> None:
        assert _position("A", "100", unrealized_pl="5").status_indicator(FIXED_NOW) == "profit"
        assert _position("A", "100", unrealized_pl="-5").status_indicator(FIXED_NOW) == "loss"
        assert _position("A", "100").status_indicator(FIXED_NOW) == "neutral"
        old = FIXED_NOW - timedelta(hours=1)
        assert _position("A", "100", "5", last_updated=old).status_indicator(FIXED_NOW) == "stale"


# ══════════════════════════════════════════════════════════════════════
# Analytics
# ══════════════════════════════════════════════════════════════════════


class TestConcentrationRisk:
    def test_above_25_percent_is_high(self) -> None:
        assert concentration_risk(Decimal("30")) == "high"

    def test_exactly_25_percent_is_not_high(self) -> None:
        assert concentration_risk(Decimal("25")) == "medium"

    def test_exactly_15_percent_is_low(self) -> None:
        assert concentration_risk(Decimal("15")) == "low"

    def test_top5_share_above_60_is_medium(self) -> None:
        assert concentration_risk(Decimal("14"), Decimal("61")) == "medium"


class TestPositionAnalytics:
    def test_empty_inputs_return_zeroes(self) -> None:
        summary = summarize_positions([])
        assert summary.total_positions == 0
        assert summary.total_unrealized_pl_percent == 0

        diversification = compute_diversification([])
        assert diversification.concentration_risk == "low"
        assert diversification.position_weights == []

        performance = compute_performance([], period_days=7)
        assert performance.period_days == 7
        assert performance.asset_allocation == []
        assert risk_metrics([]).largest_position_percent == 0
        assert sector_allocation([]) == []

    def test_summary_percent_measured_against_cost(self) -> None:
        positions = [_position("AAPL", "1100", "100"), _position("MSFT", "900", "-100")]
        summary = summarize_positions(positions)
        assert summary.total_value == Decimal("2000")
        assert summary.total_unrealized_pl == Decimal("0")

        summary = summarize_positions([_position("AAPL", "1100", "100")])
        assert summary.total_unrealized_pl_percent == Decimal("10")

    def test_performance_ranks_by_return(self) -> None:
        positions = [
            _position("AAPL", "100", unrealized_plpc="5"),
            _position("MSFT", "100", unrealized_plpc="-2"),
            _position("TSLA", "100", unrealized_plpc="12"),
        ]
        report = compute_performance(positions)
        assert [p.symbol for p in report.top_performers] == ["TSLA", "AAPL", "MSFT"]
        assert report.worst_performers[0].symbol == "MSFT"
        assert report.positions_count == 3

    def test_diversification_one_dominant_position(self) -> None:
        positions = [_position("AAPL", "300"), _position("MSFT", "350"), _position("JPM", "350")]
        report = compute_diversification(positions)
        assert report.largest_position_percent == Decimal("35.00")
        assert report.concentration_risk == "high"
        assert report.top_5_concentration == Decimal("100.00")
        assert report.position_weights[0].symbol in {"MSFT", "JPM"}

    def test_asset_class_groups(self) -> None:
        positions = [
            _position("AAPL", "600"),
            _position("BTCUSD", "400", asset_class=AssetClass.CRYPTO),
        ]
        report = compute_diversification(positions)
        assert {s.name: s.percentage for s in report.asset_classes} == {
            "us_equity": Decimal("60"),
            "crypto": Decimal("40"),
        }

    def test_sector_allocation_uses_static_map(self) -> None:
        positions = [_position("AAPL", "100"), _position("MSFT", "100"), _position("ZZZ", "200")]
        sectors = {s.name: s.positions_count for s in sector_allocation(positions)}
        assert sectors == {"Technology": 2, "Other": 1}

    def test_risk_metrics(self) -> None:
        metrics = risk_metrics([_position("AAPL", "300"), _position("MSFT", "700")])
        assert metrics.largest_position_percent == Decimal("70.00")
        assert metrics.concentration_risk == "high"


class TestOrderAnalytics:
    def _orders(self):
        created = datetime(2026, 3, 2, 10, tzinfo=timezone.utc)
        return [
            make_order("AAPL", "10", OrderStatus.FILLED, filled_quantity=Decimal("10"), created_at=created),
            make_order("AAPL", "5", OrderStatus.CANCELED, created_at=created),
            make_order(
                "MSFT", "4", OrderStatus.FILLED, side=OrderSide.SELL,
                filled_quantity=Decimal("4"), created_at=created + timedelta(days=1),
            ),
            make_order("TSLA", "1", OrderStatus.NEW, created_at=datetime(2026, 1, 5, tzinfo=timezone.utc)),
        ]

    def test_trading_stats_counts(self) -> None:
        stats = trading_stats(self._orders(), date(2026, 1, 1), date(2026, 3, 31))
        assert stats.total_trades == 4
        assert stats.filled_trades == 2
        assert stats.canceled_trades == 1
        assert stats.total_volume == Decimal("14")
        assert (stats.buy_orders, stats.sell_orders) == (3, 1)
        assert stats.most_traded_symbols[0].symbol == "AAPL"
        assert stats.most_traded_symbols[0].trade_count == 2

    def test_trading_stats_empty_window(self) -> None:
        stats = trading_stats([], date(2026, 1, 1), date(2026, 1, 31))
        assert stats.total_trades == 0
        assert stats.total_volume == 0
        assert stats.most_traded_symbols == []

    def test_daily_volume_counts_filled_only(self) -> None:
        report = daily_volume(self._orders())
        assert [(d.day, d.volume) for d in report.daily_volume] == [
            (date(2026, 3, 2), Decimal("10")),
            (date(2026, 3, 3), Decimal("4")),
        ]
        assert report.total_volume == Decimal("14")
        assert report.avg_daily_volume == Decimal("7")

    def test_monthly_activity_covers_six_months(self) -> None:
        months = monthly_activity(self._orders(), FIXED_NOW)
        assert [m.month for m in months] == [
            "2025-10", "2025-11", "2025-12", "2026-01", "2026-02", "2026-03",
        ]
        assert months[-1].trades == 3
        assert months[3].trades == 1
