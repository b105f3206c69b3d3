"""
Tests for the trading application layer (use cases).

Use cases run against the real ledger repositories on in-memory SQLite
and a fake broker, so each test checks both the orchestration and what
ended up in the ledger.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest
from sqlalchemy import func, select

from fakes import FIXED_NOW, broker_position, make_order
from tradedesk.application.trading.cancel_order import CancelOrderUseCase
from tradedesk.application.trading.dtos import (
    ListOrdersQuery,
    SubmitOrderCommand,
    TradingStatsQuery,
)
from tradedesk.application.trading.order_queries import GetOrderUseCase, ListOrdersUseCase
from tradedesk.application.trading.policies import BEST_EFFORT, STRICT
from tradedesk.application.trading.position_queries import (
    GetPortfolioSummaryUseCase,
    GetPositionUseCase,
    ListPositionsUseCase,
)
from tradedesk.application.trading.reconcile_positions import ReconcilePositionsUseCase
from tradedesk.application.trading.reporting import (
    GetAnalyticsUseCase,
    GetDashboardUseCase,
    GetPerformanceUseCase,
    GetTradingStatsUseCase,
)
from tradedesk.application.trading.submit_order import SubmitOrderUseCase
from tradedesk.application.trading.sync_active_orders import SyncActiveOrdersUseCase
from tradedesk.application.trading.sync_order_status import SyncOrderStatusUseCase
from tradedesk.domain.trading.entities import Asset, AssetClass, OrderStatus
from tradedesk.domain.trading.errors import (
    BrokerError,
    BrokerReplyError,
    ConsistencyError,
    InvalidStateError,
    OrderNotFoundError,
    PositionNotFoundError,
    ValidationError,
)
from tradedesk.infrastructure.trading.alpaca_broker_adapter import AlpacaBrokerAdapter
from tradedesk.infrastructure.trading.schema import assets, trades


def _count(engine, table) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar_one()


@pytest.fixture
def submit(broker, order_repo, asset_repo, clock) -> SubmitOrderUseCase:
    return SubmitOrderUseCase(broker=broker, order_repo=order_repo, asset_repo=asset_repo, clock=clock)


@pytest.fixture
def reconcile(broker, position_repo, clock) -> ReconcilePositionsUseCase:
    return ReconcilePositionsUseCase(broker=broker, position_repo=position_repo, clock=clock)


@pytest.fixture
def sync(broker, order_repo, reconcile) -> SyncOrderStatusUseCase:
    return SyncOrderStatusUseCase(broker=broker, order_repo=order_repo, reconcile=reconcile)


def _buy_aapl(**overrides) -> SubmitOrderCommand:
    fields = {"symbol": "AAPL", "quantity": "10", "side": "buy"}
    fields.update(overrides)
    return SubmitOrderCommand(**fields)


# ══════════════════════════════════════════════════════════════════════
# Submit
# ══════════════════════════════════════════════════════════════════════


class TestSubmitOrderUseCase:
    """Tests for SubmitOrderUseCase."""

    def test_accepted_order_is_recorded(self, submit, order_repo, broker) -> None:
        order = submit.execute(_buy_aapl(symbol=" aapl ", metadata={"strategy": "dca"}))

        assert order.external_id == "ext-1"
        stored = order_repo.get(order.id)
        assert stored.symbol == "AAPL"
        assert stored.status is OrderStatus.ACCEPTED
        assert stored.quantity == Decimal("10")
        assert stored.filled_quantity == 0
        assert stored.submitted_at is not None
        assert stored.metadata["user_metadata"] == {"strategy": "dca"}
        assert stored.metadata["broker_order"]["id"] == "ext-1"
        assert broker.called("submit_order") == 1

    def test_known_broker_asset_is_stored(self, submit, asset_repo, broker) -> None:
        broker.assets["AAPL"] = Asset(symbol="AAPL", name="Apple Inc.", marginable=True)
        submit.execute(_buy_aapl())
        stored = asset_repo.get_by_symbol("AAPL")
        assert stored.name == "Apple Inc."
        assert stored.marginable

    def test_unknown_asset_falls_back_to_stub(self, submit, asset_repo) -> None:
        submit.execute(_buy_aapl(symbol="ZZZ"))
        stub = asset_repo.get_by_symbol("ZZZ")
        assert stub.name == "ZZZ"
        assert stub.asset_class is AssetClass.US_EQUITY
        assert stub.tradable

    def test_ledger_asset_skips_broker_lookup(self, submit, broker) -> None:
        submit.execute(_buy_aapl())
        submit.execute(_buy_aapl())
        assert broker.called("get_asset") == 1

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"symbol": "  "}, "symbol"),
            ({"symbol": "WAYTOOLONGSYM"}, "symbol"),
            ({"quantity": "0"}, "quantity"),
            ({"quantity": "-3"}, "quantity"),
            ({"quantity": "ten"}, "quantity"),
            ({"side": "hold"}, "side"),
            ({"order_type": "trailing"}, "type"),
            ({"time_in_force": "forever"}, "time_in_force"),
            ({"price": "-1"}, "price"),
        ],
    )
    def test_invalid_input_sends_and_writes_nothing(
        self, submit, broker, engine, overrides, field
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            submit.execute(_buy_aapl(**overrides))
        assert field in exc_info.value.field_errors
        assert broker.calls == []
        assert _count(engine, trades) == 0

    def test_broker_rejection_writes_nothing(self, submit, broker, engine) -> None:
        broker.fail["submit_order"] = BrokerError("insufficient buying power", status_code=403)
        with pytest.raises(BrokerError) as exc_info:
            submit.execute(_buy_aapl())
        assert exc_info.value.upstream_message == "insufficient buying power"
        assert _count(engine, trades) == 0
        assert _count(engine, assets) == 0

    def test_ledger_failure_after_broker_accept_raises_consistency_error(
        self, broker, engine, asset_repo, clock, caplog
    ) -> None:
        order_repo = MagicMock()
        order_repo.add.side_effect = RuntimeError("database is locked")
        use_case = SubmitOrderUseCase(
            broker=broker,
            order_repo=order_repo,
            asset_repo=asset_repo,
            clock=clock,
        )
        with caplog.at_level(logging.ERROR):
            with pytest.raises(ConsistencyError) as exc_info:
                use_case.execute(_buy_aapl())

        assert exc_info.value.external_id == "ext-1"
        assert exc_info.value.symbol == "AAPL"
        assert "MANUAL_RECONCILIATION_REQUIRED" in caplog.text
        assert _count(engine, trades) == 0

    def test_unreadable_accept_reply_raises_consistency_error(
        self, submit, broker, engine, caplog
    ) -> None:
        broker.fail["submit_order"] = BrokerReplyError(
            "Unknown order status 'teleported'", external_id="ext-7"
        )
        with caplog.at_level(logging.ERROR):
            with pytest.raises(ConsistencyError) as exc_info:
                submit.execute(_buy_aapl())

        assert exc_info.value.external_id == "ext-7"
        assert exc_info.value.symbol == "AAPL"
        assert "MANUAL_RECONCILIATION_REQUIRED broker order ext-7" in caplog.text
        assert _count(engine, trades) == 0

    def test_unreadable_reply_from_alpaca_is_reported_with_broker_id(
        self, order_repo, asset_repo, clock, engine, caplog
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(404, json={"message": "asset not found"})
            return httpx.Response(200, json={"id": "ord-9", "symbol": "AAPL", "status": "teleported"})

        client = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://broker.test")
        use_case = SubmitOrderUseCase(
            broker=AlpacaBrokerAdapter(client),
            order_repo=order_repo,
            asset_repo=asset_repo,
            clock=clock,
        )
        try:
            with caplog.at_level(logging.ERROR):
                with pytest.raises(ConsistencyError) as exc_info:
                    use_case.execute(_buy_aapl())
        finally:
            client.close()

        assert exc_info.value.external_id == "ord-9"
        assert "MANUAL_RECONCILIATION_REQUIRED" in caplog.text
        assert _count(engine, trades) == 0


# ══════════════════════════════════════════════════════════════════════
# Cancel
# ══════════════════════════════════════════════════════════════════════


class TestCancelOrderUseCase:
    """Tests for CancelOrderUseCase."""

    def test_working_order_is_canceled(self, broker, order_repo, clock) -> None:
        order = order_repo.add(make_order(), Asset.stub("AAPL"))
        result = CancelOrderUseCase(broker, order_repo, clock=clock).execute(order.id)

        assert result.status == "canceled"
        stored = order_repo.get(order.id)
        assert stored.status is OrderStatus.CANCELED
        assert stored.canceled_at is not None
        assert ("cancel_order", "ext-1") in broker.calls

    def test_terminal_order_is_left_unchanged(self, broker, order_repo) -> None:
        order = order_repo.add(
            make_order(status=OrderStatus.FILLED, filled_quantity=Decimal("10")), Asset.stub("AAPL")
        )
        with pytest.raises(InvalidStateError):
            CancelOrderUseCase(broker, order_repo).execute(order.id)

        stored = order_repo.get(order.id)
        assert stored.status is OrderStatus.FILLED
        assert stored.canceled_at is None
        assert broker.called("cancel_order") == 0

    def test_held_order_is_canceled(self, broker, order_repo, clock) -> None:
        order = order_repo.add(make_order(status=OrderStatus.HELD), Asset.stub("AAPL"))
        CancelOrderUseCase(broker, order_repo, clock=clock).execute(order.id)
        assert order_repo.get(order.id).status is OrderStatus.CANCELED

    def test_order_without_external_id(self, broker, order_repo) -> None:
        order = order_repo.add(make_order(external_id=None), Asset.stub("AAPL"))
        with pytest.raises(InvalidStateError):
            CancelOrderUseCase(broker, order_repo).execute(order.id)

    def test_broker_failure_leaves_row_unchanged(self, broker, order_repo) -> None:
        order = order_repo.add(make_order(), Asset.stub("AAPL"))
        broker.fail["cancel_order"] = BrokerError("order is not cancelable", status_code=422)
        with pytest.raises(BrokerError):
            CancelOrderUseCase(broker, order_repo).execute(order.id)
        assert order_repo.get(order.id).status is OrderStatus.ACCEPTED

    def test_unknown_order(self, broker, order_repo) -> None:
        with pytest.raises(OrderNotFoundError):
            CancelOrderUseCase(broker, order_repo).execute(42)


# ══════════════════════════════════════════════════════════════════════
# Sync and reconcile
# ══════════════════════════════════════════════════════════════════════


class TestSyncOrderStatusUseCase:
    """Tests for SyncOrderStatusUseCase."""

    def test_fill_updates_order_and_reconciles_positions(
        self, submit, sync, broker, order_repo, position_repo
    ) -> None:
        order = submit.execute(_buy_aapl())
        broker.set_order(
            "ext-1",
            OrderStatus.FILLED,
            filled_quantity=Decimal("10"),
            filled_avg_price=Decimal("150.25"),
            filled_at=FIXED_NOW,
        )
        broker.positions = [broker_position("AAPL", "1502.50", "0")]

        result = sync.execute(order.id)

        assert result.positions_reconciled
        stored = order_repo.get(order.id)
        assert stored.status is OrderStatus.FILLED
        assert stored.filled_quantity == Decimal("10")
        assert stored.filled_avg_price == Decimal("150.25")
        assert stored.filled_at is not None
        assert [p.symbol for p in position_repo.list_all()] == ["AAPL"]

    def test_non_fill_status_does_not_reconcile(self, submit, sync, broker) -> None:
        order = submit.execute(_buy_aapl())
        broker.set_order("ext-1", OrderStatus.NEW)
        result = sync.execute(order.id)
        assert not result.fill_observed
        assert not result.positions_reconciled
        assert broker.called("list_positions") == 0

    def test_reconcile_failure_keeps_sync(self, submit, sync, broker, order_repo, caplog) -> None:
        order = submit.execute(_buy_aapl())
        broker.set_order("ext-1", OrderStatus.PARTIALLY_FILLED, filled_quantity=Decimal("4"))
        broker.fail["list_positions"] = BrokerError("timeout")

        with caplog.at_level(logging.ERROR):
            result = sync.execute(order.id)

        assert result.fill_observed
        assert not result.positions_reconciled
        assert order_repo.get(order.id).filled_quantity == Decimal("4")
        assert "reconciliation" in caplog.text

    def test_sync_never_lowers_fill_or_clears_timestamps(self, sync, broker, order_repo) -> None:
        order = order_repo.add(
            make_order(
                status=OrderStatus.PARTIALLY_FILLED,
                filled_quantity=Decimal("6"),
                filled_at=FIXED_NOW - timedelta(minutes=5),
            ),
            Asset.stub("AAPL"),
        )
        broker.set_order("ext-1", OrderStatus.PARTIALLY_FILLED, filled_quantity=Decimal("2"))

        sync.execute(order.id, reconcile=False)

        stored = order_repo.get(order.id)
        assert stored.filled_quantity == Decimal("6")
        assert stored.filled_at is not None

    def test_terminal_order_keeps_terminal_status(self, sync, broker, order_repo) -> None:
        order = order_repo.add(make_order(status=OrderStatus.CANCELED), Asset.stub("AAPL"))
        broker.set_order("ext-1", OrderStatus.PENDING_CANCEL)
        sync.execute(order.id)
        assert order_repo.get(order.id).status is OrderStatus.CANCELED

    def test_broker_failure_propagates(self, sync, broker, order_repo) -> None:
        order = order_repo.add(make_order(external_id="missing"), Asset.stub("AAPL"))
        with pytest.raises(BrokerError):
            sync.execute(order.id)
        assert order_repo.get(order.id).status is OrderStatus.ACCEPTED

    def test_unknown_order(self, sync) -> None:
        with pytest.raises(OrderNotFoundError):
            sync.execute(7)


class TestSyncActiveOrdersUseCase:
    """Tests for the batch sync behind ``tradedesk sync-orders``."""

    def test_batch_counts_failures_and_reconciles_once(self, sync, broker, order_repo) -> None:
        order_repo.add(make_order(external_id="ext-1"), Asset.stub("AAPL"))
        order_repo.add(make_order("MSFT", external_id="ext-2"), Asset.stub("MSFT"))
        order_repo.add(make_order("TSLA", external_id="gone"), Asset.stub("TSLA"))
        order_repo.add(
            make_order("JPM", external_id="ext-4", status=OrderStatus.FILLED), Asset.stub("JPM")
        )
        broker.set_order("ext-1", OrderStatus.FILLED, filled_quantity=Decimal("10"))
        broker.set_order("ext-2", OrderStatus.PARTIALLY_FILLED, symbol="MSFT", filled_quantity=Decimal("3"))

        result = SyncActiveOrdersUseCase(order_repo=order_repo, sync_order=sync).execute()

        assert result.checked == 3
        assert result.updated == 2
        assert result.failed == 1
        assert result.positions_reconciled
        assert broker.called("list_positions") == 1
        assert ("get_order", "ext-4") not in broker.calls

    def test_settling_orders_are_refreshed(self, sync, broker, order_repo) -> None:
        order = order_repo.add(make_order(status=OrderStatus.STOPPED), Asset.stub("AAPL"))
        broker.set_order("ext-1", OrderStatus.FILLED, filled_quantity=Decimal("10"))

        result = SyncActiveOrdersUseCase(order_repo=order_repo, sync_order=sync).execute()

        assert (result.checked, result.updated) == (1, 1)
        assert order_repo.get(order.id).status is OrderStatus.FILLED

    def test_no_fills_no_reconcile(self, sync, broker, order_repo) -> None:
        order_repo.add(make_order(), Asset.stub("AAPL"))
        broker.set_order("ext-1", OrderStatus.ACCEPTED)
        result = SyncActiveOrdersUseCase(order_repo=order_repo, sync_order=sync).execute()
        assert (result.checked, result.updated, result.failed) == (1, 0, 0)
        assert not result.positions_reconciled
        assert broker.called("list_positions") == 0


class TestReconcilePositionsUseCase:
    """The position table must equal the broker's list after every run."""

    @pytest.mark.parametrize(
        "prior",
        [
            [],
            [("AAPL", "100"), ("MSFT", "200"), ("TSLA", "300"), ("JPM", "50")],
            [("XOM", "10"), ("PG", "20")],
        ],
        ids=["empty", "superset", "disjoint"],
    )
    def test_mirror_matches_broker(self, reconcile, broker, position_repo, prior) -> None:
        broker.positions = [broker_position(symbol, value) for symbol, value in prior]
        reconcile.execute()

        broker.positions = [
            broker_position("AAPL", "1500", "100"),
            broker_position("MSFT", "900", "-50"),
        ]
        result = reconcile.execute()

        stored = {p.symbol: p for p in position_repo.list_all()}
        assert set(stored) == {"AAPL", "MSFT"}
        assert stored["AAPL"].market_value == Decimal("1500")
        assert stored["MSFT"].unrealized_pl == Decimal("-50")
        assert result.positions_count == 2
        assert result.total_value == Decimal("2400")

    def test_short_quantities_are_stored_as_magnitudes(self, reconcile, broker, position_repo) -> None:
        short = broker_position("TSLA", "-700", quantity="-5")
        broker.positions = [short]
        reconcile.execute()
        assert position_repo.get("TSLA").quantity == Decimal("5")

    def test_positions_are_stamped_with_sync_time(self, reconcile, broker, position_repo) -> None:
        broker.positions = [broker_position("AAPL", "100")]
        reconcile.execute()
        assert position_repo.get("AAPL").last_updated is not None

    def test_broker_failure_leaves_table_untouched(self, reconcile, broker, position_repo) -> None:
        broker.positions = [broker_position("AAPL", "100")]
        reconcile.execute()
        broker.fail["list_positions"] = BrokerError("unavailable", status_code=503)
        with pytest.raises(BrokerError):
            reconcile.execute()
        assert [p.symbol for p in position_repo.list_all()] == ["AAPL"]


# ══════════════════════════════════════════════════════════════════════
# Queries and reports
# ══════════════════════════════════════════════════════════════════════


class TestQueries:
    def test_list_orders_pages(self, order_repo) -> None:
        for i in range(3):
            order_repo.add(make_order(external_id=f"ext-{i}"), Asset.stub("AAPL"))
        page = ListOrdersUseCase(order_repo).execute(ListOrdersQuery(page=2, per_page=2))
        assert page.total == 3
        assert [o.external_id for o in page.items] == ["ext-0"]

    def test_list_orders_rejects_unknown_filters(self, order_repo) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ListOrdersUseCase(order_repo).execute(ListOrdersQuery(status="bogus", side="long"))
        assert set(exc_info.value.field_errors) == {"status", "side"}

    def test_get_order(self, order_repo) -> None:
        order = order_repo.add(make_order(), Asset.stub("AAPL"))
        assert GetOrderUseCase(order_repo).execute(order.id).external_id == "ext-1"
        with pytest.raises(OrderNotFoundError):
            GetOrderUseCase(order_repo).execute(order.id + 1)

    def test_positions_and_portfolio_summary(self, reconcile, broker, position_repo) -> None:
        broker.positions = [broker_position("AAPL", "1100", "100")]
        reconcile.execute()

        overview = ListPositionsUseCase(position_repo).execute()
        assert overview.summary.total_unrealized_pl_percent == Decimal("10")
        assert GetPositionUseCase(position_repo).execute("aapl").symbol == "AAPL"
        with pytest.raises(PositionNotFoundError):
            GetPositionUseCase(position_repo).execute("MSFT")

        summary = GetPortfolioSummaryUseCase(broker, position_repo).execute()
        assert summary.account.equity == Decimal("100000")
        assert summary.summary.total_positions == 1


class TestReporting:
    def test_trading_stats_default_window(self, order_repo, clock) -> None:
        order_repo.add(make_order(), Asset.stub("AAPL"))
        use_case = GetTradingStatsUseCase(order_repo, clock=lambda: FIXED_NOW + timedelta(days=365 * 5))
        stats = use_case.execute(TradingStatsQuery())
        # the order was created "now", far outside a window ending five years out
        assert stats.total_trades == 0
        assert (stats.date_to - stats.date_from).days == 30

    def test_trading_stats_explicit_window_includes_today(self, order_repo) -> None:
        order = order_repo.add(make_order(), Asset.stub("AAPL"))
        day = order.created_at.date()
        stats = GetTradingStatsUseCase(order_repo).execute(TradingStatsQuery(date_from=day, date_to=day))
        assert stats.total_trades == 1

    def test_trading_stats_rejects_inverted_window(self, order_repo) -> None:
        with pytest.raises(ValidationError):
            GetTradingStatsUseCase(order_repo).execute(
                TradingStatsQuery(date_from=date(2026, 3, 10), date_to=date(2026, 3, 1))
            )

    def test_performance_rejects_bad_period(self, position_repo) -> None:
        with pytest.raises(ValidationError):
            GetPerformanceUseCase(position_repo).execute(days=0)

    def test_dashboard_degrades_without_broker(self, broker, order_repo, position_repo) -> None:
        order_repo.add(make_order(), Asset.stub("AAPL"))
        broker.fail["get_account"] = BrokerError("unauthorized", status_code=401)
        dashboard = GetDashboardUseCase(
            GetPortfolioSummaryUseCase(broker, position_repo), order_repo, position_repo
        ).execute()
        assert dashboard.portfolio is None
        assert dashboard.portfolio_error == "Failed to load portfolio data"
        assert len(dashboard.recent_trades) == 1

    def test_dashboard_limits_recent_trades(self, broker, order_repo, position_repo) -> None:
        for i in range(4):
            order_repo.add(make_order(external_id=f"ext-{i}"), Asset.stub("AAPL"))
        dashboard = GetDashboardUseCase(
            GetPortfolioSummaryUseCase(broker, position_repo),
            order_repo,
            position_repo,
            recent_trades_limit=3,
        ).execute()
        assert [o.external_id for o in dashboard.recent_trades] == ["ext-3", "ext-2", "ext-1"]
        assert dashboard.portfolio.account.cash == Decimal("25000")

    def test_analytics_on_empty_ledger(self, order_repo, position_repo, clock) -> None:
        report = GetAnalyticsUseCase(order_repo, position_repo, clock=clock).execute()
        assert report.trading_volume.total_volume == 0
        assert report.sector_allocation == []
        assert report.risk_metrics.concentration_risk == "low"
        assert len(report.monthly_activity) == 6


class TestPolicies:
    def test_strict_policy_propagates(self) -> None:
        def boom():
            raise BrokerError("down")

        with pytest.raises(BrokerError):
            STRICT.run(boom, lambda: "fallback")

    def test_best_effort_returns_fallback_and_logs(self, caplog) -> None:
        def boom():
            raise RuntimeError("db gone")

        with caplog.at_level(logging.ERROR):
            assert BEST_EFFORT.run(boom, lambda: "fallback") == "fallback"
        assert "db gone" in caplog.text
