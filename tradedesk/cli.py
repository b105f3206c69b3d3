"""
CLI entry point for TradeDesk.

Usage:
    # Create the ledger tables
    tradedesk init-db

    # Mirror broker positions into the ledger (run from cron)
    tradedesk reconcile-positions

    # Refresh every active order from the broker (run from cron)
    tradedesk sync-orders

    # Start the HTTP API
    tradedesk serve --port 8000
"""

import argparse
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from tradedesk.core.config import Settings, settings
from tradedesk.domain.trading.errors import TradingDomainError
from tradedesk.domain.trading.ports import BrokerPort
from tradedesk.infrastructure.trading.alpaca_broker_adapter import (
    AlpacaBrokerAdapter,
    build_broker_client,
)
from tradedesk.infrastructure.trading.database import build_engine, create_schema
from tradedesk.shared.logging import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


@contextmanager
def ledger_and_broker(app_settings: Settings) -> Iterator[tuple]:
    """Open the ledger engine and a broker adapter; close both on exit."""
    engine = build_engine(app_settings.get_database_dsn())
    client = build_broker_client(app_settings)
    try:
        yield engine, AlpacaBrokerAdapter(client)
    finally:
        client.close()
        engine.dispose()


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create the ledger tables."""
    engine = build_engine(settings.get_database_dsn())
    try:
        create_schema(engine)
    finally:
        engine.dispose()
    return EXIT_OK


def _reconcile_use_case(engine, broker: BrokerPort):
    from tradedesk.application.trading.reconcile_positions import ReconcilePositionsUseCase
    from tradedesk.infrastructure.trading.position_repository import PositionRepositoryAdapter

    return ReconcilePositionsUseCase(broker=broker, position_repo=PositionRepositoryAdapter(engine))


def cmd_reconcile_positions(args: argparse.Namespace) -> int:
    """Replace the position mirror with the broker's snapshot."""
    with ledger_and_broker(settings) as (engine, broker):
        try:
            result = _reconcile_use_case(engine, broker).execute()
        except TradingDomainError as exc:
            logger.error("Reconciliation failed: %s", exc.message)
            return EXIT_FAILURE
    logger.info(
        "Reconciliation complete: %d positions (%d deleted)",
        result.positions_count,
        result.deleted,
    )
    return EXIT_OK


def cmd_sync_orders(args: argparse.Namespace) -> int:
    """Refresh every active order from the broker."""
    from tradedesk.application.trading.sync_active_orders import SyncActiveOrdersUseCase
    from tradedesk.application.trading.sync_order_status import SyncOrderStatusUseCase
    from tradedesk.infrastructure.trading.order_repository import OrderRepositoryAdapter

    with ledger_and_broker(settings) as (engine, broker):
        order_repo = OrderRepositoryAdapter(engine)
        sync_order = SyncOrderStatusUseCase(
            broker=broker,
            order_repo=order_repo,
            reconcile=_reconcile_use_case(engine, broker),
        )
        result = SyncActiveOrdersUseCase(order_repo=order_repo, sync_order=sync_order).execute()

    if result.failed:
        logger.warning("%d of %d orders failed to sync", result.failed, result.checked)
        return EXIT_FAILURE
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("tradedesk.main:app", host=args.host, port=args.port, log_config=None)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tradedesk",
        description="Broker order ledger: API server and maintenance commands",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the ledger tables")
    init_parser.set_defaults(func=cmd_init_db)

    reconcile_parser = subparsers.add_parser(
        "reconcile-positions", help="Mirror broker positions into the ledger"
    )
    reconcile_parser.set_defaults(func=cmd_reconcile_positions)

    sync_parser = subparsers.add_parser(
        "sync-orders", help="Refresh all active orders from the broker"
    )
    sync_parser.set_defaults(func=cmd_sync_orders)

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument(
        "--host", default="127.0.0.1",
        help="Interface to bind (default 127.0.0.1)",
    )
    serve_parser.add_argument(
        "--port", type=int, default=8000,
        help="Port to listen on (default 8000)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging(level=settings.log_level)
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
