"""
Use case: Mirror the broker's positions into the ledger.

Input:  none
Output: ReconcilePositionsResult (counts and total market value)
Side effects: replaces the positions table in one serialized transaction;
    creates stub assets for symbols the ledger has never seen.
Failure cases:
    - BrokerError: positions could not be fetched, ledger untouched
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from tradedesk.application.trading.dtos import ReconcilePositionsResult
from tradedesk.domain.trading.entities import ZERO, BrokerPosition, Position
from tradedesk.domain.trading.ports import BrokerPort, PositionRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_position(view: BrokerPosition, now: datetime) -> Position:
    return Position(
        symbol=view.symbol.upper(),
        quantity=abs(view.quantity),
        side=view.side,
        asset_class=view.asset_class,
        avg_entry_price=view.avg_entry_price,
        market_value=view.market_value,
        cost_basis=view.cost_basis,
        unrealized_pl=view.unrealized_pl,
        unrealized_plpc=view.unrealized_plpc,
        current_price=view.current_price,
        last_updated=now,
    )


class ReconcilePositionsUseCase:
    """Replaces the local position table with the broker's snapshot."""

    def __init__(
        self,
        broker: BrokerPort,
        position_repo: PositionRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._broker = broker
        self._position_repo = position_repo
        self._clock = clock

    def execute(self) -> ReconcilePositionsResult:
        views = self._broker.list_positions()
        now = self._clock()

        # One row per symbol; a repeated symbol keeps the last report.
        by_symbol: dict[str, Position] = {}
        for view in views:
            position = _to_position(view, now)
            by_symbol[position.symbol] = position
        positions = list(by_symbol.values())

        summary = self._position_repo.replace_all(positions)
        total_value = sum((p.market_value for p in positions), ZERO)
        logger.info(
            "Reconciled %d positions (%d upserted, %d deleted), total value %s",
            len(positions),
            summary.upserted,
            summary.deleted,
            total_value,
        )
        return ReconcilePositionsResult(
            positions_count=len(positions),
            upserted=summary.upserted,
            deleted=summary.deleted,
            total_value=total_value,
        )
