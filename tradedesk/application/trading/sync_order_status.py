"""
Use case: Refresh one order from the broker.

Input:  order_id, reconcile flag
Output: SyncOrderResult (order, fill_observed, positions_reconciled)
Side effects:
    - one GET to the broker and one ledger update
    - a position reconciliation when the order has (partially) filled
Failure cases:
    - OrderNotFoundError: unknown id
    - InvalidStateError: order has no external id
    - BrokerError: broker lookup failed, row unchanged

A failed reconciliation does not undo the sync; it is logged and
reported as ``positions_reconciled=False``.
"""

import logging
from typing import Optional

from tradedesk.application.trading.dtos import SyncOrderResult
from tradedesk.application.trading.reconcile_positions import ReconcilePositionsUseCase
from tradedesk.domain.trading.entities import Order
from tradedesk.domain.trading.errors import OrderNotFoundError
from tradedesk.domain.trading.order_state import (
    FILL_STATUSES,
    merge_broker_view,
    require_external_id,
)
from tradedesk.domain.trading.ports import BrokerPort, OrderRepository

logger = logging.getLogger(__name__)


class SyncOrderStatusUseCase:
    """Merges the broker's view of an order into the ledger."""

    def __init__(
        self,
        broker: BrokerPort,
        order_repo: OrderRepository,
        reconcile: Optional[ReconcilePositionsUseCase] = None,
    ) -> None:
        self._broker = broker
        self._order_repo = order_repo
        self._reconcile = reconcile

    def execute(self, order_id: int, reconcile: bool = True) -> SyncOrderResult:
        """Sync one order.

        Args:
            order_id: Local ledger id.
            reconcile: Run a position reconciliation after a fill.
                Batch callers pass False and reconcile once themselves.
        """
        order = self._order_repo.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return self.sync(order, reconcile=reconcile)

    def sync(self, order: Order, reconcile: bool = True) -> SyncOrderResult:
        external_id = require_external_id(order)
        view = self._broker.get_order(external_id)

        outcome = merge_broker_view(order, view)
        self._order_repo.update(order)
        if outcome.status_changed:
            logger.info(
                "Order %s status %s -> %s",
                order.id,
                outcome.previous_status.value,
                order.status.value,
            )

        fill_observed = order.status in FILL_STATUSES
        reconciled = False
        if fill_observed and reconcile:
            reconciled = self.reconcile_positions()

        return SyncOrderResult(
            order=order,
            fill_observed=fill_observed,
            positions_reconciled=reconciled,
        )

    def reconcile_positions(self) -> bool:
        """Run a reconciliation; return False (and log) if it fails."""
        if self._reconcile is None:
            return False
        try:
            self._reconcile.execute()
        except Exception:
            logger.exception("Position reconciliation after order sync failed")
            return False
        return True
