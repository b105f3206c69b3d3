"""
Use case: Refresh every non-terminal order from the broker.

Input:  none
Output: SyncActiveOrdersResult (checked, updated, failed, positions_reconciled)
Side effects: one broker GET and ledger update per active or settling order, then at
    most one position reconciliation for the whole batch.

Meant to be run periodically from cron via ``tradedesk sync-orders``.
A failure on one order is logged and counted; the batch carries on.
"""

import logging

from tradedesk.application.trading.dtos import SyncActiveOrdersResult
from tradedesk.application.trading.sync_order_status import SyncOrderStatusUseCase
from tradedesk.domain.trading.order_state import SYNCABLE_STATUSES
from tradedesk.domain.trading.ports import OrderRepository

logger = logging.getLogger(__name__)


class SyncActiveOrdersUseCase:
    """Batch version of SyncOrderStatusUseCase over all non-terminal orders."""

    def __init__(self, order_repo: OrderRepository, sync_order: SyncOrderStatusUseCase) -> None:
        self._order_repo = order_repo
        self._sync_order = sync_order

    def execute(self) -> SyncActiveOrdersResult:
        orders = self._order_repo.list_by_status(SYNCABLE_STATUSES)
        updated = failed = 0
        fills = False

        for order in orders:
            previous = (order.status, order.filled_quantity)
            try:
                result = self._sync_order.sync(order, reconcile=False)
            except Exception:
                failed += 1
                logger.exception("Sync failed for order %s (broker id %s)", order.id, order.external_id)
                continue
            if (result.order.status, result.order.filled_quantity) != previous:
                updated += 1
            fills = fills or result.fill_observed

        reconciled = self._sync_order.reconcile_positions() if fills else False
        logger.info(
            "Active order sync: %d checked, %d updated, %d failed, positions reconciled: %s",
            len(orders),
            updated,
            failed,
            reconciled,
        )
        return SyncActiveOrdersResult(
            checked=len(orders),
            updated=updated,
            failed=failed,
            positions_reconciled=reconciled,
        )
