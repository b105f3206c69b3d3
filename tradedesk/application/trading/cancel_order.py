"""
Use case: Cancel a working order.

Input:  order_id (local ledger id)
Output: CancelOrderResult (trade_id, status)
Side effects: one DELETE to the broker, then one ledger update.
Failure cases:
    - OrderNotFoundError: unknown id
    - InvalidStateError: no external id, or not cancelable (row unchanged)
    - BrokerError: broker refused (row unchanged)
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from tradedesk.application.trading.dtos import CancelOrderResult
from tradedesk.domain.trading.errors import OrderNotFoundError
from tradedesk.domain.trading.order_state import ensure_cancelable, mark_canceled
from tradedesk.domain.trading.ports import BrokerPort, OrderRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CancelOrderUseCase:
    """Asks the broker to cancel an order and records the cancellation."""

    def __init__(
        self,
        broker: BrokerPort,
        order_repo: OrderRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._broker = broker
        self._order_repo = order_repo
        self._clock = clock

    def execute(self, order_id: int) -> CancelOrderResult:
        order = self._order_repo.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        external_id = ensure_cancelable(order)
        self._broker.cancel_order(external_id)

        mark_canceled(order, self._clock())
        self._order_repo.update(order)
        logger.info("Order %s canceled (broker id %s)", order.id, external_id)
        return CancelOrderResult(trade_id=order.id, status=order.status.value)
