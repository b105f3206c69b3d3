"""
Order lifecycle rules.

    pending_new/new/accepted/held -> partially_filled -> filled
    working -> canceled | expired | rejected | replaced

Every status falls in exactly one group:

    terminal  filled, canceled, expired, rejected, replaced
    active    the working statuses plus done_for_day and the broker
              transients pending_cancel and pending_replace; these can
              be canceled (except pending_cancel) and are synced
    settling  stopped, suspended, calculated; the broker no longer
              accepts a cancel, but the order is still synced until it
              settles into a terminal status

Terminal statuses never move back to a non-terminal one, and a partially
filled order never drops back to a pre-fill working status. PENDING_CANCEL
and PENDING_REPLACE pass through verbatim. Broker views are merged into
the local order here so that sync never lowers the filled quantity and
never clears a timestamp.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tradedesk.domain.trading.entities import BrokerOrder, Order, OrderStatus
from tradedesk.domain.trading.errors import InvalidStateError

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.FILLED,
        OrderStatus.CANCELED,
        OrderStatus.EXPIRED,
        OrderStatus.REJECTED,
        OrderStatus.REPLACED,
    }
)

ACTIVE_STATUSES = frozenset(
    {
        OrderStatus.NEW,
        OrderStatus.ACCEPTED,
        OrderStatus.PENDING_NEW,
        OrderStatus.PARTIALLY_FILLED,
        OrderStatus.ACCEPTED_FOR_BIDDING,
        OrderStatus.HELD,
        OrderStatus.DONE_FOR_DAY,
        OrderStatus.PENDING_CANCEL,
        OrderStatus.PENDING_REPLACE,
    }
)

SETTLING_STATUSES = frozenset(
    {
        OrderStatus.STOPPED,
        OrderStatus.SUSPENDED,
        OrderStatus.CALCULATED,
    }
)

# Statuses the batch sync refreshes from the broker.
SYNCABLE_STATUSES = ACTIVE_STATUSES | SETTLING_STATUSES

FILL_STATUSES = frozenset({OrderStatus.FILLED, OrderStatus.PARTIALLY_FILLED})

# Progress of a working order; a lower rank never replaces a higher one.
_WORKING_RANK = {
    OrderStatus.PENDING_NEW: 0,
    OrderStatus.NEW: 0,
    OrderStatus.ACCEPTED: 0,
    OrderStatus.ACCEPTED_FOR_BIDDING: 0,
    OrderStatus.HELD: 0,
    OrderStatus.PARTIALLY_FILLED: 1,
}


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_active(status: OrderStatus) -> bool:
    return status in ACTIVE_STATUSES


def can_be_canceled(order: Order) -> bool:
    """True when a cancel request for this order makes sense."""
    return is_active(order.status) and order.status is not OrderStatus.PENDING_CANCEL


def require_external_id(order: Order) -> str:
    """Return the broker id or raise InvalidStateError."""
    if not order.external_id:
        raise InvalidStateError(order.id, "order has no external id")
    return order.external_id


def ensure_cancelable(order: Order) -> str:
    """Check that ``order`` may be canceled and return its broker id."""
    external_id = require_external_id(order)
    if not can_be_canceled(order):
        raise InvalidStateError(
            order.id, f"cannot cancel an order in status '{order.status.value}'"
        )
    return external_id


def mark_canceled(order: Order, now: datetime) -> None:
    order.status = OrderStatus.CANCELED
    order.canceled_at = now


def _is_regression(current: OrderStatus, reported: OrderStatus) -> bool:
    if is_terminal(current):
        return not is_terminal(reported)
    if current in _WORKING_RANK and reported in _WORKING_RANK:
        return _WORKING_RANK[reported] < _WORKING_RANK[current]
    return False


def _next_status(current: OrderStatus, reported: OrderStatus) -> OrderStatus:
    return current if _is_regression(current, reported) else reported


def _keep_timestamp(current: Optional[datetime], reported: Optional[datetime]) -> Optional[datetime]:
    return reported if reported is not None else current


@dataclass(frozen=True)
class MergeOutcome:
    """What changed when a broker view was merged into a local order."""

    previous_status: OrderStatus
    status_changed: bool
    status_held: bool
    fill_clamped: bool


def merge_broker_view(order: Order, view: BrokerOrder) -> MergeOutcome:
    """Overwrite local lifecycle fields with the broker's view.

    Args:
        order: The local order, mutated in place.
        view: The broker's current view of the same order.

    Returns:
        A MergeOutcome describing what happened.
    """
    previous = order.status
    status = _next_status(previous, view.status)
    held = status is not view.status
    if held:
        logger.warning(
            "Ignoring broker status %s for order %s; keeping %s",
            view.status.value,
            order.id,
            previous.value,
        )
    order.status = status

    filled = max(order.filled_quantity, view.filled_quantity)
    clamped = filled > order.quantity
    if clamped:
        logger.warning(
            "Broker reports filled %s above requested %s for order %s; clamping",
            filled,
            order.quantity,
            order.id,
        )
        filled = order.quantity
    order.filled_quantity = filled

    if view.filled_avg_price is not None:
        order.filled_avg_price = view.filled_avg_price

    order.filled_at = _keep_timestamp(order.filled_at, view.filled_at)
    order.canceled_at = _keep_timestamp(order.canceled_at, view.canceled_at)
    order.expired_at = _keep_timestamp(order.expired_at, view.expired_at)

    return MergeOutcome(
        previous_status=previous,
        status_changed=status is not previous,
        status_held=held,
        fill_clamped=clamped,
    )
