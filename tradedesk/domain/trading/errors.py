"""
Domain-specific errors for the trading bounded context.

All errors raised from the domain and application layers are defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from typing import Optional


class TradingDomainError(Exception):
    """Base error for all trading domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(TradingDomainError):
    """Raised when an order request fails validation.

    Attributes:
        field_errors: Mapping of field name to a human-readable problem.
    """

    def __init__(self, field_errors: dict[str, str]) -> None:
        summary = "; ".join(f"{name}: {problem}" for name, problem in field_errors.items())
        super().__init__(f"Validation failed: {summary}")
        self.field_errors = field_errors


class BrokerError(TradingDomainError):
    """Raised when the broker rejects a request or cannot be reached.

    Attributes:
        status_code: Upstream HTTP status, or None for transport failures.
        upstream_message: The broker's own explanation, when it gave one.
    """

    def __init__(self, upstream_message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Broker request failed ({status_code}): {upstream_message}")
        self.status_code = status_code
        self.upstream_message = upstream_message


class BrokerReplyError(BrokerError):
    """Raised when a successful broker response cannot be read.

    The request itself went through, so for a submit the order may exist
    at the broker. ``external_id`` is the broker id when the body carried
    one.
    """

    def __init__(self, upstream_message: str, external_id: Optional[str] = None) -> None:
        super().__init__(upstream_message)
        self.external_id = external_id


class NotFoundError(TradingDomainError):
    """Base error for ledger lookups that found nothing."""


class OrderNotFoundError(NotFoundError):
    """Raised when an order id is unknown to the ledger."""

    def __init__(self, order_id: int) -> None:
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class PositionNotFoundError(NotFoundError):
    """Raised when no position is held for a symbol."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Position not found: {symbol}")
        self.symbol = symbol


class InvalidStateError(TradingDomainError):
    """Raised when an operation is not allowed in the order's current state."""

    def __init__(self, order_id: Optional[int], reason: str) -> None:
        super().__init__(f"Invalid state for order {order_id}: {reason}")
        self.order_id = order_id
        self.reason = reason


class ConsistencyError(TradingDomainError):
    """Raised when the broker accepted an order the ledger failed to record.

    There is no automatic fix: the broker order exists without a local
    row and must be reconciled by hand using ``external_id``, which is
    None when the broker reply was unreadable.
    """

    def __init__(self, external_id: Optional[str], symbol: str, reason: str) -> None:
        super().__init__(
            f"Broker order {external_id} ({symbol}) was accepted but not recorded: {reason}"
        )
        self.external_id = external_id
        self.symbol = symbol
        self.reason = reason
