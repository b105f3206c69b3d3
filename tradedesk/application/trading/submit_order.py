"""
Use case: Submit a new order to the broker and record it in the ledger.

Input:  SubmitOrderCommand (symbol, quantity, side, type, time_in_force, prices, metadata)
Output: Order (with local id, external id and broker status)
Side effects:
    - one POST to the broker
    - one transaction inserting the asset (if unseen) and the order
Failure cases:
    - ValidationError: bad input, nothing sent, nothing written
    - BrokerError: broker refused or unreachable, nothing written
    - ConsistencyError: broker accepted but the ledger write failed, or the
      broker answered 2xx with a body that could not be read
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from tradedesk.application.trading.dtos import SubmitOrderCommand
from tradedesk.domain.trading.entities import (
    Asset,
    BrokerOrderRequest,
    Order,
    OrderSide,
    OrderType,
    TimeInForce,
    ZERO,
)
from tradedesk.domain.trading.errors import (
    BrokerError,
    BrokerReplyError,
    ConsistencyError,
    ValidationError,
)
from tradedesk.domain.trading.ports import AssetRepository, BrokerPort, OrderRepository

logger = logging.getLogger(__name__)

MAX_SYMBOL_LENGTH = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return parsed if parsed.is_finite() else None


def _parse_enum(enum_cls, value: Any):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


def _choices(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


def validate_order(command: SubmitOrderCommand) -> BrokerOrderRequest:
    """Check a submit command and build the broker request.

    Raises:
        ValidationError: With one message per offending field.
    """
    errors: dict[str, str] = {}

    symbol = (command.symbol or "").strip().upper()
    if not symbol:
        errors["symbol"] = "symbol is required"
    elif len(symbol) > MAX_SYMBOL_LENGTH:
        errors["symbol"] = f"symbol must be at most {MAX_SYMBOL_LENGTH} characters"

    quantity = _parse_decimal(command.quantity)
    if quantity is None:
        errors["quantity"] = "quantity must be a number"
    elif quantity <= 0:
        errors["quantity"] = "quantity must be greater than 0"

    side = _parse_enum(OrderSide, command.side)
    if side is None:
        errors["side"] = f"side must be one of: {_choices(OrderSide)}"

    order_type = _parse_enum(OrderType, command.order_type or OrderType.MARKET.value)
    if order_type is None:
        errors["type"] = f"type must be one of: {_choices(OrderType)}"

    time_in_force = _parse_enum(TimeInForce, command.time_in_force or TimeInForce.DAY.value)
    if time_in_force is None:
        errors["time_in_force"] = f"time_in_force must be one of: {_choices(TimeInForce)}"

    prices = {}
    for name in ("price", "stop_price"):
        raw = getattr(command, name)
        if raw is None:
            prices[name] = None
            continue
        parsed = _parse_decimal(raw)
        if parsed is None:
            errors[name] = f"{name} must be a number"
        elif parsed < 0:
            errors[name] = f"{name} must not be negative"
        prices[name] = parsed

    if errors:
        raise ValidationError(errors)

    return BrokerOrderRequest(
        symbol=symbol,
        quantity=quantity,
        side=side,
        order_type=order_type,
        time_in_force=time_in_force,
        limit_price=prices["price"],
        stop_price=prices["stop_price"],
    )


class SubmitOrderUseCase:
    """Places an order with the broker, then records it locally.

    Network calls (asset lookup, order submit) happen before the ledger
    transaction opens; the transaction only covers the two inserts.
    """

    def __init__(
        self,
        broker: BrokerPort,
        order_repo: OrderRepository,
        asset_repo: AssetRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._broker = broker
        self._order_repo = order_repo
        self._asset_repo = asset_repo
        self._clock = clock

    def execute(self, command: SubmitOrderCommand) -> Order:
        """Validate, submit and record an order.

        Args:
            command: Unparsed order fields from the caller.

        Returns:
            The recorded Order.

        Raises:
            ValidationError, BrokerError, ConsistencyError.
        """
        request = validate_order(command)
        asset = self._resolve_asset(request.symbol)

        try:
            broker_order = self._broker.submit_order(request)
        except BrokerReplyError as exc:
            self._report_unrecorded(exc.external_id, request, exc.upstream_message)
            raise ConsistencyError(exc.external_id, request.symbol, exc.upstream_message) from exc

        order = Order(
            symbol=request.symbol,
            side=request.side,
            order_type=request.order_type,
            time_in_force=request.time_in_force,
            quantity=request.quantity,
            price=request.limit_price,
            stop_price=request.stop_price,
            status=broker_order.status,
            external_id=broker_order.id,
            filled_quantity=ZERO,
            submitted_at=self._clock(),
            metadata={
                "broker_order": broker_order.raw,
                "user_metadata": dict(command.metadata or {}),
            },
        )

        try:
            recorded = self._order_repo.add(order, asset)
        except Exception as exc:
            self._report_unrecorded(broker_order.id, request, exc)
            raise ConsistencyError(broker_order.id, request.symbol, str(exc)) from exc

        logger.info(
            "Order %s recorded: %s %s %s (%s), broker id %s",
            recorded.id,
            recorded.side.value,
            recorded.quantity,
            recorded.symbol,
            recorded.status.value,
            recorded.external_id,
        )
        return recorded

    def _report_unrecorded(
        self, external_id: Optional[str], request: BrokerOrderRequest, reason: Any
    ) -> None:
        logger.error(
            "MANUAL_RECONCILIATION_REQUIRED broker order %s (%s %s %s) "
            "accepted but not recorded: %s",
            external_id or "unknown",
            request.side.value,
            request.quantity,
            request.symbol,
            reason,
        )

    def _resolve_asset(self, symbol: str) -> Asset:
        """Ledger first, then the broker, then a stub."""
        asset = self._asset_repo.get_by_symbol(symbol)
        if asset is not None:
            return asset
        try:
            return self._broker.get_asset(symbol)
        except BrokerError as exc:
            logger.warning("Asset lookup for %s failed (%s); using a stub", symbol, exc.message)
            return Asset.stub(symbol)
