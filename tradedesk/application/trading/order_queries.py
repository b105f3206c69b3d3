"""
Use cases: Read orders from the ledger.

ListOrdersUseCase pages through orders newest first with optional
symbol / status / side filters. GetOrderUseCase returns one order or
raises OrderNotFoundError. Neither touches the broker.
"""

from tradedesk.application.trading.dtos import ListOrdersQuery, OrderPage
from tradedesk.domain.trading.entities import Order, OrderSide, OrderStatus
from tradedesk.domain.trading.errors import OrderNotFoundError, ValidationError
from tradedesk.domain.trading.ports import OrderRepository

MAX_PER_PAGE = 100


def _filter_value(enum_cls, value, field_name, errors):
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        errors[field_name] = f"unknown {field_name} '{value}'"
        return None


class ListOrdersUseCase:
    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def execute(self, query: ListOrdersQuery) -> OrderPage:
        errors: dict[str, str] = {}
        status = _filter_value(OrderStatus, query.status, "status", errors)
        side = _filter_value(OrderSide, query.side, "side", errors)
        if query.page < 1:
            errors["page"] = "page must be at least 1"
        if not 1 <= query.per_page <= MAX_PER_PAGE:
            errors["per_page"] = f"per_page must be between 1 and {MAX_PER_PAGE}"
        if errors:
            raise ValidationError(errors)

        symbol = query.symbol.strip().upper() if query.symbol else None
        items = self._order_repo.find(
            symbol=symbol,
            status=status,
            side=side,
            offset=(query.page - 1) * query.per_page,
            limit=query.per_page,
        )
        total = self._order_repo.count(symbol=symbol, status=status, side=side)
        return OrderPage(items=items, total=total, page=query.page, per_page=query.per_page)


class GetOrderUseCase:
    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def execute(self, order_id: int) -> Order:
        order = self._order_repo.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

