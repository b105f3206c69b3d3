"""
Adapter: Order repository.

Implements OrderRepository port.
Responsible for persisting and retrieving orders from the ``trades``
table. Rows are only ever inserted or updated; nothing here deletes.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from tradedesk.domain.trading.entities import (
    Asset,
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
    TimeInForce,
)
from tradedesk.domain.trading.ports import OrderRepository
from tradedesk.infrastructure.trading.asset_repository import ensure_asset
from tradedesk.infrastructure.trading.database import utcnow
from tradedesk.infrastructure.trading.schema import trades


def _row_to_order(row) -> Order:
    data = row._mapping
    return Order(
        id=data["id"],
        external_id=data["external_id"],
        asset_id=data["asset_id"],
        symbol=data["symbol"],
        side=OrderSide(data["side"]),
        order_type=OrderType(data["order_type"]),
        time_in_force=TimeInForce(data["time_in_force"]),
        quantity=data["quantity"],
        price=data["price"],
        stop_price=data["stop_price"],
        filled_quantity=data["filled_quantity"],
        filled_avg_price=data["filled_avg_price"],
        status=OrderStatus(data["status"]),
        submitted_at=data["submitted_at"],
        filled_at=data["filled_at"],
        canceled_at=data["canceled_at"],
        expired_at=data["expired_at"],
        metadata=data["order_metadata"] or {},
        created_at=data["created_at"],
        updated_at=data["updated_at"],
    )


def _lifecycle_values(order: Order) -> dict:
    return {
        "status": order.status.value,
        "filled_quantity": order.filled_quantity,
        "filled_avg_price": order.filled_avg_price,
        "submitted_at": order.submitted_at,
        "filled_at": order.filled_at,
        "canceled_at": order.canceled_at,
        "expired_at": order.expired_at,
    }


def _apply_filters(stmt, symbol, status, side):
    if symbol:
        stmt = stmt.where(trades.c.symbol == symbol.upper())
    if status is not None:
        stmt = stmt.where(trades.c.status == status.value)
    if side is not None:
        stmt = stmt.where(trades.c.side == side.value)
    return stmt


class OrderRepositoryAdapter(OrderRepository):
    """SQLAlchemy implementation of the order ledger."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def add(self, order: Order, asset: Asset) -> Order:
        """Insert the asset if unknown and then the order, atomically.

        Args:
            order: Order carrying the broker's external id.
            asset: Reference data for the order's symbol.

        Returns:
            The same order with ``id``, ``asset_id`` and timestamps set.
        """
        now = utcnow()
        with self._engine.begin() as conn:
            asset_id = asset.id if asset.id is not None else ensure_asset(conn, asset)
            result = conn.execute(
                trades.insert().values(
                    external_id=order.external_id,
                    asset_id=asset_id,
                    symbol=order.symbol,
                    side=order.side.value,
                    order_type=order.order_type.value,
                    time_in_force=order.time_in_force.value,
                    quantity=order.quantity,
                    price=order.price,
                    stop_price=order.stop_price,
                    order_metadata=order.metadata,
                    created_at=now,
                    updated_at=now,
                    **_lifecycle_values(order),
                )
            )
            order_id = result.inserted_primary_key[0]

        order.id = order_id
        order.asset_id = asset_id
        order.created_at = now
        order.updated_at = now
        return order

    def get(self, order_id: int) -> Optional[Order]:
        with self._engine.connect() as conn:
            row = conn.execute(select(trades).where(trades.c.id == order_id)).first()
        return _row_to_order(row) if row is not None else None

    def update(self, order: Order) -> None:
        now = utcnow()
        with self._engine.begin() as conn:
            conn.execute(
                trades.update()
                .where(trades.c.id == order.id)
                .values(updated_at=now, **_lifecycle_values(order))
            )
        order.updated_at = now

    def find(
        self,
        symbol: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        side: Optional[OrderSide] = None,
        offset: int = 0,
        limit: int = 25,
    ) -> list[Order]:
        stmt = _apply_filters(select(trades), symbol, status, side)
        stmt = stmt.order_by(trades.c.created_at.desc(), trades.c.id.desc())
        stmt = stmt.offset(offset).limit(limit)
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_order(row) for row in rows]

    def count(
        self,
        symbol: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        side: Optional[OrderSide] = None,
    ) -> int:
        stmt = _apply_filters(select(func.count()).select_from(trades), symbol, status, side)
        with self._engine.connect() as conn:
            return conn.execute(stmt).scalar_one()

    def list_created_between(self, start: datetime, end: datetime) -> list[Order]:
        stmt = (
            select(trades)
            .where(trades.c.created_at >= start, trades.c.created_at <= end)
            .order_by(trades.c.created_at.asc(), trades.c.id.asc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_order(row) for row in rows]

    def list_by_status(self, statuses: frozenset[OrderStatus]) -> list[Order]:
        if not statuses:
            return []
        stmt = (
            select(trades)
            .where(trades.c.status.in_(sorted(s.value for s in statuses)))
            .order_by(trades.c.created_at.asc(), trades.c.id.asc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_order(row) for row in rows]
