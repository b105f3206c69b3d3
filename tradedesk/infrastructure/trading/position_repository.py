"""
Adapter: Position repository.

Implements PositionRepository port.
The ``positions`` table mirrors the broker. ``replace_all`` rebuilds
it in one transaction, serialized within the process by a lock and
across processes by a PostgreSQL advisory lock.
"""

import logging
import threading
from typing import Optional

from sqlalchemy import select, text
from sqlalchemy.engine import Engine

from tradedesk.domain.trading.entities import Asset, AssetClass, Position, PositionSide
from tradedesk.domain.trading.ports import PositionRepository, ReplaceSummary
from tradedesk.infrastructure.trading.asset_repository import ensure_asset
from tradedesk.infrastructure.trading.database import is_postgres, utcnow
from tradedesk.infrastructure.trading.schema import positions

logger = logging.getLogger(__name__)

# Arbitrary but fixed key shared by every process reconciling this ledger.
RECONCILE_LOCK_KEY = 7_310_452

_replace_lock = threading.Lock()


def _row_to_position(row) -> Position:
    data = row._mapping
    return Position(
        id=data["id"],
        asset_id=data["asset_id"],
        symbol=data["symbol"],
        quantity=data["quantity"],
        side=PositionSide(data["side"]),
        asset_class=AssetClass(data["asset_class"]),
        avg_entry_price=data["avg_entry_price"],
        market_value=data["market_value"],
        cost_basis=data["cost_basis"],
        unrealized_pl=data["unrealized_pl"],
        unrealized_plpc=data["unrealized_plpc"],
        current_price=data["current_price"],
        last_updated=data["last_updated"],
    )


def _position_values(position: Position) -> dict:
    return {
        "quantity": position.quantity,
        "side": position.side.value,
        "asset_class": position.asset_class.value,
        "avg_entry_price": position.avg_entry_price,
        "market_value": position.market_value,
        "cost_basis": position.cost_basis,
        "unrealized_pl": position.unrealized_pl,
        "unrealized_plpc": position.unrealized_plpc,
        "current_price": position.current_price,
        "last_updated": position.last_updated,
    }


class PositionRepositoryAdapter(PositionRepository):
    """SQLAlchemy implementation of the mirrored position table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def list_all(self) -> list[Position]:
        stmt = select(positions).order_by(
            positions.c.market_value.desc(), positions.c.symbol.asc()
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_position(row) for row in rows]

    def get(self, symbol: str) -> Optional[Position]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(positions).where(positions.c.symbol == symbol.upper())
            ).first()
        return _row_to_position(row) if row is not None else None

    def replace_all(self, incoming: list[Position]) -> ReplaceSummary:
        """Upsert every incoming position and delete the rest.

        Args:
            incoming: The broker's full position list, one per symbol.

        Returns:
            ReplaceSummary with upserted and deleted counts.
        """
        with _replace_lock, self._engine.begin() as conn:
            if is_postgres(conn):
                conn.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": RECONCILE_LOCK_KEY},
                )

            existing = set(conn.execute(select(positions.c.symbol)).scalars())
            now = utcnow()

            for position in incoming:
                asset_id = ensure_asset(
                    conn, Asset.stub(position.symbol, position.asset_class)
                )
                values = _position_values(position)
                values["asset_id"] = asset_id
                if position.symbol in existing:
                    conn.execute(
                        positions.update()
                        .where(positions.c.symbol == position.symbol)
                        .values(**values)
                    )
                else:
                    conn.execute(
                        positions.insert().values(
                            symbol=position.symbol, created_at=now, **values
                        )
                    )
                position.asset_id = asset_id

            stale = existing - {p.symbol for p in incoming}
            if stale:
                conn.execute(positions.delete().where(positions.c.symbol.in_(sorted(stale))))

        logger.info(
            "Position mirror replaced: %d upserted, %d deleted",
            len(incoming),
            len(stale),
        )
        return ReplaceSummary(upserted=len(incoming), deleted=len(stale))
