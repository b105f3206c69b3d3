"""
Adapter: Asset repository.

Implements AssetRepository port.
Reads instrument reference data from the ``assets`` table and owns
the get-or-create step the other repositories use inside their
own transactions.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine

from tradedesk.domain.trading.entities import Asset, AssetClass
from tradedesk.domain.trading.ports import AssetRepository
from tradedesk.infrastructure.trading.database import utcnow
from tradedesk.infrastructure.trading.schema import assets


def _row_to_asset(row) -> Asset:
    data = row._mapping
    return Asset(
        id=data["id"],
        symbol=data["symbol"],
        name=data["name"],
        asset_class=AssetClass(data["asset_class"]),
        tradable=data["tradable"],
        marginable=data["marginable"],
        shortable=data["shortable"],
        min_order_size=data["min_order_size"],
        min_trade_increment=data["min_trade_increment"],
        attributes=data["attributes"],
    )


def ensure_asset(conn: Connection, asset: Asset) -> int:
    """Insert ``asset`` unless its symbol already exists; return the row id.

    Runs on the caller's connection so it joins the caller's transaction.
    A concurrent insert of the same symbol is absorbed by ON CONFLICT.
    """
    now = utcnow()
    values = {
        "symbol": asset.symbol,
        "name": asset.name,
        "asset_class": asset.asset_class.value,
        "tradable": asset.tradable,
        "marginable": asset.marginable,
        "shortable": asset.shortable,
        "min_order_size": asset.min_order_size,
        "min_trade_increment": asset.min_trade_increment,
        "attributes": asset.attributes,
        "created_at": now,
        "updated_at": now,
    }

    dialect = conn.dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(assets).values(**values).on_conflict_do_nothing(
            index_elements=["symbol"]
        )
        conn.execute(stmt)
    elif dialect == "sqlite":
        stmt = sqlite.insert(assets).values(**values).on_conflict_do_nothing(
            index_elements=["symbol"]
        )
        conn.execute(stmt)
    else:
        existing = conn.execute(
            select(assets.c.id).where(assets.c.symbol == asset.symbol)
        ).scalar()
        if existing is not None:
            return existing
        conn.execute(assets.insert().values(**values))

    return conn.execute(
        select(assets.c.id).where(assets.c.symbol == asset.symbol)
    ).scalar_one()


class AssetRepositoryAdapter(AssetRepository):
    """SQLAlchemy implementation of the asset repository."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_by_symbol(self, symbol: str) -> Optional[Asset]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(assets).where(assets.c.symbol == symbol)
            ).first()
        return _row_to_asset(row) if row is not None else None
