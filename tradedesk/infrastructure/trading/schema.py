"""
Ledger table definitions.

SQLAlchemy Core metadata for the three ledger tables. ``trades`` is
append-only; ``positions`` is a mirror of the broker rebuilt on every
reconciliation; ``assets`` is reference data created lazily.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    UniqueConstraint,
)

metadata = MetaData()

QUANTITY = Numeric(18, 6)
PRICE = Numeric(18, 6)
MONEY = Numeric(18, 2)

assets = Table(
    "assets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("symbol", String(10), nullable=False),
    Column("name", String(255), nullable=False),
    Column("asset_class", String(20), nullable=False, default="us_equity"),
    Column("tradable", Boolean, nullable=False, default=True),
    Column("marginable", Boolean, nullable=False, default=False),
    Column("shortable", Boolean, nullable=False, default=False),
    Column("min_order_size", QUANTITY),
    Column("min_trade_increment", QUANTITY),
    Column("attributes", JSON),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("symbol", name="uq_assets_symbol"),
)

trades = Table(
    "trades",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("external_id", String(64)),
    Column("asset_id", Integer, ForeignKey("assets.id"), nullable=False),
    Column("symbol", String(10), nullable=False),
    Column("side", String(4), nullable=False),
    Column("order_type", String(16), nullable=False),
    Column("time_in_force", String(8), nullable=False, default="day"),
    Column("quantity", QUANTITY, nullable=False),
    Column("price", PRICE),
    Column("stop_price", PRICE),
    Column("filled_quantity", QUANTITY, nullable=False, default=0),
    Column("filled_avg_price", PRICE),
    Column("status", String(32), nullable=False, default="new"),
    Column("submitted_at", DateTime(timezone=True)),
    Column("filled_at", DateTime(timezone=True)),
    Column("canceled_at", DateTime(timezone=True)),
    Column("expired_at", DateTime(timezone=True)),
    Column("order_metadata", JSON),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("external_id", name="uq_trades_external_id"),
    CheckConstraint("quantity > 0", name="ck_trades_quantity_positive"),
    CheckConstraint("filled_quantity <= quantity", name="ck_trades_fill_within_quantity"),
    Index("ix_trades_symbol_status", "symbol", "status"),
    Index("ix_trades_status_created_at", "status", "created_at"),
)

positions = Table(
    "positions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("asset_id", Integer, ForeignKey("assets.id")),
    Column("symbol", String(10), nullable=False),
    Column("quantity", QUANTITY, nullable=False),
    Column("side", String(5), nullable=False),
    Column("asset_class", String(20), nullable=False, default="us_equity"),
    Column("avg_entry_price", PRICE, nullable=False),
    Column("market_value", MONEY, nullable=False),
    Column("cost_basis", MONEY, nullable=False),
    Column("unrealized_pl", MONEY, nullable=False),
    Column("unrealized_plpc", Numeric(12, 6), nullable=False),
    Column("current_price", PRICE, nullable=False),
    Column("last_updated", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True)),
    UniqueConstraint("symbol", name="uq_positions_symbol"),
)
