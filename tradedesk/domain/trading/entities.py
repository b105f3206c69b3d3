"""
Domain entities for the trading bounded context.

Entities represent core business objects with identity and lifecycle.
Broker views are point-in-time snapshots returned by the broker port;
the ledger copies them inward but never hands them back.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class OrderSide(Enum):
    """Direction of an order."""

    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    """Pricing instruction of an order."""

    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    STOP_LIMIT = "stop_limit"


class TimeInForce(Enum):
    """How long an order stays working at the broker."""

    DAY = "day"
    GTC = "gtc"
    IOC = "ioc"
    FOK = "fok"


class OrderStatus(Enum):
    """Order status as reported by the broker.

    Transient statuses such as PENDING_CANCEL and PENDING_REPLACE are
    stored verbatim; see ``order_state`` for the transition rules.
    """

    NEW = "new"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    DONE_FOR_DAY = "done_for_day"
    CANCELED = "canceled"
    EXPIRED = "expired"
    REPLACED = "replaced"
    PENDING_CANCEL = "pending_cancel"
    PENDING_REPLACE = "pending_replace"
    ACCEPTED = "accepted"
    PENDING_NEW = "pending_new"
    ACCEPTED_FOR_BIDDING = "accepted_for_bidding"
    STOPPED = "stopped"
    REJECTED = "rejected"
    SUSPENDED = "suspended"
    CALCULATED = "calculated"
    HELD = "held"


class PositionSide(Enum):
    """Direction of a held position."""

    LONG = "long"
    SHORT = "short"


class AssetClass(Enum):
    """Broad instrument category."""

    US_EQUITY = "us_equity"
    CRYPTO = "crypto"
    FOREX = "forex"
    COMMODITY = "commodity"


ZERO = Decimal("0")


@dataclass
class Asset:
    """Static reference data for a tradable symbol."""

    symbol: str
    name: str
    asset_class: AssetClass = AssetClass.US_EQUITY
    tradable: bool = True
    marginable: bool = False
    shortable: bool = False
    min_order_size: Optional[Decimal] = None
    min_trade_increment: Optional[Decimal] = None
    attributes: Optional[list[str]] = None
    id: Optional[int] = None

    @classmethod
    def stub(cls, symbol: str, asset_class: AssetClass = AssetClass.US_EQUITY) -> "Asset":
        """Minimal record used when the broker cannot describe the symbol."""
        return cls(symbol=symbol, name=symbol, asset_class=asset_class, tradable=True)


@dataclass
class Order:
    """A single buy/sell instruction and its lifecycle state.

    The local ``id`` is assigned by the ledger on insert. ``external_id``
    is the broker's identifier; it is set once and never changes.
    """

    symbol: str
    side: OrderSide
    order_type: OrderType
    time_in_force: TimeInForce
    quantity: Decimal
    status: OrderStatus
    external_id: Optional[str] = None
    price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    filled_quantity: Decimal = ZERO
    filled_avg_price: Optional[Decimal] = None
    submitted_at: Optional[datetime] = None
    filled_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    asset_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def filled_value(self) -> Decimal:
        if not self.filled_quantity or self.filled_avg_price is None:
            return ZERO
        return self.filled_quantity * self.filled_avg_price

    @property
    def unfilled_quantity(self) -> Decimal:
        return self.quantity - self.filled_quantity

    @property
    def fill_percentage(self) -> Decimal:
        if self.quantity <= 0:
            return ZERO
        return self.filled_quantity / self.quantity * 100


@dataclass
class Position:
    """Current net holding in one instrument, mirrored from the broker."""

    symbol: str
    quantity: Decimal
    side: PositionSide
    avg_entry_price: Decimal
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_plpc: Decimal
    current_price: Decimal
    asset_class: AssetClass = AssetClass.US_EQUITY
    last_updated: Optional[datetime] = None
    asset_id: Optional[int] = None
    id: Optional[int] = None

    def weight(self, total_value: Decimal) -> Decimal:
        """Percentage of ``total_value`` held in this position."""
        if total_value <= 0:
            return ZERO
        return abs(self.market_value) / total_value * 100

    def is_stale(self, now: datetime, minutes: int = 15) -> bool:
        if self.last_updated is None:
            return False
        last = self.last_updated
        if last.tzinfo is None and now.tzinfo is not None:
            now = now.replace(tzinfo=None)
        return now - last > timedelta(minutes=minutes)

    def status_indicator(self, now: datetime, stale_minutes: int = 15) -> str:
        if self.is_stale(now, stale_minutes):
            return "stale"
        if self.unrealized_pl > 0:
            return "profit"
        if self.unrealized_pl < 0:
            return "loss"
        return "neutral"


# ------------------------------------------------------------------
# Broker views
# ------------------------------------------------------------------


@dataclass(frozen=True)
class BrokerOrderRequest:
    """Order instruction sent to the broker."""

    symbol: str
    quantity: Decimal
    side: OrderSide
    order_type: OrderType
    time_in_force: TimeInForce
    limit_price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None


@dataclass(frozen=True)
class BrokerOrder:
    """The broker's current view of one order."""

    id: str
    symbol: str
    status: OrderStatus
    filled_quantity: Decimal = ZERO
    filled_avg_price: Optional[Decimal] = None
    submitted_at: Optional[datetime] = None
    filled_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BrokerPosition:
    """The broker's current view of one holding."""

    symbol: str
    quantity: Decimal
    side: PositionSide
    avg_entry_price: Decimal
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_plpc: Decimal
    current_price: Decimal
    asset_class: AssetClass = AssetClass.US_EQUITY


@dataclass(frozen=True)
class BrokerAccount:
    """Account balances reported by the broker."""

    equity: Decimal
    cash: Decimal
    buying_power: Decimal
    portfolio_value: Decimal
    day_trade_count: int = 0
    pattern_day_trader: bool = False
