"""
Broker wire schemas.

Pydantic models for the JSON bodies returned by the broker REST API.
The broker sends most numbers as strings; they are parsed to Decimal
here so nothing past this module sees raw broker JSON except the
order's ``raw`` copy kept for audit.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _BrokerModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BrokerOrderSchema(_BrokerModel):
    id: str
    symbol: str
    status: str
    filled_qty: Decimal = Decimal("0")
    filled_avg_price: Optional[Decimal] = None
    submitted_at: Optional[datetime] = None
    filled_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None


class BrokerPositionSchema(_BrokerModel):
    symbol: str
    qty: Decimal
    side: str = "long"
    asset_class: str = "us_equity"
    avg_entry_price: Decimal
    market_value: Decimal = Decimal("0")
    cost_basis: Decimal = Decimal("0")
    unrealized_pl: Decimal = Decimal("0")
    unrealized_plpc: Decimal = Decimal("0")
    current_price: Optional[Decimal] = None
    lastday_price: Optional[Decimal] = None


class BrokerAccountSchema(_BrokerModel):
    equity: Decimal
    cash: Decimal
    buying_power: Decimal
    portfolio_value: Optional[Decimal] = None
    daytrade_count: int = 0
    pattern_day_trader: bool = False


class BrokerAssetSchema(_BrokerModel):
    symbol: str
    name: Optional[str] = None
    asset_class: str = Field(default="us_equity", alias="class")
    tradable: bool = True
    marginable: bool = False
    shortable: bool = False
    min_order_size: Optional[Decimal] = None
    min_trade_increment: Optional[Decimal] = None
    attributes: Optional[list[str]] = None
