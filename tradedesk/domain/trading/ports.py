"""
Port interfaces (ABCs) for the trading bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tradedesk.domain.trading.entities import (
    Asset,
    BrokerAccount,
    BrokerOrder,
    BrokerOrderRequest,
    BrokerPosition,
    Order,
    OrderSide,
    OrderStatus,
    Position,
)


class BrokerPort(ABC):
    """Port for the remote trading venue.

    Every method either returns a parsed broker view or raises
    BrokerError. Implementations never retry and never persist state.
    """

    @abstractmethod
    def submit_order(self, request: BrokerOrderRequest) -> BrokerOrder:
        """Submit a new order and return the broker's immediate view of it."""
        raise NotImplementedError

    @abstractmethod
    def cancel_order(self, external_id: str) -> None:
        """Request cancellation of a working order."""
        raise NotImplementedError

    @abstractmethod
    def get_order(self, external_id: str) -> BrokerOrder:
        """Return the broker's current view of one order."""
        raise NotImplementedError

    @abstractmethod
    def list_positions(self) -> list[BrokerPosition]:
        """Return every holding the broker currently reports."""
        raise NotImplementedError

    @abstractmethod
    def get_account(self) -> BrokerAccount:
        """Return account balances."""
        raise NotImplementedError

    @abstractmethod
    def get_asset(self, symbol: str) -> Asset:
        """Return reference data for a symbol."""
        raise NotImplementedError


class AssetRepository(ABC):
    """Port for reading instrument reference data from the ledger."""

    @abstractmethod
    def get_by_symbol(self, symbol: str) -> Optional[Asset]:
        """Return the asset for a symbol, or None if it was never seen."""
        raise NotImplementedError


class OrderRepository(ABC):
    """Port for the append-only order ledger."""

    @abstractmethod
    def add(self, order: Order, asset: Asset) -> Order:
        """Persist a new order, inserting ``asset`` first if it is unknown.

        Both writes happen in one transaction.

        Returns:
            The order with ``id`` and ``asset_id`` populated.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, order_id: int) -> Optional[Order]:
        """Return an order by local id, or None."""
        raise NotImplementedError

    @abstractmethod
    def update(self, order: Order) -> None:
        """Persist lifecycle changes (status, fills, timestamps) of an order."""
        raise NotImplementedError

    @abstractmethod
    def find(
        self,
        symbol: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        side: Optional[OrderSide] = None,
        offset: int = 0,
        limit: int = 25,
    ) -> list[Order]:
        """Return orders newest first, optionally filtered."""
        raise NotImplementedError

    @abstractmethod
    def count(
        self,
        symbol: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        side: Optional[OrderSide] = None,
    ) -> int:
        """Return how many orders match the filters."""
        raise NotImplementedError

    @abstractmethod
    def list_created_between(self, start: datetime, end: datetime) -> list[Order]:
        """Return orders created within [start, end]."""
        raise NotImplementedError

    @abstractmethod
    def list_by_status(self, statuses: frozenset[OrderStatus]) -> list[Order]:
        """Return all orders whose status is in ``statuses``."""
        raise NotImplementedError


@dataclass(frozen=True)
class ReplaceSummary:
    """Outcome of mirroring the broker's position list into the ledger."""

    upserted: int
    deleted: int


class PositionRepository(ABC):
    """Port for the mirrored position table."""

    @abstractmethod
    def list_all(self) -> list[Position]:
        """Return every stored position, largest market value first."""
        raise NotImplementedError

    @abstractmethod
    def get(self, symbol: str) -> Optional[Position]:
        """Return the position for a symbol, or None."""
        raise NotImplementedError

    @abstractmethod
    def replace_all(self, positions: list[Position]) -> ReplaceSummary:
        """Make the stored table equal ``positions``, keyed by symbol.

        Must run as one serialized, transactional step so overlapping
        calls never leave a mix of two snapshots.
        """
        raise NotImplementedError
