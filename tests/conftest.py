"""
Shared fixtures for the TradeDesk test suite.

The environment is pinned before any ``tradedesk`` import so the
module-level settings (and ``tradedesk.main.app``) use in-memory
SQLite and have rate limiting switched off.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("BROKER_API_KEY", "test-key")
os.environ.setdefault("BROKER_SECRET_KEY", "test-secret")

import pytest

from fakes import FIXED_NOW, FakeBroker
from tradedesk.infrastructure.trading.asset_repository import AssetRepositoryAdapter
from tradedesk.infrastructure.trading.database import build_engine, create_schema
from tradedesk.infrastructure.trading.order_repository import OrderRepositoryAdapter
from tradedesk.infrastructure.trading.position_repository import PositionRepositoryAdapter


@pytest.fixture
def engine():
    """Fresh in-memory ledger with the schema created."""
    eng = build_engine("sqlite://")
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def order_repo(engine) -> OrderRepositoryAdapter:
    return OrderRepositoryAdapter(engine)


@pytest.fixture
def position_repo(engine) -> PositionRepositoryAdapter:
    return PositionRepositoryAdapter(engine)


@pytest.fixture
def asset_repo(engine) -> AssetRepositoryAdapter:
    return AssetRepositoryAdapter(engine)


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
