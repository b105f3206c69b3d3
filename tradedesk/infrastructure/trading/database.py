"""
Ledger database engine and schema helpers.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from tradedesk.infrastructure.trading.schema import metadata

logger = logging.getLogger(__name__)


def build_engine(dsn: str) -> Engine:
    """Build a SQLAlchemy engine for the ledger database.

    In-memory SQLite gets a single shared connection so every session
    sees the same database.
    """
    if dsn.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if dsn in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(dsn, **kwargs)
    return create_engine(dsn, pool_pre_ping=True)


def create_schema(engine: Engine) -> None:
    """Create the ledger tables if they do not exist yet."""
    metadata.create_all(engine)
    logger.info("Ledger schema ensured on %s", engine.url.render_as_string(hide_password=True))


def is_postgres(conn: Connection) -> bool:
    return conn.dialect.name == "postgresql"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
