"""
Use cases: Read mirrored positions and the portfolio summary.

Positions are served from the ledger only. The portfolio summary also
reads account balances from the broker, so it fails with BrokerError
when the broker is unavailable.
"""

import logging

from tradedesk.application.trading.dtos import PortfolioSummary, PositionsOverview
from tradedesk.domain.trading.analytics import summarize_positions
from tradedesk.domain.trading.entities import Position
from tradedesk.domain.trading.errors import PositionNotFoundError
from tradedesk.domain.trading.ports import BrokerPort, PositionRepository

logger = logging.getLogger(__name__)


class ListPositionsUseCase:
    def __init__(self, position_repo: PositionRepository) -> None:
        self._position_repo = position_repo

    def execute(self) -> PositionsOverview:
        positions = self._position_repo.list_all()
        return PositionsOverview(positions=positions, summary=summarize_positions(positions))


class GetPositionUseCase:
    def __init__(self, position_repo: PositionRepository) -> None:
        self._position_repo = position_repo

    def execute(self, symbol: str) -> Position:
        position = self._position_repo.get(symbol.strip().upper())
        if position is None:
            raise PositionNotFoundError(symbol.strip().upper())
        return position


class GetPortfolioSummaryUseCase:
    """Broker account balances plus the locally mirrored positions."""

    def __init__(self, broker: BrokerPort, position_repo: PositionRepository) -> None:
        self._broker = broker
        self._position_repo = position_repo

    def execute(self) -> PortfolioSummary:
        account = self._broker.get_account()
        positions = self._position_repo.list_all()
        logger.debug("Portfolio summary: equity %s, %d positions", account.equity, len(positions))
        return PortfolioSummary(
            account=account,
            positions=positions,
            summary=summarize_positions(positions),
        )
