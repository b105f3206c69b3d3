"""
FastAPI router for the portfolio view.

Positions are served from the ledger mirror. The summary and the
sync endpoint reach the broker. Performance and diversification are
best-effort and always answer 200.
"""

from fastapi import APIRouter, Depends, Query, Request

from tradedesk.application.trading.policies import BEST_EFFORT, STRICT
from tradedesk.application.trading.position_queries import (
    GetPortfolioSummaryUseCase,
    GetPositionUseCase,
    ListPositionsUseCase,
)
from tradedesk.application.trading.reconcile_positions import ReconcilePositionsUseCase
from tradedesk.application.trading.reporting import (
    GetDiversificationUseCase,
    GetPerformanceUseCase,
)
from tradedesk.core.config import Settings
from tradedesk.interfaces.trading import presenters
from tradedesk.interfaces.trading.dependencies import (
    get_diversification_use_case,
    get_list_positions_use_case,
    get_performance_use_case,
    get_portfolio_summary_use_case,
    get_position_use_case,
    get_reconcile_positions_use_case,
    get_settings,
)
from tradedesk.interfaces.trading.schemas import (
    ApiResponse,
    DiversificationData,
    ErrorResponse,
    PerformanceData,
    PortfolioData,
    PositionItem,
    PositionsData,
    ReconcileData,
)
from tradedesk.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.get(
    "",
    response_model=ApiResponse[PortfolioData],
    responses={500: {"model": ErrorResponse}},
    summary="Portfolio summary",
    description="Broker account balances plus the mirrored positions.",
)
def portfolio_summary(
    use_case: GetPortfolioSummaryUseCase = Depends(get_portfolio_summary_use_case),
    app_settings: Settings = Depends(get_settings),
) -> ApiResponse[PortfolioData]:
    summary = STRICT.run(use_case.execute)
    return ApiResponse(data=presenters.portfolio(summary, app_settings.position_stale_minutes))


@router.get(
    "/positions",
    response_model=ApiResponse[PositionsData],
    summary="List positions",
)
def list_positions(
    use_case: ListPositionsUseCase = Depends(get_list_positions_use_case),
    app_settings: Settings = Depends(get_settings),
) -> ApiResponse[PositionsData]:
    overview = STRICT.run(use_case.execute)
    return ApiResponse(
        data=presenters.positions_data(
            overview.positions, overview.summary, app_settings.position_stale_minutes
        )
    )


@router.get(
    "/positions/{symbol}",
    response_model=ApiResponse[PositionItem],
    responses={404: {"model": ErrorResponse}},
    summary="Get one position",
)
def get_position(
    symbol: str,
    use_case: GetPositionUseCase = Depends(get_position_use_case),
    app_settings: Settings = Depends(get_settings),
) -> ApiResponse[PositionItem]:
    position = use_case.execute(symbol)
    return ApiResponse(data=presenters.position_item(position, app_settings.position_stale_minutes))


@router.post(
    "/positions/sync",
    response_model=ApiResponse[ReconcileData],
    responses={500: {"model": ErrorResponse}},
    summary="Reconcile positions with the broker",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def sync_positions(
    request: Request,
    use_case: ReconcilePositionsUseCase = Depends(get_reconcile_positions_use_case),
) -> ApiResponse[ReconcileData]:
    """Replace the local position mirror with the broker's snapshot."""
    result = STRICT.run(use_case.execute)
    return ApiResponse(
        data=presenters.reconcile(result),
        message="Positions synchronized successfully",
    )


@router.get(
    "/performance",
    response_model=ApiResponse[PerformanceData],
    summary="Portfolio performance",
)
def performance(
    days: int = Query(30, ge=1, le=3650),
    use_case: GetPerformanceUseCase = Depends(get_performance_use_case),
    app_settings: Settings = Depends(get_settings),
) -> ApiResponse[PerformanceData]:
    report = BEST_EFFORT.run(lambda: use_case.execute(days), lambda: use_case.fallback(days))
    return ApiResponse(data=presenters.performance(report, app_settings.position_stale_minutes))


@router.get(
    "/diversification",
    response_model=ApiResponse[DiversificationData],
    summary="Portfolio diversification",
)
def diversification(
    use_case: GetDiversificationUseCase = Depends(get_diversification_use_case),
) -> ApiResponse[DiversificationData]:
    report = BEST_EFFORT.run(use_case.execute, use_case.fallback)
    return ApiResponse(data=presenters.diversification(report))
