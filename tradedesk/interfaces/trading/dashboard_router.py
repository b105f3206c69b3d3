"""
FastAPI router for the dashboard.

Both endpoints are best-effort: they always answer 200, falling back
to zeroed data when something underneath fails.
"""

from fastapi import APIRouter, Depends

from tradedesk.application.trading.policies import BEST_EFFORT
from tradedesk.application.trading.reporting import GetAnalyticsUseCase, GetDashboardUseCase
from tradedesk.core.config import Settings
from tradedesk.interfaces.trading import presenters
from tradedesk.interfaces.trading.dependencies import (
    get_analytics_use_case,
    get_dashboard_use_case,
    get_settings,
)
from tradedesk.interfaces.trading.schemas import AnalyticsData, ApiResponse, DashboardData

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get(
    "",
    response_model=ApiResponse[DashboardData],
    summary="Dashboard",
    description="Portfolio summary, recent trades and performance metrics.",
)
def dashboard(
    use_case: GetDashboardUseCase = Depends(get_dashboard_use_case),
    app_settings: Settings = Depends(get_settings),
) -> ApiResponse[DashboardData]:
    report = BEST_EFFORT.run(use_case.execute, use_case.fallback)
    return ApiResponse(data=presenters.dashboard(report, app_settings.position_stale_minutes))


@router.get(
    "/analytics",
    response_model=ApiResponse[AnalyticsData],
    summary="Trading analytics",
    description="Trading volume, sector allocation, risk metrics and monthly activity.",
)
def analytics(
    use_case: GetAnalyticsUseCase = Depends(get_analytics_use_case),
) -> ApiResponse[AnalyticsData]:
    report = BEST_EFFORT.run(use_case.execute, use_case.fallback)
    return ApiResponse(data=presenters.analytics(report))
