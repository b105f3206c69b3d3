"""
FastAPI router for order management.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.

Every route except /stats runs under the strict policy: failures
surface as error envelopes. /stats is best-effort.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from tradedesk.application.trading.cancel_order import CancelOrderUseCase
from tradedesk.application.trading.dtos import (
    ListOrdersQuery,
    SubmitOrderCommand,
    TradingStatsQuery,
)
from tradedesk.application.trading.order_queries import GetOrderUseCase, ListOrdersUseCase
from tradedesk.application.trading.policies import BEST_EFFORT
from tradedesk.application.trading.reporting import GetTradingStatsUseCase
from tradedesk.application.trading.submit_order import SubmitOrderUseCase
from tradedesk.application.trading.sync_order_status import SyncOrderStatusUseCase
from tradedesk.interfaces.trading import presenters
from tradedesk.interfaces.trading.dependencies import (
    get_cancel_order_use_case,
    get_list_orders_use_case,
    get_order_use_case,
    get_submit_order_use_case,
    get_sync_order_status_use_case,
    get_trading_stats_use_case,
)
from tradedesk.interfaces.trading.schemas import (
    ApiResponse,
    ErrorResponse,
    OrderCanceledData,
    OrderCreateRequest,
    OrderDetailData,
    OrderPageData,
    OrderSubmittedData,
    OrderSyncData,
    TradingStatsData,
)
from tradedesk.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

router = APIRouter(prefix="/trading", tags=["trading"])


@router.post(
    "/orders",
    response_model=ApiResponse[OrderSubmittedData],
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Submit an order",
    description="Send an order to the broker and record it in the ledger.",
)
@limiter.limit(HEAVY_RATE_LIMIT)
def submit_order(
    request: Request,
    payload: OrderCreateRequest,
    use_case: SubmitOrderUseCase = Depends(get_submit_order_use_case),
) -> ApiResponse[OrderSubmittedData]:
    """Submit a new order."""
    command = SubmitOrderCommand(
        symbol=payload.symbol,
        quantity=payload.quantity,
        side=payload.side,
        order_type=payload.order_type,
        time_in_force=payload.time_in_force,
        price=payload.price,
        stop_price=payload.stop_price,
        metadata=payload.metadata,
    )
    order = use_case.execute(command)
    return ApiResponse(data=presenters.order_submitted(order), message="Order submitted successfully")


@router.get(
    "/orders",
    response_model=ApiResponse[OrderPageData],
    responses={422: {"model": ErrorResponse}},
    summary="List orders",
)
def list_orders(
    symbol: Optional[str] = Query(None, max_length=10),
    order_status: Optional[str] = Query(None, alias="status"),
    side: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    use_case: ListOrdersUseCase = Depends(get_list_orders_use_case),
) -> ApiResponse[OrderPageData]:
    """Page through the order ledger, newest first."""
    result = use_case.execute(
        ListOrdersQuery(symbol=symbol, status=order_status, side=side, page=page, per_page=per_page)
    )
    return ApiResponse(data=presenters.order_page(result))


@router.get(
    "/orders/{order_id}",
    response_model=ApiResponse[OrderDetailData],
    responses={404: {"model": ErrorResponse}},
    summary="Get one order",
)
def get_order(
    order_id: int,
    use_case: GetOrderUseCase = Depends(get_order_use_case),
) -> ApiResponse[OrderDetailData]:
    return ApiResponse(data=presenters.order_detail(use_case.execute(order_id)))


@router.delete(
    "/orders/{order_id}",
    response_model=ApiResponse[OrderCanceledData],
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Cancel an order",
)
def cancel_order(
    order_id: int,
    use_case: CancelOrderUseCase = Depends(get_cancel_order_use_case),
) -> ApiResponse[OrderCanceledData]:
    """Cancel a working order at the broker."""
    result = use_case.execute(order_id)
    return ApiResponse(
        data=OrderCanceledData(trade_id=result.trade_id, status=result.status),
        message="Order canceled successfully",
    )


@router.post(
    "/orders/{order_id}/sync",
    response_model=ApiResponse[OrderSyncData],
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Sync an order with the broker",
)
def sync_order(
    order_id: int,
    use_case: SyncOrderStatusUseCase = Depends(get_sync_order_status_use_case),
) -> ApiResponse[OrderSyncData]:
    """Refresh status and fills from the broker."""
    result = use_case.execute(order_id)
    return ApiResponse(
        data=OrderSyncData(
            **presenters.order_fields(result.order),
            positions_reconciled=result.positions_reconciled,
        )
    )


@router.get(
    "/stats",
    response_model=ApiResponse[TradingStatsData],
    responses={422: {"model": ErrorResponse}},
    summary="Trading statistics",
    description="Order counts and volumes over a date window (default: last 30 days).",
)
def trading_stats(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    use_case: GetTradingStatsUseCase = Depends(get_trading_stats_use_case),
) -> ApiResponse[TradingStatsData]:
    query = TradingStatsQuery(date_from=date_from, date_to=date_to)
    use_case.resolve_window(query)
    stats = BEST_EFFORT.run(lambda: use_case.execute(query), lambda: use_case.fallback(query))
    return ApiResponse(data=presenters.trading_stats(stats))
