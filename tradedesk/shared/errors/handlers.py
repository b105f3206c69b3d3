"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients; the one
exception is the broker's own message, which callers need to act on.
All error responses use the envelope {success, message, error, errors?}.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tradedesk.domain.trading.errors import (
    BrokerError,
    ConsistencyError,
    InvalidStateError,
    NotFoundError,
    TradingDomainError,
    ValidationError,
)

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500


def error_envelope(
    status_code: int,
    message: str,
    error: Optional[str] = None,
    errors: Optional[list[dict[str, str]]] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, Any] = {"success": False, "message": message}
    if error:
        body["error"] = error
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)


def _field_name(location: tuple) -> str:
    parts = [str(p) for p in location if p not in ("body", "query", "path")]
    return ".".join(parts) or "request"


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle malformed request bodies and query parameters."""
        errors = [
            {"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning("Request validation failed: %s", [e["field"] for e in errors])
        return error_envelope(HTTP_422, "Validation failed", errors=errors)

    @app.exception_handler(ValidationError)
    async def handle_validation(
        _request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle order validation errors raised by use cases."""
        logger.warning("Order validation failed: %s", sorted(exc.field_errors))
        errors = [
            {"field": name, "message": problem}
            for name, problem in exc.field_errors.items()
        ]
        return error_envelope(HTTP_422, "Validation failed", errors=errors)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(
        _request: Request, exc: NotFoundError
    ) -> JSONResponse:
        """Handle unknown orders and positions."""
        logger.info("Not found: %s", exc.message)
        return error_envelope(HTTP_404, exc.message)

    @app.exception_handler(InvalidStateError)
    async def handle_invalid_state(
        _request: Request, exc: InvalidStateError
    ) -> JSONResponse:
        """Handle operations not allowed in the order's current state."""
        logger.warning("Invalid state for order %s: %s", exc.order_id, exc.reason)
        return error_envelope(HTTP_409, "Operation not allowed", error=exc.reason)

    @app.exception_handler(BrokerError)
    async def handle_broker(
        _request: Request, exc: BrokerError
    ) -> JSONResponse:
        """Handle upstream broker failures. Never retried."""
        logger.error(
            "Broker error: status=%s message=%s", exc.status_code, exc.upstream_message
        )
        return error_envelope(HTTP_500, "Broker request failed", error=exc.upstream_message)

    @app.exception_handler(ConsistencyError)
    async def handle_consistency(
        _request: Request, exc: ConsistencyError
    ) -> JSONResponse:
        """Handle orders accepted by the broker but missing from the ledger."""
        logger.error(
            "Consistency error: external_id=%s symbol=%s", exc.external_id, exc.symbol
        )
        return error_envelope(
            HTTP_500,
            "Order accepted by broker but not recorded locally",
            error=f"external_id={exc.external_id}",
        )

    @app.exception_handler(TradingDomainError)
    async def handle_trading_domain(
        _request: Request, exc: TradingDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled trading domain errors."""
        logger.error("Unhandled trading domain error: %s", exc.message)
        return error_envelope(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return error_envelope(HTTP_500, "Internal server error")
