"""
Adapter: Alpaca broker client.

Implements BrokerPort over the Alpaca trading REST API (v2).

Every call is a single request on an injected ``httpx.Client``: no
retries, no caching, no persistence. Any failure (HTTP error status,
transport error, timeout, or a body that does not match the expected
schema) is raised as BrokerError carrying the upstream message. A 2xx
response whose body cannot be read raises the BrokerReplyError subclass,
with the broker order id attached when the body carried one.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as SchemaError

from tradedesk.core.config import Settings
from tradedesk.domain.trading.entities import (
    Asset,
    AssetClass,
    BrokerAccount,
    BrokerOrder,
    BrokerOrderRequest,
    BrokerPosition,
    OrderStatus,
    PositionSide,
)
from tradedesk.domain.trading.errors import BrokerError, BrokerReplyError
from tradedesk.domain.trading.ports import BrokerPort
from tradedesk.infrastructure.trading.broker_schemas import (
    BrokerAccountSchema,
    BrokerAssetSchema,
    BrokerOrderSchema,
    BrokerPositionSchema,
)

logger = logging.getLogger(__name__)


def build_broker_client(app_settings: Settings) -> httpx.Client:
    """Create the HTTP client used to talk to the broker.

    The caller owns the client and must close it on shutdown.
    """
    return httpx.Client(
        base_url=app_settings.broker_base_url,
        timeout=app_settings.broker_timeout_seconds,
        headers={
            "APCA-API-KEY-ID": app_settings.broker_api_key,
            "APCA-API-SECRET-KEY": app_settings.broker_secret_key,
            "Accept": "application/json",
        },
    )


def _upstream_message(response: httpx.Response) -> str:
    """Extract the broker's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    text = response.text.strip()
    return text or f"HTTP {response.status_code}"


def _payload_id(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and isinstance(payload.get("id"), str):
        return payload["id"]
    return None


def _asset_class(value: str) -> AssetClass:
    try:
        return AssetClass(value)
    except ValueError:
        logger.warning("Unknown broker asset class '%s'; treating as us_equity", value)
        return AssetClass.US_EQUITY


def _to_order(payload: Any) -> BrokerOrder:
    parsed = BrokerOrderSchema.model_validate(payload)
    try:
        status = OrderStatus(parsed.status)
    except ValueError as exc:
        raise BrokerReplyError(f"Unknown order status '{parsed.status}'", external_id=parsed.id) from exc
    return BrokerOrder(
        id=parsed.id,
        symbol=parsed.symbol,
        status=status,
        filled_quantity=parsed.filled_qty,
        filled_avg_price=parsed.filled_avg_price,
        submitted_at=parsed.submitted_at,
        filled_at=parsed.filled_at,
        canceled_at=parsed.canceled_at,
        expired_at=parsed.expired_at,
        raw=payload,
    )


def _to_position(payload: Any) -> BrokerPosition:
    parsed = BrokerPositionSchema.model_validate(payload)
    current_price = parsed.current_price
    if current_price is None:
        current_price = parsed.lastday_price if parsed.lastday_price is not None else parsed.avg_entry_price
    side = PositionSide.SHORT if parsed.side == "short" else PositionSide.LONG
    return BrokerPosition(
        symbol=parsed.symbol,
        quantity=abs(parsed.qty),
        side=side,
        avg_entry_price=parsed.avg_entry_price,
        market_value=parsed.market_value,
        cost_basis=parsed.cost_basis,
        unrealized_pl=parsed.unrealized_pl,
        unrealized_plpc=parsed.unrealized_plpc,
        current_price=current_price,
        asset_class=_asset_class(parsed.asset_class),
    )


def _to_account(payload: Any) -> BrokerAccount:
    parsed = BrokerAccountSchema.model_validate(payload)
    return BrokerAccount(
        equity=parsed.equity,
        cash=parsed.cash,
        buying_power=parsed.buying_power,
        portfolio_value=parsed.portfolio_value if parsed.portfolio_value is not None else parsed.equity,
        day_trade_count=parsed.daytrade_count,
        pattern_day_trader=parsed.pattern_day_trader,
    )


def _to_asset(payload: Any) -> Asset:
    parsed = BrokerAssetSchema.model_validate(payload)
    return Asset(
        symbol=parsed.symbol.upper(),
        name=parsed.name or parsed.symbol,
        asset_class=_asset_class(parsed.asset_class),
        tradable=parsed.tradable,
        marginable=parsed.marginable,
        shortable=parsed.shortable,
        min_order_size=parsed.min_order_size,
        min_trade_increment=parsed.min_trade_increment,
        attributes=parsed.attributes,
    )


class AlpacaBrokerAdapter(BrokerPort):
    """Alpaca implementation of the broker port.

    Args:
        client: Configured httpx.Client (base URL, auth headers, timeout).
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        """Send one request and return the decoded JSON body (None for 204)."""
        try:
            response = self._client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = _upstream_message(exc.response)
            logger.error(
                "Broker %s %s failed with %d: %s",
                method,
                path,
                exc.response.status_code,
                message,
            )
            raise BrokerError(message, status_code=exc.response.status_code) from exc
        except httpx.RequestError as exc:
            logger.error("Broker %s %s transport error: %s", method, path, exc)
            raise BrokerError(f"Broker unreachable: {exc}") from exc

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BrokerReplyError("Broker returned a non-JSON body") from exc

    def _parse(self, parser, payload: Any):
        try:
            return parser(payload)
        except SchemaError as exc:
            logger.error("Malformed broker response: %s", exc)
            raise BrokerReplyError(
                f"Malformed broker response: {exc.error_count()} invalid field(s)",
                external_id=_payload_id(payload),
            ) from exc

    def submit_order(self, request: BrokerOrderRequest) -> BrokerOrder:
        body = {
            "symbol": request.symbol,
            "qty": str(request.quantity),
            "side": request.side.value,
            "type": request.order_type.value,
            "time_in_force": request.time_in_force.value,
        }
        if request.limit_price is not None:
            body["limit_price"] = str(request.limit_price)
        if request.stop_price is not None:
            body["stop_price"] = str(request.stop_price)

        payload = self._request("POST", "/v2/orders", json=body)
        order = self._parse(_to_order, payload)
        logger.info(
            "Broker accepted order %s: %s %s %s",
            order.id,
            request.side.value,
            request.quantity,
            request.symbol,
        )
        return order

    def cancel_order(self, external_id: str) -> None:
        self._request("DELETE", f"/v2/orders/{external_id}")
        logger.info("Broker cancel requested for order %s", external_id)

    def get_order(self, external_id: str) -> BrokerOrder:
        payload = self._request("GET", f"/v2/orders/{external_id}")
        return self._parse(_to_order, payload)

    def list_positions(self) -> list[BrokerPosition]:
        payload = self._request("GET", "/v2/positions")
        if not isinstance(payload, list):
            raise BrokerReplyError("Malformed broker response: expected a list of positions")
        return [self._parse(_to_position, item) for item in payload]

    def get_account(self) -> BrokerAccount:
        payload = self._request("GET", "/v2/account")
        return self._parse(_to_account, payload)

    def get_asset(self, symbol: str) -> Asset:
        payload = self._request("GET", f"/v2/assets/{symbol}")
        return self._parse(_to_asset, payload)
