"""Async client for the order and payment REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from qr_checkout.config import API_BASE_URL, API_TIMEOUT_SECONDS, API_TOKEN
from qr_checkout.errors import GatewayError
from qr_checkout.models import OrderPayload

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."


@dataclass(frozen=True)
class GatewayResult:
    """Uniform result shape returned by every gateway call."""

    success: bool
    data: Any
    message: str


class OrderGatewayPort(Protocol):
    async def create_order(self, payload: OrderPayload) -> GatewayResult:
        ...

    async def query_payment_status(self, payment_code: str) -> GatewayResult:
        ...

    async def cancel_order(self, order_id: str, reason: str = "") -> GatewayResult:
        ...

    async def get_menu_item(self, menu_item_id: int) -> GatewayResult:
        ...


class OrderGateway:
    """
    Thin wrapper around the backend REST API.

    Every method returns a GatewayResult. HTTP error statuses and transport
    failures raise GatewayError; the caller decides whether that is fatal.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: str | None = API_TOKEN,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> OrderGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("request_failed method=%s path=%s error=%r", method, path, exc)
            raise GatewayError(500, NETWORK_ERROR_MESSAGE) from exc

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None

        if response.is_error:
            message = None
            errors = None
            if isinstance(data, dict):
                message = data.get("message")
                errors = data.get("errors")
            logger.warning("request_rejected method=%s path=%s status=%s", method, path, response.status_code)
            raise GatewayError(response.status_code, message or "An error occurred", errors)

        return data

    async def create_order(self, payload: OrderPayload) -> GatewayResult:
        data = await self._request("POST", "/api/orders", json=payload.to_json())
        if not isinstance(data, dict):
            return GatewayResult(False, data, "Unexpected order response")
        return GatewayResult(True, data, "Order created successfully")

    async def query_payment_status(self, payment_code: str) -> GatewayResult:
        data = await self._request("GET", f"/api/payments/{quote(payment_code, safe='')}")
        if not isinstance(data, dict):
            return GatewayResult(False, data, "Unexpected payment status response")
        return GatewayResult(True, data, "Payment status retrieved")

    async def cancel_order(self, order_id: str, reason: str = "") -> GatewayResult:
        data = await self._request("POST", f"/api/orders/{quote(str(order_id), safe='')}/cancel", json={"reason": reason})
        return GatewayResult(True, data, "Order canceled")

    async def get_menu_item(self, menu_item_id: int) -> GatewayResult:
        data = await self._request("GET", f"/api/menu/{int(menu_item_id)}")
        if not isinstance(data, dict):
            return GatewayResult(False, data, "Unexpected menu item response")
        return GatewayResult(True, data, "Menu item fetched")


def payment_status_of(result: GatewayResult) -> str | None:
    """Extract the status field of a payment status response, if it parsed."""
    if not result.success or not isinstance(result.data, dict):
        return None
    status = result.data.get("status") or result.data.get("paymentStatus")
    if status is None:
        return None
    return str(status)
