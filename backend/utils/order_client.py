# backend/utils/order_client.py
import httpx
import logging
from typing import List, Optional
from urllib.parse import urljoin

from schemas.order import FarmerOrderItem, OrderCreate, OrderResponse
from services.errors import OrderBackendError
from services.normalize import normalize_farmer_order_item, normalize_order
from services.order_backend import OrderBackend

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response, action: str) -> str:
    # Prefer the backend's own wording, fall back to the HTTP reason
    fallback = f"Failed to {action}: {response.reason_phrase or response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return fallback
    if not isinstance(data, dict):
        return fallback
    detail = data.get("detail")
    if isinstance(detail, dict):
        detail = detail.get("message")
    # Only plain text is shown to the buyer; validation error lists are not
    for candidate in (detail, data.get("message"), data.get("error")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return fallback


class HttpOrderBackend(OrderBackend):
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/") + "/"
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, action: str, json: Optional[dict] = None):
        url = urljoin(self.base_url, path.lstrip("/"))
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(method, url, json=json, headers=self._headers())
            except httpx.RequestError as e:
                logger.error(f"Order service unreachable during {action}: {e}")
                raise OrderBackendError(f"Failed to {action}: order service unavailable")

        if response.status_code >= 400:
            message = _error_message(response, action)
            logger.error(f"Order service error during {action}: {response.status_code} {message}")
            raise OrderBackendError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError:
            logger.error(f"Order service returned a non-JSON body during {action}")
            raise OrderBackendError(f"Failed to {action}: invalid response from order service")

    async def create_order(self, payload: OrderCreate) -> OrderResponse:
        data = await self._request("POST", "/orders", "place order", json=payload.model_dump())
        return normalize_order(data)

    async def list_buyer_orders(self, buyer_id: str) -> List[OrderResponse]:
        data = await self._request("GET", f"/orders/buyer/{buyer_id}", "fetch buyer orders")
        return [normalize_order(o) for o in data or []]

    async def list_farmer_order_items(self, farmer_id: str) -> List[FarmerOrderItem]:
        data = await self._request("GET", f"/orders/farmer/{farmer_id}", "fetch farmer orders")
        return [normalize_farmer_order_item(i) for i in data or []]

    async def update_order_status(self, order_id: int, status: str) -> OrderResponse:
        data = await self._request(
            "PUT", f"/orders/{order_id}/status", "update order status", json={"status": status}
        )
        return normalize_order(data)

    async def cancel_order(self, order_id: int) -> OrderResponse:
        data = await self._request("PUT", f"/orders/{order_id}/cancel", "cancel order")
        return normalize_order(data)
