"""
The order backend as seen by checkout and the order views.

Two implementations: LocalOrderBackend calls the order service in-process,
HttpOrderBackend (utils/order_client.py) talks to a remote order service.
Both report every failure as OrderBackendError.
"""
import logging
from typing import Any, List, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from utils.tokenJWT import get_current_user, get_token
from schemas.order import FarmerOrderItem, OrderCreate, OrderResponse
from services import order_service
from services.errors import OrderBackendError, OrderError

logger = logging.getLogger(__name__)


class OrderBackend:
    async def create_order(self, payload: OrderCreate) -> OrderResponse:
        raise NotImplementedError

    async def list_buyer_orders(self, buyer_id: str) -> List[OrderResponse]:
        raise NotImplementedError

    async def list_farmer_order_items(self, farmer_id: str) -> List[FarmerOrderItem]:
        raise NotImplementedError

    async def update_order_status(self, order_id: int, status: str) -> OrderResponse:
        raise NotImplementedError

    async def cancel_order(self, order_id: int) -> OrderResponse:
        raise NotImplementedError


class LocalOrderBackend(OrderBackend):
    def __init__(self, db: Session, actor: Any, ip: Optional[str] = None):
        self.db = db
        self.actor = actor
        self.ip = ip

    def _call(self, action: str, fn, *args, **kwargs):
        try:
            return fn(self.db, *args, **kwargs)
        except OrderError as e:
            logger.info("Order backend rejected %s: %s", action, e.message)
            raise OrderBackendError(e.message, status_code=e.status_code)

    async def create_order(self, payload: OrderCreate) -> OrderResponse:
        order = self._call("create order", order_service.create_order, payload, self.actor, ip=self.ip)
        return OrderResponse.model_validate(order)

    async def list_buyer_orders(self, buyer_id: str) -> List[OrderResponse]:
        orders = self._call("list buyer orders", order_service.list_buyer_orders, buyer_id, self.actor)
        return [OrderResponse.model_validate(o) for o in orders]

    async def list_farmer_order_items(self, farmer_id: str) -> List[FarmerOrderItem]:
        return self._call("list farmer orders", order_service.list_farmer_order_items, farmer_id, self.actor)

    async def update_order_status(self, order_id: int, status: str) -> OrderResponse:
        order = self._call(
            "update order status", order_service.update_order_status, order_id, status, self.actor, ip=self.ip
        )
        return OrderResponse.model_validate(order)

    async def cancel_order(self, order_id: int) -> OrderResponse:
        order = self._call("cancel order", order_service.cancel_order, order_id, self.actor, ip=self.ip)
        return OrderResponse.model_validate(order)


def build_order_backend(db: Session, actor: Any, token: Optional[str] = None, ip: Optional[str] = None) -> OrderBackend:
    """Remote backend when ORDER_API_URL is configured, in-process otherwise."""
    if settings.ORDER_API_URL:
        from utils.order_client import HttpOrderBackend
        return HttpOrderBackend(settings.ORDER_API_URL, token=token, timeout=settings.ORDER_API_TIMEOUT)
    return LocalOrderBackend(db, actor, ip=ip)


# FastAPI dependency: order backend acting as the signed-in user
def get_order_backend(
    request: Request,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
    token: str = Depends(get_token),
) -> OrderBackend:
    ip = request.client.host if request.client else None
    return build_order_backend(db, current_user, token=token, ip=ip)
