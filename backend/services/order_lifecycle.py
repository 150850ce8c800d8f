"""
Order views and status changes for one signed-in user.

The manager keeps two projections of the same orders: the buyer's
purchases and the farmer's own order items. Status changes are checked
against the projection before anything is sent, then confirmed by the
backend, and the projection is reloaded afterwards instead of being patched
locally.
"""
import logging
from typing import Any, List, Optional

from config import settings
from schemas.order import FarmerOrderItem, OrderLineSummary, OrderResponse, OrderSummary
from services.errors import (
    OrderNotFoundError, OrderPermissionError, OrderTransitionError, OrderValidationError,
)
from services.normalize import normalize_user, user_identity_keys
from services.order_feed import PollingOrderFeed
from services.order_states import Role, can_transition, parse_role, parse_status
from models.order import OrderStatus

logger = logging.getLogger(__name__)


def summarize_order(order: OrderResponse) -> OrderSummary:
    """Single item orders are shown as one row; larger ones also list per-item subtotals."""
    items = order.order_items
    lines = []
    if len(items) > 1:
        lines = [
            OrderLineSummary(
                product_id=item.product_id,
                quantity=item.quantity,
                price_at_purchase=item.price_at_purchase,
                subtotal=item.price_at_purchase * item.quantity,
            ) for item in items
        ]
    return OrderSummary(
        order_id=order.id,
        status=order.order_status,
        granularity="items" if len(items) > 1 else "order",
        total_amount=order.total_amount,
        lines=lines,
    )


class OrderLifecycleManager:
    def __init__(self, backend, actor: Any):
        self.backend = backend
        self.actor = normalize_user(actor)
        if self.actor is None:
            raise OrderPermissionError("Sign in to view orders")
        self.buyer_orders: List[OrderResponse] = []
        self.farmer_items: List[FarmerOrderItem] = []
        self._buyer_loaded = False
        self._farmer_loaded = False

    @property
    def _keys(self):
        return user_identity_keys(self.actor)

    async def get_buyer_orders(self, buyer_id: Optional[str] = None) -> List[OrderResponse]:
        orders = await self.backend.list_buyer_orders(buyer_id or self.actor.id)
        self.buyer_orders = list(orders)
        self._buyer_loaded = True
        return self.buyer_orders

    async def get_farmer_order_items(self, farmer_id: Optional[str] = None) -> List[FarmerOrderItem]:
        items = await self.backend.list_farmer_order_items(farmer_id or self.actor.id)
        self.farmer_items = list(items)
        self._farmer_loaded = True
        return self.farmer_items

    async def advance_status(self, order_id: int, next_status) -> OrderResponse:
        try:
            target = parse_status(next_status)
        except ValueError:
            raise OrderValidationError(f"Unknown order status: {next_status}")

        if not self._farmer_loaded:
            await self.get_farmer_order_items()
        items = [i for i in self.farmer_items if i.order_id == order_id]
        if not items:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if parse_role(self.actor.role) != Role.FARMER or not any(i.farmer_id in self._keys for i in items):
            raise OrderPermissionError("Only the farmer of this order can update its status")

        current = items[0].order.order_status
        if not can_transition(current, target, Role.FARMER):
            raise OrderTransitionError(f"Cannot change order status from {current} to {target.value}")

        updated = await self.backend.update_order_status(order_id, target.value)
        logger.info("Order %s moved %s -> %s by %s", order_id, current, updated.order_status, self.actor.id)
        await self.get_farmer_order_items()
        return updated

    async def cancel_order(self, order_id: int) -> OrderResponse:
        if not self._buyer_loaded:
            await self.get_buyer_orders()
        order = next((o for o in self.buyer_orders if o.id == order_id), None)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if order.buyer_id not in self._keys:
            raise OrderPermissionError("Only the buyer can cancel this order")
        if not can_transition(order.order_status, OrderStatus.CANCELLED, Role.BUYER):
            raise OrderTransitionError(
                f"Only PLACED orders can be cancelled (current status: {order.order_status})"
            )

        updated = await self.backend.cancel_order(order_id)
        logger.info("Order %s cancelled by %s", order_id, self.actor.id)
        await self.get_buyer_orders()
        return updated

    def watch_buyer_orders(self, on_update=None, interval: Optional[float] = None) -> PollingOrderFeed:
        return PollingOrderFeed(
            self.get_buyer_orders, on_update=on_update,
            interval=interval or settings.ORDER_POLL_INTERVAL_SECONDS,
        )

    def watch_farmer_order_items(self, on_update=None, interval: Optional[float] = None) -> PollingOrderFeed:
        return PollingOrderFeed(
            self.get_farmer_order_items, on_update=on_update,
            interval=interval or settings.ORDER_POLL_INTERVAL_SECONDS,
        )
