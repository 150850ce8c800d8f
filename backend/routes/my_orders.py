# backend/routes/my_orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from models.users import User
from schemas.order import FarmerOrderItem, OrderResponse, OrderStatusPatch, OrderSummary
from services.errors import OrderBackendError, OrderError
from services.order_backend import OrderBackend, get_order_backend
from services.order_lifecycle import OrderLifecycleManager, summarize_order
from utils.tokenJWT import get_current_user, role_required

router = APIRouter(prefix="/my", tags=["My orders"])


def _raise_http(e: Exception):
    if isinstance(e, OrderError):
        raise HTTPException(status_code=e.status_code, detail=e.message)
    status_code = e.status_code if e.status_code and 400 <= e.status_code < 500 else 502
    raise HTTPException(status_code=status_code, detail=e.message)


# Buyer's purchase history
@router.get("/purchases", response_model=List[OrderResponse])
async def my_purchases(
    current_user: User = Depends(get_current_user),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        return await OrderLifecycleManager(backend, current_user).get_buyer_orders()
    except (OrderError, OrderBackendError) as e:
        _raise_http(e)


# Purchase history in display form
@router.get("/purchases/summary", response_model=List[OrderSummary])
async def my_purchase_summaries(
    current_user: User = Depends(get_current_user),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        orders = await OrderLifecycleManager(backend, current_user).get_buyer_orders()
    except (OrderError, OrderBackendError) as e:
        _raise_http(e)
    return [summarize_order(o) for o in orders]


# Farmer's incoming order items
@router.get("/sales", response_model=List[FarmerOrderItem])
async def my_sales(
    current_user: User = Depends(role_required("farmer")),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        return await OrderLifecycleManager(backend, current_user).get_farmer_order_items()
    except (OrderError, OrderBackendError) as e:
        _raise_http(e)


# Farmer advances an order one step (ACCEPTED, SHIPPED, COMPLETED)
@router.post("/orders/{order_id}/advance", response_model=OrderResponse)
async def advance_order(
    order_id: int,
    payload: OrderStatusPatch,
    current_user: User = Depends(role_required("farmer")),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        return await OrderLifecycleManager(backend, current_user).advance_status(order_id, payload.status)
    except (OrderError, OrderBackendError) as e:
        _raise_http(e)


# Buyer cancels a PLACED order
@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_my_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        return await OrderLifecycleManager(backend, current_user).cancel_order(order_id)
    except (OrderError, OrderBackendError) as e:
        _raise_http(e)
