# backend/routes/orders.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
import logging

from database import get_db
from utils.tokenJWT import get_current_user
from models.users import User
from schemas.order import FarmerOrderItem, OrderCreate, OrderResponse, OrderStatusPatch
from services import order_service
from services.errors import OrderError

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)


def _raise_http(e: OrderError):
    raise HTTPException(status_code=e.status_code, detail=e.message)


def _client_ip(request: Request):
    return request.client.host if request.client else None


# Create an order; resubmitting the same invoice returns the existing order
@router.post("", response_model=OrderResponse)
def create_order(
    payload: OrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return order_service.create_order(db, payload, current_user, ip=_client_ip(request))
    except OrderError as e:
        logger.info("Order creation rejected for buyer %s: %s", payload.buyer_id, e.message)
        _raise_http(e)


# All orders (Admin only, transactions overview)
@router.get("", response_model=List[OrderResponse])
def list_all_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return order_service.list_all_orders(db, current_user)
    except OrderError as e:
        _raise_http(e)


# Purchase history of a buyer
@router.get("/buyer/{buyer_id}", response_model=List[OrderResponse])
def list_buyer_orders(
    buyer_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return order_service.list_buyer_orders(db, buyer_id, current_user)
    except OrderError as e:
        _raise_http(e)


# A farmer's own order items, with order, product and buyer context
@router.get("/farmer/{farmer_id}", response_model=List[FarmerOrderItem])
def list_farmer_order_items(
    farmer_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return order_service.list_farmer_order_items(db, farmer_id, current_user)
    except OrderError as e:
        _raise_http(e)


# Get details of a specific order
@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return order_service.get_order(db, order_id, current_user)
    except OrderError as e:
        _raise_http(e)


# Advance order status (farmer: ACCEPTED, SHIPPED, COMPLETED)
@router.put("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return order_service.update_order_status(db, order_id, payload.status, current_user, ip=_client_ip(request))
    except OrderError as e:
        _raise_http(e)


# Cancel an order (buyer, PLACED only)
@router.put("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return order_service.cancel_order(db, order_id, current_user, ip=_client_ip(request))
    except OrderError as e:
        _raise_http(e)
