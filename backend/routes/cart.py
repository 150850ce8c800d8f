# backend/routes/cart.py
import math

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from database import get_db
from config import settings
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from models.users import User
from schemas.cart import CartAddItem, CartUpdateItem, CartOut
from services.cart_store import CartStore, SqlCartRepository
from services.catalog import ProductCatalog
from services.invoice_builder import format_currency

router = APIRouter(prefix="/cart", tags=["Cart"])

def _ensure_client(user: User):
    # Validate user authentication
    if not user or not user.id:
        raise HTTPException(status_code=401, detail="Unauthorized")

def get_cart_store(db: Session = Depends(get_db)) -> CartStore:
    return CartStore(SqlCartRepository(db), ProductCatalog(db))

def _cart_to_out(store: CartStore, user: User) -> CartOut:
    items = store.resolved_items(user.id)
    total = math.fsum(it.price * it.quantity for it in items)
    return CartOut(
        items=items,
        total=round(total, 2),
        total_display=format_currency(total, settings.CURRENCY_LOCALE),
    )

def _ip(request: Request):
    return request.client.host if request.client else None

@router.get("", response_model=CartOut)
def get_cart(
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
):
    _ensure_client(current_user)
    return _cart_to_out(store, current_user)

@router.post("/add", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
):
    _ensure_client(current_user)
    lines = store.add_to_cart(current_user.id, payload)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS" if payload.product_id else "IGNORED",
        ip=_ip(request),
        meta={"product_id": payload.product_id, "qty": payload.quantity, "cart_items": len(lines)},
    )
    return _cart_to_out(store, current_user)

@router.put("/items/{product_id}", response_model=CartOut)
def update_cart_item(
    product_id: str,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
):
    _ensure_client(current_user)
    lines = store.update_quantity(current_user.id, product_id, payload.quantity)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=_ip(request),
        meta={"product_id": product_id, "qty": payload.quantity, "cart_items": len(lines)},
    )
    return _cart_to_out(store, current_user)

@router.delete("/items/{product_id}", response_model=CartOut)
def delete_cart_item(
    product_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
):
    _ensure_client(current_user)
    lines = store.remove_from_cart(current_user.id, product_id)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        status="SUCCESS",
        ip=_ip(request),
        meta={"product_id": product_id, "cart_items": len(lines)},
    )
    return _cart_to_out(store, current_user)

@router.delete("", response_model=CartOut)
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
):
    _ensure_client(current_user)
    store.clear_cart(current_user.id)
    write_log(db, user_id=current_user.id, action="CART_CLEAR", resource="cart", ip=_ip(request))
    return _cart_to_out(store, current_user)
