"""
Authoritative order store.

Every rule enforced by the storefront is enforced again here: the caller's
identity, the legal status transitions and stock levels. Order creation is
idempotent per (buyer, invoice number, farmer) so a resubmitted checkout
never produces duplicate orders.
"""
import logging
import math
from collections import defaultdict
from typing import Any, List, Optional, Set, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from schemas.order import FarmerOrderItem, OrderBrief, OrderCreate
from schemas.product import ProductBrief
from schemas.user import BuyerBrief
from services.catalog import UserDirectory
from services.errors import (
    OrderNotFoundError, OrderPermissionError, OrderTransitionError, OrderValidationError,
)
from services.normalize import user_identity_keys
from services.order_states import Role, can_transition, parse_role, parse_status
from utils.audit import write_log

logger = logging.getLogger(__name__)


def _is_admin(actor: Any) -> bool:
    return parse_role(getattr(actor, "role", None)) == Role.ADMIN


def _refs_of(db: Session, ref: str) -> Set[str]:
    # All identities of the user behind `ref` (id and email), plus `ref` itself
    keys = {str(ref)}
    user = UserDirectory(db).find(ref)
    if user is not None:
        keys |= user_identity_keys(user)
    return keys


def _farmer_of(db: Session, product: Product) -> Tuple[str, Set[str]]:
    # Stored farmer reference of a product and every identity that designates that farmer
    ref = product.farmer_id or product.farmer_email or product.owner_id or ""
    keys = {k for k in (product.farmer_id, product.farmer_email, product.owner_id) if k}
    user = UserDirectory(db).find(ref)
    if user is not None:
        keys |= user_identity_keys(user)
        ref = str(user.id)
    return ref, keys


def _load_order(db: Session, order_id: int) -> Order:
    order = db.query(Order).options(
        joinedload(Order.order_items)
    ).filter(Order.id == order_id).first()
    if not order:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def _find_existing(db: Session, payload: OrderCreate) -> Optional[Order]:
    if not payload.invoice_no:
        return None
    return db.query(Order).filter(
        Order.buyer_id == payload.buyer_id,
        Order.invoice_no == payload.invoice_no,
        Order.farmer_key == payload.farmer_key,
    ).first()


def create_order(db: Session, payload: OrderCreate, actor: Any, ip: Optional[str] = None) -> Order:
    if not _is_admin(actor) and payload.buyer_id not in user_identity_keys(actor):
        raise OrderPermissionError("Orders can only be placed for your own account")
    if not payload.items:
        raise OrderValidationError("Order must contain at least one item")

    existing = _find_existing(db, payload)
    if existing:
        logger.info("Order for invoice %s (farmer %s) already exists as #%s",
                    payload.invoice_no, payload.farmer_key, existing.id)
        return existing

    # Validate quantities, prices and stock before touching anything
    needed = defaultdict(int)
    for item in payload.items:
        if item.quantity <= 0:
            raise OrderValidationError(f"Invalid quantity for product {item.product_id}")
        if item.price_at_purchase < 0 or math.isnan(item.price_at_purchase):
            raise OrderValidationError(f"Invalid price for product {item.product_id}")
        needed[item.product_id] += item.quantity

    products = {}
    farmers = {}
    for product_id, quantity in needed.items():
        product = db.query(Product).filter(Product.id == product_id).with_for_update().first()
        if not product:
            raise OrderValidationError(f"Product {product_id} does not exist")
        if (product.quantity or 0) < quantity:
            raise OrderValidationError(f"Insufficient stock for: {product.name}")
        products[product_id] = product
        farmers[product_id] = _farmer_of(db, product)

    # The farmer of a line is the product's farmer, whatever the caller sent
    for item in payload.items:
        keys = farmers[item.product_id][1]
        if item.farmer_id and keys and item.farmer_id not in keys:
            raise OrderValidationError(f"Product {item.product_id} is not sold by farmer {item.farmer_id}")

    for product_id, quantity in needed.items():
        products[product_id].quantity -= quantity

    order = Order(
        buyer_id=payload.buyer_id,
        order_status=OrderStatus.PLACED.value,
        total_amount=math.fsum(i.price_at_purchase * i.quantity for i in payload.items),
        invoice_no=payload.invoice_no,
        farmer_key=payload.farmer_key,
    )
    db.add(order)
    order.order_items = [
        OrderItem(
            product_id=i.product_id,
            farmer_id=farmers[i.product_id][0],
            quantity=i.quantity,
            price_at_purchase=i.price_at_purchase,
        ) for i in payload.items
    ]
    try:
        db.commit()
    except IntegrityError:
        # A concurrent submission of the same invoice won the race
        db.rollback()
        existing = _find_existing(db, payload)
        if existing:
            return existing
        raise
    db.refresh(order)

    write_log(
        db, user_id=getattr(actor, "id", None), action="ORDER_CREATE", resource="orders", status="SUCCESS",
        ip=ip, meta={"order_id": order.id, "invoice_no": order.invoice_no, "total": order.total_amount},
    )
    return order


def list_buyer_orders(db: Session, buyer_id: str, actor: Any) -> List[Order]:
    if not _is_admin(actor) and str(buyer_id) not in user_identity_keys(actor):
        raise OrderPermissionError("You can only view your own orders")
    keys = _refs_of(db, buyer_id)
    return db.query(Order).options(
        joinedload(Order.order_items)
    ).filter(Order.buyer_id.in_(keys)).order_by(Order.order_date.desc(), Order.id.desc()).all()


def list_farmer_order_items(db: Session, farmer_id: str, actor: Any) -> List[FarmerOrderItem]:
    if not _is_admin(actor) and str(farmer_id) not in user_identity_keys(actor):
        raise OrderPermissionError("You can only view orders for your own products")
    keys = _refs_of(db, farmer_id)
    rows = db.query(OrderItem).options(
        joinedload(OrderItem.order), joinedload(OrderItem.product)
    ).join(Order).filter(OrderItem.farmer_id.in_(keys)).order_by(
        Order.order_date.desc(), OrderItem.id.desc()
    ).all()

    buyers = {}
    result = []
    for item in rows:
        buyer_ref = item.order.buyer_id
        if buyer_ref not in buyers:
            buyers[buyer_ref] = UserDirectory(db).find(buyer_ref)
        buyer = buyers[buyer_ref]
        result.append(FarmerOrderItem(
            id=item.id,
            order_id=item.order_id,
            product_id=item.product_id,
            farmer_id=item.farmer_id,
            quantity=item.quantity,
            price_at_purchase=item.price_at_purchase,
            order=OrderBrief(
                id=item.order.id,
                order_status=item.order.order_status,
                order_date=item.order.order_date,
                buyer=BuyerBrief(
                    id=buyer_ref,
                    name=buyer.name if buyer else None,
                    email=buyer.email if buyer else None,
                ),
            ),
            product=ProductBrief(
                id=item.product_id,
                name=item.product.name if item.product else "Unknown Product",
            ),
        ))
    return result


def list_all_orders(db: Session, actor: Any) -> List[Order]:
    if not _is_admin(actor):
        raise OrderPermissionError("Admin access required")
    return db.query(Order).options(
        joinedload(Order.order_items)
    ).order_by(Order.order_date.desc(), Order.id.desc()).all()


def get_order(db: Session, order_id: int, actor: Any) -> Order:
    order = _load_order(db, order_id)
    keys = user_identity_keys(actor)
    is_party = order.buyer_id in keys or any(i.farmer_id in keys for i in order.order_items)
    if not is_party and not _is_admin(actor):
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def update_order_status(db: Session, order_id: int, status: str, actor: Any, ip: Optional[str] = None) -> Order:
    try:
        target = parse_status(status)
    except ValueError:
        raise OrderValidationError(f"Unknown order status: {status}")

    order = _load_order(db, order_id)
    keys = user_identity_keys(actor)
    is_farmer = parse_role(getattr(actor, "role", None)) == Role.FARMER
    if not is_farmer or not any(i.farmer_id in keys for i in order.order_items):
        raise OrderPermissionError("Only the farmer of this order can update its status")

    current = order.order_status
    if not can_transition(current, target, Role.FARMER):
        write_log(
            db, user_id=getattr(actor, "id", None), action="ORDER_STATUS_CHANGE", resource="orders",
            status="FAIL", ip=ip, meta={"order_id": order.id, "old": current, "new": target.value},
        )
        raise OrderTransitionError(f"Cannot change order status from {current} to {target.value}")

    order.order_status = target.value
    db.commit()
    write_log(
        db, user_id=getattr(actor, "id", None), action="ORDER_STATUS_CHANGE", resource="orders",
        status="SUCCESS", ip=ip, meta={"order_id": order.id, "old": current, "new": target.value},
    )
    db.refresh(order)
    return order


def cancel_order(db: Session, order_id: int, actor: Any, ip: Optional[str] = None) -> Order:
    order = _load_order(db, order_id)
    if order.buyer_id not in user_identity_keys(actor):
        raise OrderPermissionError("Only the buyer can cancel this order")

    current = order.order_status
    if not can_transition(current, OrderStatus.CANCELLED, Role.BUYER):
        raise OrderTransitionError(f"Only PLACED orders can be cancelled (current status: {current})")

    # Return reserved units to the catalog
    for item in order.order_items:
        product = db.query(Product).filter(Product.id == item.product_id).with_for_update().first()
        if product:
            product.quantity = (product.quantity or 0) + item.quantity

    order.order_status = OrderStatus.CANCELLED.value
    db.commit()
    write_log(
        db, user_id=getattr(actor, "id", None), action="ORDER_CANCEL", resource="orders",
        status="SUCCESS", ip=ip, meta={"order_id": order.id, "old": current},
    )
    db.refresh(order)
    return order
