"""
Boundary adapters.

Records reach checkout in several shapes: ORM rows, snake_case API payloads,
camelCase payloads from the browser client and legacy listings that use
`ownerId`, `userId`, `productName`, `imageDataUrl` and friends. Everything is
mapped here, once, into the canonical schemas; business logic never looks at
alternate field names.
"""
import logging
import math
from datetime import datetime
from typing import Any, Iterable, List, Optional, Set

from schemas.cart import CartLine
from schemas.order import FarmerOrderItem, OrderBrief, OrderItemOut, OrderResponse
from schemas.product import ProductBrief, ProductRecord
from schemas.user import BuyerBrief, UserRecord

logger = logging.getLogger(__name__)

_MISSING = object()


def _camel(key: str) -> str:
    head, *tail = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in tail)


def _lookup(record: Any, key: str) -> Any:
    if record is None:
        return _MISSING
    if isinstance(record, dict):
        return record.get(key, _MISSING)
    return getattr(record, key, _MISSING)


def pick(record: Any, *keys: str, default: Any = None) -> Any:
    """First non-empty value among `keys` (snake_case or their camelCase form)."""
    for key in keys:
        for candidate in (key, _camel(key)):
            value = _lookup(record, candidate)
            if value is not _MISSING and value is not None and value != "":
                return value
    return default


def to_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def normalize_user(raw: Any) -> Optional[UserRecord]:
    if raw is None:
        return None
    user_id = pick(raw, "id", "user_id", "email")
    if user_id is None:
        return None
    return UserRecord(
        id=to_text(user_id),
        email=to_text(pick(raw, "email", default="")),
        name=to_text(pick(raw, "name", default="")),
        role=to_text(pick(raw, "role", default="buyer")).lower(),
    )


def user_identity_keys(user: Any) -> Set[str]:
    """Every reference that designates this user: numeric id and email."""
    keys = set()
    for key in ("id", "user_id", "email"):
        value = pick(user, key)
        if value is not None:
            keys.add(to_text(value))
    return keys


def normalize_product(raw: Any) -> Optional[ProductRecord]:
    if raw is None:
        return None
    product_id = pick(raw, "id", "product_id")
    if product_id is None:
        return None
    farmer_id = pick(raw, "farmer_id", "owner_id", default="")
    return ProductRecord(
        id=to_text(product_id),
        name=to_text(pick(raw, "name", "product_name", default="")),
        price=max(0.0, to_number(pick(raw, "price"))),
        quantity=int(max(0.0, to_number(pick(raw, "quantity", "inventory")))),
        category=pick(raw, "category"),
        location=pick(raw, "location"),
        image=pick(raw, "image", "image_data_url", "product_image"),
        farmer_id=to_text(farmer_id),
        farmer_email=to_text(pick(raw, "farmer_email", default="")),
        farmer_name=to_text(pick(raw, "farmer_name", default="")),
        owner_id=to_text(pick(raw, "owner_id", "farmer_id", default="")),
    )


def normalize_raw_item(raw: Any) -> dict:
    """Map a cart/product line of any accepted shape to invoice input fields."""
    return {
        "product_id": pick(raw, "product_id", "id"),
        "name": pick(raw, "name", "product_name"),
        "price": pick(raw, "price"),
        "quantity": pick(raw, "quantity"),
        "farmer_id": to_text(pick(raw, "farmer_id", "owner_id", default="")),
        "farmer_email": to_text(pick(raw, "farmer_email", default="")),
        "farmer_name": to_text(pick(raw, "farmer_name", default="")),
        "product_image": pick(raw, "product_image", "image", "image_data_url"),
    }


def normalize_cart_line(raw: Any) -> Optional[CartLine]:
    product_id = pick(raw, "product_id")
    if product_id is None:
        return None
    quantity = int(to_number(pick(raw, "quantity"), default=1))
    return CartLine(product_id=to_text(product_id), quantity=max(1, quantity))


def normalize_cart_lines(raw_items: Iterable[Any]) -> List[CartLine]:
    lines = []
    for raw in raw_items or []:
        line = normalize_cart_line(raw)
        if line is not None:
            lines.append(line)
    return lines


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable order date %r", value)
        return None


def _status_of(raw: Any, fallback: str = "PLACED") -> str:
    return to_text(pick(raw, "order_status", "status", default=fallback)).upper()


def normalize_order_item(raw: Any, order_id: Any = None) -> OrderItemOut:
    return OrderItemOut(
        id=int(to_number(pick(raw, "id", "order_item_id"))),
        order_id=int(to_number(pick(raw, "order_id", default=order_id))),
        product_id=to_text(pick(raw, "product_id", default=pick(pick(raw, "product"), "id", default=""))),
        farmer_id=to_text(pick(raw, "farmer_id", default="")),
        quantity=int(to_number(pick(raw, "quantity"))),
        price_at_purchase=to_number(pick(raw, "price_at_purchase", "price")),
    )


def normalize_order(raw: Any) -> OrderResponse:
    order_id = int(to_number(pick(raw, "id", "order_id")))
    items = pick(raw, "order_items", "items", default=[]) or []
    buyer = pick(raw, "buyer")
    return OrderResponse(
        id=order_id,
        buyer_id=to_text(pick(raw, "buyer_id", default=pick(buyer, "id", default=""))),
        order_date=_parse_datetime(pick(raw, "order_date", "created_at")),
        order_status=_status_of(raw),
        total_amount=to_number(pick(raw, "total_amount", "total")),
        invoice_no=pick(raw, "invoice_no"),
        order_items=[normalize_order_item(item, order_id) for item in items],
    )


def normalize_farmer_order_item(raw: Any) -> FarmerOrderItem:
    order = pick(raw, "order") or {}
    product = pick(raw, "product")
    buyer = pick(order, "buyer")
    order_id = int(to_number(pick(order, "id", default=pick(raw, "order_id"))))
    product_id = to_text(pick(product, "id", default=pick(raw, "product_id", default="")))
    return FarmerOrderItem(
        id=int(to_number(pick(raw, "id", "order_item_id"))),
        order_id=order_id,
        product_id=product_id,
        farmer_id=to_text(pick(raw, "farmer_id", default="")),
        quantity=int(to_number(pick(raw, "quantity"))),
        price_at_purchase=to_number(pick(raw, "price_at_purchase", "price")),
        order=OrderBrief(
            id=order_id,
            order_status=_status_of(order, fallback=_status_of(raw)),
            order_date=_parse_datetime(pick(order, "order_date", default=pick(raw, "created_at"))),
            buyer=BuyerBrief(
                id=to_text(pick(buyer, "id", default=pick(raw, "buyer_id", default=""))),
                name=pick(buyer, "name", default=pick(raw, "buyer_name")),
                email=pick(buyer, "email"),
            ),
        ),
        product=ProductBrief(
            id=product_id,
            name=to_text(pick(product, "name", default="Unknown Product")),
        ),
    )
