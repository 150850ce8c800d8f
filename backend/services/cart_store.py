"""
Per-user cart.

Carts hold {product_id, quantity} pairs only; everything shown to the buyer
is joined from the catalog on read. Mutations never raise for bad input:
missing user or product ids are ignored and quantities are clamped.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from models.cart import CartLineRow
from schemas.cart import CartLine, ResolvedCartItem
from services.normalize import normalize_cart_lines, pick, to_number, to_text

logger = logging.getLogger(__name__)


class CartRepository:
    """Durable storage of carts keyed by user."""

    def load(self, user_key: str) -> List[CartLine]:
        raise NotImplementedError

    def save(self, user_key: str, lines: List[CartLine]) -> None:
        raise NotImplementedError


class SqlCartRepository(CartRepository):
    def __init__(self, db: Session):
        self.db = db

    def load(self, user_key: str) -> List[CartLine]:
        rows = (
            self.db.query(CartLineRow)
            .filter(CartLineRow.user_key == user_key)
            .order_by(CartLineRow.position, CartLineRow.id)
            .all()
        )
        return [CartLine(product_id=r.product_id, quantity=r.quantity) for r in rows]

    def save(self, user_key: str, lines: List[CartLine]) -> None:
        self.db.query(CartLineRow).filter(CartLineRow.user_key == user_key).delete()
        self.db.flush()
        for position, line in enumerate(lines):
            self.db.add(CartLineRow(
                user_key=user_key,
                product_id=line.product_id,
                quantity=line.quantity,
                position=position,
            ))
        self.db.commit()


def _user_key(user_id) -> Optional[str]:
    if user_id is None or user_id == "":
        return None
    return str(user_id)


class CartStore:
    def __init__(self, repository: CartRepository, catalog=None):
        self.repository = repository
        self.catalog = catalog

    def get_lines(self, user_id) -> List[CartLine]:
        key = _user_key(user_id)
        if key is None:
            return []
        return self.repository.load(key)

    def add_to_cart(self, user_id, item: Any) -> List[CartLine]:
        key = _user_key(user_id)
        product_id = pick(item, "product_id")
        if key is None or product_id is None:
            return self.get_lines(user_id)

        product_id = to_text(product_id)
        quantity = max(1, int(to_number(pick(item, "quantity"), default=1)))
        lines = self.repository.load(key)
        for index, line in enumerate(lines):
            if line.product_id == product_id:
                lines[index] = CartLine(product_id=product_id, quantity=line.quantity + quantity)
                break
        else:
            lines.append(CartLine(product_id=product_id, quantity=quantity))
        self.repository.save(key, lines)
        return lines

    def update_quantity(self, user_id, product_id, quantity) -> List[CartLine]:
        key = _user_key(user_id)
        if key is None:
            return []
        product_id = to_text(product_id)
        requested = to_number(quantity, default=1)
        lines = self.repository.load(key)
        if requested <= 0:
            # A zero or negative quantity drops the line instead of storing it
            next_lines = [line for line in lines if line.product_id != product_id]
        else:
            clamped = max(1, int(requested))
            next_lines = [
                CartLine(product_id=line.product_id, quantity=clamped)
                if line.product_id == product_id else line
                for line in lines
            ]
        next_lines = [line for line in next_lines if line.quantity > 0]
        self.repository.save(key, next_lines)
        return next_lines

    def remove_from_cart(self, user_id, product_id) -> List[CartLine]:
        key = _user_key(user_id)
        if key is None:
            return []
        product_id = to_text(product_id)
        lines = self.repository.load(key)
        remaining = [line for line in lines if line.product_id != product_id]
        if len(remaining) != len(lines):
            self.repository.save(key, remaining)
        return remaining

    def clear_cart(self, user_id) -> None:
        """Empty the cart. Only call once the backend has confirmed the order."""
        key = _user_key(user_id)
        if key is None:
            return
        self.repository.save(key, [])

    def resolve(self, line: CartLine) -> ResolvedCartItem:
        product = self.catalog.get_product_by_id(line.product_id) if self.catalog else None
        if product is None:
            return ResolvedCartItem(
                product_id=line.product_id,
                name="Unknown Product",
                price=0.0,
                quantity=line.quantity,
            )
        return ResolvedCartItem(
            product_id=line.product_id,
            name=product.name,
            price=product.price,
            quantity=line.quantity,
            farmer_id=product.farmer_id,
            farmer_email=product.farmer_email,
            farmer_name=product.farmer_name,
            image=product.image,
        )

    def resolved_items(self, user_id) -> List[ResolvedCartItem]:
        return [self.resolve(line) for line in self.get_lines(user_id)]

    def import_legacy_cart(self, raw: Any) -> Dict[str, List[CartLine]]:
        """
        Merge a legacy `cart_by_user` blob ({user: [items...]}, possibly a JSON
        string) into the store. Item payloads such as images and names are
        dropped; only product ids and quantities are kept.
        """
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw or "{}")
            except ValueError:
                logger.warning("Ignoring malformed legacy cart data")
                return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring legacy cart data of type %s", type(raw).__name__)
            return {}

        imported = {}
        for user_id, items in raw.items():
            if not isinstance(items, list):
                continue
            for line in normalize_cart_lines(items):
                self.add_to_cart(user_id, line)
            imported[str(user_id)] = self.get_lines(user_id)
        return imported
