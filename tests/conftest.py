"""
Shared fixtures: an in-memory SQLite database seeded with demo users and
products, bearer tokens for them, and in-memory fakes for the cart
repository and the order backend.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("ORDER_API_URL", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models.users  # noqa: F401
import models.product  # noqa: F401
import models.cart  # noqa: F401
import models.checkout  # noqa: F401
import models.order  # noqa: F401
import models.log  # noqa: F401
from populate_db import seed_demo_data
from schemas.order import OrderItemOut, OrderResponse
from schemas.product import ProductRecord
from services.cart_store import CartRepository, CartStore
from services.errors import OrderBackendError
from services.order_backend import OrderBackend
from utils.tokenJWT import create_access_token

BUYER = "buyer@agriconnect.test"
ADMIN = "admin@agriconnect.test"
RAVI = "ravi@farm.test"
MEENA = "meena@farm.test"
LEGACY = "old@farm.test"


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def users(db):
    return seed_demo_data(db)


@pytest.fixture
def client(db, users):
    from fastapi.testclient import TestClient
    from main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def auth(email):
    return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}


class InMemoryCartRepository(CartRepository):
    def __init__(self):
        self.carts = {}
        self.saves = 0

    def load(self, user_key):
        return list(self.carts.get(user_key, []))

    def save(self, user_key, lines):
        self.saves += 1
        self.carts[user_key] = list(lines)


class FakeCatalog:
    def __init__(self, products=()):
        self.products = {p.id: p for p in products}

    def get_product_by_id(self, product_id):
        return self.products.get(str(product_id))

    def get_products_by_farmer(self, farmer_id):
        return [p for p in self.products.values() if farmer_id in (p.farmer_id, p.farmer_email, p.owner_id)]


class FakeOrderBackend(OrderBackend):
    """Records submitted payloads; `fail_on` makes the n-th create call fail (1-based)."""

    def __init__(self, fail_on=None, error=None):
        self.created = []
        self.fail_on = fail_on
        self.error = error or OrderBackendError("Failed to place order: service unavailable", status_code=503)
        self.orders = {}
        self.status_updates = []
        self.cancelled = []

    async def create_order(self, payload):
        if self.fail_on is not None and len(self.created) + 1 == self.fail_on:
            raise self.error
        self.created.append(payload)
        order_id = len(self.created)
        order = OrderResponse(
            id=order_id,
            buyer_id=payload.buyer_id,
            order_status="PLACED",
            total_amount=sum(i.price_at_purchase * i.quantity for i in payload.items),
            invoice_no=payload.invoice_no,
            order_items=[
                OrderItemOut(id=order_id * 10 + n, order_id=order_id, product_id=i.product_id,
                             farmer_id=i.farmer_id, quantity=i.quantity, price_at_purchase=i.price_at_purchase)
                for n, i in enumerate(payload.items)
            ],
        )
        self.orders[order_id] = order
        return order

    async def list_buyer_orders(self, buyer_id):
        return [o for o in self.orders.values() if o.buyer_id == str(buyer_id)]

    async def list_farmer_order_items(self, farmer_id):
        return []

    async def update_order_status(self, order_id, status):
        self.status_updates.append((order_id, status))
        order = self.orders[order_id].model_copy(update={"order_status": status})
        self.orders[order_id] = order
        return order

    async def cancel_order(self, order_id):
        self.cancelled.append(order_id)
        order = self.orders[order_id].model_copy(update={"order_status": "CANCELLED"})
        self.orders[order_id] = order
        return order


def product(pid, name, price, farmer_id="", farmer_email="", farmer_name="", owner_id="", quantity=10):
    return ProductRecord(
        id=pid, name=name, price=price, quantity=quantity, farmer_id=farmer_id,
        farmer_email=farmer_email, farmer_name=farmer_name, owner_id=owner_id,
    )


@pytest.fixture
def catalog():
    return FakeCatalog([
        product("p1", "Basmati Rice", 100.0, "f1", "f1@farm.test", "Ravi"),
        product("p2", "Tomatoes", 50.0, "f2", "f2@farm.test", "Meena"),
        product("p3", "Mangoes", 650.0, "f1", "f1@farm.test", "Ravi"),
    ])


@pytest.fixture
def cart_repo():
    return InMemoryCartRepository()


@pytest.fixture
def cart_store(cart_repo, catalog):
    return CartStore(cart_repo, catalog)
