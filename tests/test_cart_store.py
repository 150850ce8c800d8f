import json

from schemas.cart import CartAddItem, CartLine
from services.cart_store import CartStore, SqlCartRepository
from services.catalog import ProductCatalog


def test_add_merges_quantities(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": 2})
    lines = cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": 3})
    assert lines == [CartLine(product_id="p1", quantity=5)]


def test_add_keeps_insertion_order(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p2"})
    cart_store.add_to_cart("u1", {"product_id": "p1"})
    cart_store.add_to_cart("u1", {"product_id": "p2"})
    assert [l.product_id for l in cart_store.get_lines("u1")] == ["p2", "p1"]
    assert cart_store.get_lines("u1")[0].quantity == 2


def test_add_ignores_missing_user_or_product(cart_store, cart_repo):
    assert cart_store.add_to_cart(None, {"product_id": "p1"}) == []
    assert cart_store.add_to_cart("u1", {"quantity": 2}) == []
    assert cart_store.add_to_cart("u1", CartAddItem(product_id=None)) == []
    assert cart_repo.saves == 0


def test_add_clamps_bad_quantity(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": -3})
    cart_store.add_to_cart("u2", {"productId": "p1", "quantity": "x"})
    assert cart_store.get_lines("u1")[0].quantity == 1
    assert cart_store.get_lines("u2")[0].quantity == 1


def test_update_quantity_zero_removes_line(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": 2})
    cart_store.add_to_cart("u1", {"product_id": "p2", "quantity": 1})
    lines = cart_store.update_quantity("u1", "p1", 0)
    assert [l.product_id for l in lines] == ["p2"]
    assert cart_store.update_quantity("u1", "p2", -1) == []


def test_update_quantity_sets_value(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": 2})
    assert cart_store.update_quantity("u1", "p1", 7)[0].quantity == 7
    assert cart_store.update_quantity("u1", "p1", 0.5)[0].quantity == 1
    # Non-numeric input counts as one
    assert cart_store.update_quantity("u1", "p1", "abc")[0].quantity == 1


def test_update_unknown_product_is_noop(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": 2})
    assert cart_store.update_quantity("u1", "zzz", 4) == [CartLine(product_id="p1", quantity=2)]


def test_remove_is_idempotent(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1"})
    assert cart_store.remove_from_cart("u1", "p1") == []
    assert cart_store.remove_from_cart("u1", "p1") == []


def test_carts_are_isolated_per_user(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1"})
    cart_store.add_to_cart("u2", {"product_id": "p2"})
    cart_store.clear_cart("u1")
    assert cart_store.get_lines("u1") == []
    assert cart_store.get_lines("u2") == [CartLine(product_id="p2", quantity=1)]


def test_resolve_joins_catalog(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": 2})
    cart_store.add_to_cart("u1", {"product_id": "gone"})
    known, unknown = cart_store.resolved_items("u1")
    assert known.name == "Basmati Rice"
    assert known.price == 100.0
    assert known.farmer_email == "f1@farm.test"
    assert unknown.name == "Unknown Product"
    assert unknown.price == 0


def test_import_legacy_cart(cart_store):
    blob = json.dumps({
        "7": [
            {"productId": "p1", "quantity": 2, "imageDataUrl": "data:...", "name": "Rice"},
            {"productId": "p1", "quantity": 1},
            {"name": "no id"},
        ],
        "8": "not a list",
    })
    imported = cart_store.import_legacy_cart(blob)
    assert imported == {"7": [CartLine(product_id="p1", quantity=3)]}
    assert cart_store.get_lines(7) == [CartLine(product_id="p1", quantity=3)]


def test_import_legacy_cart_ignores_garbage(cart_store):
    assert cart_store.import_legacy_cart("{not json") == {}
    assert cart_store.import_legacy_cart(["list"]) == {}


def test_sql_repository_round_trip(db, users):
    store = CartStore(SqlCartRepository(db), ProductCatalog(db))
    buyer = users["buyer@agriconnect.test"]
    store.add_to_cart(buyer.id, {"product_id": "p2", "quantity": 1})
    store.add_to_cart(buyer.id, {"product_id": "p1", "quantity": 2})
    store.add_to_cart(buyer.id, {"product_id": "p2", "quantity": 1})

    fresh = CartStore(SqlCartRepository(db), ProductCatalog(db))
    assert fresh.get_lines(buyer.id) == [
        CartLine(product_id="p2", quantity=2),
        CartLine(product_id="p1", quantity=1 + 1),
    ]
    items = fresh.resolved_items(buyer.id)
    assert [i.name for i in items] == ["Organic Tomatoes 1kg", "Basmati Rice 5kg"]
    assert items[1].farmer_email == "ravi@farm.test"

    fresh.clear_cart(buyer.id)
    assert store.get_lines(buyer.id) == []
