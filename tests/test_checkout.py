import pytest

from schemas.user import UserRecord
from services.checkout import (
    CheckoutOrchestrator, CheckoutStatus, build_order_payloads, split_by_farmer,
)
from services.errors import (
    CheckoutInProgressError, CheckoutPreconditionError, CheckoutValidationError, OrderBackendError,
)
from services.invoice_builder import build_invoice, map_items_to_invoice_lines

from conftest import FakeOrderBackend, product

BUYER = UserRecord(id="u1", email="asha@buyer.test", name="Asha", role="buyer")


def _fill_cart(cart_store):
    cart_store.add_to_cart("u1", {"product_id": "p1", "quantity": 2})
    cart_store.add_to_cart("u1", {"product_id": "p2", "quantity": 1})
    return build_invoice(cart_store.resolved_items("u1"), {"invoice_no": "INV100", "buyer_id": "u1"})


@pytest.mark.asyncio
async def test_two_farmer_checkout(cart_store):
    invoice = _fill_cart(cart_store)
    assert invoice.total_amount == 250

    backend = FakeOrderBackend()
    orchestrator = CheckoutOrchestrator(backend, cart_store)
    completed = await orchestrator.submit_payment(invoice, BUYER)

    assert len(backend.created) == 2
    first, second = backend.created
    assert [i.price_at_purchase for i in first.items] == [100.0]
    assert [i.price_at_purchase for i in second.items] == [50.0]
    assert first.items[0].quantity == 2
    assert first.buyer_id == "u1"
    assert {p.invoice_no for p in backend.created} == {"INV100"}
    assert [p.farmer_key for p in backend.created] == ["f1@farm.test", "f2@farm.test"]

    assert cart_store.get_lines("u1") == []
    assert completed.order_id == 1
    assert completed.order_ids == [1, 2]
    assert completed.paid_at
    assert orchestrator.status == CheckoutStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_cart_kept_when_second_order_fails(cart_store):
    invoice = _fill_cart(cart_store)
    backend = FakeOrderBackend(fail_on=2)
    orchestrator = CheckoutOrchestrator(backend, cart_store)

    with pytest.raises(OrderBackendError):
        await orchestrator.submit_payment(invoice, BUYER)

    assert len(cart_store.get_lines("u1")) == 2
    assert orchestrator.status == CheckoutStatus.FAILED
    assert "service unavailable" in orchestrator.error


@pytest.mark.asyncio
async def test_cart_kept_on_unexpected_error(cart_store):
    invoice = _fill_cart(cart_store)
    backend = FakeOrderBackend(fail_on=1, error=RuntimeError("boom"))
    orchestrator = CheckoutOrchestrator(backend, cart_store)

    with pytest.raises(RuntimeError):
        await orchestrator.submit_payment(invoice, BUYER)
    assert len(cart_store.get_lines("u1")) == 2
    assert orchestrator.status == CheckoutStatus.FAILED


@pytest.mark.asyncio
async def test_validation_reports_every_problem(cart_store):
    invoice = build_invoice([
        {"product_id": "p1", "name": "Rice", "price": 100, "quantity": 1, "farmer_email": "f1@farm.test"},
        {"name": "Mystery", "price": 0, "quantity": 1},
    ], {"invoice_no": "INV7"})
    backend = FakeOrderBackend()
    orchestrator = CheckoutOrchestrator(backend, cart_store)

    with pytest.raises(CheckoutValidationError) as exc:
        await orchestrator.submit_payment(invoice, BUYER)

    assert exc.value.errors == [
        "Item 2: Missing productId",
        "Item 2: Invalid price",
        "Item 2: Missing farmer information",
    ]
    assert exc.value.message.startswith("Validation failed: Item 2: Missing productId")
    assert backend.created == []
    assert orchestrator.status == CheckoutStatus.FAILED


@pytest.mark.asyncio
async def test_preconditions(cart_store):
    orchestrator = CheckoutOrchestrator(FakeOrderBackend(), cart_store)
    invoice = _fill_cart(cart_store)

    with pytest.raises(CheckoutPreconditionError):
        await orchestrator.submit_payment(None, BUYER)
    with pytest.raises(CheckoutPreconditionError):
        await orchestrator.submit_payment(invoice, None)
    assert len(cart_store.get_lines("u1")) == 2


@pytest.mark.asyncio
async def test_rejects_second_submission_while_processing(cart_store):
    invoice = _fill_cart(cart_store)
    orchestrator = CheckoutOrchestrator(FakeOrderBackend(), cart_store)
    orchestrator.status = CheckoutStatus.PROCESSING

    with pytest.raises(CheckoutInProgressError):
        await orchestrator.submit_payment(invoice, BUYER)


@pytest.mark.asyncio
async def test_farmer_resolved_from_catalog(cart_store, catalog):
    # Line carries no farmer; the catalog knows it
    invoice = build_invoice([{"product_id": "p2", "name": "Tomatoes", "price": 50, "quantity": 1}], {})
    backend = FakeOrderBackend()
    await CheckoutOrchestrator(backend, cart_store, catalog=catalog).submit_payment(invoice, BUYER)
    assert backend.created[0].farmer_key == "f2@farm.test"
    assert backend.created[0].items[0].farmer_id == "f2"


class _Users:
    def __init__(self, users):
        self.users = users

    def find(self, ref):
        return self.users.get(str(ref))


@pytest.mark.asyncio
async def test_farmer_resolved_from_owner(cart_store, catalog):
    catalog.products["p9"] = product("p9", "Ghee", 720, owner_id="55", farmer_id="55")
    users = _Users({"55": UserRecord(id="55", email="old@farm.test", name="Old Farmer", role="farmer")})
    invoice = build_invoice([{"product_id": "p9", "name": "Ghee", "price": 720, "quantity": 1}], {})
    backend = FakeOrderBackend()

    await CheckoutOrchestrator(backend, cart_store, catalog=catalog, users=users).submit_payment(invoice, BUYER)

    payload = backend.created[0]
    assert payload.farmer_key == "old@farm.test"
    assert payload.items[0].farmer_id == "old@farm.test"


def test_split_covers_every_line_once():
    lines = map_items_to_invoice_lines([
        {"product_id": "a", "price": 1, "quantity": 1, "farmer_email": "x@f"},
        {"product_id": "b", "price": 1, "quantity": 1, "farmer_id": "9"},
        {"product_id": "c", "price": 1, "quantity": 1, "farmer_email": "x@f"},
        {"product_id": "d", "price": 1, "quantity": 1},
    ])
    groups = split_by_farmer(lines)
    assert [g.key for g in groups] == ["x@f", "9", "unknown"]
    assert sorted(l.product_id for g in groups for l in g.lines) == ["a", "b", "c", "d"]
    assert [l.product_id for l in groups[0].lines] == ["a", "c"]


def test_payloads_use_invoice_prices():
    invoice = build_invoice([
        {"product_id": "a", "price": 12.5, "quantity": 2, "farmer_id": "f1"},
        {"product_id": "b", "price": 3, "quantity": 1, "farmer_id": "f1"},
    ], {"invoice_no": "INV9"})
    payloads = build_order_payloads(invoice, split_by_farmer(invoice.items), "u1")
    assert len(payloads) == 1
    assert [(i.product_id, i.quantity, i.price_at_purchase) for i in payloads[0].items] == [
        ("a", 2, 12.5), ("b", 1, 3.0),
    ]
    assert sum(i.price_at_purchase * i.quantity for i in payloads[0].items) == invoice.total_amount
