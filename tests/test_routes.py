from models.product import Product

from conftest import ADMIN, BUYER, LEGACY, MEENA, RAVI, auth


def _fill_cart(client):
    client.post("/cart/add", json={"product_id": "p1", "quantity": 1}, headers=auth(BUYER))
    client.post("/cart/add", json={"product_id": "p1", "quantity": 1}, headers=auth(BUYER))
    return client.post("/cart/add", json={"product_id": "p2", "quantity": 1}, headers=auth(BUYER))


def _checkout(client):
    _fill_cart(client)
    assert client.post("/checkout/invoice", headers=auth(BUYER)).status_code == 200
    response = client.post("/checkout/pay", headers=auth(BUYER))
    assert response.status_code == 200, response.text
    return response.json()["invoice"]


def test_requires_token(client):
    assert client.get("/cart").status_code in (401, 403)
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get("/cart", headers=bad).status_code == 401


def test_cart_endpoints(client):
    body = _fill_cart(client).json()
    assert [(i["product_id"], i["quantity"]) for i in body["items"]] == [("p1", 2), ("p2", 1)]
    assert body["total"] == 250
    assert body["total_display"] == "250.00"

    body = client.put("/cart/items/p1", json={"quantity": 0}, headers=auth(BUYER)).json()
    assert [i["product_id"] for i in body["items"]] == ["p2"]

    body = client.delete("/cart/items/p2", headers=auth(BUYER)).json()
    assert body["items"] == []
    assert client.delete("/cart/items/p2", headers=auth(BUYER)).status_code == 200


def test_checkout_from_cart(client, db):
    invoice = _checkout(client)

    assert invoice["total_amount"] == 250
    assert len(invoice["order_ids"]) == 2
    assert invoice["order_id"] == invoice["order_ids"][0]
    assert invoice["paid_at"]

    assert client.get("/cart", headers=auth(BUYER)).json()["items"] == []
    receipt = client.get("/checkout/receipt", headers=auth(BUYER)).json()
    assert receipt["invoice"]["invoice_no"] == invoice["invoice_no"]

    db.expire_all()
    assert db.get(Product, "p1").quantity == 38
    assert db.get(Product, "p2").quantity == 119

    orders = client.get("/my/purchases", headers=auth(BUYER)).json()
    assert sorted(o["total_amount"] for o in orders) == [50.0, 200.0]


def test_pending_invoice_survives_reload(client):
    _fill_cart(client)
    created = client.post("/checkout/invoice", headers=auth(BUYER)).json()
    resumed = client.get("/checkout/invoice", headers=auth(BUYER)).json()
    assert resumed["invoice"]["invoice_no"] == created["invoice"]["invoice_no"]
    assert resumed["total_display"] == "250.00"

    assert client.delete("/checkout/invoice", headers=auth(BUYER)).status_code == 204
    gone = client.get("/checkout/invoice", headers=auth(BUYER))
    assert gone.status_code == 409
    assert gone.json()["detail"]["redirect"] == "cart"
    # Abandoning billing keeps the cart
    assert len(client.get("/cart", headers=auth(BUYER)).json()["items"]) == 2


def test_empty_cart_cannot_be_invoiced(client):
    response = client.post("/checkout/invoice", headers=auth(BUYER))
    assert response.status_code == 400


def test_pay_without_invoice_goes_back_to_cart(client):
    response = client.post("/checkout/pay", headers=auth(BUYER))
    assert response.status_code == 409
    assert response.json()["detail"]["redirect"] == "cart"


def test_pay_with_stale_invoice_number(client):
    _fill_cart(client)
    client.post("/checkout/invoice", headers=auth(BUYER))
    response = client.post("/checkout/pay", json={"invoice_no": "INV0"}, headers=auth(BUYER))
    assert response.status_code == 409


def test_invalid_invoice_lists_every_error(client):
    client.post("/cart/add", json={"product_id": "ghost"}, headers=auth(BUYER))
    client.post("/checkout/invoice", headers=auth(BUYER))
    response = client.post("/checkout/pay", headers=auth(BUYER))

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["errors"] == ["Item 1: Invalid price", "Item 1: Missing farmer information"]
    assert len(client.get("/cart", headers=auth(BUYER)).json()["items"]) == 1


def test_out_of_stock_surfaces_backend_message(client):
    client.post("/cart/add", json={"product_id": "p3", "quantity": 16}, headers=auth(BUYER))
    client.post("/checkout/invoice", headers=auth(BUYER))
    response = client.post("/checkout/pay", headers=auth(BUYER))

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Insufficient stock")
    assert len(client.get("/cart", headers=auth(BUYER)).json()["items"]) == 1


def test_buy_now_legacy_product(client):
    response = client.post("/checkout/buy-now", json={"product_id": "p5", "quantity": 1}, headers=auth(BUYER))
    assert response.status_code == 200
    assert response.json()["invoice"]["total_amount"] == 720

    paid = client.post("/checkout/pay", headers=auth(BUYER))
    assert paid.status_code == 200, paid.text

    sales = client.get("/my/sales", headers=auth(LEGACY)).json()
    assert [s["product"]["name"] for s in sales] == ["Desi Ghee 1L"]


def test_buy_now_unknown_product(client):
    response = client.post("/checkout/buy-now", json={"product_id": "ghost"}, headers=auth(BUYER))
    assert response.status_code == 404


def test_farmer_dashboard_and_transitions(client):
    invoice = _checkout(client)
    sales = client.get("/my/sales", headers=auth(RAVI)).json()
    assert len(sales) == 1
    order_id = sales[0]["order_id"]
    assert order_id in invoice["order_ids"]

    skip = client.post(f"/my/orders/{order_id}/advance", json={"status": "SHIPPED"}, headers=auth(RAVI))
    assert skip.status_code == 409
    assert client.get(f"/orders/{order_id}", headers=auth(RAVI)).json()["order_status"] == "PLACED"

    ok = client.post(f"/my/orders/{order_id}/advance", json={"status": "ACCEPTED"}, headers=auth(RAVI))
    assert ok.status_code == 200
    assert ok.json()["order_status"] == "ACCEPTED"

    # Meena has no item in Ravi's order
    other = client.post(f"/my/orders/{order_id}/advance", json={"status": "SHIPPED"}, headers=auth(MEENA))
    assert other.status_code == 404
    assert client.get("/my/sales", headers=auth(BUYER)).status_code == 403


def test_buyer_cancels_placed_order_only(client):
    _checkout(client)
    sales = client.get("/my/sales", headers=auth(RAVI)).json()
    ravi_order = sales[0]["order_id"]
    meena_order = client.get("/my/sales", headers=auth(MEENA)).json()[0]["order_id"]

    client.post(f"/my/orders/{ravi_order}/advance", json={"status": "ACCEPTED"}, headers=auth(RAVI))
    assert client.post(f"/my/orders/{ravi_order}/cancel", headers=auth(BUYER)).status_code == 409

    cancelled = client.post(f"/my/orders/{meena_order}/cancel", headers=auth(BUYER))
    assert cancelled.status_code == 200
    assert cancelled.json()["order_status"] == "CANCELLED"


def test_orders_api_permissions(client, users):
    _checkout(client)
    assert len(client.get("/orders", headers=auth(ADMIN)).json()) == 2
    assert client.get("/orders", headers=auth(BUYER)).status_code == 403

    buyer_id = users[BUYER].id
    assert client.get(f"/orders/buyer/{buyer_id}", headers=auth(RAVI)).status_code == 403
    assert len(client.get(f"/orders/buyer/{buyer_id}", headers=auth(BUYER)).json()) == 2
    assert client.put("/orders/999/status", json={"status": "ACCEPTED"}, headers=auth(RAVI)).status_code == 404


def test_audit_log_is_admin_only(client):
    _checkout(client)
    assert client.get("/logs", headers=auth(BUYER)).status_code == 403

    page = client.get("/logs", params={"action": "ORDER_CREATE"}, headers=auth(ADMIN)).json()
    assert page["total"] == 2
    payments = client.get("/logs", params={"action": "PAYMENT", "status": "SUCCESS"}, headers=auth(ADMIN)).json()
    assert payments["total"] == 1


def test_orders_api_ignores_a_claimed_farmer(client, users):
    ravi = users[RAVI]
    body = {
        "buyer_id": str(ravi.id),
        "items": [{"product_id": "p2", "quantity": 1, "price_at_purchase": 50.0, "farmer_id": str(ravi.id)}],
    }
    response = client.post("/orders", json=body, headers=auth(RAVI))
    assert response.status_code == 400

    body["items"][0]["farmer_id"] = ""
    order = client.post("/orders", json=body, headers=auth(RAVI)).json()
    assert order["order_items"][0]["farmer_id"] == str(users[MEENA].id)

    advance = client.put(f"/orders/{order['id']}/status", json={"status": "ACCEPTED"}, headers=auth(RAVI))
    assert advance.status_code == 403
    assert [s["product_id"] for s in client.get("/my/sales", headers=auth(MEENA)).json()] == ["p2"]


def test_buy_now_non_finite_quantity_counts_as_one(client):
    response = client.post(
        "/checkout/buy-now",
        content='{"product_id": "p1", "quantity": NaN}',
        headers={**auth(BUYER), "Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json()["invoice"]["items"][0]["quantity"] == 1
