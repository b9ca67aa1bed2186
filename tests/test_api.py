from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from candleshop.api.app import app


@pytest.fixture
def client(db):
    return TestClient(app)


def _auth(user) -> dict:
    return {"X-User-Id": str(user.id)}


def test_requests_without_user_are_rejected(client):
    response = client.get("/api/cart")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


def test_admin_routes_need_admin(client, customer):
    response = client.get("/api/invoices", headers=_auth(customer))

    assert response.status_code == 403


def test_cart_to_order_to_invoice(client, customer, candle, colors):
    red, blue, _ = colors
    added = client.post(
        "/api/cart",
        json={"productId": candle.id, "quantity": 2, "hasMultipleColors": True, "colorIds": [blue.id, red.id]},
        headers=_auth(customer),
    )
    assert added.status_code == 201
    assert [color["name"] for color in added.json()["selectedColors"]] == ["Red", "Blue"]

    quote = client.get("/api/cart/quote", headers=_auth(customer)).json()
    assert quote == {
        "subtotal": "20.00",
        "shippingCost": "5.00",
        "discountAmount": "0.00",
        "total": "25.00",
        "isFreeShipping": False,
        "freeShippingThreshold": 50.0,
        "standardShippingRate": 5.0,
    }

    placed = client.post(
        "/api/orders",
        json={
            "shippingAddress": "Ilica 1",
            "shippingCity": "Zagreb",
            "shippingPostalCode": "10000",
            "shippingCountry": "Hrvatska",
            "paymentMethod": "cash",
            "language": "en",
        },
        headers=_auth(customer),
    )
    assert placed.status_code == 201
    order = placed.json()
    assert order["total"] == "25.00"
    assert order["items"][0]["colorName"] == "Red, Blue"
    assert order["invoiceId"] is not None

    invoice = client.get(f"/api/orders/{order['id']}/invoice", headers=_auth(customer)).json()
    assert invoice["invoiceNumber"] == "i450"
    assert invoice["language"] == "en"
    assert invoice["items"][0]["selectedColor"] == "Red, Blue"

    assert client.get("/api/cart", headers=_auth(customer)).json() == []
    assert len(client.get("/api/user/invoices", headers=_auth(customer)).json()) == 1


def test_order_validation_errors_are_reported(client, customer):
    response = client.post("/api/orders", json={"paymentMethod": "cash"}, headers=_auth(customer))

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid order data"
    assert "address" in body["errors"]


def test_foreign_order_is_forbidden(client, customer, admin, candle):
    client.post("/api/cart", json={"productId": candle.id}, headers=_auth(admin))
    placed = client.post(
        "/api/orders",
        json={
            "shippingAddress": "Main 2",
            "shippingCity": "Graz",
            "shippingPostalCode": "8010",
            "shippingCountry": "Austria",
            "paymentMethod": "bank_transfer",
        },
        headers=_auth(admin),
    ).json()

    response = client.get(f"/api/orders/{placed['id']}", headers=_auth(customer))

    assert response.status_code == 403


def test_cart_quantity_update_and_missing_line(client, customer, candle):
    line = client.post("/api/cart", json={"productId": candle.id}, headers=_auth(customer)).json()

    updated = client.put(f"/api/cart/{line['id']}", json={"quantity": 3}, headers=_auth(customer))
    assert updated.json()["quantity"] == 3

    assert client.put(f"/api/cart/{line['id']}", json={"quantity": 0}, headers=_auth(customer)).status_code == 400
    assert client.put("/api/cart/999", json={"quantity": 1}, headers=_auth(customer)).status_code == 404
    assert client.delete("/api/cart/999", headers=_auth(customer)).status_code == 204


def test_settings_crud(client, admin, customer):
    assert client.get("/api/settings/freeShippingThreshold").json()["value"] == "50"
    assert client.post(
        "/api/settings", json={"key": "storeCity", "value": "Zagreb"}, headers=_auth(customer)
    ).status_code == 403

    saved = client.post("/api/settings", json={"key": "storeCity", "value": "Zagreb"}, headers=_auth(admin))
    assert saved.json()["value"] == "Zagreb"
    assert client.put("/api/settings/storeCity", json={"value": "Split"}, headers=_auth(admin)).json()["value"] == "Split"
    assert client.delete("/api/settings/storeCity", headers=_auth(admin)).json() == {"success": True}
    assert client.get("/api/settings/unknownKey").status_code == 404


def test_manual_invoice_and_last_invoice(client, admin):
    created = client.post(
        "/api/invoices",
        json={
            "customerName": "Walk-in",
            "paymentMethod": "cash",
            "items": [{"productName": "Gift box", "quantity": 2, "price": 7.5}],
        },
        headers=_auth(admin),
    )
    assert created.status_code == 201
    assert created.json()["invoiceNumber"] == "i450"
    assert created.json()["total"] == "15.00"

    last = client.get("/api/invoices/last", headers=_auth(admin)).json()
    assert last["invoice"]["invoiceNumber"] == "i450"
    assert last["nextInvoiceNumber"] == "i451"

    invoice_id = created.json()["id"]
    assert client.delete(f"/api/invoices/{invoice_id}", headers=_auth(admin)).json() == {"success": True}
    assert client.get(f"/api/invoices/{invoice_id}", headers=_auth(admin)).status_code == 404


def test_paypal_mock_flow(client, customer, candle):
    assert client.get("/api/paypal/setup").json()["mock"] is True

    created = client.post("/api/paypal/order", json={"amount": "15.00", "currency": "EUR", "intent": "CAPTURE"})
    reference = created.json()["id"]
    assert client.post(f"/api/paypal/order/{reference}/capture").json()["status"] == "COMPLETED"

    client.post("/api/cart", json={"productId": candle.id}, headers=_auth(customer))
    order = client.post(
        "/api/orders",
        json={
            "shippingAddress": "Ilica 1",
            "shippingCity": "Zagreb",
            "shippingPostalCode": "10000",
            "shippingCountry": "Hrvatska",
            "paymentMethod": "paypal",
            "paymentReference": reference,
        },
        headers=_auth(customer),
    )
    assert order.status_code == 201
    assert order.json()["paymentStatus"] == "completed"


def test_paypal_order_validation(client):
    response = client.post("/api/paypal/order", json={"amount": -1})

    assert response.status_code == 400
    assert set(response.json()["errors"]) == {"amount", "currency", "intent"}


def test_admin_product_and_discount_management(client, admin, customer):
    product = client.post(
        "/api/products", json={"name": "Pillar", "price": 12.0, "stock": 4}, headers=_auth(admin)
    ).json()
    scent = client.post("/api/scents", json={"name": "Cedar"}, headers=_auth(admin)).json()
    client.post(f"/api/products/{product['id']}/scents", json={"id": scent["id"]}, headers=_auth(admin))

    detail = client.get(f"/api/products/{product['id']}").json()
    assert detail["price"] == "12.00"
    assert detail["scents"] == [{"id": scent["id"], "name": "Cedar"}]

    discount = client.post(
        f"/api/users/{customer.id}/discount",
        json={"amount": 5, "minimumOrder": 20, "expiryDate": "2099-01-01T00:00:00"},
        headers=_auth(admin),
    ).json()
    assert discount["discountAmount"] == "5.00"
    assert client.delete(f"/api/products/{product['id']}", headers=_auth(admin)).json() == {"success": True}


def test_catalog_listing_routes(client, admin, candle, colors):
    category = client.post("/api/categories", json={"name": "Jars"}, headers=_auth(admin)).json()
    collection = client.post("/api/collections", json={"name": "Winter"}, headers=_auth(admin)).json()
    linked = client.post(
        f"/api/collections/{collection['id']}/products", json={"id": candle.id}, headers=_auth(admin)
    )
    assert linked.status_code == 201

    assert client.get("/api/categories").json() == [{"id": category["id"], "name": "Jars", "description": ""}]
    assert [p["id"] for p in client.get(f"/api/collections/{collection['id']}/products").json()] == [candle.id]
    assert len(client.get("/api/colors").json()) == 3

    red = colors[0]
    client.post(f"/api/products/{candle.id}/colors", json={"id": red.id}, headers=_auth(admin))
    assert client.delete(f"/api/products/{candle.id}/colors/{red.id}", headers=_auth(admin)).status_code == 204
    assert client.get(f"/api/products/{candle.id}").json()["colors"] == []


def test_negative_shipping_rate_is_rejected(client, customer, candle):
    client.post("/api/cart", json={"productId": candle.id}, headers=_auth(customer))

    quote = client.get("/api/cart/quote", params={"standardShippingRate": -35}, headers=_auth(customer))
    placed = client.post(
        "/api/orders",
        json={
            "shippingAddress": "Ilica 1",
            "shippingCity": "Zagreb",
            "shippingPostalCode": "10000",
            "shippingCountry": "Hrvatska",
            "paymentMethod": "cash",
            "standardShippingRate": -35,
        },
        headers=_auth(customer),
    )

    assert quote.status_code == 422
    assert placed.status_code == 422
    assert client.get("/api/orders", headers=_auth(customer)).json() == []


def test_admin_order_list_pages(client, admin, customer, candle):
    for _ in range(3):
        client.post("/api/cart", json={"productId": candle.id}, headers=_auth(customer))
        client.post(
            "/api/orders",
            json={
                "shippingAddress": "Ilica 1",
                "shippingCity": "Zagreb",
                "shippingPostalCode": "10000",
                "shippingCountry": "Hrvatska",
                "paymentMethod": "cash",
            },
            headers=_auth(customer),
        )

    assert len(client.get("/api/admin/orders", headers=_auth(admin)).json()) == 3
    assert len(client.get("/api/admin/orders", params={"limit": 2}, headers=_auth(admin)).json()) == 2
    assert len(client.get("/api/admin/orders", params={"offset": 1}, headers=_auth(admin)).json()) == 2
    assert client.get("/api/admin/orders", params={"limit": 0}, headers=_auth(admin)).status_code == 422
