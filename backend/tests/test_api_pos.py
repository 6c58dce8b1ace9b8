from autoparts.extensions import db
from autoparts.models import Discount, InventoryItem


def test_cart_validate_prices_cart(client, staff_headers, make_item, make_discount):
    item = make_item(selling_price_cents=1000, quantity=5)
    make_discount(code="SAVE10")

    resp = client.post("/api/pos/cart/validate", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 3}],
        "discount_code": "save10",
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["subtotal_cents"] == 3000
    assert body["discount_cents"] == 300
    assert body["total_cents"] == 2700
    assert body["cart"]["item_count"] == 3

    resp = client.post("/api/pos/cart/validate", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 6}],
    })
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "insufficient_stock"


def test_checkout_endpoint(client, staff_headers, make_item, make_discount, customer):
    item = make_item(selling_price_cents=1000, quantity=5)
    discount = make_discount(code="SAVE10")

    resp = client.post("/api/pos/checkout", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 3}],
        "discount_code": "SAVE10",
        "customer_id": customer.id,
        "payment_method": "card",
    })
    assert resp.status_code == 201
    receipt = resp.get_json()
    assert receipt["receipt_number"].startswith("RCP-")
    assert receipt["total_cents"] == 2700
    assert receipt["customer_name"] == "Jane Driver"
    assert receipt["issued_at"].endswith("Z")
    assert receipt["lines"][0]["discount_cents"] == 300

    assert db.session.get(InventoryItem, item.id).quantity == 2
    assert db.session.get(Discount, discount.id).used_count == 1

    resp = client.get(f"/api/pos/receipts/{receipt['receipt_number'].lower()}", headers=staff_headers)
    assert resp.status_code == 200
    assert resp.get_json()["total_cents"] == 2700


def test_checkout_rejections(client, staff_headers, make_item, make_discount):
    item = make_item(quantity=1)
    make_discount(code="BIG", min_purchase_cents=10_000)

    resp = client.post("/api/pos/checkout", headers=staff_headers, json={"lines": []})
    assert resp.status_code == 400

    resp = client.post("/api/pos/checkout", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 1}],
        "discount_code": "BIG",
    })
    assert resp.status_code == 422
    assert resp.get_json()["reason"] == "minimum_not_met"

    resp = client.post("/api/pos/checkout", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 1}],
        "amount_tendered_cents": "lots",
    })
    assert resp.status_code == 400
    assert db.session.get(InventoryItem, item.id).quantity == 1


def test_receipt_html_and_pdf(client, staff_headers, make_item):
    item = make_item(part_name="Spark Plug", part_number="SP-3004", selling_price_cents=599)
    resp = client.post("/api/pos/checkout", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 4}],
        "amount_tendered_cents": 3000,
    })
    number = resp.get_json()["receipt_number"]

    resp = client.get(f"/api/pos/receipts/{number}/html", headers=staff_headers)
    assert resp.status_code == 200
    assert resp.mimetype == "text/html"
    html = resp.get_data(as_text=True)
    assert number in html
    assert "Spark Plug" in html
    assert "$23.96" in html
    assert "Walk-in Customer" in html

    resp = client.get(f"/api/pos/receipts/{number}/pdf", headers=staff_headers)
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF")

    assert client.get("/api/pos/receipts/RCP-NOPE/pdf", headers=staff_headers).status_code == 404
