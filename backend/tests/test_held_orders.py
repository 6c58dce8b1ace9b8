import json

import pytest
from sqlalchemy import update

from autoparts.errors import NotFound, PersistenceError, ValidationError
from autoparts.extensions import db
from autoparts.models import InventoryItem
from autoparts.services import checkout_service
from autoparts.services.cart import Cart
from autoparts.services.held_order_service import HeldOrderStore


def test_hold_list_resume(app, make_item):
    item = make_item(quantity=5)
    store = HeldOrderStore()
    cart = checkout_service.build_cart([{"inventory_id": item.id, "quantity": 2}])

    held = store.hold(cart, held_by="staff@test.local", customer_name=" Pat ", discount_code="save10", note="back at 3")

    assert held.customer_name == "Pat"
    assert held.discount_code == "SAVE10"
    listed = store.list()
    assert [o.id for o in listed] == [held.id]
    assert listed[0].cart.item_count() == 2

    resumed_cart, order = store.resume(held.id)
    assert order.note == "back at 3"
    assert resumed_cart.item_count() == 2
    assert resumed_cart.lines[0].item.id == item.id
    assert store.list() == []

    # Holding never touches stock
    assert db.session.get(InventoryItem, item.id).quantity == 5


def test_held_orders_survive_a_new_store_instance(app, make_item):
    item = make_item()
    cart = checkout_service.build_cart([{"inventory_id": item.id, "quantity": 1}])
    held = HeldOrderStore().hold(cart)

    with open(app.config["HELD_ORDERS_PATH"], encoding="utf-8") as fh:
        raw = json.load(fh)
    assert raw[0]["id"] == held.id

    again = HeldOrderStore().get(held.id)
    assert again.cart.subtotal_cents() == cart.subtotal_cents()


def test_resumed_cart_is_revalidated(app, make_item):
    a = make_item(quantity=5)
    b = make_item(quantity=5)
    cart = checkout_service.build_cart([
        {"inventory_id": a.id, "quantity": 4},
        {"inventory_id": b.id, "quantity": 1},
    ])
    held = HeldOrderStore().hold(cart)

    db.session.execute(update(InventoryItem).where(InventoryItem.id == a.id).values(quantity=1))
    db.session.execute(update(InventoryItem).where(InventoryItem.id == b.id).values(quantity=0))
    db.session.commit()

    resumed, _ = HeldOrderStore().resume(held.id)
    issues = checkout_service.revalidate_cart(resumed)

    assert {i["inventory_id"]: i["quantity"] for i in issues} == {a.id: 1, b.id: 0}
    assert [i["removed"] for i in issues] == [False, True]
    assert [line.item.id for line in resumed.lines] == [a.id]


def test_empty_cart_cannot_be_held(app):
    with pytest.raises(ValidationError):
        HeldOrderStore().hold(Cart())


def test_unknown_ids(app):
    store = HeldOrderStore()
    with pytest.raises(NotFound):
        store.get("missing")
    with pytest.raises(NotFound):
        store.resume("missing")
    with pytest.raises(NotFound):
        store.remove("missing")


def test_remove(app, make_item):
    item = make_item()
    store = HeldOrderStore()
    keep = store.hold(checkout_service.build_cart([{"inventory_id": item.id}]))
    drop = store.hold(checkout_service.build_cart([{"inventory_id": item.id}]))

    store.remove(drop.id)
    assert [o.id for o in store.list()] == [keep.id]


def test_corrupt_file_is_reported(app, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        HeldOrderStore(str(path)).list()


def test_held_order_api_flow(client, staff_headers, make_item):
    item = make_item(quantity=5)
    resp = client.post("/api/pos/held-orders", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 3}],
        "customer_name": "Pat",
    })
    assert resp.status_code == 201
    held_id = resp.get_json()["id"]
    assert resp.get_json()["held_by"] == "staff@test.local"

    resp = client.get("/api/pos/held-orders", headers=staff_headers)
    assert resp.get_json()["count"] == 1

    db.session.execute(update(InventoryItem).where(InventoryItem.id == item.id).values(quantity=2))
    db.session.commit()

    resp = client.post(f"/api/pos/held-orders/{held_id}/resume", headers=staff_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["cart"]["item_count"] == 2
    assert body["issues"][0]["reason"] == "insufficient_stock"

    resp = client.post(f"/api/pos/held-orders/{held_id}/resume", headers=staff_headers)
    assert resp.status_code == 404


def test_held_order_keeps_customer_reference(app, make_item, customer):
    item = make_item(quantity=5)
    cart = checkout_service.build_cart([{"inventory_id": item.id, "quantity": 1}])
    held = HeldOrderStore().hold(cart, customer_id=customer.id, customer_name="Jane Driver")

    reloaded = HeldOrderStore().get(held.id)
    assert reloaded.customer_id == customer.id
    assert reloaded.to_dict()["customer_id"] == customer.id

    _, order = HeldOrderStore().resume(held.id)
    assert order.customer_id == customer.id
    assert checkout_service.revalidate_customer(order.customer_id) is None


def test_held_order_customer_api_flow(client, staff_headers, make_item, customer):
    item = make_item(quantity=5)
    resp = client.post("/api/pos/held-orders", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 2}],
        "customer_id": customer.id,
    })
    assert resp.status_code == 201
    assert resp.get_json()["customer_id"] == customer.id
    assert resp.get_json()["customer_name"] == "Jane Driver"
    held_id = resp.get_json()["id"]

    resp = client.post(f"/api/pos/held-orders/{held_id}/resume", headers=staff_headers)
    body = resp.get_json()
    assert body["customer_id"] == customer.id
    assert body["issues"] == []

    resp = client.post("/api/pos/checkout", headers=staff_headers, json={
        "lines": [{"inventory_id": line["item"]["id"], "quantity": line["quantity"]} for line in body["cart"]["lines"]],
        "customer_id": body["customer_id"],
    })
    assert resp.status_code == 201
    assert resp.get_json()["customer_name"] == "Jane Driver"

    resp = client.post("/api/pos/held-orders", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 1}],
        "customer_id": 9999,
    })
    assert resp.status_code == 404


def test_resume_flags_deleted_customer(client, staff_headers, make_item, customer):
    item = make_item(quantity=5)
    resp = client.post("/api/pos/held-orders", headers=staff_headers, json={
        "lines": [{"inventory_id": item.id, "quantity": 1}],
        "customer_id": customer.id,
    })
    held_id = resp.get_json()["id"]
    customer_id = customer.id
    db.session.delete(customer)
    db.session.commit()

    body = client.post(f"/api/pos/held-orders/{held_id}/resume", headers=staff_headers).get_json()
    assert body["customer_id"] is None
    assert body["customer_name"] == "Jane Driver"
    assert body["issues"] == [{"customer_id": customer_id, "reason": "customer_deleted"}]
