import pytest

from autoparts.errors import NotFound, ValidationError
from autoparts.extensions import db
from autoparts.models import ActivityLog, Discount, InventoryItem, PosSale
from autoparts.services import checkout_service, refund_service


def _sell(staff, lines, **kwargs):
    cart = checkout_service.build_cart(lines)
    return checkout_service.checkout(cart, cashier=staff, **kwargs)


def test_refund_restores_stock_and_removes_sale(admin, staff, make_item):
    a = make_item(quantity=5, selling_price_cents=1000)
    b = make_item(quantity=3, selling_price_cents=250)
    receipt = _sell(staff, [{"inventory_id": a.id, "quantity": 2}, {"inventory_id": b.id, "quantity": 3}])
    assert db.session.get(InventoryItem, b.id).quantity == 0

    result = refund_service.refund_receipt(receipt.receipt_number.lower(), user=admin)

    assert result["receipt_number"] == receipt.receipt_number
    assert result["lines_refunded"] == 2
    assert result["refunded_cents"] == 2750
    assert {r["inventory_id"]: r["quantity"] for r in result["restored"]} == {a.id: 2, b.id: 3}

    assert db.session.get(InventoryItem, a.id).quantity == 5
    assert db.session.get(InventoryItem, b.id).quantity == 3
    assert db.session.query(PosSale).filter_by(receipt_number=receipt.receipt_number).count() == 0

    log = db.session.query(ActivityLog).filter_by(action="refund").one()
    assert log.entity_id == receipt.receipt_number
    assert log.user_id == admin.id


def test_refund_keeps_discount_usage(admin, staff, make_item, make_discount):
    item = make_item(quantity=5)
    discount = make_discount(code="SAVE10")
    receipt = _sell(staff, [{"inventory_id": item.id, "quantity": 3}], discount_code="SAVE10")

    result = refund_service.refund_receipt(receipt.receipt_number, user=admin)

    assert result["refunded_cents"] == 2700
    assert db.session.get(Discount, discount.id).used_count == 1


def test_refund_twice_is_not_found(admin, staff, make_item):
    item = make_item()
    receipt = _sell(staff, [{"inventory_id": item.id}])
    refund_service.refund_receipt(receipt.receipt_number, user=admin)

    with pytest.raises(NotFound):
        refund_service.refund_receipt(receipt.receipt_number, user=admin)
    assert db.session.get(InventoryItem, item.id).quantity == 5


def test_blank_receipt_number(admin):
    with pytest.raises(ValidationError):
        refund_service.refund_receipt("  ", user=admin)


def test_refund_api_is_admin_only_and_confirmed(client, admin_headers, staff_headers, staff, make_item):
    item = make_item()
    receipt = _sell(staff, [{"inventory_id": item.id, "quantity": 2}])
    url = f"/api/pos/receipts/{receipt.receipt_number}/refund"

    assert client.post(url, headers=staff_headers, json={"confirm": True}).status_code == 403

    resp = client.post(url, headers=admin_headers, json={})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "confirmation_required"

    resp = client.post(url, headers=admin_headers, json={"confirm": True})
    assert resp.status_code == 200
    assert resp.get_json()["refunded_cents"] == 2000
    assert db.session.get(InventoryItem, item.id).quantity == 5
