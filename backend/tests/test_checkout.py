import pytest
from sqlalchemy import update

from autoparts.errors import (
    DiscountUsageExceeded,
    InsufficientStock,
    NotFound,
    StateError,
    ValidationError,
)
from autoparts.extensions import db
from autoparts.models import ActivityLog, Discount, DocumentSequence, InventoryItem, PosSale
from autoparts.services import checkout_service, settings_service
from autoparts.services.cart import Cart, ItemSnapshot
from autoparts.services.checkout_service import CheckoutOrchestrator, CheckoutState


def cart_of(item, quantity):
    cart = Cart()
    snap = ItemSnapshot.from_item(item)
    for _ in range(quantity):
        cart.add_line(snap)
    return cart


def test_ten_percent_off_three_units(staff, make_item, make_discount):
    item = make_item(selling_price_cents=1000, quantity=5)
    discount = make_discount(code="SAVE10", discount_value=1000)

    cart = cart_of(item, 3)
    assert cart.subtotal_cents() == 3000

    receipt = checkout_service.checkout(cart, cashier=staff, discount_code="save10")

    assert receipt.subtotal_cents == 3000
    assert receipt.discount_cents == 300
    assert receipt.total_cents == 2700
    assert receipt.discount_code == "SAVE10"
    assert receipt.customer_name == "Walk-in Customer"
    assert receipt.cashier == "Sam Staff"

    rows = db.session.query(PosSale).filter_by(receipt_number=receipt.receipt_number).all()
    assert len(rows) == 1
    assert sum(r.total_price_cents for r in rows) == 2700
    assert rows[0].discount_amount_cents == 300
    assert rows[0].sold_by == staff.id

    assert db.session.get(InventoryItem, item.id).quantity == 2
    assert db.session.get(Discount, discount.id).used_count == 1


def test_multi_line_sale_rows_sum_to_net(staff, make_item, make_discount):
    a = make_item(selling_price_cents=1000, quantity=5)
    b = make_item(selling_price_cents=333, quantity=9)
    make_discount(code="FIVE", discount_type="fixed", discount_value=500)

    cart = cart_of(a, 2)
    snap_b = ItemSnapshot.from_item(b)
    cart.add_line(snap_b)
    cart.change_quantity(b.id, absolute=3)

    receipt = checkout_service.checkout(cart, cashier=staff, discount_code="FIVE")

    rows = db.session.query(PosSale).filter_by(receipt_number=receipt.receipt_number).order_by(PosSale.id).all()
    assert [r.inventory_id for r in rows] == [a.id, b.id]
    assert {r.receipt_number for r in rows} == {receipt.receipt_number}
    assert sum(r.discount_amount_cents for r in rows) == 500
    assert sum(r.total_price_cents for r in rows) == 2999 - 500
    assert db.session.get(InventoryItem, b.id).quantity == 6


def test_tax_applies_after_discount(admin, staff, make_item, make_discount):
    settings_service.update_settings({"tax_rate": "8.25"}, user=admin)
    item = make_item(selling_price_cents=1000, quantity=5)
    make_discount(code="SAVE10", discount_value=1000)

    receipt = checkout_service.checkout(cart_of(item, 3), cashier=staff, discount_code="SAVE10")

    assert receipt.tax_rate_bps == 825
    assert receipt.tax_cents == 223  # 2700 x 8.25% = 222.75
    assert receipt.total_cents == 2923


def test_commit_time_stock_shortage_rolls_back(staff, make_item, make_discount):
    item = make_item(quantity=5)
    discount = make_discount(code="SAVE10")
    cart = cart_of(item, 3)

    # Another register sells most of the stock after this cart was built
    db.session.execute(update(InventoryItem).where(InventoryItem.id == item.id).values(quantity=1))
    db.session.commit()

    orchestrator = CheckoutOrchestrator()
    with pytest.raises(InsufficientStock) as exc:
        orchestrator.checkout(cart, cashier=staff, discount_code="SAVE10")

    assert exc.value.details["available"] == 1
    assert orchestrator.state == CheckoutState.FAILED
    assert orchestrator.error is exc.value
    assert db.session.query(PosSale).count() == 0
    assert db.session.query(DocumentSequence).count() == 0
    assert db.session.get(InventoryItem, item.id).quantity == 1
    assert db.session.get(Discount, discount.id).used_count == 0
    assert db.session.query(ActivityLog).filter_by(action="sale").count() == 0


def test_discount_used_up_between_validate_and_commit(staff, make_item, make_discount, monkeypatch):
    item = make_item(quantity=5)
    discount = make_discount(code="LAST", max_uses=1)

    # Simulate a concurrent checkout taking the last use right after validation
    original = CheckoutOrchestrator._validate

    def validate_then_race(self, *args, **kwargs):
        result = original(self, *args, **kwargs)
        db.session.execute(update(Discount).where(Discount.id == discount.id).values(used_count=1))
        return result

    monkeypatch.setattr(CheckoutOrchestrator, "_validate", validate_then_race)

    with pytest.raises(DiscountUsageExceeded):
        checkout_service.checkout(cart_of(item, 1), cashier=staff, discount_code="LAST")

    assert db.session.query(PosSale).count() == 0
    assert db.session.get(InventoryItem, item.id).quantity == 5


def test_empty_cart_and_bad_payment_method(staff, make_item):
    with pytest.raises(ValidationError):
        checkout_service.checkout(Cart(), cashier=staff)

    item = make_item()
    with pytest.raises(ValidationError):
        checkout_service.checkout(cart_of(item, 1), cashier=staff, payment_method="barter")
    assert db.session.get(InventoryItem, item.id).quantity == 5


def test_amount_tendered_and_change(staff, make_item):
    item = make_item(selling_price_cents=1250)
    with pytest.raises(ValidationError):
        checkout_service.checkout(cart_of(item, 2), cashier=staff, amount_tendered_cents=2000)

    receipt = checkout_service.checkout(cart_of(item, 2), cashier=staff, amount_tendered_cents=3000)
    assert receipt.total_cents == 2500
    assert receipt.change_due_cents == 500


def test_customer_is_linked(staff, make_item, customer):
    item = make_item()
    receipt = checkout_service.checkout(cart_of(item, 1), cashier=staff, customer_id=customer.id)
    assert receipt.customer_name == "Jane Driver"
    row = db.session.query(PosSale).filter_by(receipt_number=receipt.receipt_number).one()
    assert row.customer_id == customer.id

    with pytest.raises(NotFound):
        checkout_service.checkout(cart_of(item, 1), cashier=staff, customer_id=9999)


def test_orchestrator_runs_once(staff, make_item):
    item = make_item()
    orchestrator = CheckoutOrchestrator()
    orchestrator.checkout(cart_of(item, 1), cashier=staff)
    assert orchestrator.state == CheckoutState.RECEIPTED

    with pytest.raises(StateError):
        orchestrator.checkout(cart_of(item, 1), cashier=staff)


def test_sale_is_logged(staff, make_item):
    item = make_item()
    receipt = checkout_service.checkout(cart_of(item, 2), cashier=staff)
    log = db.session.query(ActivityLog).filter_by(action="sale").one()
    assert log.entity_id == receipt.receipt_number
    assert log.user_email == staff.email
    assert log.details["items"] == 2


def test_load_receipt_rebuilds_sale(staff, make_item, make_discount):
    item = make_item(part_name="Brake Pad Set", part_number="BP-1", selling_price_cents=1000, year_from=2010, year_to=2018)
    make_discount(code="SAVE10")
    receipt = checkout_service.checkout(cart_of(item, 3), cashier=staff, discount_code="SAVE10", payment_method="card")

    again = checkout_service.load_receipt(receipt.receipt_number)
    assert again.receipt_number == receipt.receipt_number
    assert again.total_cents == 2700
    assert again.payment_method == "card"
    assert again.lines[0].name == "Brake Pad Set"
    assert again.lines[0].year_range == "2010-2018"

    with pytest.raises(NotFound):
        checkout_service.load_receipt("RCP-NOPE")


def test_build_cart_and_revalidate(make_item):
    item = make_item(quantity=4)
    cart = checkout_service.build_cart([{"inventory_id": item.id, "quantity": 3}])
    assert cart.item_count() == 3

    with pytest.raises(InsufficientStock):
        checkout_service.build_cart([{"inventory_id": item.id, "quantity": 5}])
    with pytest.raises(NotFound):
        checkout_service.build_cart([{"inventory_id": 999}])
    with pytest.raises(ValidationError):
        checkout_service.build_cart([{"quantity": 1}])

    db.session.execute(update(InventoryItem).where(InventoryItem.id == item.id).values(quantity=2))
    db.session.commit()

    issues = checkout_service.revalidate_cart(cart)
    assert issues == [{
        "inventory_id": item.id,
        "part_name": item.part_name,
        "requested": 3,
        "available": 2,
        "quantity": 2,
        "removed": False,
        "reason": "insufficient_stock",
    }]
    assert cart.item_count() == 2


def test_build_cart_merges_repeated_items(make_item):
    item = make_item(quantity=10)
    cart = checkout_service.build_cart([
        {"inventory_id": item.id, "quantity": 2},
        {"inventory_id": item.id, "quantity": 3},
    ])
    assert len(cart.lines) == 1
    assert cart.item_count() == 5
    assert cart.subtotal_cents() == 5 * item.selling_price_cents

    exact = make_item(quantity=5)
    cart = checkout_service.build_cart([
        {"inventory_id": exact.id, "quantity": 4},
        {"inventory_id": exact.id, "quantity": 1},
    ])
    assert cart.item_count() == 5

    with pytest.raises(InsufficientStock):
        checkout_service.build_cart([
            {"inventory_id": exact.id, "quantity": 5},
            {"inventory_id": exact.id, "quantity": 1},
        ])


def test_repeated_lines_are_all_sold(staff, make_item):
    item = make_item(quantity=10, selling_price_cents=1000)
    cart = checkout_service.build_cart([
        {"inventory_id": item.id, "quantity": 2},
        {"inventory_id": item.id, "quantity": 3},
    ])
    receipt = checkout_service.checkout(cart, cashier=staff)

    assert receipt.total_cents == 5000
    assert db.session.get(InventoryItem, item.id).quantity == 5


def test_build_cart_rejects_non_whole_quantities(make_item):
    item = make_item(quantity=10)
    for quantity in (2.7, True, "two", 0, -1, None):
        with pytest.raises(ValidationError):
            checkout_service.build_cart([{"inventory_id": item.id, "quantity": quantity}])
    with pytest.raises(ValidationError):
        checkout_service.build_cart([{"inventory_id": 1.5}])
    with pytest.raises(ValidationError):
        checkout_service.build_cart(["not-a-line"])

    assert checkout_service.build_cart([{"inventory_id": str(item.id), "quantity": 3.0}]).item_count() == 3


def test_removing_discount_restores_undiscounted_totals(make_item, make_discount):
    item = make_item(quantity=20, selling_price_cents=1337)
    other = make_item(quantity=20, selling_price_cents=499)
    cart = cart_of(item, 3)
    cart.add_line(ItemSnapshot.from_item(other))
    pct = make_discount(code="PCT", discount_value=1250)
    fixed = make_discount(code="FIX", discount_type="fixed", discount_value=700)

    for tax_rate_bps in (0, 825):
        plain = checkout_service.compute_totals(cart, None, tax_rate_bps)
        assert plain.discount_cents == 0
        for discount in (pct, fixed):
            discounted = checkout_service.compute_totals(cart, discount, tax_rate_bps)
            assert discounted.total_cents < plain.total_cents
            assert checkout_service.compute_totals(cart, None, tax_rate_bps) == plain
