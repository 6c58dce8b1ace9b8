from datetime import timedelta

import pytest

from autoparts.errors import (
    ConflictError,
    DiscountExpired,
    DiscountMinimumNotMet,
    DiscountNotFound,
    DiscountNotStarted,
    DiscountUsageExceeded,
    ValidationError,
)
from autoparts.services import discount_service
from autoparts.time_utils import utcnow


def test_apply_valid_code_is_case_insensitive(make_discount):
    make_discount(code="SAVE10")
    discount = discount_service.apply_discount("  save10 ", 3000)
    assert discount.code == "SAVE10"
    # Resolving never consumes a use
    assert discount.used_count == 0


def test_unknown_and_inactive_codes_are_not_found(make_discount):
    make_discount(code="OLD", is_active=False)
    with pytest.raises(DiscountNotFound) as exc:
        discount_service.apply_discount("NOPE", 3000)
    assert exc.value.to_dict()["reason"] == "not_found"
    with pytest.raises(DiscountNotFound):
        discount_service.apply_discount("OLD", 3000)
    with pytest.raises(DiscountNotFound):
        discount_service.apply_discount("", 3000)


def test_usage_exceeded(make_discount):
    make_discount(code="ONCE", max_uses=1, used_count=1)
    with pytest.raises(DiscountUsageExceeded) as exc:
        discount_service.apply_discount("ONCE", 3000)
    assert exc.value.reason == "usage_exceeded"


def test_date_window(make_discount):
    now = utcnow()
    make_discount(code="LATER", valid_from=now + timedelta(days=1))
    make_discount(code="GONE", valid_until=now - timedelta(days=1))
    make_discount(code="OPEN", valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=1))

    with pytest.raises(DiscountNotStarted):
        discount_service.apply_discount("LATER", 3000)
    with pytest.raises(DiscountExpired):
        discount_service.apply_discount("GONE", 3000)
    assert discount_service.apply_discount("OPEN", 3000).code == "OPEN"


def test_minimum_purchase(make_discount):
    make_discount(code="BIG", min_purchase_cents=5000)
    with pytest.raises(DiscountMinimumNotMet) as exc:
        discount_service.apply_discount("BIG", 4999)
    assert exc.value.details["min_purchase_cents"] == 5000
    assert discount_service.apply_discount("BIG", 5000).code == "BIG"


def test_first_failing_check_wins(make_discount):
    now = utcnow()
    # Expired AND used up AND minimum not met: expiry is reported
    make_discount(
        code="MESSY",
        valid_until=now - timedelta(days=1),
        max_uses=1,
        used_count=1,
        min_purchase_cents=10_000,
    )
    with pytest.raises(DiscountExpired):
        discount_service.apply_discount("MESSY", 100)


def test_compute_amount(make_discount):
    pct = make_discount(code="PCT", discount_type="percentage", discount_value=1000)
    fixed = make_discount(code="FIX", discount_type="fixed", discount_value=500)
    full = make_discount(code="FULL", discount_type="percentage", discount_value=10_000)

    assert discount_service.compute_amount(pct, 3000) == 300
    assert discount_service.compute_amount(pct, 1005) == 101  # 100.5 rounds up
    assert discount_service.compute_amount(fixed, 3000) == 500
    assert discount_service.compute_amount(fixed, 300) == 300
    assert discount_service.compute_amount(full, 4321) == 4321
    assert discount_service.compute_amount(fixed, 0) == 0
    assert discount_service.compute_amount(None, 3000) == 0


def test_create_discount_rules(admin):
    discount = discount_service.create_discount(
        {"code": "spring", "discount_type": "fixed", "discount_value": 250},
        user=admin,
    )
    assert discount.code == "SPRING"
    assert discount.used_count == 0

    with pytest.raises(ConflictError):
        discount_service.create_discount({"code": "SPRING", "discount_value": 100}, user=admin)
    with pytest.raises(ValidationError):
        discount_service.create_discount({"code": "HUGE", "discount_value": 10_001}, user=admin)
    with pytest.raises(ValidationError):
        discount_service.create_discount({"code": "ZERO", "discount_value": 0}, user=admin)
    with pytest.raises(ValidationError):
        discount_service.create_discount(
            {"code": "BACKWARDS", "discount_value": 100,
             "valid_from": utcnow(), "valid_until": utcnow() - timedelta(days=1)},
            user=admin,
        )


def test_discount_api_takes_percent(client, admin_headers):
    resp = client.post("/api/discounts", headers=admin_headers, json={
        "code": "tune10",
        "discount_type": "percentage",
        "percent": "10",
        "max_uses": 5,
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["code"] == "TUNE10"
    assert body["discount_value"] == 1000

    resp = client.post("/api/discounts/validate", headers=admin_headers, json={
        "code": "TUNE10", "subtotal_cents": 3000,
    })
    assert resp.status_code == 200
    assert resp.get_json()["discount_amount_cents"] == 300


def test_discount_validate_reports_reason(client, staff_headers, make_discount):
    make_discount(code="ONCE", max_uses=1, used_count=1)
    resp = client.post("/api/discounts/validate", headers=staff_headers, json={
        "code": "ONCE", "subtotal_cents": 3000,
    })
    assert resp.status_code == 422
    assert resp.get_json()["reason"] == "usage_exceeded"


def test_staff_cannot_manage_discounts(client, staff_headers):
    resp = client.post("/api/discounts", headers=staff_headers, json={"code": "X", "discount_value": 100})
    assert resp.status_code == 403


def test_percentage_amount_is_monotonic_and_capped(make_discount):
    for bps in (1, 333, 1000, 2550, 9999, 10_000):
        discount = make_discount(code=f"P{bps}", discount_value=bps)
        previous = 0
        for subtotal in range(0, 5001, 7):
            amount = discount_service.compute_amount(discount, subtotal)
            assert 0 <= amount <= subtotal
            assert amount >= previous
            previous = amount


def test_fixed_amount_is_min_of_value_and_subtotal(make_discount):
    discount = make_discount(code="FIX", discount_type="fixed", discount_value=750)
    for subtotal in range(0, 2001, 50):
        assert discount_service.compute_amount(discount, subtotal) == min(750, subtotal)
