import pytest

from autoparts.money import apply_bps, bps_to_percent, format_cents, percent_to_bps
from autoparts.services.checkout_service import prorate_discount
from autoparts.services.identifier_service import (
    from_base36,
    next_order_number,
    next_receipt_number,
    to_base36,
)


@pytest.mark.parametrize("value, expected", [
    ("8.25", 825),
    (10, 1000),
    ("0", 0),
    ("", 0),
    (None, 0),
    ("12.345", 1235),
])
def test_percent_to_bps(value, expected):
    assert percent_to_bps(value) == expected


def test_percent_to_bps_rejects_text():
    with pytest.raises(ValueError):
        percent_to_bps("ten")


def test_bps_to_percent():
    assert bps_to_percent(825) == "8.25"
    assert bps_to_percent(1000) == "10"
    assert bps_to_percent(0) == "0"


def test_apply_bps_rounds_half_up():
    assert apply_bps(3000, 1000) == 300
    assert apply_bps(1999, 825) == 165  # 164.9175
    assert apply_bps(200, 25) == 1  # 0.5 -> 1
    assert apply_bps(0, 1000) == 0
    assert apply_bps(1000, 0) == 0


def test_format_cents():
    assert format_cents(2700) == "$27.00"
    assert format_cents(123456789) == "$1,234,567.89"
    assert format_cents(-550) == "-$5.50"
    assert format_cents(None) == "$0.00"
    assert format_cents(100, "GBP") == "£1.00"


@pytest.mark.parametrize("line_totals, discount", [
    ([3000], 300),
    ([1000, 2000], 300),
    ([333, 333, 334], 100),
    ([999, 1, 1], 500),
    ([5000, 10], 5005),
])
def test_prorate_discount_sums_exactly(line_totals, discount):
    shares = prorate_discount(line_totals, discount)
    assert sum(shares) == discount
    assert all(0 <= s <= t for s, t in zip(shares, line_totals))


def test_prorate_discount_is_proportional():
    assert prorate_discount([1000, 2000], 300) == [100, 200]
    assert prorate_discount([1000, 2000], 0) == [0, 0]
    assert prorate_discount([], 100) == []


def test_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"
    assert from_base36(to_base36(1_700_000_000_000)) == 1_700_000_000_000
    with pytest.raises(ValueError):
        to_base36(-1)


def test_identifiers_never_repeat_within_a_millisecond(app):
    now = 1_700_000_000_000
    first = next_receipt_number(now_ms=now)
    second = next_receipt_number(now_ms=now)
    third = next_receipt_number(now_ms=now - 5000)

    assert first == f"RCP-{to_base36(now)}"
    assert second == f"RCP-{to_base36(now + 1)}"
    assert third == f"RCP-{to_base36(now + 2)}"


def test_prefixes_have_independent_sequences(app):
    now = 1_700_000_000_000
    assert next_receipt_number(now_ms=now).startswith("RCP-")
    assert next_order_number(now_ms=now) == f"PO-{to_base36(now)}"
