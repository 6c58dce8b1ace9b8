# Overview: Service-layer operations for discount codes; resolver and management.

"""
Discount Resolver

apply_discount() answers "can this code be used on a cart of this
subtotal?" and returns the Discount row. It never touches used_count:
usage is incremented exactly once by checkout_service when the sale
commits, so an abandoned checkout does not consume a use.

Checks run in a fixed order and the first failure wins:
    not found / inactive -> not started -> expired -> usage exceeded -> minimum not met
"""

from __future__ import annotations

from datetime import datetime

from ..errors import (
    ConflictError,
    DiscountExpired,
    DiscountMinimumNotMet,
    DiscountNotFound,
    DiscountNotStarted,
    DiscountUsageExceeded,
    ValidationError,
)
from ..models import Discount
from ..models.promotions import DISCOUNT_PERCENTAGE, DISCOUNT_TYPES
from ..money import apply_bps
from autoparts.time_utils import utcnow
from .activity_service import log_activity
from .gateway import PersistenceGateway

MAX_PERCENT_BPS = 10_000


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def find_discount(code: str, *, gateway: PersistenceGateway | None = None) -> Discount | None:
    gateway = gateway or PersistenceGateway()
    normalized = normalize_code(code)
    if not normalized:
        return None
    return gateway.get("discounts", code=normalized)


def apply_discount(
    code: str,
    subtotal_cents: int,
    *,
    gateway: PersistenceGateway | None = None,
    now: datetime | None = None,
) -> Discount:
    """Validate code against subtotal; raises a DiscountInvalid subclass on failure."""
    discount = find_discount(code, gateway=gateway)
    if discount is None or not discount.is_active:
        raise DiscountNotFound("Invalid or inactive discount code", details={"code": normalize_code(code)})

    now = now or utcnow()
    if discount.valid_from and discount.valid_from > now:
        raise DiscountNotStarted("Discount code is not valid yet", details={"code": discount.code})
    if discount.valid_until and discount.valid_until < now:
        raise DiscountExpired("Discount code has expired", details={"code": discount.code})
    if discount.max_uses is not None and discount.used_count >= discount.max_uses:
        raise DiscountUsageExceeded("Discount code usage limit reached", details={"code": discount.code})
    if discount.min_purchase_cents is not None and subtotal_cents < discount.min_purchase_cents:
        raise DiscountMinimumNotMet(
            "Minimum purchase not met for this discount",
            details={"code": discount.code, "min_purchase_cents": discount.min_purchase_cents},
        )
    return discount


def compute_amount(discount, subtotal_cents: int) -> int:
    """
    Discount in cents for a subtotal. Never negative, never above subtotal.

    percentage: subtotal x bps / 10000 (half-up to the cent)
    fixed:      min(value, subtotal)
    """
    if discount is None or subtotal_cents <= 0:
        return 0
    if discount.discount_type == DISCOUNT_PERCENTAGE:
        amount = apply_bps(subtotal_cents, discount.discount_value)
    else:
        amount = discount.discount_value
    return max(0, min(amount, subtotal_cents))


# =============================================================================
# MANAGEMENT
# =============================================================================

DISCOUNT_MUTABLE_FIELDS = {
    "code", "description", "discount_type", "discount_value", "min_purchase_cents",
    "max_uses", "is_active", "valid_from", "valid_until",
}


def enforce_rules_discount(patch: dict, existing: Discount | None = None) -> None:
    """Business rules the column metadata cannot express."""
    merged = {k: getattr(existing, k) for k in DISCOUNT_MUTABLE_FIELDS} if existing else {}
    merged.update(patch)

    if "code" in patch:
        patch["code"] = normalize_code(patch["code"])
        if not patch["code"]:
            raise ValidationError("Code is required")

    dtype = merged.get("discount_type") or DISCOUNT_PERCENTAGE
    if dtype not in DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of: {', '.join(DISCOUNT_TYPES)}")

    value = merged.get("discount_value")
    if value is None or value <= 0:
        raise ValidationError("Valid discount value required")
    if dtype == DISCOUNT_PERCENTAGE and value > MAX_PERCENT_BPS:
        raise ValidationError("Percentage discount cannot exceed 100%")

    if merged.get("min_purchase_cents") is not None and merged["min_purchase_cents"] < 0:
        raise ValidationError("min_purchase_cents must be >= 0")
    if merged.get("max_uses") is not None and merged["max_uses"] < 1:
        raise ValidationError("max_uses must be at least 1")

    start, end = merged.get("valid_from"), merged.get("valid_until")
    if start and end and start > end:
        raise ValidationError("valid_from must be before valid_until")


def list_discounts(*, active_only: bool = False, search: str | None = None) -> list[dict]:
    gateway = PersistenceGateway()
    filters = {"is_active": True} if active_only else {}
    rows = gateway.search("discounts", normalize_code(search), ["code", "description"], order_by="-created_at", **filters)
    return [d.to_dict() for d in rows]


def create_discount(patch: dict, *, user) -> Discount:
    enforce_rules_discount(patch)
    gateway = PersistenceGateway()
    with gateway.transaction():
        if gateway.get("discounts", code=patch["code"]):
            raise ConflictError(f"Discount code {patch['code']} already exists")
        patch.setdefault("discount_type", DISCOUNT_PERCENTAGE)
        discount = gateway.insert("discounts", {**patch, "used_count": 0})
        log_activity(
            user=user, action="create", entity_type="discount", entity_id=discount.id,
            details={"code": discount.code}, gateway=gateway,
        )
    return discount


def update_discount(discount_id: int, patch: dict, *, user) -> Discount:
    gateway = PersistenceGateway()
    with gateway.transaction():
        discount = gateway.require("discounts", id=discount_id, message="Discount not found")
        enforce_rules_discount(patch, existing=discount)
        if "code" in patch and patch["code"] != discount.code:
            if gateway.get("discounts", code=patch["code"]):
                raise ConflictError(f"Discount code {patch['code']} already exists")
        discount = gateway.update("discounts", discount.id, patch)
        log_activity(
            user=user, action="update", entity_type="discount", entity_id=discount.id,
            details={"code": discount.code, "fields": sorted(patch)}, gateway=gateway,
        )
    return discount


def delete_discount(discount_id: int, *, user) -> None:
    gateway = PersistenceGateway()
    with gateway.transaction():
        discount = gateway.require("discounts", id=discount_id, message="Discount not found")
        code = discount.code
        # Historical sales keep their discount_amount; only the link is dropped
        for sale in gateway.list("pos_sales", discount_id=discount_id):
            gateway.update("pos_sales", sale.id, {"discount_id": None})
        gateway.delete("discounts", id=discount_id)
        log_activity(
            user=user, action="delete", entity_type="discount", entity_id=discount_id,
            details={"code": code}, gateway=gateway,
        )
