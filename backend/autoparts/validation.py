# Overview: Request body cleaning for catalog, inventory and discount writes.

"""
Each writable resource has a PayloadPolicy: the model it writes, the fields a
client may set and the fields a create must carry. clean() turns a raw JSON
body into a patch dict typed after the model's columns:

- Integer columns take ints or digit strings ("2200"); floats, decimals and
  exponents are refused so prices never lose a cent
- Boolean columns take JSON booleans or "true"/"false" style strings
- DateTime columns take ISO-8601 strings, stored as naive UTC
- String columns are stripped and length-checked

Anything outside the allowlist is a ValidationError, including real columns
such as id or used_count.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text

from .errors import ValidationError
from .models import Category, Customer, Discount, InventoryItem, Supplier
from .money import MAX_PRICE_CENTS
from autoparts.time_utils import parse_iso_datetime

_PLAIN_INT = re.compile(r"^[+-]?\d+$")
_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off", ""}


def _to_int(key: str, value):
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _PLAIN_INT.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{key} must be a whole number")


def _to_bool(key: str, value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValidationError(f"{key} must be true or false")


def _to_datetime(key: str, value):
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return parsed


def _to_text(key: str, value):
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be text")
    return str(value).strip()


_COERCERS = (
    (Boolean, _to_bool),
    (Integer, _to_int),
    (DateTime, _to_datetime),
    ((String, Text), _to_text),
)


def _coerce(column, value):
    for column_type, coerce in _COERCERS:
        if isinstance(column.type, column_type):
            return coerce(column.key, value)
    return value


@dataclass(frozen=True)
class PayloadPolicy:
    model: type
    writable: frozenset[str]
    required: frozenset[str] = field(default_factory=frozenset)

    def clean(self, payload, *, partial: bool) -> dict:
        """
        partial=False is create: every required field must be present and
        non-blank. partial=True is update: only the given keys are checked.
        """
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        rejected = sorted(k for k in payload if k not in self.writable)
        if rejected:
            raise ValidationError(f"Field not allowed: {', '.join(rejected)}")

        if not partial:
            missing = sorted(f for f in self.required if payload.get(f) in (None, ""))
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        columns = {c.key: c for c in self.model.__mapper__.columns}
        patch = {}
        for key, raw in payload.items():
            column = columns[key]
            if raw is None:
                if not column.nullable:
                    raise ValidationError(f"{key} cannot be null")
                patch[key] = None
                continue

            value = _coerce(column, raw)
            if isinstance(value, str):
                if value == "" and not column.nullable:
                    raise ValidationError(f"{key} cannot be blank")
                length = getattr(column.type, "length", None)
                if length and len(value) > length:
                    raise ValidationError(f"{key} exceeds max length {length}")
            patch[key] = value
        return patch


INVENTORY_POLICY = PayloadPolicy(
    model=InventoryItem,
    writable=frozenset({
        "part_name", "part_number", "category", "category_id", "supplier_id", "brand",
        "year_from", "year_to", "quantity", "cost_price_cents", "selling_price_cents", "reorder_level",
    }),
    required=frozenset({"part_name", "part_number"}),
)

CATEGORY_POLICY = PayloadPolicy(
    model=Category,
    writable=frozenset({"name", "description"}),
    required=frozenset({"name"}),
)

SUPPLIER_POLICY = PayloadPolicy(
    model=Supplier,
    writable=frozenset({"name", "contact_person", "email", "phone", "address"}),
    required=frozenset({"name"}),
)

CUSTOMER_POLICY = PayloadPolicy(
    model=Customer,
    writable=frozenset({"name", "email", "phone", "address"}),
    required=frozenset({"name"}),
)

DISCOUNT_POLICY = PayloadPolicy(
    model=Discount,
    writable=frozenset({
        "code", "description", "discount_type", "discount_value", "min_purchase_cents",
        "max_uses", "is_active", "valid_from", "valid_until",
    }),
    required=frozenset({"code", "discount_value"}),
)


def validate_payload(policy: PayloadPolicy, payload, *, partial: bool) -> dict:
    return policy.clean(payload, partial=partial)


# =============================================================================
# INVENTORY RULES
# =============================================================================

def check_inventory_rules(patch: dict, existing=None) -> None:
    """
    Money and stock bounds plus the model-year range. Missing year bounds
    are taken from the existing item on update. Normalizes part_number to
    upper case in place.
    """
    for key in ("cost_price_cents", "selling_price_cents"):
        cents = patch.get(key)
        if cents is None:
            continue
        if cents < 0:
            raise ValidationError(f"{key} must be >= 0")
        if cents > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    for key in ("quantity", "reorder_level"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")

    year_from = patch.get("year_from", getattr(existing, "year_from", None))
    year_to = patch.get("year_to", getattr(existing, "year_to", None))
    if any(y is not None and not 1900 <= y <= 2100 for y in (year_from, year_to)):
        raise ValidationError("Model years must be between 1900 and 2100")
    if year_from and year_to and year_from > year_to:
        raise ValidationError("year_from cannot be after year_to")

    if patch.get("part_number"):
        patch["part_number"] = patch["part_number"].upper()


def parse_int(value, label: str, *, minimum: int) -> int:
    """
    Whole number from a JSON value: ints, integral floats (3.0) and digit
    strings. Booleans and fractional values are refused.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{label} must be an integer")
        number = int(value)
    else:
        try:
            number = int(str(value).strip()) if isinstance(value, str) else int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{label} must be an integer")
    if number < minimum:
        raise ValidationError(f"{label} must be at least {minimum}")
    return number
