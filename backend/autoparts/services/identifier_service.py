# Overview: Service-layer operations for receipt and purchase-order numbers.

"""
Receipt / order number allocation.

Format is <PREFIX>-<uppercase base36 value>, e.g. RCP-LZ3K9Q2A. The value
is a millisecond timestamp, but it is issued from a per-prefix sequence row:
value = max(now_ms, last_value + 1). Numbers therefore stay time-ordered
and never repeat, even for two checkouts in the same millisecond.

Allocation happens inside the caller's transaction, so a failed checkout
does not burn a number.
"""

from __future__ import annotations

import time

from .gateway import PersistenceGateway

RECEIPT_PREFIX = "RCP"
ORDER_PREFIX = "PO"

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def from_base36(text: str) -> int:
    return int(text, 36)


def _now_ms() -> int:
    return int(time.time() * 1000)


def next_identifier(prefix: str, *, gateway: PersistenceGateway | None = None, now_ms: int | None = None) -> str:
    """Allocate the next identifier for prefix (row-locked where supported)."""
    gateway = gateway or PersistenceGateway()
    candidate = now_ms if now_ms is not None else _now_ms()

    seq = gateway.get("document_sequences", prefix=prefix, for_update=True)
    if seq is None:
        gateway.insert("document_sequences", {"prefix": prefix, "last_value": candidate})
    else:
        candidate = max(candidate, seq.last_value + 1)
        gateway.update("document_sequences", seq.id, {"last_value": candidate})

    return f"{prefix}-{to_base36(candidate)}"


def next_receipt_number(*, gateway: PersistenceGateway | None = None, now_ms: int | None = None) -> str:
    return next_identifier(RECEIPT_PREFIX, gateway=gateway, now_ms=now_ms)


def next_order_number(*, gateway: PersistenceGateway | None = None, now_ms: int | None = None) -> str:
    return next_identifier(ORDER_PREFIX, gateway=gateway, now_ms=now_ms)
