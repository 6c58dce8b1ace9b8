# Overview: Service-layer operations for parked (held) carts stored in a local JSON file.

"""
Held orders

A cashier can park the current cart and pick it back up later. Held carts
never touch the database: no stock is reserved, no receipt number is
issued. They live in one JSON file (HELD_ORDERS_PATH) that survives
restarts.

Resuming removes the entry from the file. The caller is expected to run
checkout_service.revalidate_cart() on the returned cart, since stock may
have moved while the order was parked.
"""

from __future__ import annotations

import json
import os
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..errors import NotFound, PersistenceError, ValidationError
from autoparts.time_utils import parse_iso_datetime, to_utc_z, utcnow
from .cart import Cart

_LOCK = threading.Lock()


@dataclass
class HeldOrder:
    id: str
    cart: Cart
    held_at: datetime
    held_by: str | None = None
    customer_id: int | None = None
    customer_name: str | None = None
    discount_code: str | None = None
    note: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cart": self.cart.to_dict(),
            "held_at": to_utc_z(self.held_at),
            "held_by": self.held_by,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "discount_code": self.discount_code,
            "note": self.note,
            "item_count": self.cart.item_count(),
            "subtotal_cents": self.cart.subtotal_cents(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HeldOrder":
        return cls(
            id=data["id"],
            cart=Cart.from_dict(data.get("cart") or {}),
            held_at=parse_iso_datetime(data.get("held_at")) or utcnow(),
            held_by=data.get("held_by"),
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            discount_code=data.get("discount_code"),
            note=data.get("note"),
        )


def default_store_path() -> str:
    path = current_app.config.get("HELD_ORDERS_PATH")
    if path:
        return path
    return os.path.join(current_app.instance_path, "held_orders.json")


class HeldOrderStore:
    """JSON-file backed list of held orders, oldest first."""

    def __init__(self, path: str | None = None):
        self.path = path or default_store_path()

    def _read(self) -> list[dict]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError("Held orders file is unreadable", details={"path": self.path}) from exc
        if not isinstance(data, list):
            raise PersistenceError("Held orders file is malformed", details={"path": self.path})
        return data

    def _write(self, entries: list[dict]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(entries, fh, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError("Could not write held orders file", details={"path": self.path}) from exc

    def list(self) -> list[HeldOrder]:
        with _LOCK:
            return [HeldOrder.from_dict(e) for e in self._read()]

    def get(self, order_id: str) -> HeldOrder:
        with _LOCK:
            for entry in self._read():
                if entry.get("id") == order_id:
                    return HeldOrder.from_dict(entry)
        raise NotFound("Held order not found", details={"id": order_id})

    def hold(
        self,
        cart: Cart,
        *,
        held_by: str | None = None,
        customer_id: int | None = None,
        customer_name: str | None = None,
        discount_code: str | None = None,
        note: str | None = None,
    ) -> HeldOrder:
        if cart.is_empty():
            raise ValidationError("Cannot hold an empty cart")
        order = HeldOrder(
            id=uuid.uuid4().hex,
            cart=cart,
            held_at=utcnow(),
            held_by=held_by,
            customer_id=customer_id,
            customer_name=(customer_name or "").strip() or None,
            discount_code=(discount_code or "").strip().upper() or None,
            note=note,
        )
        with _LOCK:
            entries = self._read()
            entries.append(order.to_dict())
            self._write(entries)
        return order

    def resume(self, order_id: str) -> tuple[Cart, HeldOrder]:
        """Take the order out of the store and hand back its cart."""
        with _LOCK:
            entries = self._read()
            for index, entry in enumerate(entries):
                if entry.get("id") == order_id:
                    del entries[index]
                    self._write(entries)
                    order = HeldOrder.from_dict(entry)
                    return order.cart, order
        raise NotFound("Held order not found", details={"id": order_id})

    def remove(self, order_id: str) -> None:
        with _LOCK:
            entries = self._read()
            remaining = [e for e in entries if e.get("id") != order_id]
            if len(remaining) == len(entries):
                raise NotFound("Held order not found", details={"id": order_id})
            self._write(remaining)
