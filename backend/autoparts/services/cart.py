# Overview: In-memory cart for an in-progress sale; no database access.

"""
Cart Engine

A Cart holds the lines of a sale that has not been committed yet. It never
talks to the database: every stock check uses the ItemSnapshot captured
when the item was added (or last refreshed), and the unit price is frozen
at add time.

Invariant: 1 <= line.quantity <= line.item.quantity for every line.

The commit-time check against live stock happens in checkout_service.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict

from ..errors import InsufficientStock, NotFound, ValidationError


@dataclass(frozen=True)
class ItemSnapshot:
    """What the cart knows about an inventory item at add time."""
    id: int
    part_name: str
    part_number: str
    unit_price_cents: int
    quantity: int
    brand: str | None = None
    year_range: str | None = None

    @classmethod
    def from_item(cls, item) -> "ItemSnapshot":
        return cls(
            id=item.id,
            part_name=item.part_name,
            part_number=item.part_number,
            unit_price_cents=item.selling_price_cents,
            quantity=item.quantity,
            brand=item.brand,
            year_range=item.year_range,
        )

    def with_quantity(self, quantity: int) -> "ItemSnapshot":
        return ItemSnapshot(**{**asdict(self), "quantity": quantity})


@dataclass
class CartLine:
    item: ItemSnapshot
    quantity: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.item.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "item": asdict(self.item),
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }


@dataclass
class Cart:
    lines: list[CartLine] = field(default_factory=list)

    def _find(self, item_id: int) -> CartLine | None:
        for line in self.lines:
            if line.item.id == item_id:
                return line
        return None

    def _require(self, item_id: int) -> CartLine:
        line = self._find(item_id)
        if line is None:
            raise NotFound("Item is not in the cart", details={"inventory_id": item_id})
        return line

    def add_line(self, item: ItemSnapshot) -> CartLine:
        """Add one unit of item (new line, or +1 on an existing line)."""
        line = self._find(item.id)
        current = line.quantity if line else 0
        if current + 1 > item.quantity:
            raise InsufficientStock(
                "Insufficient stock",
                details={"inventory_id": item.id, "available": item.quantity, "requested": current + 1},
            )
        if line is None:
            line = CartLine(item=item, quantity=1)
            self.lines.append(line)
        else:
            line.quantity += 1
        return line

    def change_quantity(self, item_id: int, *, delta: int | None = None, absolute: int | None = None) -> CartLine:
        """Change a line by delta, or set it to absolute. Exactly one must be given."""
        if (delta is None) == (absolute is None):
            raise ValueError("Pass exactly one of delta or absolute")

        line = self._require(item_id)
        new_qty = line.quantity + delta if delta is not None else absolute
        if new_qty <= 0:
            raise ValidationError("Quantity must be at least 1", details={"inventory_id": item_id})
        if new_qty > line.item.quantity:
            raise InsufficientStock(
                "Insufficient stock",
                details={"inventory_id": item_id, "available": line.item.quantity, "requested": new_qty},
            )
        line.quantity = new_qty
        return line

    def remove_line(self, item_id: int) -> None:
        self.lines = [line for line in self.lines if line.item.id != item_id]

    def clear(self) -> None:
        self.lines = []

    def subtotal_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def refresh_stock(self, item_id: int, available: int) -> int:
        """
        Replace a line's stock snapshot with a freshly read quantity and clamp
        the line to it. Returns the (possibly reduced) line quantity; a line
        with nothing available is dropped and 0 is returned.
        """
        line = self._require(item_id)
        line.item = line.item.with_quantity(available)
        if available <= 0:
            self.remove_line(item_id)
            return 0
        if line.quantity > available:
            line.quantity = available
        return line.quantity

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "subtotal_cents": self.subtotal_cents(),
            "item_count": self.item_count(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cart":
        lines = []
        for raw in data.get("lines", []):
            lines.append(CartLine(item=ItemSnapshot(**raw["item"]), quantity=int(raw["quantity"])))
        return cls(lines=lines)
