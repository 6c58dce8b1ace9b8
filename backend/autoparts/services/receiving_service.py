# Overview: Service-layer operations for supplier purchase orders and receiving.

"""
Purchase Order / Receiving Service

LIFECYCLE:
    pending -> partial -> complete
    pending | partial -> cancelled (explicit cancel only, terminal)

Status is never tracked incrementally. After every receive it is derived
from scratch from the order's (sum ordered, sum received) pair, so any
sequence of receives lands on the same status.

RECEIVE:
- quantity_received += qty is a guarded UPDATE; it fails with
  ExceedsOrdered (and changes nothing) if it would pass quantity_ordered
- each receive appends a purchase_receipts row
- stock goes up on the linked inventory item, or the item matching the
  line's part_number. A line that matches neither is still recorded as
  received; stock is untouched and a warning is logged.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ExceedsOrdered, StateError, ValidationError
from ..models import PurchaseOrder
from ..models.purchasing import PO_CANCELLED, PO_COMPLETE, PO_PARTIAL, PO_PENDING, PO_STATUSES
from ..validation import parse_int
from .activity_service import log_activity
from .gateway import PersistenceGateway
from .identifier_service import next_order_number


def derive_order_status(total_ordered: int, total_received: int) -> str:
    if total_ordered > 0 and total_received >= total_ordered:
        return PO_COMPLETE
    if total_received > 0:
        return PO_PARTIAL
    return PO_PENDING


def _recompute_status(order: PurchaseOrder, gateway: PersistenceGateway) -> str:
    items = gateway.list("purchase_order_items", purchase_order_id=order.id)
    status = derive_order_status(
        sum(i.quantity_ordered for i in items),
        sum(i.quantity_received for i in items),
    )
    if status != order.status:
        gateway.update("purchase_orders", order.id, {"status": status})
    return status


def _resolve_inventory(order_item, gateway: PersistenceGateway):
    if order_item.inventory_id:
        item = gateway.get("inventory", id=order_item.inventory_id)
        if item is not None:
            return item
    if order_item.part_number:
        return gateway.get("inventory", part_number=order_item.part_number)
    return None


# =============================================================================
# ORDERS
# =============================================================================

def create_purchase_order(
    *,
    supplier_id: int,
    items: list[dict],
    user,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Create a pending purchase order.

    items: [{"inventory_id"?: int, "part_name"?: str, "part_number"?: str,
             "quantity": int, "unit_cost_cents"?: int}]
    A line linked by inventory_id takes its name / part number from the item.
    """
    gateway = PersistenceGateway()
    if not supplier_id:
        raise ValidationError("Supplier is required")
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    with gateway.transaction():
        gateway.require("suppliers", id=supplier_id, message="Supplier not found")

        lines = []
        for index, raw in enumerate(items):
            if not isinstance(raw, dict):
                raise ValidationError(f"Item {index + 1} is malformed")
            quantity = parse_int(raw.get("quantity"), f"Item {index + 1} quantity", minimum=1)
            unit_cost = parse_int(raw.get("unit_cost_cents", 0), f"Item {index + 1} unit_cost_cents", minimum=0)

            inventory_id = raw.get("inventory_id")
            part_name = (raw.get("part_name") or "").strip()
            part_number = (raw.get("part_number") or "").strip() or None
            if inventory_id:
                item = gateway.require("inventory", id=inventory_id, message="Inventory item not found")
                part_name = item.part_name
                part_number = item.part_number
                if "unit_cost_cents" not in raw:
                    unit_cost = item.cost_price_cents
            if not part_name:
                raise ValidationError(f"Item {index + 1} needs an inventory_id or part_name")

            lines.append({
                "inventory_id": inventory_id or None,
                "part_name": part_name,
                "part_number": part_number,
                "quantity_ordered": quantity,
                "quantity_received": 0,
                "unit_cost_cents": unit_cost,
            })

        order = gateway.insert("purchase_orders", {
            "order_number": next_order_number(gateway=gateway),
            "supplier_id": supplier_id,
            "status": PO_PENDING,
            "total_amount_cents": sum(l["quantity_ordered"] * l["unit_cost_cents"] for l in lines),
            "notes": notes,
            "ordered_by": user.id if user is not None else None,
        })
        for line in lines:
            gateway.insert("purchase_order_items", {**line, "purchase_order_id": order.id})

        log_activity(
            user=user, action="create", entity_type="purchase_order", entity_id=order.order_number,
            details={"supplier_id": supplier_id, "lines": len(lines), "total_cents": order.total_amount_cents},
            gateway=gateway,
        )
    return order


def list_purchase_orders(*, status: str | None = None, supplier_id: int | None = None) -> list[dict]:
    gateway = PersistenceGateway()
    filters = {}
    if status:
        if status not in PO_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PO_STATUSES)}")
        filters["status"] = status
    if supplier_id:
        filters["supplier_id"] = supplier_id
    orders = gateway.list("purchase_orders", order_by=["-created_at", "-id"], **filters)
    return [dict(o.to_dict(), item_count=len(o.items)) for o in orders]


def get_purchase_order(order_id: int) -> dict:
    gateway = PersistenceGateway()
    order = gateway.require("purchase_orders", id=order_id, message="Purchase order not found")
    receipts = gateway.list("purchase_receipts", purchase_order_id=order.id, order_by="id")
    data = order.to_dict()
    data["items"] = [i.to_dict() for i in order.items]
    data["receipts"] = [r.to_dict() for r in receipts]
    return data


def cancel_purchase_order(order_id: int, *, user) -> PurchaseOrder:
    """Cancel an order that has not been fully received. Stock already received stays."""
    gateway = PersistenceGateway()
    with gateway.transaction():
        order = gateway.require("purchase_orders", id=order_id, message="Purchase order not found")
        if order.status == PO_CANCELLED:
            raise StateError("Purchase order is already cancelled")
        if order.status == PO_COMPLETE:
            raise StateError("Cannot cancel a completed purchase order")
        order = gateway.update("purchase_orders", order.id, {"status": PO_CANCELLED})
        log_activity(
            user=user, action="cancel", entity_type="purchase_order", entity_id=order.order_number,
            gateway=gateway,
        )
    return order


# =============================================================================
# RECEIVING
# =============================================================================

def receive_item(order_item_id: int, quantity, *, received_by=None, gateway: PersistenceGateway | None = None) -> dict:
    """
    Receive quantity units against one purchase order line.

    Returns the updated line, the order status, and the inventory item id
    that was restocked (None when nothing matched).
    """
    quantity = parse_int(quantity, "Quantity", minimum=1)
    gateway = gateway or PersistenceGateway()

    with gateway.transaction():
        order_item = gateway.require("purchase_order_items", id=order_item_id, message="Purchase order item not found")
        order = gateway.require("purchase_orders", id=order_item.purchase_order_id, message="Purchase order not found")
        if order.status == PO_CANCELLED:
            raise StateError("Cannot receive against a cancelled purchase order")
        if order.status == PO_COMPLETE:
            raise StateError("Purchase order is already fully received")

        if not gateway.increment_received(order_item.id, quantity):
            raise ExceedsOrdered(
                "Received quantity would exceed quantity ordered",
                details={
                    "quantity_ordered": order_item.quantity_ordered,
                    "quantity_received": order_item.quantity_received,
                    "requested": quantity,
                },
            )

        gateway.insert("purchase_receipts", {
            "purchase_order_id": order.id,
            "purchase_order_item_id": order_item.id,
            "quantity_received": quantity,
            "received_by": received_by.id if received_by is not None else None,
        })

        inventory = _resolve_inventory(order_item, gateway)
        inventory_id = None
        if inventory is not None and gateway.adjust_stock(inventory.id, quantity):
            inventory_id = inventory.id
        else:
            current_app.logger.warning(
                "PO %s line %s: no inventory item matches %r; %s units recorded without stock change",
                order.order_number,
                order_item.id,
                order_item.part_number or order_item.part_name,
                quantity,
            )

        status = _recompute_status(order, gateway)

        log_activity(
            user=received_by, action="receive", entity_type="purchase_order", entity_id=order.order_number,
            details={"order_item_id": order_item.id, "quantity": quantity, "inventory_id": inventory_id, "status": status},
            gateway=gateway,
        )

    return {
        "order_item": order_item.to_dict(),
        "order_status": status,
        "order_number": order.order_number,
        "inventory_item_id": inventory_id,
    }
