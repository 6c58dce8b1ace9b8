# Overview: Service-layer operations for whole-receipt refunds.

"""
Refunds are all-or-nothing per receipt number:

1. every pos_sales row sharing the receipt number is loaded (NotFound if none)
2. each row's quantity_sold is added back to its inventory item with an
   additive UPDATE (quantity = quantity + n), so stock movements since the
   sale are preserved
3. the rows are deleted
4. one activity row records what was refunded

All of it runs in one transaction. The discount's used_count is left as is:
a refunded sale still consumed its use of the code.
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFound, ValidationError
from .activity_service import log_activity
from .gateway import PersistenceGateway


def refund_receipt(receipt_number: str, *, user, gateway: PersistenceGateway | None = None) -> dict:
    receipt_number = (receipt_number or "").strip().upper()
    if not receipt_number:
        raise ValidationError("Receipt number is required")

    gateway = gateway or PersistenceGateway()
    with gateway.transaction():
        rows = gateway.list("pos_sales", receipt_number=receipt_number, order_by="id")
        if not rows:
            raise NotFound(f"No sale found for receipt {receipt_number}")

        restored = []
        refunded_cents = 0
        for row in rows:
            if gateway.adjust_stock(row.inventory_id, row.quantity_sold):
                restored.append({"inventory_id": row.inventory_id, "quantity": row.quantity_sold})
            else:
                current_app.logger.warning(
                    "Refund %s: inventory item %s no longer exists; stock not restored",
                    receipt_number,
                    row.inventory_id,
                )
            refunded_cents += row.total_price_cents

        deleted = gateway.delete("pos_sales", receipt_number=receipt_number)

        log_activity(
            user=user,
            action="refund",
            entity_type="pos_sale",
            entity_id=receipt_number,
            details={
                "receipt_number": receipt_number,
                "lines": deleted,
                "refunded_cents": refunded_cents,
                "restored": restored,
            },
            gateway=gateway,
        )

    return {
        "receipt_number": receipt_number,
        "lines_refunded": deleted,
        "refunded_cents": refunded_cents,
        "restored": restored,
    }
