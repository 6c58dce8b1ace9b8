from __future__ import annotations

from ..extensions import db
from autoparts.time_utils import to_utc_z

PO_PENDING = "pending"
PO_PARTIAL = "partial"
PO_COMPLETE = "complete"
PO_CANCELLED = "cancelled"
PO_STATUSES = (PO_PENDING, PO_PARTIAL, PO_COMPLETE, PO_CANCELLED)


class PurchaseOrder(db.Model):
    """
    Supplier purchase order.

    status is derived from the items' ordered/received totals on every
    receive (pending -> partial -> complete); cancelled is set only by an
    explicit cancel and is terminal.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=PO_PENDING, index=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    ordered_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        backref="purchase_order",
        lazy=True,
        order_by="PurchaseOrderItem.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "notes": self.notes,
            "ordered_by": self.ordered_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_items_received_le_ordered"),
        db.CheckConstraint("quantity_received >= 0", name="ck_po_items_received_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=True)
    part_name = db.Column(db.String(255), nullable=False)
    part_number = db.Column(db.String(128), nullable=True)

    quantity_ordered = db.Column(db.Integer, nullable=False)
    quantity_received = db.Column(db.Integer, nullable=False, default=0)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def quantity_outstanding(self) -> int:
        return self.quantity_ordered - self.quantity_received

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "inventory_id": self.inventory_id,
            "part_name": self.part_name,
            "part_number": self.part_number,
            "quantity_ordered": self.quantity_ordered,
            "quantity_received": self.quantity_received,
            "quantity_outstanding": self.quantity_outstanding,
            "unit_cost_cents": self.unit_cost_cents,
        }


class PurchaseReceipt(db.Model):
    """Append-only log of receiving actions. Never updated or deleted."""
    __tablename__ = "purchase_receipts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    purchase_order_item_id = db.Column(db.Integer, db.ForeignKey("purchase_order_items.id"), nullable=False, index=True)
    quantity_received = db.Column(db.Integer, nullable=False)
    received_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "purchase_order_item_id": self.purchase_order_item_id,
            "quantity_received": self.quantity_received,
            "received_by": self.received_by,
            "received_at": to_utc_z(self.received_at),
        }
