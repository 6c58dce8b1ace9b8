from __future__ import annotations

from ..extensions import db
from autoparts.time_utils import to_utc_z

PAYMENT_METHODS = ("cash", "card", "mobile", "other")


class PosSale(db.Model):
    """
    One row per cart line of a completed checkout.

    All rows of one checkout share receipt_number. total_price_cents is the
    line total after its pro-rated share of the order discount
    (discount_amount_cents). Rows are never edited; a refund deletes them.
    """
    __tablename__ = "pos_sales"
    __table_args__ = (
        db.Index("ix_pos_sales_receipt_number", "receipt_number"),
        db.Index("ix_pos_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    receipt_number = db.Column(db.String(32), nullable=False)

    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)
    quantity_sold = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")

    sold_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("InventoryItem")
    customer = db.relationship("Customer")
    discount = db.relationship("Discount")
    seller = db.relationship("User")

    @property
    def line_total_cents(self) -> int:
        return self.quantity_sold * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "receipt_number": self.receipt_number,
            "inventory_id": self.inventory_id,
            "quantity_sold": self.quantity_sold,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "discount_id": self.discount_id,
            "discount_amount_cents": self.discount_amount_cents,
            "payment_method": self.payment_method,
            "sold_by": self.sold_by,
            "created_at": to_utc_z(self.created_at),
        }
