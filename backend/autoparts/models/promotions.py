from __future__ import annotations

from ..extensions import db
from autoparts.time_utils import to_utc_z

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED)


class Discount(db.Model):
    """
    Discount codes redeemable at checkout.

    code is stored uppercased and matched case-insensitively.
    discount_value: basis points for percentage (1000 = 10%), cents for fixed.
    used_count only ever grows at checkout commit; it never exceeds max_uses.
    """
    __tablename__ = "discounts"
    __table_args__ = (
        db.CheckConstraint("used_count >= 0", name="ck_discounts_used_count_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)

    discount_type = db.Column(db.String(16), nullable=False, default=DISCOUNT_PERCENTAGE)
    discount_value = db.Column(db.Integer, nullable=False)

    min_purchase_cents = db.Column(db.Integer, nullable=True)
    max_uses = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    valid_from = db.Column(db.DateTime(timezone=True), nullable=True)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "min_purchase_cents": self.min_purchase_cents,
            "max_uses": self.max_uses,
            "used_count": self.used_count,
            "is_active": self.is_active,
            "valid_from": to_utc_z(self.valid_from),
            "valid_until": to_utc_z(self.valid_until),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
