from __future__ import annotations

from ..extensions import db
from autoparts.time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryItem(db.Model):
    """
    A stocked auto part.

    quantity is mutated by checkout (decrement), purchase receiving
    (increment), refunds (increment) and direct edits. Checkout and refund
    adjust it with conditional UPDATEs, never read-modify-write.
    Low stock: quantity <= reorder_level.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_nonneg"),
        db.Index("ix_inventory_part_name", "part_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    part_name = db.Column(db.String(255), nullable=False)
    part_number = db.Column(db.String(128), nullable=False, unique=True)

    # Denormalized category name; category_id is the optional reference
    category = db.Column(db.String(128), nullable=False, default="Uncategorized")
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    brand = db.Column(db.String(128), nullable=True)
    year_from = db.Column(db.Integer, nullable=True)
    year_to = db.Column(db.Integer, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=5)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    category_ref = db.relationship("Category", backref=db.backref("items", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_level

    @property
    def year_range(self) -> str | None:
        if self.year_from and self.year_to:
            if self.year_from == self.year_to:
                return str(self.year_from)
            return f"{self.year_from}-{self.year_to}"
        if self.year_from:
            return f"{self.year_from}+"
        if self.year_to:
            return f"-{self.year_to}"
        return None

    @property
    def stock_value_cents(self) -> int:
        return self.quantity * self.cost_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "part_name": self.part_name,
            "part_number": self.part_number,
            "category": self.category,
            "category_id": self.category_id,
            "supplier_id": self.supplier_id,
            "brand": self.brand,
            "year_from": self.year_from,
            "year_to": self.year_to,
            "year_range": self.year_range,
            "quantity": self.quantity,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "reorder_level": self.reorder_level,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
