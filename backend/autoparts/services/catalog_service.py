# Overview: Service-layer operations for categories, suppliers and customers.

"""
Catalog master data.

Deletes never break history:
- deleting a category un-links its parts (category text is kept)
- deleting a customer un-links past sales (customer_name on the sale is kept)
- a supplier with purchase orders cannot be deleted; its parts are un-linked
"""

from __future__ import annotations

import re

from ..errors import ConflictError, ValidationError
from ..models import Category, Customer, Supplier
from .activity_service import log_activity
from .gateway import PersistenceGateway

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(patch: dict) -> None:
    email = patch.get("email")
    if email and not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories() -> list[dict]:
    gateway = PersistenceGateway()
    result = []
    for category in gateway.list("categories", order_by="name"):
        result.append(dict(category.to_dict(), item_count=gateway.count("inventory", category_id=category.id)))
    return result


def create_category(patch: dict, *, user) -> Category:
    gateway = PersistenceGateway()
    with gateway.transaction():
        if gateway.get("categories", name=patch["name"]):
            raise ConflictError(f"Category {patch['name']} already exists")
        category = gateway.insert("categories", patch)
        log_activity(
            user=user, action="create", entity_type="category", entity_id=category.id,
            details={"name": category.name}, gateway=gateway,
        )
    return category


def update_category(category_id: int, patch: dict, *, user) -> Category:
    gateway = PersistenceGateway()
    with gateway.transaction():
        category = gateway.require("categories", id=category_id, message="Category not found")
        if "name" in patch and patch["name"] != category.name:
            if gateway.get("categories", name=patch["name"]):
                raise ConflictError(f"Category {patch['name']} already exists")
            # Keep the denormalized name on linked parts in step
            for item in gateway.list("inventory", category_id=category.id):
                gateway.update("inventory", item.id, {"category": patch["name"]})
        category = gateway.update("categories", category.id, patch)
        log_activity(
            user=user, action="update", entity_type="category", entity_id=category.id,
            details={"name": category.name}, gateway=gateway,
        )
    return category


def delete_category(category_id: int, *, user) -> None:
    gateway = PersistenceGateway()
    with gateway.transaction():
        category = gateway.require("categories", id=category_id, message="Category not found")
        name = category.name
        for item in gateway.list("inventory", category_id=category_id):
            gateway.update("inventory", item.id, {"category_id": None})
        gateway.delete("categories", id=category_id)
        log_activity(
            user=user, action="delete", entity_type="category", entity_id=category_id,
            details={"name": name}, gateway=gateway,
        )


# =============================================================================
# SUPPLIERS
# =============================================================================

def list_suppliers(*, search: str | None = None) -> list[dict]:
    gateway = PersistenceGateway()
    rows = gateway.search("suppliers", (search or "").strip(), ["name", "contact_person", "email"], order_by="name")
    return [s.to_dict() for s in rows]


def get_supplier(supplier_id: int) -> Supplier:
    return PersistenceGateway().require("suppliers", id=supplier_id, message="Supplier not found")


def create_supplier(patch: dict, *, user) -> Supplier:
    _check_email(patch)
    gateway = PersistenceGateway()
    with gateway.transaction():
        supplier = gateway.insert("suppliers", patch)
        log_activity(
            user=user, action="create", entity_type="supplier", entity_id=supplier.id,
            details={"name": supplier.name}, gateway=gateway,
        )
    return supplier


def update_supplier(supplier_id: int, patch: dict, *, user) -> Supplier:
    _check_email(patch)
    gateway = PersistenceGateway()
    with gateway.transaction():
        gateway.require("suppliers", id=supplier_id, message="Supplier not found")
        supplier = gateway.update("suppliers", supplier_id, patch)
        log_activity(
            user=user, action="update", entity_type="supplier", entity_id=supplier.id,
            details={"fields": sorted(patch)}, gateway=gateway,
        )
    return supplier


def delete_supplier(supplier_id: int, *, user) -> None:
    gateway = PersistenceGateway()
    with gateway.transaction():
        supplier = gateway.require("suppliers", id=supplier_id, message="Supplier not found")
        orders = gateway.count("purchase_orders", supplier_id=supplier_id)
        if orders:
            raise ConflictError(
                "Cannot delete a supplier with purchase orders",
                details={"supplier_id": supplier_id, "purchase_orders": orders},
            )
        name = supplier.name
        for item in gateway.list("inventory", supplier_id=supplier_id):
            gateway.update("inventory", item.id, {"supplier_id": None})
        gateway.delete("suppliers", id=supplier_id)
        log_activity(
            user=user, action="delete", entity_type="supplier", entity_id=supplier_id,
            details={"name": name}, gateway=gateway,
        )


# =============================================================================
# CUSTOMERS
# =============================================================================

def list_customers(*, search: str | None = None) -> list[dict]:
    gateway = PersistenceGateway()
    rows = gateway.search("customers", (search or "").strip(), ["name", "email", "phone"], order_by="name")
    return [c.to_dict() for c in rows]


def get_customer(customer_id: int) -> Customer:
    return PersistenceGateway().require("customers", id=customer_id, message="Customer not found")


def create_customer(patch: dict, *, user) -> Customer:
    _check_email(patch)
    gateway = PersistenceGateway()
    with gateway.transaction():
        customer = gateway.insert("customers", patch)
        log_activity(
            user=user, action="create", entity_type="customer", entity_id=customer.id,
            details={"name": customer.name}, gateway=gateway,
        )
    return customer


def update_customer(customer_id: int, patch: dict, *, user) -> Customer:
    _check_email(patch)
    gateway = PersistenceGateway()
    with gateway.transaction():
        gateway.require("customers", id=customer_id, message="Customer not found")
        customer = gateway.update("customers", customer_id, patch)
        log_activity(
            user=user, action="update", entity_type="customer", entity_id=customer.id,
            details={"fields": sorted(patch)}, gateway=gateway,
        )
    return customer


def delete_customer(customer_id: int, *, user) -> None:
    gateway = PersistenceGateway()
    with gateway.transaction():
        customer = gateway.require("customers", id=customer_id, message="Customer not found")
        name = customer.name
        for sale in gateway.list("pos_sales", customer_id=customer_id):
            gateway.update("pos_sales", sale.id, {"customer_id": None, "customer_name": sale.customer_name or name})
        gateway.delete("customers", id=customer_id)
        log_activity(
            user=user, action="delete", entity_type="customer", entity_id=customer_id,
            details={"name": name}, gateway=gateway,
        )


def customer_purchase_history(customer_id: int) -> dict:
    """Receipts for one customer with per-receipt totals, newest first."""
    gateway = PersistenceGateway()
    customer = gateway.require("customers", id=customer_id, message="Customer not found")
    receipts: dict[str, dict] = {}
    for sale in gateway.list("pos_sales", customer_id=customer_id, order_by=["-created_at", "-id"]):
        entry = receipts.setdefault(sale.receipt_number, {
            "receipt_number": sale.receipt_number,
            "created_at": sale.to_dict()["created_at"],
            "items": 0,
            "total_cents": 0,
        })
        entry["items"] += sale.quantity_sold
        entry["total_cents"] += sale.total_price_cents
    history = list(receipts.values())
    return {
        "customer": customer.to_dict(),
        "receipts": history,
        "lifetime_total_cents": sum(r["total_cents"] for r in history),
    }
