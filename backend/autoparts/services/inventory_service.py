# Overview: Service-layer operations for the parts inventory; encapsulates business logic.

"""
Inventory Service

Parts are keyed by part_number (unique, stored uppercased). quantity can be
set directly here (stock take / manual correction); sales, refunds and
purchase receiving go through the gateway's conditional stock updates
instead.
"""

from __future__ import annotations

from ..errors import ConflictError, ValidationError
from ..models import InventoryItem
from ..validation import check_inventory_rules
from .activity_service import log_activity
from .gateway import PersistenceGateway

INVENTORY_MUTABLE_FIELDS = {
    "part_name", "part_number", "category", "category_id", "supplier_id", "brand",
    "year_from", "year_to", "quantity", "cost_price_cents", "selling_price_cents", "reorder_level",
}

SEARCH_COLUMNS = ["part_name", "part_number", "brand", "category"]


def list_inventory(
    *,
    search: str | None = None,
    category: str | None = None,
    supplier_id: int | None = None,
    low_stock_only: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Inventory listing with optional text search and filters.

    Returns all matching rows unless page is given; paginated responses carry
    the same pagination block as the activity log.
    """
    gateway = PersistenceGateway()
    filters = {}
    if category:
        filters["category"] = category
    if supplier_id:
        filters["supplier_id"] = supplier_id

    items = gateway.search("inventory", (search or "").strip(), SEARCH_COLUMNS, order_by=["part_name", "id"], **filters)
    if low_stock_only:
        items = [i for i in items if i.is_low_stock]

    if page is None:
        return {"items": [i.to_dict() for i in items], "count": len(items)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)
    total = len(items)
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    window = items[(page - 1) * per_page: page * per_page]
    return {
        "items": [i.to_dict() for i in window],
        "count": len(window),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_item(item_id: int) -> InventoryItem:
    return PersistenceGateway().require("inventory", id=item_id, message="Inventory item not found")


def _sync_category_name(patch: dict, gateway: PersistenceGateway) -> None:
    # category (free text) follows category_id when a reference is given
    if patch.get("category_id"):
        category = gateway.require("categories", id=patch["category_id"], message="Category not found")
        patch["category"] = category.name
    elif "category" in patch and not patch["category"]:
        patch["category"] = "Uncategorized"


def create_item(patch: dict, *, user) -> InventoryItem:
    if not (patch.get("part_name") or "").strip():
        raise ValidationError("Part name is required")
    if not (patch.get("part_number") or "").strip():
        raise ValidationError("Part number is required")
    check_inventory_rules(patch)
    gateway = PersistenceGateway()
    with gateway.transaction():
        if gateway.get("inventory", part_number=patch["part_number"]):
            raise ConflictError(f"Part number {patch['part_number']} already exists")
        if patch.get("supplier_id"):
            gateway.require("suppliers", id=patch["supplier_id"], message="Supplier not found")
        _sync_category_name(patch, gateway)
        item = gateway.insert("inventory", {k: v for k, v in patch.items() if k in INVENTORY_MUTABLE_FIELDS})
        log_activity(
            user=user, action="create", entity_type="inventory", entity_id=item.id,
            details={"part_number": item.part_number, "quantity": item.quantity}, gateway=gateway,
        )
    return item


def update_item(item_id: int, patch: dict, *, user) -> InventoryItem:
    gateway = PersistenceGateway()
    with gateway.transaction():
        item = gateway.require("inventory", id=item_id, message="Inventory item not found")
        check_inventory_rules(patch, existing=item)
        if "part_number" in patch and patch["part_number"] != item.part_number:
            if gateway.get("inventory", part_number=patch["part_number"]):
                raise ConflictError(f"Part number {patch['part_number']} already exists")
        if patch.get("supplier_id"):
            gateway.require("suppliers", id=patch["supplier_id"], message="Supplier not found")
        _sync_category_name(patch, gateway)

        before = item.quantity
        item = gateway.update("inventory", item.id, {k: v for k, v in patch.items() if k in INVENTORY_MUTABLE_FIELDS})
        details = {"part_number": item.part_number, "fields": sorted(patch)}
        if "quantity" in patch and before != item.quantity:
            details["quantity_before"] = before
            details["quantity_after"] = item.quantity
        log_activity(
            user=user, action="update", entity_type="inventory", entity_id=item.id,
            details=details, gateway=gateway,
        )
    return item


def delete_item(item_id: int, *, user) -> None:
    """Delete a part. Parts with sales history are kept so receipts stay intact."""
    gateway = PersistenceGateway()
    with gateway.transaction():
        item = gateway.require("inventory", id=item_id, message="Inventory item not found")
        sales = gateway.count("pos_sales", inventory_id=item_id)
        if sales:
            raise ConflictError(
                "Cannot delete a part that has sales history",
                details={"inventory_id": item_id, "sales": sales},
            )
        # Purchase order lines keep their copied name / part number
        for line in gateway.list("purchase_order_items", inventory_id=item_id):
            gateway.update("purchase_order_items", line.id, {"inventory_id": None})
        part_number = item.part_number
        gateway.delete("inventory", id=item_id)
        log_activity(
            user=user, action="delete", entity_type="inventory", entity_id=item_id,
            details={"part_number": part_number}, gateway=gateway,
        )


def low_stock_items() -> list[InventoryItem]:
    """Items at or below their reorder level, lowest stock first."""
    gateway = PersistenceGateway()
    items = gateway.list("inventory", order_by=["quantity", "part_name"])
    return [i for i in items if i.is_low_stock]


def list_categories_in_use() -> list[str]:
    gateway = PersistenceGateway()
    names = {i.category for i in gateway.list("inventory") if i.category}
    return sorted(names)
