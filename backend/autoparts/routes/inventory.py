# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory API Routes

- Any signed-in user can browse, create and edit parts
- Deleting a part is admin only and needs {"confirm": true}
- POST /low-stock/alert e-mails the low-stock list to the store's
  notification address
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role, require_confirmation
from ..errors import RetailError
from ..models.auth import ROLE_ADMIN
from ..services import inventory_service, notification_service
from ..validation import INVENTORY_POLICY, validate_payload

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
def list_inventory_route():
    """
    Query parameters:
    - search: part name / number / brand / category substring
    - category: exact category name
    - supplier_id
    - low_stock: "true" to list only items at or below reorder level
    - page, per_page: optional pagination
    """
    try:
        result = inventory_service.list_inventory(
            search=request.args.get("search"),
            category=request.args.get("category"),
            supplier_id=request.args.get("supplier_id", type=int),
            low_stock_only=request.args.get("low_stock", "false").lower() == "true",
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result)
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/categories")
@require_auth
def categories_in_use_route():
    return jsonify({"items": inventory_service.list_categories_in_use()})


@inventory_bp.get("/low-stock")
@require_auth
def low_stock_route():
    items = inventory_service.low_stock_items()
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})


@inventory_bp.post("/low-stock/alert")
@require_auth
def low_stock_alert_route():
    try:
        return jsonify(notification_service.send_low_stock_alert())
    except RetailError as e:
        current_app.logger.warning("Low-stock alert not sent: %s", e.message)
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to send low-stock alert")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:item_id>")
@require_auth
def get_item_route(item_id: int):
    try:
        return jsonify(inventory_service.get_item(item_id).to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.post("")
@require_auth
def create_item_route():
    """
    Request body: part_name and part_number required; any other inventory
    field optional (prices in cents).
    """
    try:
        patch = validate_payload(INVENTORY_POLICY, request.get_json(silent=True), partial=False)
        item = inventory_service.create_item(patch, user=g.current_user)
        return jsonify(item.to_dict()), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/<int:item_id>")
@require_auth
def update_item_route(item_id: int):
    try:
        patch = validate_payload(INVENTORY_POLICY, request.get_json(silent=True), partial=True)
        item = inventory_service.update_item(item_id, patch, user=g.current_user)
        return jsonify(item.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_role(ROLE_ADMIN)
@require_confirmation
def delete_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id, user=g.current_user)
        return jsonify({"message": "Item deleted"}), 200
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete inventory item")
        return jsonify({"error": "Internal server error"}), 500
