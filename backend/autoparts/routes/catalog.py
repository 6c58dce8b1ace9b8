# Overview: Flask API routes for categories, suppliers and customers; parses input and returns JSON responses.

"""
Catalog API Routes

Categories, suppliers and customers. Deleting a supplier or customer is
admin only and needs {"confirm": true}.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role, require_confirmation
from ..errors import RetailError
from ..models.auth import ROLE_ADMIN
from ..services import catalog_service
from ..validation import CATEGORY_POLICY, CUSTOMER_POLICY, SUPPLIER_POLICY, validate_payload

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


# =============================================================================
# CATEGORIES
# =============================================================================

@catalog_bp.get("/categories")
@require_auth
def list_categories_route():
    items = catalog_service.list_categories()
    return jsonify({"items": items, "count": len(items)})


@catalog_bp.post("/categories")
@require_auth
def create_category_route():
    try:
        patch = validate_payload(CATEGORY_POLICY, request.get_json(silent=True), partial=False)
        category = catalog_service.create_category(patch, user=g.current_user)
        return jsonify(category.to_dict()), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/categories/<int:category_id>")
@require_auth
def update_category_route(category_id: int):
    try:
        patch = validate_payload(CATEGORY_POLICY, request.get_json(silent=True), partial=True)
        category = catalog_service.update_category(category_id, patch, user=g.current_user)
        return jsonify(category.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/categories/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN)
@require_confirmation
def delete_category_route(category_id: int):
    try:
        catalog_service.delete_category(category_id, user=g.current_user)
        return jsonify({"message": "Category deleted"}), 200
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# SUPPLIERS
# =============================================================================

@catalog_bp.get("/suppliers")
@require_auth
def list_suppliers_route():
    items = catalog_service.list_suppliers(search=request.args.get("search"))
    return jsonify({"items": items, "count": len(items)})


@catalog_bp.get("/suppliers/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    try:
        return jsonify(catalog_service.get_supplier(supplier_id).to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@catalog_bp.post("/suppliers")
@require_auth
def create_supplier_route():
    try:
        patch = validate_payload(SUPPLIER_POLICY, request.get_json(silent=True), partial=False)
        supplier = catalog_service.create_supplier(patch, user=g.current_user)
        return jsonify(supplier.to_dict()), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/suppliers/<int:supplier_id>")
@require_auth
def update_supplier_route(supplier_id: int):
    try:
        patch = validate_payload(SUPPLIER_POLICY, request.get_json(silent=True), partial=True)
        supplier = catalog_service.update_supplier(supplier_id, patch, user=g.current_user)
        return jsonify(supplier.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/suppliers/<int:supplier_id>")
@require_auth
@require_role(ROLE_ADMIN)
@require_confirmation
def delete_supplier_route(supplier_id: int):
    try:
        catalog_service.delete_supplier(supplier_id, user=g.current_user)
        return jsonify({"message": "Supplier deleted"}), 200
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete supplier")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CUSTOMERS
# =============================================================================

@catalog_bp.get("/customers")
@require_auth
def list_customers_route():
    items = catalog_service.list_customers(search=request.args.get("search"))
    return jsonify({"items": items, "count": len(items)})


@catalog_bp.get("/customers/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        return jsonify(catalog_service.get_customer(customer_id).to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@catalog_bp.get("/customers/<int:customer_id>/history")
@require_auth
def customer_history_route(customer_id: int):
    try:
        return jsonify(catalog_service.customer_purchase_history(customer_id))
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@catalog_bp.post("/customers")
@require_auth
def create_customer_route():
    try:
        patch = validate_payload(CUSTOMER_POLICY, request.get_json(silent=True), partial=False)
        customer = catalog_service.create_customer(patch, user=g.current_user)
        return jsonify(customer.to_dict()), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/customers/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    try:
        patch = validate_payload(CUSTOMER_POLICY, request.get_json(silent=True), partial=True)
        customer = catalog_service.update_customer(customer_id, patch, user=g.current_user)
        return jsonify(customer.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/customers/<int:customer_id>")
@require_auth
@require_role(ROLE_ADMIN)
@require_confirmation
def delete_customer_route(customer_id: int):
    try:
        catalog_service.delete_customer(customer_id, user=g.current_user)
        return jsonify({"message": "Customer deleted"}), 200
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
