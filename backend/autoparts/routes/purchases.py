# Overview: Flask API routes for purchase orders and receiving; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import RetailError
from ..services import receiving_service

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchase-orders")


@purchases_bp.get("")
@require_auth
def list_orders_route():
    try:
        orders = receiving_service.list_purchase_orders(
            status=request.args.get("status"),
            supplier_id=request.args.get("supplier_id", type=int),
        )
        return jsonify({"items": orders, "count": len(orders)})
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@purchases_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        return jsonify(receiving_service.get_purchase_order(order_id))
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@purchases_bp.post("")
@require_auth
def create_order_route():
    """
    Request body:
    {
        "supplier_id": 3,
        "notes": "...",
        "items": [
            {"inventory_id": 7, "quantity": 10},
            {"part_name": "Brake Pad", "part_number": "BP-1", "quantity": 4, "unit_cost_cents": 1250}
        ]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        order = receiving_service.create_purchase_order(
            supplier_id=data.get("supplier_id"),
            items=data.get("items"),
            notes=data.get("notes"),
            user=g.current_user,
        )
        return jsonify(receiving_service.get_purchase_order(order.id)), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = receiving_service.cancel_purchase_order(order_id, user=g.current_user)
        return jsonify(order.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("/items/<int:order_item_id>/receive")
@require_auth
def receive_item_route(order_item_id: int):
    """Request body: {"quantity": 6}"""
    data = request.get_json(silent=True) or {}
    try:
        result = receiving_service.receive_item(order_item_id, data.get("quantity"), received_by=g.current_user)
        return jsonify(result)
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive purchase order item")
        return jsonify({"error": "Internal server error"}), 500
