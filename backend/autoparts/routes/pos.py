# Overview: Flask API routes for the point of sale; carts, checkout, receipts, refunds and held orders.

"""
POS API Routes

The browser keeps the cart; the server sees it as a list of
{"inventory_id", "quantity"} lines and rebuilds it from live stock on
every call.

- POST /cart/validate: price a cart (subtotal, discount, tax, total)
- POST /checkout: commit a sale and return its receipt
- GET  /receipts/<number>[/html|/pdf]: reprint
- POST /receipts/<number>/refund: admin only, needs {"confirm": true}
- /held-orders: park and resume carts
"""

from flask import Blueprint, Response, request, jsonify, current_app, g

from ..decorators import require_auth, require_role, require_confirmation
from ..errors import RetailError, ValidationError
from ..models.auth import ROLE_ADMIN
from ..services import catalog_service, checkout_service, discount_service, export_service, refund_service
from ..services.held_order_service import HeldOrderStore
from ..services.settings_service import get_store_settings

pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _optional_int(data: dict, key: str):
    value = data.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    return value


@pos_bp.post("/cart/validate")
@require_auth
def validate_cart_route():
    """
    Request body: {"lines": [{"inventory_id": 1, "quantity": 2}], "discount_code": "SAVE10"}
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = checkout_service.build_cart(data.get("lines") or [])
        discount = None
        if data.get("discount_code"):
            discount = discount_service.apply_discount(data["discount_code"], cart.subtotal_cents())
        totals = checkout_service.compute_totals(cart, discount, get_store_settings().tax_rate_bps)
        return jsonify({
            "cart": cart.to_dict(),
            "discount_code": discount.code if discount else None,
            "subtotal_cents": totals.subtotal_cents,
            "discount_cents": totals.discount_cents,
            "tax_cents": totals.tax_cents,
            "total_cents": totals.total_cents,
        })
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to validate cart")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Request body:
    {
        "lines": [{"inventory_id": 1, "quantity": 2}],
        "discount_code": "SAVE10",          (optional)
        "customer_id": 4,                   (optional)
        "customer_name": "Jane",            (optional, used when no customer_id)
        "payment_method": "cash",           (cash|card|mobile|other)
        "amount_tendered_cents": 5000       (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = checkout_service.build_cart(data.get("lines") or [])
        receipt = checkout_service.checkout(
            cart,
            cashier=g.current_user,
            discount_code=data.get("discount_code") or None,
            customer_id=_optional_int(data, "customer_id"),
            customer_name=data.get("customer_name"),
            payment_method=data.get("payment_method") or "cash",
            amount_tendered_cents=_optional_int(data, "amount_tendered_cents"),
        )
        current_app.logger.info(
            "Sale %s committed by %s: %s items, total %s cents",
            receipt.receipt_number,
            g.current_user.email,
            cart.item_count(),
            receipt.total_cents,
        )
        return jsonify(receipt.to_dict()), 201
    except RetailError as e:
        current_app.logger.info("Checkout rejected: %s", e.message)
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# RECEIPTS
# =============================================================================

@pos_bp.get("/receipts/<receipt_number>")
@require_auth
def get_receipt_route(receipt_number: str):
    try:
        return jsonify(checkout_service.load_receipt(receipt_number.upper()).to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@pos_bp.get("/receipts/<receipt_number>/html")
@require_auth
def receipt_html_route(receipt_number: str):
    try:
        receipt = checkout_service.load_receipt(receipt_number.upper())
        return Response(export_service.receipt_html(receipt), mimetype="text/html")
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@pos_bp.get("/receipts/<receipt_number>/pdf")
@require_auth
def receipt_pdf_route(receipt_number: str):
    try:
        receipt = checkout_service.load_receipt(receipt_number.upper())
        pdf = export_service.receipt_pdf(receipt)
        return Response(
            pdf,
            mimetype="application/pdf",
            headers={"Content-Disposition": f"inline; filename=receipt-{receipt.receipt_number}.pdf"},
        )
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to render receipt PDF")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/receipts/<receipt_number>/refund")
@require_auth
@require_role(ROLE_ADMIN)
@require_confirmation
def refund_route(receipt_number: str):
    try:
        result = refund_service.refund_receipt(receipt_number, user=g.current_user)
        current_app.logger.info(
            "Receipt %s refunded by %s (%s cents)",
            result["receipt_number"],
            g.current_user.email,
            result["refunded_cents"],
        )
        return jsonify(result)
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to refund receipt")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# HELD ORDERS
# =============================================================================

@pos_bp.get("/held-orders")
@require_auth
def list_held_orders_route():
    try:
        orders = HeldOrderStore().list()
        return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code


@pos_bp.post("/held-orders")
@require_auth
def hold_order_route():
    """
    Request body: {"lines": [...], "customer_id": 4, "customer_name": "...",
                   "discount_code": "...", "note": "..."}
    A customer_id must name an existing customer; its name is kept with the order.
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = checkout_service.build_cart(data.get("lines") or [])
        customer_id = _optional_int(data, "customer_id")
        customer_name = data.get("customer_name")
        if customer_id is not None:
            customer_name = catalog_service.get_customer(customer_id).name
        order = HeldOrderStore().hold(
            cart,
            held_by=g.current_user.email,
            customer_id=customer_id,
            customer_name=customer_name,
            discount_code=data.get("discount_code"),
            note=data.get("note"),
        )
        return jsonify(order.to_dict()), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to hold order")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/held-orders/<order_id>/resume")
@require_auth
def resume_order_route(order_id: str):
    """Returns the parked cart refreshed against current stock, plus any lines that changed."""
    try:
        cart, order = HeldOrderStore().resume(order_id)
        issues = checkout_service.revalidate_cart(cart)
        data = order.to_dict()
        customer_issue = checkout_service.revalidate_customer(order.customer_id)
        if customer_issue:
            issues.append(customer_issue)
            data["customer_id"] = None
        data["cart"] = cart.to_dict()
        data["issues"] = issues
        return jsonify(data)
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to resume held order")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.delete("/held-orders/<order_id>")
@require_auth
def delete_held_order_route(order_id: str):
    try:
        HeldOrderStore().remove(order_id)
        return jsonify({"message": "Held order removed"}), 200
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
