# Overview: Flask API routes for discount codes; parses input and returns JSON responses.

"""
Discount API Routes

Percentage discounts are sent as a percentage ("percent": 10 or "8.25")
and stored as basis points; fixed discounts are sent in cents
("discount_value": 500).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role, require_confirmation
from ..errors import RetailError, ValidationError
from ..models.auth import ROLE_ADMIN
from ..money import percent_to_bps
from ..services import discount_service
from ..validation import DISCOUNT_POLICY, validate_payload

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")


def _discount_payload(partial: bool) -> dict:
    payload = dict(request.get_json(silent=True) or {})
    if "percent" in payload:
        try:
            payload["discount_value"] = percent_to_bps(payload.pop("percent"))
        except ValueError:
            raise ValidationError("percent must be a number")
    return validate_payload(DISCOUNT_POLICY, payload, partial=partial)


@discounts_bp.get("")
@require_auth
def list_discounts_route():
    items = discount_service.list_discounts(
        active_only=request.args.get("active", "false").lower() == "true",
        search=request.args.get("search"),
    )
    return jsonify({"items": items, "count": len(items)})


@discounts_bp.post("/validate")
@require_auth
def validate_discount_route():
    """
    Request body: {"code": "SAVE10", "subtotal_cents": 3000}

    200 with the discount and the amount it takes off, or the resolver's
    error with a "reason" (not_found, not_started, expired, usage_exceeded,
    minimum_not_met).
    """
    data = request.get_json(silent=True) or {}
    try:
        subtotal = data.get("subtotal_cents", 0)
        if not isinstance(subtotal, int) or isinstance(subtotal, bool) or subtotal < 0:
            raise ValidationError("subtotal_cents must be a non-negative integer")
        discount = discount_service.apply_discount(data.get("code"), subtotal)
        return jsonify({
            "valid": True,
            "discount": discount.to_dict(),
            "discount_amount_cents": discount_service.compute_amount(discount, subtotal),
        })
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to validate discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_discount_route():
    try:
        discount = discount_service.create_discount(_discount_payload(partial=False), user=g.current_user)
        return jsonify(discount.to_dict()), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.put("/<int:discount_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_discount_route(discount_id: int):
    try:
        discount = discount_service.update_discount(discount_id, _discount_payload(partial=True), user=g.current_user)
        return jsonify(discount.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update discount")
        return jsonify({"error": "Internal server error"}), 500


@discounts_bp.delete("/<int:discount_id>")
@require_auth
@require_role(ROLE_ADMIN)
@require_confirmation
def delete_discount_route(discount_id: int):
    try:
        discount_service.delete_discount(discount_id, user=g.current_user)
        return jsonify({"message": "Discount deleted"}), 200
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete discount")
        return jsonify({"error": "Internal server error"}), 500
