# Overview: Flask API routes for store settings; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import RetailError, ValidationError
from ..models.auth import ROLE_ADMIN
from ..services import settings_service

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    return jsonify(settings_service.get_store_settings().to_dict())


@settings_bp.put("")
@require_auth
@require_role(ROLE_ADMIN)
def update_settings_route():
    """
    Request body: any subset of business_name, business_address,
    business_phone, business_email, tax_rate (percent), currency,
    receipt_footer, notification_email.
    """
    data = request.get_json(silent=True)
    try:
        if not isinstance(data, dict):
            raise ValidationError("JSON object body required")
        settings = settings_service.update_settings(data, user=g.current_user)
        return jsonify(settings.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500
