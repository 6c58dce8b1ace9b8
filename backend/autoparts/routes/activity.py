# Overview: Flask API routes for the activity log (admin only).

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import RetailError, ValidationError
from ..models.auth import ROLE_ADMIN
from ..services import activity_service
from autoparts.time_utils import parse_iso_datetime

activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")


@activity_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_activity_route():
    """
    Query parameters: action, entity_type, user_id, start, end (ISO 8601),
    search (user email substring), page, per_page.
    """
    try:
        try:
            start = parse_iso_datetime(request.args.get("start"))
            end = parse_iso_datetime(request.args.get("end"))
        except ValueError:
            raise ValidationError("start and end must be ISO 8601 datetimes")
        result = activity_service.list_activity(
            action=request.args.get("action"),
            entity_type=request.args.get("entity_type"),
            user_id=request.args.get("user_id", type=int),
            start=start,
            end=end,
            search=request.args.get("search"),
            page=request.args.get("page", 1, type=int),
            per_page=request.args.get("per_page", 50, type=int),
        )
        return jsonify(result)
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list activity")
        return jsonify({"error": "Internal server error"}), 500


@activity_bp.get("/filters")
@require_auth
@require_role(ROLE_ADMIN)
def activity_filters_route():
    return jsonify(activity_service.activity_filter_options())
