# Overview: Flask API routes for user administration; parses input and returns JSON responses.

"""
User administration (admin only)

Deleting a user is permanent and needs {"confirm": true}; users with sales
or purchasing history can only be deactivated.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role, require_confirmation
from ..errors import RetailError
from ..models.auth import ROLE_ADMIN, ROLE_STAFF
from ..services import auth_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"items": users, "count": len(users)})


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user_route():
    """
    Request body:
    {"email": "...", "password": "...", "full_name": "...", "role": "admin|staff"}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            data.get("email"),
            data.get("password"),
            full_name=data.get("full_name"),
            role=data.get("role") or ROLE_STAFF,
            created_by=g.current_user,
        )
        return jsonify(user.to_dict()), 201
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_role(ROLE_ADMIN)
def set_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.set_role(user_id, data.get("role"), actor=g.current_user)
        return jsonify(user.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change user role")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/<int:user_id>/deactivate")
@require_auth
@require_role(ROLE_ADMIN)
def deactivate_user_route(user_id: int):
    try:
        user = auth_service.set_active(user_id, False, actor=g.current_user)
        return jsonify(user.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to deactivate user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/<int:user_id>/activate")
@require_auth
@require_role(ROLE_ADMIN)
def activate_user_route(user_id: int):
    try:
        user = auth_service.set_active(user_id, True, actor=g.current_user)
        return jsonify(user.to_dict())
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to activate user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
@require_confirmation
def delete_user_route(user_id: int):
    try:
        auth_service.delete_user(user_id, actor=g.current_user)
        return jsonify({"message": "User deleted"}), 200
    except RetailError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
