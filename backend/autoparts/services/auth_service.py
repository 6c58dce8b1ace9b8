# Overview: Service-layer operations for users and authentication; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale, refund and receive is attributed to a user. Uses bcrypt
for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..errors import ConflictError, NotFound, PermissionDenied, ValidationError
from ..extensions import db
from ..models import PosSale, PurchaseOrder, PurchaseReceipt, User
from ..models.auth import ROLE_ADMIN, ROLE_STAFF, ROLES
from .activity_service import log_activity
from .session_service import revoke_all_user_sessions

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12 (strength checked first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("Valid email is required")
    return email


def _check_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role


def create_user(
    email: str,
    password: str,
    *,
    full_name: str | None = None,
    role: str = ROLE_STAFF,
    created_by: User | None = None,
) -> User:
    email = _normalize_email(email)
    _check_role(role)
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists")

    user = User(
        email=email,
        full_name=(full_name or "").strip() or None,
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    log_activity(
        user=created_by, action="create", entity_type="user", entity_id=user.id,
        details={"email": user.email, "role": user.role},
    )
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """Returns the active user for valid credentials, otherwise None."""
    email = (email or "").strip().lower()
    user = db.session.query(User).filter_by(email=email, is_active=True).first()
    if user is None:
        # Burn a hash check so unknown emails take as long as bad passwords
        bcrypt.checkpw(b"x", bcrypt.hashpw(b"y", bcrypt.gensalt(rounds=4)))
        return None
    if not verify_password(password or "", user.password_hash):
        return None
    return user


def list_users() -> list[dict]:
    users = db.session.query(User).order_by(User.email.asc()).all()
    return [u.to_dict() for u in users]


def _require_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _guard_last_admin(user: User) -> None:
    if user.role != ROLE_ADMIN or not user.is_active:
        return
    admins = db.session.query(User).filter_by(role=ROLE_ADMIN, is_active=True).count()
    if admins <= 1:
        raise ConflictError("Cannot remove the last active admin")


def set_role(user_id: int, role: str, *, actor: User) -> User:
    _check_role(role)
    user = _require_user(user_id)
    if user.role == role:
        return user
    if role != ROLE_ADMIN:
        _guard_last_admin(user)
    before = user.role
    user.role = role
    revoke_all_user_sessions(user.id)
    log_activity(
        user=actor, action="role_change", entity_type="user", entity_id=user.id,
        details={"email": user.email, "from": before, "to": role},
    )
    db.session.commit()
    return user


def set_active(user_id: int, is_active: bool, *, actor: User) -> User:
    user = _require_user(user_id)
    if user.id == actor.id and not is_active:
        raise PermissionDenied("You cannot deactivate your own account")
    if not is_active:
        _guard_last_admin(user)
        revoke_all_user_sessions(user.id)
    user.is_active = is_active
    log_activity(
        user=actor, action="activate" if is_active else "deactivate", entity_type="user", entity_id=user.id,
        details={"email": user.email},
    )
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    log_activity(user=user, action="password_change", entity_type="user", entity_id=user.id)
    db.session.commit()


def delete_user(user_id: int, *, actor: User) -> None:
    """Permanent delete. Users with sales or purchasing history must be deactivated instead."""
    user = _require_user(user_id)
    if user.id == actor.id:
        raise PermissionDenied("You cannot delete your own account")
    _guard_last_admin(user)

    referenced = (
        db.session.query(PosSale).filter_by(sold_by=user.id).first()
        or db.session.query(PurchaseOrder).filter_by(ordered_by=user.id).first()
        or db.session.query(PurchaseReceipt).filter_by(received_by=user.id).first()
    )
    if referenced is not None:
        raise ConflictError("User has sales or purchasing history; deactivate instead")

    email = user.email
    db.session.delete(user)
    log_activity(
        user=actor, action="delete", entity_type="user", entity_id=user_id,
        details={"email": email},
    )
    db.session.commit()
