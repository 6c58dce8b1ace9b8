# Overview: Service-layer operations for session tokens; encapsulates business logic and database work.

"""
Session Token Management

WHY: Every request that changes stock or money must be attributable to a
user. Tokens are random, hashed in the database, and time-limited.

- 32 bytes from secrets.token_hex, sent once to the client
- only the SHA-256 hash is stored
- absolute expiry of SESSION_TTL_HOURS (config), revocable on logout
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from autoparts.time_utils import utcnow


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: tokens are already high-entropy.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user: User) -> tuple[SessionToken, str]:
    """Returns (session_record, plaintext_token)."""
    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 12))

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + ttl,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def validate_session(token: str) -> User | None:
    """
    Returns the session's user, or None if the token is unknown, expired,
    revoked, or the user has been deactivated.
    """
    if not token:
        return None
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if session is None or session.revoked_at is not None:
        return None
    if session.expires_at <= utcnow():
        return None
    user = session.user
    if user is None or not user.is_active:
        return None
    return user


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if session is None or session.revoked_at is not None:
        return False
    session.revoked_at = utcnow()
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int) -> int:
    """Revoke every live session of a user (deactivation, role change)."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.revoked_at.is_(None),
    ).all()
    for session in sessions:
        session.revoked_at = now
    return len(sessions)
