# Overview: Service-layer operations for the business activity log.

"""
Activity log invariants

- Append-only; rows are never updated or deleted by the application.
- log_activity() only flushes. It runs inside the caller's transaction, so
  the log row commits (or rolls back) together with the change it records.
"""

from __future__ import annotations

from datetime import datetime

from ..models import ActivityLog
from .gateway import PersistenceGateway


def log_activity(
    *,
    user,
    action: str,
    entity_type: str,
    entity_id=None,
    details: dict | None = None,
    gateway: PersistenceGateway | None = None,
) -> ActivityLog:
    gateway = gateway or PersistenceGateway()
    return gateway.insert("activity_logs", {
        "user_id": user.id if user is not None else None,
        "user_email": (user.email if user is not None else None) or "system",
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id) if entity_id is not None else None,
        "details": details or None,
    })


def list_activity(
    *,
    action: str | None = None,
    entity_type: str | None = None,
    user_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> dict:
    """Paginated, newest-first activity listing with optional filters."""
    gateway = PersistenceGateway()
    filters = {}
    if action:
        filters["action"] = action
    if entity_type:
        filters["entity_type"] = entity_type
    if user_id:
        filters["user_id"] = user_id
    if start:
        filters["created_at__gte"] = start
    if end:
        filters["created_at__lte"] = end
    if search:
        filters["user_email__ilike"] = search

    per_page = min(max(per_page, 1), 200)
    page = max(page, 1)
    total = gateway.count("activity_logs", **filters)
    rows = gateway.list(
        "activity_logs",
        order_by=["-created_at", "-id"],
        limit=per_page,
        offset=(page - 1) * per_page,
        **filters,
    )
    total_pages = (total + per_page - 1) // per_page if total else 1
    return {
        "items": [r.to_dict() for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def activity_filter_options() -> dict:
    """Distinct actions and entity types, for filter menus."""
    gateway = PersistenceGateway()
    session = gateway.session
    actions = [a for (a,) in session.query(ActivityLog.action).distinct().order_by(ActivityLog.action)]
    entity_types = [e for (e,) in session.query(ActivityLog.entity_type).distinct().order_by(ActivityLog.entity_type)]
    return {"actions": actions, "entity_types": entity_types}
