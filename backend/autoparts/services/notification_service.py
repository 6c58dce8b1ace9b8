# Overview: Service-layer operations for outbound e-mail notifications (low-stock alert).

"""
Low-stock alert

Collects every item at or below its reorder level, renders the
low_stock_email.html table and sends it to the store's notification_email
through the Resend HTTP API.

The HTTP client is injectable so tests can pass an httpx.Client built on
httpx.MockTransport.
"""

from __future__ import annotations

import httpx
from flask import current_app, render_template

from ..errors import RetailError, ValidationError
from autoparts.time_utils import utcnow
from .inventory_service import low_stock_items
from .settings_service import StoreSettings, get_store_settings


class NotificationError(RetailError):
    """The e-mail provider rejected the request or could not be reached."""

    status_code = 502
    code = "notification_failed"


def render_low_stock_email(items, settings: StoreSettings) -> str:
    return render_template(
        "low_stock_email.html",
        items=items,
        business_name=settings.business_name,
        generated_at=utcnow().strftime("%Y-%m-%d %H:%M"),
    )


def send_email(*, to: list[str], subject: str, html: str, from_name: str, client: httpx.Client | None = None) -> dict:
    api_key = current_app.config.get("RESEND_API_KEY")
    if not api_key:
        raise ValidationError("RESEND_API_KEY is not configured")

    payload = {
        "from": f"{from_name} <{current_app.config['ALERT_FROM_EMAIL']}>",
        "to": to,
        "subject": subject,
        "html": html,
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    owns_client = client is None
    client = client or httpx.Client(timeout=10.0)
    try:
        response = client.post(current_app.config["RESEND_API_URL"], json=payload, headers=headers)
    except httpx.HTTPError as exc:
        raise NotificationError("Could not reach the e-mail provider", details={"reason": str(exc)}) from exc
    finally:
        if owns_client:
            client.close()

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    if response.is_error:
        raise NotificationError(
            body.get("message") or "Failed to send email",
            details={"status": response.status_code},
        )
    return body


def send_low_stock_alert(*, client: httpx.Client | None = None, settings: StoreSettings | None = None) -> dict:
    items = low_stock_items()
    if not items:
        return {"success": True, "message": "No low stock items found", "items_count": 0}

    settings = settings or get_store_settings()
    if not settings.notification_email:
        raise ValidationError("No notification email configured in settings")

    result = send_email(
        to=[settings.notification_email],
        subject=f"Low Stock Alert - {len(items)} items need restocking",
        html=render_low_stock_email(items, settings),
        from_name=settings.business_name,
        client=client,
    )
    current_app.logger.info(
        "Low-stock alert sent to %s (%s items, id=%s)",
        settings.notification_email,
        len(items),
        result.get("id"),
    )
    return {"success": True, "items_count": len(items), "email_id": result.get("id")}
