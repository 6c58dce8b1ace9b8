# Overview: Service-layer operations for business settings; typed view over key-value rows.

"""
Store settings

The settings table is a loose key-value store. Nothing outside this module
reads it: callers get a frozen StoreSettings built once per request
(get_store_settings caches it on flask.g) and pass it to whatever needs it
(receipt builder, reports, low-stock alerts).

tax_rate is stored as a percentage string ("8.25") for compatibility with
existing rows and exposed as basis points (825).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, asdict

from flask import g, has_app_context

from ..errors import ValidationError
from ..money import bps_to_percent, percent_to_bps
from .activity_service import log_activity
from .gateway import PersistenceGateway

DEFAULT_BUSINESS_NAME = "AutoParts AZ"
DEFAULT_RECEIPT_FOOTER = "Thank you for your business!"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class StoreSettings:
    business_name: str = DEFAULT_BUSINESS_NAME
    business_address: str = ""
    business_phone: str = ""
    business_email: str = ""
    tax_rate_bps: int = 0
    currency: str = "USD"
    receipt_footer: str = DEFAULT_RECEIPT_FOOTER
    notification_email: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["tax_rate"] = bps_to_percent(self.tax_rate_bps)
        return data


STRING_KEYS = (
    "business_name",
    "business_address",
    "business_phone",
    "business_email",
    "currency",
    "receipt_footer",
    "notification_email",
)
SETTING_KEYS = STRING_KEYS + ("tax_rate",)


def settings_from_rows(rows: dict[str, str | None]) -> StoreSettings:
    """Build StoreSettings from raw key -> value rows; blanks fall back to defaults."""
    values = {}
    for key in STRING_KEYS:
        raw = rows.get(key)
        if raw is not None and raw.strip():
            values[key] = raw.strip()
    try:
        values["tax_rate_bps"] = percent_to_bps(rows.get("tax_rate"))
    except ValueError:
        values["tax_rate_bps"] = 0
    if "currency" in values:
        values["currency"] = values["currency"].upper()
    return StoreSettings(**values)


def load_settings(*, gateway: PersistenceGateway | None = None) -> StoreSettings:
    gateway = gateway or PersistenceGateway()
    rows = {row.key: row.value for row in gateway.list("settings", key__in=SETTING_KEYS)}
    return settings_from_rows(rows)


def get_store_settings() -> StoreSettings:
    """Settings for the current request, loaded once."""
    if has_app_context():
        cached = getattr(g, "_store_settings", None)
        if cached is None:
            cached = load_settings()
            g._store_settings = cached
        return cached
    return load_settings()


def _validate(values: dict) -> dict:
    unknown = set(values) - set(SETTING_KEYS)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

    cleaned = {}
    for key, value in values.items():
        text = "" if value is None else str(value).strip()
        if key == "tax_rate":
            try:
                bps = percent_to_bps(text or "0")
            except ValueError:
                raise ValidationError("tax_rate must be a number")
            if bps < 0 or bps > 10_000:
                raise ValidationError("tax_rate must be between 0 and 100")
            text = bps_to_percent(bps)
        elif key in ("business_email", "notification_email") and text and not _EMAIL_RE.match(text):
            raise ValidationError(f"{key} must be a valid email address")
        elif key == "currency" and text and not re.fullmatch(r"[A-Za-z]{3}", text):
            raise ValidationError("currency must be a 3-letter code")
        elif key == "business_name" and "business_name" in values and not text:
            raise ValidationError("business_name cannot be blank")
        cleaned[key] = text.upper() if key == "currency" else text
    return cleaned


def update_settings(values: dict, *, user) -> StoreSettings:
    """Upsert the given keys and return the fresh settings."""
    cleaned = _validate(values or {})
    gateway = PersistenceGateway()
    with gateway.transaction():
        for key, value in cleaned.items():
            row = gateway.get("settings", key=key)
            if row is None:
                gateway.insert("settings", {"key": key, "value": value, "updated_by_user_id": user.id})
            else:
                gateway.update("settings", row.id, {"value": value, "updated_by_user_id": user.id})
        log_activity(
            user=user, action="update", entity_type="settings",
            details={"keys": sorted(cleaned)}, gateway=gateway,
        )
        settings = load_settings(gateway=gateway)

    if has_app_context():
        g._store_settings = settings
    return settings
