# backend/autoparts/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/autoparts.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///autoparts.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Held orders never leave this device; None -> <instance_path>/held_orders.json
    HELD_ORDERS_PATH = os.environ.get("HELD_ORDERS_PATH")

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "12"))

    # Low-stock alert e-mail (Resend)
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    RESEND_API_URL = os.environ.get("RESEND_API_URL", "https://api.resend.com/emails")
    # Sender address only; the display name is the business name from settings
    ALERT_FROM_EMAIL = os.environ.get("ALERT_FROM_EMAIL", "onboarding@resend.dev")

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080",
        ).split(",")
        if origin.strip()
    }
