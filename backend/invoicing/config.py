# backend/invoicing/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/invoicing.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///invoicing.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound on any invoice listing (per-branch and cross-branch)
    INVOICE_LIST_PAGE_CAP = int(os.environ.get("INVOICE_LIST_PAGE_CAP", "10"))

    # Invoice notices go through the outbox; delivery never fails the invoice write
    NOTIFICATIONS_ENABLED = _env_bool("NOTIFICATIONS_ENABLED", True)
    NOTIFICATION_MAX_ATTEMPTS = int(os.environ.get("NOTIFICATION_MAX_ATTEMPTS", "3"))
    NOTIFICATION_SENDER = os.environ.get("NOTIFICATION_SENDER", "noreply@invoicing.local")
    # "inline": attempt delivery right after the invoice commit
    # "deferred": only queue; `flask notifications dispatch` delivers
    NOTIFICATION_DISPATCH_MODE = os.environ.get("NOTIFICATION_DISPATCH_MODE", "inline")

    # SMTP delivery is used only when MAIL_SERVER is set; otherwise notices are logged
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "25"))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", False)
    MAIL_TIMEOUT_SECONDS = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "10"))
