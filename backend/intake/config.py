"""
Intake configuration read from the environment.

Intent:
    One place for the knobs of the submission pipeline (database DSN, size
    requirement, notification switches, admin page size) so the web layer, the
    CLI tools and tests agree on defaults.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

PROD_LIKE_ENVS = ("prod", "production", "stage", "staging")


def _truthy(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _int_env(name: str, default: int, lo: int, hi: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return max(lo, min(hi, value))


def get_env() -> str:
    return (os.getenv("PREOWNED_ENV", "dev") or "dev").strip().lower()


def is_prod_like() -> bool:
    return get_env() in PROD_LIKE_ENVS


def get_database_dsn() -> Optional[str]:
    """INTAKE_DATABASE_URL wins over DATABASE_URL; None means in-memory."""
    for name in ("INTAKE_DATABASE_URL", "DATABASE_URL"):
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def get_site_name() -> str:
    return (os.getenv("SITE_NAME") or "Preowned Clothing").strip()


def require_item_size() -> bool:
    return _truthy(os.getenv("REQUIRE_ITEM_SIZE"), True)


def get_admin_page_size() -> int:
    return _int_env("ADMIN_PAGE_SIZE", 20, 1, 100)


@dataclass(frozen=True)
class NotificationConfig:
    enabled: bool
    send_confirmation: bool
    admin_to: str
    smtp_host: str
    smtp_port: int
    sender: str
    site_name: str
    admin_base_url: str

    @classmethod
    def from_env(cls) -> "NotificationConfig":
        return cls(
            enabled=_truthy(os.getenv("NOTIFICATIONS_ENABLED"), True),
            send_confirmation=_truthy(os.getenv("SEND_CONFIRMATION"), True),
            admin_to=(os.getenv("NOTIFY_EMAIL_TO") or "").strip(),
            smtp_host=(os.getenv("SMTP_HOST") or "").strip(),
            smtp_port=_int_env("SMTP_PORT", 25, 1, 65535),
            sender=(os.getenv("SMTP_SENDER") or "").strip(),
            site_name=get_site_name(),
            admin_base_url=(os.getenv("APP_BASE_URL") or "").strip().rstrip("/"),
        )


__all__ = [
    "PROD_LIKE_ENVS",
    "get_env",
    "is_prod_like",
    "get_database_dsn",
    "get_site_name",
    "require_item_size",
    "get_admin_page_size",
    "NotificationConfig",
]
