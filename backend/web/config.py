"""
Configuration and startup security checks for the submission site.

Why: A clothing intake site collects names, phone numbers and home addresses.
This module provides a single guard that enforces minimal production safety
constraints without burdening local development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os

from backend.intake.config import get_database_dsn, is_prod_like

_PLACEHOLDERS = ("CHANGE_ME", "DUMMY", "ADMIN", "PASSWORD")


def _is_placeholder(value: str) -> bool:
    upper = value.strip().upper()
    return any(upper.startswith(p) for p in _PLACEHOLDERS)


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - ADMIN_PASSWORD must be set, not a placeholder and at least 12 characters.
    - A database DSN must be configured (no in-memory repository in prod).
    - No configured DSN may explicitly disable TLS.
    - Sessions must be stored in the database (SESSIONS_BACKEND=db).
    """
    if not is_prod_like():
        return  # dev/test remain permissive

    # 1) Admin credentials
    admin_pw = (os.getenv("ADMIN_PASSWORD") or "").strip()
    if not admin_pw or _is_placeholder(admin_pw) or len(admin_pw) < 12:
        raise SystemExit(
            "Refusing to start: ADMIN_PASSWORD is unset, too short or a placeholder in production."
        )

    # 2) Durable storage for submissions
    if not get_database_dsn():
        raise SystemExit(
            "Refusing to start: no DATABASE_URL/INTAKE_DATABASE_URL configured in production."
        )

    # 3) Postgres TLS: basic guard to avoid explicit disable
    for key in ("INTAKE_DATABASE_URL", "DATABASE_URL", "SESSION_DATABASE_URL"):
        if "sslmode=disable" in (os.getenv(key) or ""):
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )

    # 4) Sessions survive restarts and are shared between workers
    if (os.getenv("SESSIONS_BACKEND", "memory") or "").strip().lower() != "db":
        raise SystemExit(
            "Refusing to start: SESSIONS_BACKEND=db is mandatory in production/staging."
        )
