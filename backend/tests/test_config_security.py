"""
Security config guard tests.

Validates that production/staging environments fail fast on insecure
settings (admin password, missing or plaintext database, in-memory sessions)
while development stays permissive.
"""
from __future__ import annotations

import pytest

from backend.web import config as cfg

GOOD_DSN = "postgresql://app:pw@db.example.com:5432/shop?sslmode=require"


@pytest.fixture
def prod_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PREOWNED_ENV", "prod")
    monkeypatch.setenv("ADMIN_PASSWORD", "a-long-and-random-secret")
    monkeypatch.setenv("DATABASE_URL", GOOD_DSN)
    monkeypatch.setenv("SESSIONS_BACKEND", "db")
    return monkeypatch


def test_dev_is_permissive(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PREOWNED_ENV", "dev")
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    cfg.ensure_secure_config_on_startup()


def test_valid_prod_config_passes(prod_env):
    cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize("password", ["", "CHANGE_ME_please_now", "short"])
def test_weak_admin_password_aborts(prod_env, password):
    prod_env.setenv("ADMIN_PASSWORD", password)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_missing_dsn_aborts(prod_env):
    prod_env.delenv("DATABASE_URL")
    prod_env.delenv("INTAKE_DATABASE_URL", raising=False)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize("var", ["DATABASE_URL", "INTAKE_DATABASE_URL", "SESSION_DATABASE_URL"])
def test_sslmode_disable_aborts(prod_env, var):
    prod_env.setenv(var, "postgresql://app:pw@db/shop?sslmode=disable")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_memory_sessions_abort_in_staging(prod_env):
    prod_env.setenv("PREOWNED_ENV", "staging")
    prod_env.setenv("SESSIONS_BACKEND", "memory")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()
