"""
Unit-style tests for DBSessionStore using a fake psycopg driver.

Rationale: Keep CI/self-contained runs green without a real Postgres.
We simulate the subset of psycopg used by DBSessionStore to validate SQL flow
and mapping. No network or external DB required.
"""
from __future__ import annotations

import pytest

from backend.intake.feedback import FeedbackChannel
from backend.sessions import stores_db
from backend.tests.utils.fake_psycopg import install_fake_psycopg


class _Clock:
    def __init__(self) -> None:
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch, clock):
    install_fake_psycopg(monkeypatch, stores_db, now_func=clock)
    monkeypatch.setattr(stores_db, "_now", lambda: int(clock()))
    return stores_db.DBSessionStore(dsn="postgresql://fake")


def test_create_get_save_delete(store):
    rec = store.create(ttl_seconds=60)
    assert rec.data == {}
    store.save(rec.session_id, {"csrf": "tok"})
    assert store.get(rec.session_id).data == {"csrf": "tok"}
    store.delete(rec.session_id)
    assert store.get(rec.session_id) is None


def test_expired_rows_are_invisible_and_purged(store, clock):
    rec = store.create(ttl_seconds=5)
    clock.now += 10
    assert store.get(rec.session_id) is None
    assert store.purge_expired() == 1


def test_feedback_survives_through_db_store(store):
    sid = store.create().session_id
    FeedbackChannel(store, sid).set("success", "Thanks")
    # A second "process" reads it through a fresh channel.
    assert FeedbackChannel(store, sid).drain().message == "Thanks"
    assert FeedbackChannel(store, sid).get().is_empty


def test_invalid_table_name_rejected(monkeypatch: pytest.MonkeyPatch):
    install_fake_psycopg(monkeypatch, stores_db)
    with pytest.raises(ValueError):
        stores_db.DBSessionStore(dsn="postgresql://fake", table="app_sessions; drop table x")


def test_requires_dsn(monkeypatch: pytest.MonkeyPatch):
    install_fake_psycopg(monkeypatch, stores_db)
    monkeypatch.delenv("SESSION_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        stores_db.DBSessionStore()
