"""
Lightweight psycopg stand-in for unit tests.

Provides ``install_fake_psycopg`` which monkeypatches a target module so that
``psycopg.connect`` returns an in-memory session table. Designed to support the
subset of SQL used by DBSessionStore (INSERT/SELECT/UPDATE/DELETE).

``ScriptedConnection`` is a separate double for repository tests: it records
every statement and lets a test decide what each one returns or raises.
"""
from __future__ import annotations

from dataclasses import dataclass
import time
import types
from typing import Any, Callable, Dict, Optional


class FakeJson:
    """Minimal replacement for psycopg.types.json.Json used in tests."""

    def __init__(self, obj: Any) -> None:
        self.obj = obj


@dataclass
class _Record:
    data: dict
    expires_at: int


class _FakeCursor:
    def __init__(self, store: Dict[str, _Record], now_func) -> None:
        self._store = store
        self._row = None
        self._now = now_func
        self.rowcount = 0

    def execute(self, sql: str, params: tuple | list = ()) -> None:
        sql_low = " ".join((sql or "").lower().split())
        self._row = None
        self.rowcount = 0
        if sql_low.startswith("insert into"):
            sid, data_json, expires_at = params
            self._store[sid] = _Record(data=dict(getattr(data_json, "obj", data_json)), expires_at=int(expires_at))
            self.rowcount = 1
        elif sql_low.startswith("select"):
            sid = params[0]
            rec = self._store.get(str(sid))
            if rec and rec.expires_at > int(self._now()):
                self._row = (sid, dict(rec.data), rec.expires_at)
        elif sql_low.startswith("update"):
            data_json, sid = params
            rec = self._store.get(str(sid))
            if rec is not None:
                rec.data = dict(getattr(data_json, "obj", data_json))
                self.rowcount = 1
        elif sql_low.startswith("delete") and "expires_at <= now()" in sql_low:
            now = int(self._now())
            expired = [sid for sid, rec in self._store.items() if rec.expires_at <= now]
            for sid in expired:
                self._store.pop(sid, None)
            self.rowcount = len(expired)
        elif sql_low.startswith("delete"):
            sid = params[0]
            self.rowcount = 1 if self._store.pop(str(sid), None) else 0
        else:
            raise AssertionError(f"Unexpected SQL in fake psycopg: {sql}")

    def fetchone(self):
        return self._row

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeConn:
    def __init__(self, store: Dict[str, _Record], now_func) -> None:
        self._store = store
        self._now = now_func

    def cursor(self):
        return _FakeCursor(self._store, self._now)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def install_fake_psycopg(monkeypatch, target_module, now_func=time.time):
    """
    Patch ``target_module`` so psycopg operations go against an in-memory store.

    Returns the mutable dictionary acting as the backing store.
    """
    fake_store: Dict[str, _Record] = {}

    def fake_connect(dsn: str, autocommit: bool | None = None, **_kwargs):
        return _FakeConn(fake_store, now_func)

    fake_psycopg = types.SimpleNamespace(
        connect=fake_connect,
        types=types.SimpleNamespace(json=types.SimpleNamespace(Json=FakeJson)),
    )
    monkeypatch.setattr(target_module, "HAVE_PSYCOPG", True, raising=False)
    monkeypatch.setattr(target_module, "psycopg", fake_psycopg, raising=False)
    monkeypatch.setattr(target_module, "Json", FakeJson, raising=False)
    return fake_store


# --- Scripted connection for repository tests ----------------------------------

Responder = Callable[[str, tuple], Any]


class _ScriptedCursor:
    def __init__(self, conn: "ScriptedConnection") -> None:
        self._conn = conn
        self._result: Any = None
        self.rowcount = 0

    def execute(self, sql: str, params: tuple | list = ()) -> None:
        norm = " ".join((sql or "").split())
        self._conn.statements.append((norm, tuple(params or ())))
        self._result = self._conn.responder(norm, tuple(params or ()))
        if isinstance(self._result, BaseException):
            raise self._result
        if isinstance(self._result, list):
            self.rowcount = len(self._result)
        else:
            self.rowcount = 0 if self._result is None else 1

    def fetchone(self):
        if isinstance(self._result, list):
            return self._result[0] if self._result else None
        return self._result

    def fetchall(self):
        if isinstance(self._result, list):
            return self._result
        return [self._result] if self._result is not None else []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class ScriptedConnection:
    """Connection double whose statement results come from `responder`.

    The responder returns a row, a list of rows, None, or an exception
    instance (raised from `execute`).
    """

    def __init__(self, responder: Optional[Responder] = None) -> None:
        self.responder: Responder = responder or (lambda sql, params: None)
        self.statements: list[tuple[str, tuple]] = []
        self.autocommit = True
        self.committed = 0
        self.rolled_back = 0
        self.closed = False

    def cursor(self):
        return _ScriptedCursor(self)

    def commit(self) -> None:
        self.committed += 1

    def rollback(self) -> None:
        self.rolled_back += 1

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


__all__ = ["install_fake_psycopg", "FakeJson", "ScriptedConnection"]
