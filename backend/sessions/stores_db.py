"""
Database-backed SessionStore for production use (Postgres).

Why: In-memory sessions are not durable and do not survive restarts or span
several workers. A feedback message must outlive exactly one redirect, which
may land on another process. This store keeps the session data as jsonb in
`public.app_sessions` while the cookie stays an opaque id.

Security:
- Only the opaque `session_id` is set in the cookie; all visitor state stays
  server-side. No contact data is written to the session.

Note: This module uses psycopg3. It is imported only when enabled via
`SESSIONS_BACKEND=db`. Tests use the in-memory store or a fake psycopg.
"""
from __future__ import annotations

from typing import Any, Dict, Optional
import logging
import os
import re
import secrets
import time

try:
    import psycopg
    from psycopg.types.json import Json
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    Json = None  # type: ignore
    HAVE_PSYCOPG = False

from backend.sessions.stores import DEFAULT_TTL_SECONDS, SessionRecord

_log = logging.getLogger("preowned.sessions")

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


def _now() -> int:
    return int(time.time())


class DBSessionStore:
    """Postgres-backed session store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string; falls back to SESSION_DATABASE_URL, then
        DATABASE_URL.
    table:
        Fully qualified table name. Defaults to `public.app_sessions`.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.app_sessions") -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBSessionStore")
        self._dsn = dsn or os.getenv("SESSION_DATABASE_URL") or os.getenv("DATABASE_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBSessionStore")
        # Identifier is interpolated into SQL, so it must be a plain (schema.)name.
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table

    def create(self, *, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        expires_at = _now() + ttl_seconds
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"insert into {self._table} (session_id, data, expires_at) "
                    f"values (%s, %s, to_timestamp(%s))",
                    (sid, Json({}), expires_at),
                )
        return SessionRecord(session_id=sid, data={}, expires_at=expires_at, ttl_seconds=ttl_seconds)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select session_id, data, extract(epoch from expires_at)::bigint "
                    f"from {self._table} where session_id = %s and expires_at > now()",
                    (session_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        data = row[1] if isinstance(row[1], dict) else {}
        return SessionRecord(
            session_id=row[0],
            data=data,
            expires_at=int(row[2]) if row[2] is not None else None,
        )

    def save(self, session_id: str, data: Dict[str, Any]) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update {self._table} set data = %s where session_id = %s",
                    (Json(dict(data)), session_id),
                )

    def delete(self, session_id: str) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(f"delete from {self._table} where session_id = %s", (session_id,))

    def purge_expired(self) -> int:
        """Remove expired rows; returns the number deleted."""
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(f"delete from {self._table} where expires_at <= now()", ())
                count = cur.rowcount if isinstance(getattr(cur, "rowcount", None), int) else 0
        if count:
            _log.info("purged %s expired sessions", count)
        return max(count, 0)
