"""
In-memory session store for development and tests.

Why: Keep visitor state (feedback slot, form token, admin flag) server-side and
opaque to the client. The cookie carries only a random session id. For
production use `DBSessionStore` (SESSIONS_BACKEND=db).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import copy
import secrets
import threading
import time

DEFAULT_TTL_SECONDS = 60 * 60 * 24


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[int] = None
    ttl_seconds: int = DEFAULT_TTL_SECONDS


class SessionStore:
    purge_interval_seconds = 60

    def __init__(self) -> None:
        self._data: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()
        self._next_purge = 0

    def _purge_locked(self, now: int) -> int:
        expired = [sid for sid, rec in self._data.items() if rec.expires_at and rec.expires_at < now]
        for sid in expired:
            del self._data[sid]
        self._next_purge = now + self.purge_interval_seconds
        return len(expired)

    def purge_expired(self) -> int:
        """Drop every expired record; returns how many were removed."""
        with self._lock:
            return self._purge_locked(_now())

    def create(self, *, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> SessionRecord:
        sid = secrets.token_urlsafe(24)
        now = _now()
        rec = SessionRecord(session_id=sid, data={}, expires_at=now + ttl_seconds, ttl_seconds=ttl_seconds)
        with self._lock:
            # Anonymous visitors never come back for their ids; sweep on creation.
            if now >= self._next_purge:
                self._purge_locked(now)
            self._data[sid] = rec
        return copy.deepcopy(rec)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            rec = self._data.get(session_id)
            if not rec:
                return None
            if rec.expires_at and rec.expires_at < _now():
                self._data.pop(session_id, None)
                return None
            # Hand out copies so callers must go through save().
            return copy.deepcopy(rec)

    def save(self, session_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            rec = self._data.get(session_id)
            if rec is None:
                return
            rec.data = copy.deepcopy(dict(data))

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)
