"""
One-shot feedback slot kept in the visitor's server-side session.

States:
    empty  (status == "")
    set    (status in {"success", "error", ...})

`set` is the only way into (or within) the set state, `clear` the only way
back to empty, and `get` never changes state. Pages that render a non-empty
feedback call `drain()` (get + clear) so each message is shown at most once.
There is one slot per session, not one per submission.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol

SESSION_KEY = "feedback"


class SessionDataStore(Protocol):
    def get(self, session_id: str) -> Any: ...

    def save(self, session_id: str, data: Dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class Feedback:
    status: str = ""
    message: str = ""
    debug_info: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.status

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


EMPTY = Feedback()


class FeedbackChannel:
    """Feedback slot bound to one session id."""

    def __init__(self, store: SessionDataStore, session_id: str) -> None:
        self._store = store
        self._sid = session_id

    def _load(self) -> Optional[Dict[str, Any]]:
        rec = self._store.get(self._sid)
        return dict(rec.data) if rec is not None else None

    def get(self) -> Feedback:
        data = self._load()
        raw = (data or {}).get(SESSION_KEY)
        if not isinstance(raw, dict) or not raw.get("status"):
            return EMPTY
        return Feedback(
            status=str(raw.get("status") or ""),
            message=str(raw.get("message") or ""),
            debug_info=str(raw.get("debug_info") or ""),
        )

    def set(self, status: str, message: str, debug_info: str = "") -> None:
        if not status:
            raise ValueError("status must be non-empty; use clear() to reset")
        data = self._load()
        if data is None:
            raise LookupError("session_not_found")
        data[SESSION_KEY] = Feedback(status=status, message=message or "", debug_info=debug_info or "").as_dict()
        self._store.save(self._sid, data)

    def clear(self) -> None:
        data = self._load()
        if data is None or SESSION_KEY not in data:
            return
        data.pop(SESSION_KEY, None)
        self._store.save(self._sid, data)

    def drain(self) -> Feedback:
        """Return the current feedback and reset the slot when it was set."""
        current = self.get()
        if not current.is_empty:
            self.clear()
        return current


__all__ = ["SESSION_KEY", "Feedback", "EMPTY", "FeedbackChannel", "SessionDataStore"]
