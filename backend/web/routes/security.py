"""
Shared web security helpers (FastAPI-agnostic utilities for routes).

Contains the same-origin check used by every state-changing route, the stable
per-session form token of the public submission form and the one-shot tokens
that guard admin mutations. Keeping a single implementation avoids security
drift between the public and admin surfaces.
"""
from __future__ import annotations

import hmac
import logging
import os
import secrets
from typing import Any, Optional
from urllib.parse import urlparse

from fastapi import Request

_log = logging.getLogger("preowned.web")

FORM_TOKEN_KEY = "csrf"
ADMIN_TOKENS_KEY = "admin_tokens"
MAX_ADMIN_TOKENS = 64


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    Proxy awareness: Only trust X-Forwarded-* when PREOWNED_TRUST_PROXY=true.
    """
    origin_val = request.headers.get("origin")
    try:
        def parse_origin(url: str) -> tuple[str, str, int]:
            p = urlparse(url)
            if not p.scheme or not p.hostname:
                raise ValueError("invalid_origin")
            scheme = p.scheme.lower()
            host = p.hostname.lower()
            port = p.port if p.port is not None else (443 if scheme == "https" else 80)
            return scheme, host, int(port)

        def parse_server(req: Request) -> tuple[str, str, int]:
            trust_proxy = (os.getenv("PREOWNED_TRUST_PROXY", "false") or "").lower() == "true"
            if trust_proxy:
                xf_proto = (req.headers.get("x-forwarded-proto") or req.url.scheme or "").split(",")[0].strip()
                xf_host = (req.headers.get("x-forwarded-host") or req.headers.get("host") or "").split(",")[0].strip()
                scheme = (xf_proto or req.url.scheme or "http").lower()
                default_port = 443 if scheme == "https" else 80
                if ":" in xf_host:
                    host_only, port_str = xf_host.rsplit(":", 1)
                    try:
                        port = int(port_str)
                    except ValueError:
                        port = default_port
                    return scheme, host_only.lower(), port
                host = (xf_host or (req.url.hostname or "")).lower()
                return scheme, host, default_port

            scheme = (req.url.scheme or "http").lower()
            host = (req.url.hostname or "").lower()
            port = int(req.url.port) if req.url.port else (443 if scheme == "https" else 80)
            return scheme, host, port

        server = parse_server(request)
        if origin_val:
            return parse_origin(origin_val) == server
        referer_val = request.headers.get("referer")
        if referer_val:
            return parse_origin(referer_val) == server
        return True
    except Exception:
        return False


def _load(store: Any, session_id: str) -> dict:
    rec = store.get(session_id)
    return dict(rec.data) if rec is not None else {}


def get_or_create_form_token(store: Any, session_id: str) -> str:
    """Return the stable form token of this session, minting it on first use."""
    data = _load(store, session_id)
    token = data.get(FORM_TOKEN_KEY)
    if not isinstance(token, str) or not token:
        token = secrets.token_urlsafe(24)
        data[FORM_TOKEN_KEY] = token
        store.save(session_id, data)
    return token


def get_form_token(store: Any, session_id: Optional[str]) -> Optional[str]:
    if not session_id:
        return None
    token = _load(store, session_id).get(FORM_TOKEN_KEY)
    return token if isinstance(token, str) and token else None


class AdminTokens:
    """Mint one-shot admin tokens for a page render and persist them once.

    Usage:
        tokens = AdminTokens(store, sid)
        html = SubmissionDetail(row, token_for=tokens.mint).render()
        tokens.save()
    """

    def __init__(self, store: Any, session_id: str) -> None:
        self._store = store
        self._sid = session_id
        self._minted: list[str] = []

    def mint(self) -> str:
        token = secrets.token_urlsafe(24)
        self._minted.append(token)
        return token

    def save(self) -> None:
        if not self._minted:
            return
        data = _load(self._store, self._sid)
        existing = [t for t in data.get(ADMIN_TOKENS_KEY) or [] if isinstance(t, str)]
        # Oldest tokens fall off first.
        data[ADMIN_TOKENS_KEY] = (existing + self._minted)[-MAX_ADMIN_TOKENS:]
        self._store.save(self._sid, data)
        self._minted = []


def consume_admin_token(store: Any, session_id: Optional[str], token: Optional[str]) -> bool:
    """Accept a token exactly once; unknown, stale or replayed tokens fail."""
    if not session_id or not token:
        return False
    data = _load(store, session_id)
    tokens = [t for t in data.get(ADMIN_TOKENS_KEY) or [] if isinstance(t, str)]
    supplied = str(token).encode("utf-8")
    match = next((t for t in tokens if hmac.compare_digest(t.encode("utf-8"), supplied)), None)
    if match is None:
        _log.warning("admin token rejected")
        return False
    tokens.remove(match)
    data[ADMIN_TOKENS_KEY] = tokens
    store.save(session_id, data)
    return True
