from __future__ import annotations

import re
from typing import Iterable

from backend.intake.domain import FileRef

ORIGIN = {"Origin": "http://test"}

_NONCE_RE = re.compile(r'name="clothing_form_nonce" value="([^"]+)"')
_ADMIN_TOKEN_RE = re.compile(r'name="csrf_token" value="([^"]+)"')


def multipart(fields: Iterable[tuple[str, object]]) -> tuple[dict[str, list[str]], list[tuple[str, tuple[str, bytes, str]]]]:
    """Split flat form fields into httpx `data` and `files` arguments."""
    data: dict[str, list[str]] = {}
    files: list[tuple[str, tuple[str, bytes, str]]] = []
    for key, value in fields:
        if isinstance(value, FileRef):
            files.append((key, (value.filename, value.data, value.content_type)))
        else:
            data.setdefault(key, []).append(str(value))
    return data, files


def form_nonce(html: str) -> str:
    m = _NONCE_RE.search(html)
    assert m, "form token not rendered"
    return m.group(1)


def admin_tokens(html: str) -> list[str]:
    return _ADMIN_TOKEN_RE.findall(html)


__all__ = ["ORIGIN", "multipart", "form_nonce", "admin_tokens"]
