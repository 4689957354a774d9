"""
Helpers to generate standardized storage keys for submission images.

Why:
    Keep path shapes consistent and never let client-supplied filenames reach
    the filesystem. Only the (sanitized) extension of the original name is
    retained; the basename is random.

Conventions:
    - Submission images: {submission}/{slot}-{epoch_ms}-{token}.{ext}

Security:
    - Sanitization removes characters outside [A-Za-z0-9._-] from segments.
    - Extensions are lowercased and filtered to alphanumerics.
"""
from __future__ import annotations

import os
import re
import secrets
import time
import unicodedata

_SEGMENT_RE = re.compile(r"[^A-Za-z0-9._-]+")


def _sanitize_segment(value: str, *, fallback: str = "x") -> str:
    value = value or ""
    normalized = unicodedata.normalize("NFKD", value)
    ascii_value = normalized.encode("ascii", "ignore").decode("ascii")
    sanitized = _SEGMENT_RE.sub("-", ascii_value).strip("-_.")
    return sanitized or fallback


def extension_of(filename: str | None) -> str:
    """Return the lowercased extension of `filename` without the dot ('' if none)."""
    if not filename:
        return ""
    _, ext = os.path.splitext(os.path.basename(filename))
    return "".join(ch for ch in ext.lower() if ch.isalnum())


def random_token(nbytes: int = 12) -> str:
    return secrets.token_hex(nbytes)


def make_image_key(*, submission_id: str, slot: str, ext: str, epoch_ms: int | None = None, token: str | None = None) -> str:
    """Build a storage key for one item photo.

    Returns: {submission}/{slot}-{epoch_ms}-{token}.{ext}
    """
    sub = _sanitize_segment(submission_id, fallback="submission")
    slot_part = _sanitize_segment(slot, fallback="image")
    ms = int(epoch_ms if epoch_ms is not None else time.time() * 1000)
    tok = (token or "").strip() or random_token()
    ext_norm = "".join(ch for ch in (ext or "").lower() if ch.isalnum())
    suffix = f".{ext_norm}" if ext_norm else ""
    return f"{sub}/{slot_part}-{ms}-{tok}{suffix}"


__all__ = ["extension_of", "make_image_key", "random_token"]
