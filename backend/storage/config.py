"""
Centralized storage configuration for submission images.

Intent:
    Provide a single source of truth for where item photos are written, how
    they are addressed publicly and which size/dimension limits apply. Keeps
    the intake pipeline, the web layer and tests in sync.

Behavior:
    - get_upload_root()/get_upload_base_url() read env overrides with sane
      fallbacks (".tmp/uploads" / "/uploads").
    - get_max_image_bytes() derives the per-file limit from the platform upload
      limit, clipped to the MB cap configured for the form.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os


UPLOAD_ROOT_DEFAULT = ".tmp/uploads"
UPLOAD_BASE_URL_DEFAULT = "/uploads"


def get_upload_root() -> str:
    """Return the filesystem root for stored images.

    Env:
        UPLOAD_ROOT – optional override; otherwise defaults to
        UPLOAD_ROOT_DEFAULT.
    """
    return (os.getenv("UPLOAD_ROOT") or UPLOAD_ROOT_DEFAULT).strip()


def get_upload_base_url() -> str:
    """Return the public URL prefix under which stored images are served."""
    return (os.getenv("UPLOAD_BASE_URL") or UPLOAD_BASE_URL_DEFAULT).strip().rstrip("/") or UPLOAD_BASE_URL_DEFAULT


__all__ = [
    "UPLOAD_ROOT_DEFAULT",
    "UPLOAD_BASE_URL_DEFAULT",
    "get_upload_root",
    "get_upload_base_url",
]

# --- Size limits --------------------------------------------------------------

def _parse_int_env(name: str, default: int, *, contract_min: int = 1, contract_max: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    value = max(contract_min, value)
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_platform_max_upload_bytes() -> int:
    """Upload limit enforced by the platform in front of us (default 10 MiB)."""
    return _parse_int_env("PLATFORM_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)


def get_max_image_size_mb() -> int:
    """Form-level cap in megabytes (default 2, clamped 1..10)."""
    return _parse_int_env("MAX_IMAGE_SIZE_MB", 2, contract_min=1, contract_max=10)


def get_max_image_bytes() -> int:
    """Effective per-file byte limit: platform limit clipped to the MB cap."""
    return min(get_platform_max_upload_bytes(), get_max_image_size_mb() * 1024 * 1024)


def get_image_max_dimension() -> int:
    """Longest edge in pixels before images are downscaled (default 2000)."""
    return _parse_int_env("IMAGE_MAX_DIMENSION", 2000, contract_min=64, contract_max=10000)


def get_image_max_pixels() -> int:
    """Decoded pixel budget per photo (default 40 MP, clamped 1..100 MP)."""
    return _parse_int_env("IMAGE_MAX_PIXELS", 40_000_000, contract_min=1_000_000, contract_max=100_000_000)


def get_image_quality() -> int:
    """Recompression quality for JPEG/WebP output (default 82, clamped 10..95)."""
    return _parse_int_env("IMAGE_QUALITY", 82, contract_min=10, contract_max=95)


__all__ += [
    "get_platform_max_upload_bytes",
    "get_max_image_size_mb",
    "get_max_image_bytes",
    "get_image_max_dimension",
    "get_image_max_pixels",
    "get_image_quality",
]
