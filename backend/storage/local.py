"""
Local filesystem storage adapter for submission images.

Each submission gets its own directory below the upload root. Directories are
created lazily on first write and receive guard files so that web servers
serving the upload root never produce a directory listing.

Security:
    Keys are resolved against the root and rejected when they escape it
    (path traversal). Deleting a missing object is not an error.
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from backend.storage.config import get_upload_base_url, get_upload_root

_log = logging.getLogger("preowned.storage")

_GUARD_FILES = {
    "index.html": "",
    ".htaccess": "Options -Indexes\nDeny from all\n",
}


class LocalFileStorage:
    """Write/delete objects below a root directory."""

    def __init__(self, root: str | os.PathLike[str] | None = None, *, base_url: str | None = None) -> None:
        self._root = Path(root or get_upload_root()).resolve()
        self._base_url = (base_url if base_url is not None else get_upload_base_url()).rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, key: str) -> Path:
        target = (self._root / key).resolve()
        try:
            common = os.path.commonpath([str(self._root), str(target)])
        except ValueError:
            raise ValueError("invalid_storage_key")
        if common != str(self._root) or target == self._root:
            raise ValueError("invalid_storage_key")
        return target

    def _ensure_namespace(self, directory: Path) -> None:
        if directory.is_dir():
            return
        directory.mkdir(parents=True, exist_ok=True, mode=0o750)
        for name, body in _GUARD_FILES.items():
            guard = directory / name
            if not guard.exists():
                guard.write_text(body, encoding="utf-8")

    def put_object(self, *, key: str, body: bytes, content_type: str) -> str:
        """Write `body` under `key` and return the absolute path written."""
        target = self._resolve(key)
        self._ensure_namespace(target.parent)
        # Exclusive create: random keys never collide, so an existing file is a bug.
        with open(target, "xb") as fh:
            fh.write(body)
        _log.debug("stored object key=%s bytes=%s type=%s", key, len(body), content_type)
        return str(target)

    def delete_object(self, *, key: str) -> bool:
        """Remove one object; returns False when it was already gone."""
        target = self._resolve(key)
        try:
            target.unlink()
            return True
        except FileNotFoundError:
            return False

    def delete_namespace(self, *, namespace: str) -> None:
        """Remove a submission directory including guard files (best-effort)."""
        target = self._resolve(namespace)
        if target.is_dir():
            shutil.rmtree(target, ignore_errors=True)

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/{key.lstrip('/')}"

    def key_from_url(self, url: str) -> str | None:
        """Map a public URL produced by `public_url` back to its key."""
        prefix = f"{self._base_url}/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):] or None


__all__ = ["LocalFileStorage"]
