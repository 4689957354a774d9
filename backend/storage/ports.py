"""
Storage ports used by the intake pipeline.

Keep these small and framework-agnostic so tests can supply simple fakes.
"""
from __future__ import annotations

from typing import Protocol


class BinaryWriteStorage(Protocol):
    """Minimal interface to write and remove binary objects by key.

    Intent:
        Allow the image intake to persist photos without depending on a
        specific backend (local disk today, object storage later).

    Permissions:
        Implementations must keep namespaces non-enumerable and reject keys
        that escape their root.
    """

    def put_object(self, *, key: str, body: bytes, content_type: str) -> str: ...

    def delete_object(self, *, key: str) -> bool: ...

    def delete_namespace(self, *, namespace: str) -> None: ...

    def public_url(self, key: str) -> str: ...

    def key_from_url(self, url: str) -> str | None: ...


__all__ = ["BinaryWriteStorage"]
