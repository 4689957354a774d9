"""
LocalFileStorage: namespaced writes, traversal guard and deletes.

Keys come from `make_image_key`; anything resolving outside the root must be
rejected with `invalid_storage_key`.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from backend.storage.local import LocalFileStorage


@pytest.fixture
def storage(upload_root: Path) -> LocalFileStorage:
    return LocalFileStorage(upload_root, base_url="/uploads/")


def test_put_creates_namespace_with_guard_files(storage, upload_root):
    path = storage.put_object(key="sub-1/front-1-abc.png", body=b"x", content_type="image/png")
    assert Path(path) == (upload_root / "sub-1" / "front-1-abc.png").resolve()
    assert (upload_root / "sub-1" / "index.html").read_text() == ""
    assert "Deny from all" in (upload_root / "sub-1" / ".htaccess").read_text()


def test_put_refuses_to_overwrite(storage):
    storage.put_object(key="sub-1/a.png", body=b"x", content_type="image/png")
    with pytest.raises(FileExistsError):
        storage.put_object(key="sub-1/a.png", body=b"y", content_type="image/png")


@pytest.mark.parametrize("key", ["../escape.png", "sub/../../escape.png", "/etc/passwd", "", "."])
def test_traversal_rejected(storage, key):
    with pytest.raises(ValueError, match="invalid_storage_key"):
        storage.put_object(key=key, body=b"x", content_type="image/png")


def test_delete_object_is_idempotent(storage):
    storage.put_object(key="sub-1/a.png", body=b"x", content_type="image/png")
    assert storage.delete_object(key="sub-1/a.png") is True
    assert storage.delete_object(key="sub-1/a.png") is False


def test_delete_namespace_removes_directory(storage, upload_root):
    storage.put_object(key="sub-1/a.png", body=b"x", content_type="image/png")
    storage.delete_namespace(namespace="sub-1")
    assert not (upload_root / "sub-1").exists()
    # Missing namespace is fine.
    storage.delete_namespace(namespace="sub-1")


def test_public_url_round_trips_to_key(storage):
    url = storage.public_url("sub-1/a.png")
    assert url == "/uploads/sub-1/a.png"
    assert storage.key_from_url(url) == "sub-1/a.png"
    assert storage.key_from_url("https://elsewhere/sub-1/a.png") is None
    assert storage.key_from_url("") is None
