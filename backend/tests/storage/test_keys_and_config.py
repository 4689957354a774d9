"""Storage key shape and the env-driven size limits."""
from __future__ import annotations

import re

import pytest

from backend.storage.config import (
    get_image_max_dimension,
    get_image_quality,
    get_max_image_bytes,
    get_max_image_size_mb,
    get_upload_base_url,
)
from backend.storage.keys import extension_of, make_image_key


def test_make_image_key_shape():
    key = make_image_key(submission_id="abc", slot="brand_tag", ext="JPG", epoch_ms=1700000000000, token="t0k")
    assert key == "abc/brand_tag-1700000000000-t0k.jpg"


def test_make_image_key_sanitizes_segments_and_randomizes():
    a = make_image_key(submission_id="../x y", slot="front", ext="p.n g")
    b = make_image_key(submission_id="../x y", slot="front", ext="png")
    assert a.startswith("x-y/front-")
    assert re.match(r"^x-y/front-\d+-[0-9a-f]{24}\.png$", a)
    assert a != b


@pytest.mark.parametrize(
    "name, ext",
    [("photo.JPeG", "jpeg"), ("archive.tar.gz", "gz"), ("noext", ""), (None, ""), ("dir/.hidden", "")],
)
def test_extension_of(name, ext):
    assert extension_of(name) == ext


def test_size_limit_is_min_of_platform_and_form_cap(monkeypatch: pytest.MonkeyPatch):
    assert get_max_image_size_mb() == 2
    assert get_max_image_bytes() == 2 * 1024 * 1024
    monkeypatch.setenv("PLATFORM_MAX_UPLOAD_BYTES", "1000")
    assert get_max_image_bytes() == 1000
    monkeypatch.setenv("PLATFORM_MAX_UPLOAD_BYTES", "junk")
    monkeypatch.setenv("MAX_IMAGE_SIZE_MB", "50")
    assert get_max_image_size_mb() == 10


def test_image_tuning_is_clamped(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("IMAGE_QUALITY", "200")
    monkeypatch.setenv("IMAGE_MAX_DIMENSION", "10")
    assert get_image_quality() == 95
    assert get_image_max_dimension() == 64


def test_upload_base_url_trims_trailing_slash(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("UPLOAD_BASE_URL", "/media/")
    assert get_upload_base_url() == "/media"
