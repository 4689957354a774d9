"""
Image intake for submission photos.

Intent:
    Persist the photos of one submission into its own storage namespace and
    report per-file outcomes, so the submission use case can decide whether to
    commit or roll back.

Behavior:
    - Client filenames and declared mime types are never trusted. The
      extension must be on the allow-list and Pillow must recognise the bytes
      as one of the allowed formats.
    - Files over the configured byte limit are rejected.
    - Images are normalised in memory (EXIF orientation, downscale to the max
      edge, recompress) and written once under a random key.
    - One bad file never stops the others. The batch is `ok` unless a required
      slot (front) failed for some item.
    - Every written key is tracked on the returned batch; `cleanup()` removes
      them all and never raises.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from PIL import Image, ImageOps

from backend.intake.domain import REQUIRED_IMAGE_SLOTS, FileRef, ImageSlot, ValidatedItem
from backend.storage.config import get_image_max_dimension, get_image_max_pixels, get_image_quality, get_max_image_bytes
from backend.storage.keys import extension_of, make_image_key
from backend.storage.ports import BinaryWriteStorage

_log = logging.getLogger("preowned.intake.images")

ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
# Pillow format name -> (stored extension, content type)
_FORMATS = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "GIF": ("gif", "image/gif"),
    "WEBP": ("webp", "image/webp"),
}


class ImageRejected(ValueError):
    """A single file failed a content, type or size check."""


@dataclass
class FileOutcome:
    item_index: int
    slot: ImageSlot
    ok: bool
    key: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ImageBatch:
    """Result of storing one submission's photos.

    `stored_keys` lists every successfully written object in write order and is
    the rollback set for `cleanup()`.
    """

    submission_id: str
    storage: BinaryWriteStorage
    outcomes: list[FileOutcome] = field(default_factory=list)
    stored_keys: list[str] = field(default_factory=list)
    stored_paths: list[str] = field(default_factory=list)

    @property
    def failures(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not any(o.slot in REQUIRED_IMAGE_SLOTS for o in self.failures)

    @property
    def image_urls_by_item(self) -> dict[int, dict[ImageSlot, str]]:
        urls: dict[int, dict[ImageSlot, str]] = {}
        for o in self.outcomes:
            if o.ok and o.url:
                urls.setdefault(o.item_index, {})[o.slot] = o.url
        return urls

    def describe_failures(self) -> str:
        return "; ".join(f"item {o.item_index + 1} {o.slot.value}: {o.error}" for o in self.failures)

    def cleanup(self) -> int:
        """Delete every tracked object and the namespace; returns objects removed."""
        removed = 0
        for key in list(self.stored_keys):
            try:
                if self.storage.delete_object(key=key):
                    removed += 1
            except Exception as exc:
                _log.warning("cleanup failed for key=%s: %s", key, exc.__class__.__name__)
        try:
            self.storage.delete_namespace(namespace=self.submission_id)
        except Exception as exc:
            _log.warning("namespace cleanup failed submission=%s: %s", self.submission_id, exc.__class__.__name__)
        if removed:
            _log.info("cleaned up %s stored images submission=%s", removed, self.submission_id)
        return removed


class ImageIntake:
    """Validate, normalise and store item photos via a `BinaryWriteStorage`."""

    def __init__(
        self,
        storage: BinaryWriteStorage,
        *,
        max_bytes: Optional[int] = None,
        max_dimension: Optional[int] = None,
        quality: Optional[int] = None,
        max_pixels: Optional[int] = None,
    ) -> None:
        self._storage = storage
        self._max_bytes = max_bytes or get_max_image_bytes()
        self._max_dimension = max_dimension or get_image_max_dimension()
        self._quality = quality or get_image_quality()
        self._max_pixels = max_pixels or get_image_max_pixels()

    @property
    def storage(self) -> BinaryWriteStorage:
        return self._storage

    def store(self, submission_id: str, items: Iterable[ValidatedItem]) -> ImageBatch:
        batch = ImageBatch(submission_id=submission_id, storage=self._storage)
        for item in items:
            for slot, ref in item.images.items():
                batch.outcomes.append(self._store_one(batch, item.index, slot, ref))
        if batch.failures:
            _log.warning(
                "image intake had %s failure(s) submission=%s ok=%s",
                len(batch.failures),
                submission_id,
                batch.ok,
            )
        return batch

    def cleanup(self, batch: ImageBatch) -> int:
        return batch.cleanup()

    def _store_one(self, batch: ImageBatch, item_index: int, slot: ImageSlot, ref: FileRef) -> FileOutcome:
        try:
            body, ext, content_type = self.normalize(ref)
            key = make_image_key(submission_id=batch.submission_id, slot=slot.value, ext=ext)
            path = self._storage.put_object(key=key, body=body, content_type=content_type)
        except ImageRejected as exc:
            return FileOutcome(item_index=item_index, slot=slot, ok=False, error=str(exc))
        except Exception as exc:
            _log.warning("image write failed slot=%s: %s", slot.value, exc)
            return FileOutcome(item_index=item_index, slot=slot, ok=False, error="write_failed")
        batch.stored_keys.append(key)
        batch.stored_paths.append(path)
        return FileOutcome(item_index=item_index, slot=slot, ok=True, key=key, url=self._storage.public_url(key))

    def normalize(self, ref: FileRef) -> tuple[bytes, str, str]:
        """Check one upload and return (bytes, extension, content type) to store.

        Raises ImageRejected with a short reason code.
        """
        if not ref.data:
            raise ImageRejected("empty_file")
        if extension_of(ref.filename) not in ALLOWED_EXTENSIONS:
            raise ImageRejected("extension_not_allowed")
        if ref.size > self._max_bytes:
            raise ImageRejected("file_too_large")
        try:
            with Image.open(io.BytesIO(ref.data)) as probe:
                fmt = probe.format
                width, height = probe.size
                probe.verify()
        except Exception:
            raise ImageRejected("not_an_image")
        if fmt not in _FORMATS:
            raise ImageRejected("format_not_allowed")
        # Header dimensions bound the decoded size; compressed bytes do not.
        if width * height > self._max_pixels:
            raise ImageRejected("too_many_pixels")
        ext, content_type = _FORMATS[fmt]

        try:
            with Image.open(io.BytesIO(ref.data)) as img:
                img.load()
                return self._recompress(img, fmt, ref.data), ext, content_type
        except ImageRejected:
            raise
        except Exception:
            raise ImageRejected("decode_failed")

    def _recompress(self, img: Image.Image, fmt: str, original: bytes) -> bytes:
        oversized = max(img.size) > self._max_dimension
        if fmt == "GIF" and not oversized:
            # Keep animation frames intact when no resize is needed.
            return original
        if fmt == "JPEG":
            img = ImageOps.exif_transpose(img)
        if oversized:
            img = img.copy()
            img.thumbnail((self._max_dimension, self._max_dimension), Image.Resampling.LANCZOS)
            _log.debug("downscaled image to %sx%s", img.width, img.height)

        out = io.BytesIO()
        if fmt == "JPEG":
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(out, format="JPEG", quality=self._quality, optimize=True)
        elif fmt == "WEBP":
            img.save(out, format="WEBP", quality=self._quality)
        elif fmt == "PNG":
            img.save(out, format="PNG", optimize=True)
        else:
            img.save(out, format="GIF")
        return out.getvalue()


__all__ = ["ALLOWED_EXTENSIONS", "ImageRejected", "FileOutcome", "ImageBatch", "ImageIntake"]
