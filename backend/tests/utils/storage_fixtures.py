from __future__ import annotations

from io import BytesIO
from typing import Iterable, Optional

from PIL import Image, ImageDraw

from backend.intake.domain import FileRef


def image_bytes(fmt: str = "PNG", size: tuple[int, int] = (64, 48), color: tuple[int, int, int] = (180, 40, 90)) -> bytes:
    """
    Produce a small but well-formed image that survives Pillow decoding.

    A darker band is drawn across the middle so recompression has real
    content to work with.
    """
    img = Image.new("RGB", size, color=color)
    draw = ImageDraw.Draw(img)
    draw.rectangle([(0, size[1] // 3), (size[0], 2 * size[1] // 3)], fill=(20, 20, 20))
    if fmt == "GIF":
        img = img.convert("P")
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def png_bytes(size: tuple[int, int] = (64, 48)) -> bytes:
    return image_bytes("PNG", size)


def jpeg_bytes(size: tuple[int, int] = (64, 48)) -> bytes:
    return image_bytes("JPEG", size)


def png_ref(filename: str = "front.png", size: tuple[int, int] = (64, 48)) -> FileRef:
    return FileRef(filename=filename, content_type="image/png", data=png_bytes(size))


def item_fields(
    index: int,
    *,
    gender: str = "womens",
    levels: Iterable[str] = ("tops",),
    size: Optional[str] = "M",
    description: str = "Blue blouse, worn twice",
    images: Optional[dict[str, FileRef]] = None,
) -> list[tuple[str, object]]:
    """Flat (key, value) pairs for one item group, as the browser posts them."""
    prefix = f"items[{index}]"
    fields: list[tuple[str, object]] = [(f"{prefix}[gender]", gender)]
    for level, value in enumerate(levels):
        fields.append((f"{prefix}[category_level_{level}]", value))
    if size is not None:
        fields.append((f"{prefix}[size]", size))
    fields.append((f"{prefix}[description]", description))
    imgs = images if images is not None else {"front": png_ref()}
    for slot, ref in imgs.items():
        fields.append((f"{prefix}[images][{slot}]", ref))
    return fields


CONTACT = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "phone": "555-0100",
    "address": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip": "62701",
}


def form_fields(token: str, *, items: Optional[list[list[tuple[str, object]]]] = None, honeypot: str = "", **contact: str) -> list[tuple[str, object]]:
    """A complete submission post: token, honeypot, contact and item groups."""
    fields: list[tuple[str, object]] = [("clothing_form_nonce", token), ("website", honeypot)]
    merged = {**CONTACT, **contact}
    fields.extend(merged.items())
    for group in items if items is not None else [item_fields(0)]:
        fields.extend(group)
    return fields


__all__ = ["image_bytes", "png_bytes", "jpeg_bytes", "png_ref", "item_fields", "form_fields", "CONTACT"]
