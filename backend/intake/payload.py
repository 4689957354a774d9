"""
Turn flat multipart form fields into a typed `RawPayload`.

The browser posts item groups with bracketed keys:

    items[0][gender]=womens
    items[0][category_level_0]=tops
    items[0][category_level_1]=blouses
    items[0][size]=M
    items[0][description]=...
    items[0][images][front]=<file>

This module is the only place that knows about that key grammar. Everything
downstream works with `RawItem.images: dict[ImageSlot, FileRef]`.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, Tuple

from backend.intake.domain import (
    CONTACT_FIELDS,
    MAX_CATEGORY_LEVELS,
    FileRef,
    ImageSlot,
    RawItem,
    RawPayload,
)

FORM_TOKEN_FIELD = "clothing_form_nonce"
HONEYPOT_FIELD = "website"

_ITEM_KEY = re.compile(r"^items\[(\d{1,3})\]\[([a-z_0-9]+)\](?:\[([a-z_]+)\])?$")
_LEVEL_KEY = re.compile(r"^category_level_(\d)$")
_SLOTS = {s.value: s for s in ImageSlot}


def _text(value: Any) -> str:
    if isinstance(value, FileRef):
        return ""
    return "" if value is None else str(value)


def parse_form(fields: Iterable[Tuple[str, Any]]) -> RawPayload:
    """Build a RawPayload from (key, value) pairs.

    Values are strings or `FileRef`s. Unknown keys and unknown image slots are
    ignored. Items are returned ordered by their numeric index; gaps collapse.
    """
    payload = RawPayload()
    items: dict[int, RawItem] = {}
    levels: dict[int, dict[int, str]] = {}

    for key, value in fields:
        if key in CONTACT_FIELDS:
            payload.contact[key] = _text(value)
            continue
        if key == FORM_TOKEN_FIELD:
            payload.form_token = _text(value)
            continue
        if key == HONEYPOT_FIELD:
            payload.honeypot = _text(value)
            continue
        m = _ITEM_KEY.match(key)
        if not m:
            continue
        idx = int(m.group(1))
        name = m.group(2)
        sub = m.group(3)
        item = items.setdefault(idx, RawItem())
        if name == "images":
            slot = _SLOTS.get(sub or "")
            if slot is not None and isinstance(value, FileRef) and value.data:
                item.images[slot] = value
            continue
        if sub is not None:
            continue
        if name == "gender":
            item.gender = _text(value)
        elif name == "size":
            item.size = _text(value)
        elif name == "description":
            item.description = _text(value)
        else:
            lm = _LEVEL_KEY.match(name)
            if lm and int(lm.group(1)) < MAX_CATEGORY_LEVELS:
                levels.setdefault(idx, {})[int(lm.group(1))] = _text(value)

    for idx, by_level in levels.items():
        # Keep the path contiguous from level 0; stop at the first gap or blank.
        path: list[str] = []
        for level in range(MAX_CATEGORY_LEVELS):
            segment = by_level.get(level, "").strip()
            if not segment:
                break
            path.append(segment)
        items[idx].category_levels = path

    payload.items = [items[i] for i in sorted(items)]
    return payload


__all__ = ["FORM_TOKEN_FIELD", "HONEYPOT_FIELD", "parse_form"]
