"""
Submission validator: untrusted `RawPayload` in, `ValidationResult` out.

Checks run in a fixed order and stop at the first failure:

1. form token matches the one issued to this session   -> SecurityError
2. honeypot field is empty                             -> BotSuspected
3. contact fields present (name, email, ... zip)       -> MissingField
4. email address grammar                               -> InvalidEmail
5. at least one non-blank item                         -> NoItems
6. per item: gender, category_level_0, size,
   description and a front image                       -> ItemIncomplete

User input never raises. Each failure carries a generic `message` for the
visitor and a detailed `debug_info` that only admins get to see.
"""
from __future__ import annotations

import hmac
import logging
import re
from types import MappingProxyType
from typing import Optional

from backend.intake.catalog import CategoryCatalog
from backend.intake.domain import (
    CONTACT_FIELDS,
    REQUIRED_IMAGE_SLOTS,
    ContactInfo,
    ErrorKind,
    RawItem,
    RawPayload,
    ValidatedItem,
    ValidatedSubmission,
    ValidationFailure,
    ValidationResult,
    ValidationSuccess,
)

_log = logging.getLogger("preowned.intake")

MSG_SECURITY = "Security check failed. Please refresh the page and try again."
MSG_BOT = "Your submission was flagged as potential spam."
MSG_MISSING_FIELD = "Please fill in all required contact fields."
MSG_INVALID_EMAIL = "Please enter a valid email address."
MSG_NO_ITEMS = "Please add at least one clothing item."
MSG_ITEM_INCOMPLETE = "Please complete all required fields for each item."
MSG_FRONT_IMAGE = "Please upload at least a front view image for each item."

# Local part: dot-atoms; domain: labels with at least one dot and an alpha TLD.
_EMAIL_RE = re.compile(
    r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z]{2,63}$"
)
_TAG_RE = re.compile(r"<[^>]*>")
_CTRL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WS_RE = re.compile(r"[ \t\r\n]+")


def sanitize_text(value: Optional[str]) -> str:
    """Single-line field: strip markup and control chars, collapse whitespace."""
    text = _TAG_RE.sub("", value or "")
    text = _CTRL_RE.sub("", text).replace("<", "").replace(">", "")
    return _WS_RE.sub(" ", text).strip()


def sanitize_multiline(value: Optional[str]) -> str:
    """Like sanitize_text but keeps line breaks (descriptions)."""
    text = _TAG_RE.sub("", (value or "").replace("\r\n", "\n"))
    text = _CTRL_RE.sub("", text).replace("<", "").replace(">", "")
    lines = [" ".join(line.split()) for line in text.split("\n")]
    return "\n".join(lines).strip()


def is_valid_email(value: str) -> bool:
    if not value or len(value) > 254:
        return False
    local, _, _ = value.partition("@")
    return len(local) <= 64 and bool(_EMAIL_RE.match(value))


class SubmissionValidator:
    """Validate one submission against the issued form token and the catalog.

    Parameters
    ----------
    catalog:
        Optional category tree. When given, the item's gender and
        category_level_0 must exist in it.
    require_size:
        Whether each item needs a size label (default True).
    """

    def __init__(self, catalog: Optional[CategoryCatalog] = None, *, require_size: bool = True) -> None:
        self._catalog = catalog
        self._require_size = require_size

    def validate(self, payload: RawPayload, *, expected_token: Optional[str]) -> ValidationResult:
        supplied = (payload.form_token or "").strip()
        if not expected_token or not supplied or not hmac.compare_digest(supplied.encode("utf-8"), expected_token.encode("utf-8")):
            _log.warning("form token mismatch (present=%s)", bool(supplied))
            return ValidationFailure(
                reason=ErrorKind.SECURITY_ERROR,
                message=MSG_SECURITY,
                debug_info="Form token missing or does not match the session token.",
            )

        if (payload.honeypot or "").strip():
            _log.warning("honeypot field filled")
            return ValidationFailure(
                reason=ErrorKind.BOT_SUSPECTED,
                message=MSG_BOT,
                debug_info="Honeypot field was not empty.",
            )

        contact: dict[str, str] = {}
        for name in CONTACT_FIELDS:
            value = sanitize_text(payload.contact.get(name))
            if not value:
                return ValidationFailure(
                    reason=ErrorKind.MISSING_FIELD,
                    message=MSG_MISSING_FIELD,
                    debug_info=f"Missing required field: {name}",
                    field=name,
                )
            contact[name] = value

        if not is_valid_email(contact["email"]):
            return ValidationFailure(
                reason=ErrorKind.INVALID_EMAIL,
                message=MSG_INVALID_EMAIL,
                debug_info="Email address failed format check.",
                field="email",
            )
        contact["email"] = contact["email"].lower()

        raw_items = [item for item in payload.items if not item.is_blank()]
        if not raw_items:
            return ValidationFailure(
                reason=ErrorKind.NO_ITEMS,
                message=MSG_NO_ITEMS,
                debug_info="No non-empty item groups were submitted.",
            )

        items: list[ValidatedItem] = []
        for index, raw in enumerate(raw_items):
            result = self._validate_item(index, raw)
            if isinstance(result, ValidationFailure):
                return result
            items.append(result)

        return ValidationSuccess(
            data=ValidatedSubmission(contact=ContactInfo(**contact), items=tuple(items))
        )

    def _validate_item(self, index: int, raw: RawItem) -> ValidatedItem | ValidationFailure:
        def incomplete(field: str, detail: str, message: str = MSG_ITEM_INCOMPLETE) -> ValidationFailure:
            return ValidationFailure(
                reason=ErrorKind.ITEM_INCOMPLETE,
                message=message,
                debug_info=f"Item {index + 1}: {detail}",
                field=field,
                item_index=index,
            )

        gender = sanitize_text(raw.gender)
        if not gender:
            return incomplete("gender", "missing gender")
        levels: list[str] = []
        for level in raw.category_levels:
            segment = sanitize_text(level)
            if not segment:
                # The path ends at its first blank level; later levels never move up.
                break
            levels.append(segment)
        if not levels:
            return incomplete("category_level_0", "missing category_level_0")
        size = sanitize_text(raw.size)
        if self._require_size and not size:
            return incomplete("size", "missing size")
        description = sanitize_multiline(raw.description)
        if not description:
            return incomplete("description", "missing description")

        for slot in REQUIRED_IMAGE_SLOTS:
            ref = raw.images.get(slot)
            if ref is None or not ref.data:
                return incomplete(f"images.{slot.value}", f"missing {slot.value} image", MSG_FRONT_IMAGE)

        if self._catalog is not None:
            if not self._catalog.has_gender(gender):
                return incomplete("gender", f"unknown gender '{gender}'")
            if not self._catalog.has_path((gender, levels[0])):
                return incomplete("category_level_0", f"unknown category '{levels[0]}' for '{gender}'")

        return ValidatedItem(
            index=index,
            gender=gender,
            category_levels=tuple(levels),
            size=size or None,
            description=description,
            images=MappingProxyType(dict(raw.images)),
        )


__all__ = [
    "SubmissionValidator",
    "sanitize_text",
    "sanitize_multiline",
    "is_valid_email",
    "MSG_SECURITY",
    "MSG_BOT",
    "MSG_MISSING_FIELD",
    "MSG_INVALID_EMAIL",
    "MSG_NO_ITEMS",
    "MSG_ITEM_INCOMPLETE",
    "MSG_FRONT_IMAGE",
]
