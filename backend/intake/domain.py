"""
Intake domain types and constants.

Why:
- Keep the vocabulary of the submission pipeline (image slots, statuses, error
  kinds) closed and explicit so routes, repositories and tests cannot drift.
- Replace stringly-typed form keys with typed records once the request has
  been parsed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple, Union


class ImageSlot(str, Enum):
    FRONT = "front"
    BACK = "back"
    BRAND_TAG = "brand_tag"
    MATERIAL_TAG = "material_tag"
    DETAIL = "detail"


# Ordered as displayed; FRONT is the only slot validation insists on.
IMAGE_SLOTS: Tuple[ImageSlot, ...] = tuple(ImageSlot)
REQUIRED_IMAGE_SLOTS = frozenset({ImageSlot.FRONT})


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    COMPLETED = "completed"


ALLOWED_STATUSES = frozenset(s.value for s in SubmissionStatus)

CONTACT_FIELDS: Tuple[str, ...] = ("name", "email", "phone", "address", "city", "state", "zip")

# category_level_0..3 below the gender root.
MAX_CATEGORY_LEVELS = 4


class ErrorKind(str, Enum):
    SECURITY_ERROR = "SecurityError"
    BOT_SUSPECTED = "BotSuspected"
    MISSING_FIELD = "MissingField"
    INVALID_EMAIL = "InvalidEmail"
    NO_ITEMS = "NoItems"
    ITEM_INCOMPLETE = "ItemIncomplete"
    IMAGE_UPLOAD_FAILED = "ImageUploadFailed"
    SCHEMA_UNAVAILABLE = "SchemaUnavailable"
    TRANSACTION_FAILED = "TransactionFailed"
    NOTIFY_FAILED = "NotifyFailed"


class IntakeError(Exception):
    """Base class for failures raised below the submission use case."""

    kind: ErrorKind = ErrorKind.TRANSACTION_FAILED


class SchemaUnavailable(IntakeError):
    kind = ErrorKind.SCHEMA_UNAVAILABLE


class TransactionFailed(IntakeError):
    kind = ErrorKind.TRANSACTION_FAILED


@dataclass(frozen=True)
class FileRef:
    """An uploaded file held in memory; `content_type` is client-declared."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


# --- Raw (untrusted) request shape ---------------------------------------------

@dataclass
class RawItem:
    gender: str = ""
    category_levels: list[str] = field(default_factory=list)
    size: str = ""
    description: str = ""
    images: dict[ImageSlot, FileRef] = field(default_factory=dict)

    def is_blank(self) -> bool:
        texts = [self.gender, self.size, self.description, *self.category_levels]
        return not any((t or "").strip() for t in texts) and not self.images


@dataclass
class RawPayload:
    contact: dict[str, str] = field(default_factory=dict)
    items: list[RawItem] = field(default_factory=list)
    form_token: str = ""
    honeypot: str = ""


# --- Trusted shape produced by the validator -----------------------------------

@dataclass(frozen=True)
class ContactInfo:
    name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip: str


@dataclass(frozen=True)
class ValidatedItem:
    index: int
    gender: str
    category_levels: Tuple[str, ...]
    size: Optional[str]
    description: str
    images: Mapping[ImageSlot, FileRef]

    @property
    def category_path(self) -> Tuple[str, ...]:
        """Gender root followed by the chosen category levels."""
        return (self.gender, *self.category_levels)


@dataclass(frozen=True)
class ValidatedSubmission:
    contact: ContactInfo
    items: Tuple[ValidatedItem, ...]


@dataclass(frozen=True)
class ValidationSuccess:
    data: ValidatedSubmission
    ok: bool = True


@dataclass(frozen=True)
class ValidationFailure:
    reason: ErrorKind
    message: str
    debug_info: str
    field: Optional[str] = None
    item_index: Optional[int] = None
    ok: bool = False


ValidationResult = Union[ValidationSuccess, ValidationFailure]


# --- Persistence records -------------------------------------------------------

@dataclass(frozen=True)
class NewItem:
    """One item row as written by the submission transaction."""

    position: int
    gender: str
    category_levels: Tuple[str, ...]
    size: Optional[str]
    description: str
    image_urls: Mapping[ImageSlot, str]


@dataclass(frozen=True)
class SubmissionQuery:
    search: str = ""
    status: str = ""
    category: str = ""
    limit: int = 20
    offset: int = 0


@dataclass(frozen=True)
class ProcessResult:
    status: str  # "success" | "error"
    message: str
    debug_info: str = ""
    redirect_hint: Optional[str] = None
    submission_id: Optional[str] = None
    reason: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


__all__ = [
    "ImageSlot",
    "IMAGE_SLOTS",
    "REQUIRED_IMAGE_SLOTS",
    "SubmissionStatus",
    "ALLOWED_STATUSES",
    "CONTACT_FIELDS",
    "MAX_CATEGORY_LEVELS",
    "ErrorKind",
    "IntakeError",
    "SchemaUnavailable",
    "TransactionFailed",
    "FileRef",
    "RawItem",
    "RawPayload",
    "ContactInfo",
    "ValidatedItem",
    "ValidatedSubmission",
    "ValidationSuccess",
    "ValidationFailure",
    "ValidationResult",
    "NewItem",
    "SubmissionQuery",
    "ProcessResult",
]
