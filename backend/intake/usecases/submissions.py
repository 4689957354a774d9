from __future__ import annotations

import logging
import time
from typing import Optional, Protocol

from backend.intake.domain import (
    ContactInfo,
    ErrorKind,
    IntakeError,
    NewItem,
    ProcessResult,
    RawPayload,
    ValidatedSubmission,
    ValidationFailure,
)
from backend.intake.feedback import FeedbackChannel
from backend.intake.images import ImageBatch, ImageIntake
from backend.intake.notifications import Notifier, NullNotifier
from backend.intake.repo_db import sanitize_error_message
from backend.intake.validation import SubmissionValidator

_log = logging.getLogger("preowned.intake")

SUCCESS_MESSAGE = (
    "Your clothing items have been successfully submitted! Thank you. "
    "Someone from our team will be reaching out to you within 24-48 hours."
)
ERROR_MESSAGE = "There was a problem processing your submission. Please try again."
IMAGE_ERROR_MESSAGE = "Image upload failed. Please check your photos and try again."


class SubmissionTransactionProtocol(Protocol):
    def insert_submission(self, contact: ContactInfo) -> str:
        ...

    def insert_item(self, submission_id: str, item: NewItem) -> str:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class SubmissionWriteRepoProtocol(Protocol):
    def ensure_schema(self) -> None:
        ...

    def begin(self) -> SubmissionTransactionProtocol:
        ...


def _error(reason: ErrorKind, detail: str, message: str = ERROR_MESSAGE) -> ProcessResult:
    return ProcessResult(
        status="error",
        message=message,
        debug_info=sanitize_error_message(f"{reason.value}: {detail}") or reason.value,
        reason=reason,
    )


def _safe_rollback(tx: SubmissionTransactionProtocol) -> None:
    try:
        tx.rollback()
    except Exception as exc:
        _log.warning("rollback failed: %s", exc.__class__.__name__)


class ProcessSubmissionUseCase:
    """Persist one validated submission with its photos, all-or-nothing.

    Intent:
        Own the transaction around parent row, image intake and item rows so
        that a failure at any stage leaves neither rows nor stored files.

    Behavior:
        1. Check the schema (SchemaUnavailable is fatal for this call).
        2. Begin a transaction and insert the parent row (status pending).
        3. Store the photos under the new submission id. When a required
           photo failed: roll back, clean up written files, return error.
        4. Insert one item row per item with the stored image URLs. Any
           failure rolls back and cleans up.
        5. Commit, then notify best-effort (failures are logged only).

    Returns a `ProcessResult`; this method does not raise.
    """

    def __init__(self, repo: SubmissionWriteRepoProtocol, images: ImageIntake, notifier: Optional[Notifier] = None) -> None:
        self._repo = repo
        self._images = images
        self._notifier = notifier or NullNotifier()

    def execute(self, submission: ValidatedSubmission) -> ProcessResult:
        try:
            self._repo.ensure_schema()
        except Exception as exc:
            _log.error("submission store unavailable: %s", exc)
            return _error(ErrorKind.SCHEMA_UNAVAILABLE, str(exc))

        try:
            tx = self._repo.begin()
        except Exception as exc:
            _log.error("could not begin transaction: %s", exc.__class__.__name__)
            return _error(ErrorKind.TRANSACTION_FAILED, str(exc))

        try:
            submission_id = tx.insert_submission(submission.contact)
        except Exception as exc:
            _safe_rollback(tx)
            _log.error("parent insert failed: %s", exc.__class__.__name__)
            return _error(ErrorKind.TRANSACTION_FAILED, str(exc))

        batch: Optional[ImageBatch] = None
        try:
            batch = self._images.store(submission_id, submission.items)
            if not batch.ok:
                _safe_rollback(tx)
                self._images.cleanup(batch)
                return _error(
                    ErrorKind.IMAGE_UPLOAD_FAILED,
                    f"image upload failed. {batch.describe_failures()}",
                    IMAGE_ERROR_MESSAGE,
                )
            urls = batch.image_urls_by_item
            for position, item in enumerate(submission.items):
                tx.insert_item(
                    submission_id,
                    NewItem(
                        position=position,
                        gender=item.gender,
                        category_levels=item.category_levels,
                        size=item.size,
                        description=item.description,
                        image_urls=urls.get(item.index, {}),
                    ),
                )
            tx.commit()
        except Exception as exc:
            _safe_rollback(tx)
            if batch is not None:
                self._images.cleanup(batch)
            kind = exc.kind if isinstance(exc, IntakeError) else ErrorKind.TRANSACTION_FAILED
            _log.error("submission transaction failed submission=%s: %s", submission_id, exc.__class__.__name__)
            return _error(kind, str(exc) or exc.__class__.__name__)

        _log.info("submission committed submission=%s items=%s", submission_id, len(submission.items))

        try:
            self._notifier.notify(submission_id, submission)
        except Exception as exc:
            # Committed data stays; the visitor still sees success.
            _log.warning("%s submission=%s: %s", ErrorKind.NOTIFY_FAILED.value, submission_id, exc.__class__.__name__)

        return ProcessResult(
            status="success",
            message=SUCCESS_MESSAGE,
            redirect_hint=f"submitted=1&t={int(time.time())}",
            submission_id=submission_id,
        )


class SubmitFormUseCase:
    """Validate a raw form post, process it and record the visitor feedback.

    Every outcome (validation failure, store failure, success) is written to
    the injected `FeedbackChannel` before returning, so the web layer only has
    to redirect.
    """

    def __init__(self, validator: SubmissionValidator, process: ProcessSubmissionUseCase) -> None:
        self._validator = validator
        self._process = process

    def execute(self, payload: RawPayload, *, expected_token: Optional[str], feedback: FeedbackChannel) -> ProcessResult:
        try:
            validation = self._validator.validate(payload, expected_token=expected_token)
            if isinstance(validation, ValidationFailure):
                result = ProcessResult(
                    status="error",
                    message=validation.message,
                    debug_info=validation.debug_info,
                    reason=validation.reason,
                )
            else:
                result = self._process.execute(validation.data)
        except Exception as exc:
            _log.exception("unexpected failure while handling submission")
            result = _error(ErrorKind.TRANSACTION_FAILED, str(exc) or exc.__class__.__name__)
        feedback.set(result.status, result.message, result.debug_info)
        return result


__all__ = [
    "SUCCESS_MESSAGE",
    "ERROR_MESSAGE",
    "IMAGE_ERROR_MESSAGE",
    "SubmissionTransactionProtocol",
    "SubmissionWriteRepoProtocol",
    "ProcessSubmissionUseCase",
    "SubmitFormUseCase",
]
