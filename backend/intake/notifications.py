"""
Post-commit notifications for new submissions.

The submission use case calls `notify(submission_id, submission)` only after
the transaction committed. Delivery is best-effort: the use case logs a
`NotifyFailed` and keeps the success result when this raises.

Two mails are sent when configured:
    - admin notification to NOTIFY_EMAIL_TO with an items summary
    - customer confirmation to the submitter (SEND_CONFIRMATION)
"""
from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Callable, List, Optional, Protocol

from backend.intake.config import NotificationConfig
from backend.intake.domain import ValidatedSubmission

_log = logging.getLogger("preowned.intake.notify")


class Notifier(Protocol):
    def notify(self, submission_id: str, submission: ValidatedSubmission) -> None: ...


class NullNotifier:
    """Notifier that does nothing (notifications disabled, tests)."""

    def notify(self, submission_id: str, submission: ValidatedSubmission) -> None:
        return None


def _category_text(levels) -> str:
    return " > ".join(levels) if levels else "Not specified"


def build_admin_message(cfg: NotificationConfig, submission_id: str, submission: ValidatedSubmission, *, now: Optional[datetime] = None) -> EmailMessage:
    contact = submission.contact
    when = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M %Z").strip()
    lines = [
        "Hello,",
        "",
        "A new clothing submission has been received.",
        "",
        f"Submission ID: {submission_id}",
        f"Name: {contact.name}",
        f"Email: {contact.email}",
        f"Phone: {contact.phone}",
        f"Date: {when}",
        "",
        f"Number of items submitted: {len(submission.items)}",
        "",
        "Items Summary:",
    ]
    for pos, item in enumerate(submission.items, start=1):
        lines.append(f"  Item {pos}: {_category_text(item.category_path)} - {item.size or 'Size not specified'}")
    if cfg.admin_base_url:
        lines += ["", f"View submission: {cfg.admin_base_url}/admin/submissions/{submission_id}"]
    lines += ["", f"This email was sent from {cfg.site_name}"]

    msg = EmailMessage()
    msg["Subject"] = f"[{cfg.site_name}] New Clothing Submission from {contact.name}"
    msg["From"] = cfg.sender
    msg["To"] = cfg.admin_to
    msg["Reply-To"] = contact.email
    msg.set_content("\n".join(lines))
    return msg


def build_confirmation_message(cfg: NotificationConfig, submission_id: str, submission: ValidatedSubmission) -> EmailMessage:
    contact = submission.contact
    body = "\n".join(
        [
            f"Hello {contact.name},",
            "",
            f"Thank you for submitting your clothing items to {cfg.site_name}. "
            "We have received your submission and will review it shortly.",
            "",
            "Submission Summary:",
            f"Submission ID: {submission_id}",
            f"Items Submitted: {len(submission.items)}",
            "",
            "Our team will review your submission within 24-48 hours and contact you with next steps.",
            "",
            "Thank you,",
            f"The team at {cfg.site_name}",
        ]
    )
    msg = EmailMessage()
    msg["Subject"] = f"[{cfg.site_name}] We've Received Your Clothing Submission"
    msg["From"] = cfg.sender
    msg["To"] = contact.email
    msg.set_content(body)
    return msg


class SmtpNotifier:
    """Send plain-text mails through an SMTP relay.

    `smtp_factory` exists for tests; it must return an object usable as a
    context manager with `send_message`.
    """

    def __init__(self, cfg: NotificationConfig, *, smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None, timeout: float = 10.0) -> None:
        self._cfg = cfg
        self._factory = smtp_factory or smtplib.SMTP
        self._timeout = timeout

    def messages_for(self, submission_id: str, submission: ValidatedSubmission) -> List[EmailMessage]:
        out: List[EmailMessage] = []
        if not self._cfg.enabled:
            return out
        if self._cfg.admin_to:
            out.append(build_admin_message(self._cfg, submission_id, submission))
        if self._cfg.send_confirmation and submission.contact.email:
            out.append(build_confirmation_message(self._cfg, submission_id, submission))
        return out

    def notify(self, submission_id: str, submission: ValidatedSubmission) -> None:
        messages = self.messages_for(submission_id, submission)
        if not messages:
            return
        if not self._cfg.smtp_host:
            raise RuntimeError("smtp_not_configured")
        with self._factory(self._cfg.smtp_host, self._cfg.smtp_port, timeout=self._timeout) as smtp:
            for msg in messages:
                smtp.send_message(msg)
        _log.info("sent %s notification(s) submission=%s", len(messages), submission_id)


def build_notifier(cfg: Optional[NotificationConfig] = None) -> Notifier:
    cfg = cfg or NotificationConfig.from_env()
    if not cfg.enabled or not cfg.smtp_host:
        return NullNotifier()
    return SmtpNotifier(cfg)


__all__ = [
    "Notifier",
    "NullNotifier",
    "SmtpNotifier",
    "build_admin_message",
    "build_confirmation_message",
    "build_notifier",
]
