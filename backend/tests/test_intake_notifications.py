"""SMTP notifications: message content and delivery through a fake SMTP."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from backend.intake.config import NotificationConfig
from backend.intake.domain import ContactInfo, ImageSlot, ValidatedItem, ValidatedSubmission
from backend.intake.notifications import (
    NullNotifier,
    SmtpNotifier,
    build_admin_message,
    build_confirmation_message,
    build_notifier,
)
from backend.tests.utils.storage_fixtures import png_ref

SUBMISSION = ValidatedSubmission(
    contact=ContactInfo(
        name="Jane Doe", email="jane@example.com", phone="555", address="1 Main", city="X", state="IL", zip="1"
    ),
    items=(
        ValidatedItem(0, "womens", ("tops", "blouses"), "M", "Silk", {ImageSlot.FRONT: png_ref()}),
        ValidatedItem(1, "mens", ("bottoms",), None, "Chinos", {ImageSlot.FRONT: png_ref()}),
    ),
)


def _cfg(**overrides) -> NotificationConfig:
    base = dict(
        enabled=True,
        send_confirmation=True,
        admin_to="shop@example.com",
        smtp_host="smtp.local",
        smtp_port=2525,
        sender="noreply@example.com",
        site_name="Preowned",
        admin_base_url="https://shop.example.com",
    )
    base.update(overrides)
    return NotificationConfig(**base)


class FakeSMTP:
    instances: list["FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.sent = []
        FakeSMTP.instances.append(self)

    def send_message(self, msg):
        self.sent.append(msg)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture(autouse=True)
def _reset_fake():
    FakeSMTP.instances = []
    yield


def test_admin_message_summarises_items():
    msg = build_admin_message(_cfg(), "sub-1", SUBMISSION, now=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
    assert msg["Subject"] == "[Preowned] New Clothing Submission from Jane Doe"
    assert msg["To"] == "shop@example.com"
    assert msg["Reply-To"] == "jane@example.com"
    body = msg.get_content()
    assert "Number of items submitted: 2" in body
    assert "Item 1: womens > tops > blouses - M" in body
    assert "Item 2: mens > bottoms - Size not specified" in body
    assert "https://shop.example.com/admin/submissions/sub-1" in body


def test_confirmation_goes_to_submitter():
    msg = build_confirmation_message(_cfg(), "sub-1", SUBMISSION)
    assert msg["To"] == "jane@example.com"
    assert msg["Subject"] == "[Preowned] We've Received Your Clothing Submission"
    assert "Items Submitted: 2" in msg.get_content()


def test_notify_sends_both_messages_over_one_connection():
    SmtpNotifier(_cfg(), smtp_factory=FakeSMTP).notify("sub-1", SUBMISSION)
    assert len(FakeSMTP.instances) == 1
    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.local", 2525)
    assert [m["To"] for m in smtp.sent] == ["shop@example.com", "jane@example.com"]


def test_confirmation_can_be_disabled():
    notifier = SmtpNotifier(_cfg(send_confirmation=False), smtp_factory=FakeSMTP)
    assert [m["To"] for m in notifier.messages_for("s", SUBMISSION)] == ["shop@example.com"]


def test_nothing_to_send_opens_no_connection():
    SmtpNotifier(_cfg(enabled=False), smtp_factory=FakeSMTP).notify("s", SUBMISSION)
    assert FakeSMTP.instances == []


def test_missing_host_raises_for_caller_to_log():
    with pytest.raises(RuntimeError, match="smtp_not_configured"):
        SmtpNotifier(_cfg(smtp_host=""), smtp_factory=FakeSMTP).notify("s", SUBMISSION)


def test_build_notifier_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("NOTIFICATIONS_ENABLED", "true")
    monkeypatch.delenv("SMTP_HOST", raising=False)
    assert isinstance(build_notifier(), NullNotifier)
    monkeypatch.setenv("SMTP_HOST", "smtp.local")
    monkeypatch.setenv("SMTP_PORT", "587")
    notifier = build_notifier()
    assert isinstance(notifier, SmtpNotifier)
    monkeypatch.setenv("NOTIFICATIONS_ENABLED", "false")
    assert isinstance(build_notifier(), NullNotifier)
