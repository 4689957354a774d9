"""
Live Postgres round trip for the submission repository.

Runs only when PREOWNED_TEST_DSN points at a reachable database; the schema
is applied first so the test works against an empty database.
"""
from __future__ import annotations

import uuid

import pytest

from backend.intake.domain import ContactInfo, ImageSlot, NewItem, SubmissionQuery
from backend.intake.repo_db import DBSubmissionRepo
from backend.intake.schema import apply_schema
from backend.tests.utils.db import live_dsn_or_skip


@pytest.fixture
def repo():
    dsn = live_dsn_or_skip()
    import psycopg

    with psycopg.connect(dsn) as conn:
        apply_schema(conn)
    return DBSubmissionRepo(dsn)


def _contact(name: str) -> ContactInfo:
    return ContactInfo(
        name=name, email="live@example.com", phone="555-0199", address="2 Oak Ave", city="Dayton", state="OH", zip="45402"
    )


def _item(position: int, levels=("tops", "blouses")) -> NewItem:
    return NewItem(
        position=position,
        gender="womens",
        category_levels=tuple(levels),
        size="S",
        description=f"live item {position}",
        image_urls={ImageSlot.FRONT: f"/uploads/x/item_{position}_front.jpg"},
    )


def test_commit_read_update_delete(repo):
    marker = f"Live {uuid.uuid4().hex[:8]}"
    repo.ensure_schema()
    tx = repo.begin()
    sid = tx.insert_submission(_contact(marker))
    tx.insert_item(sid, _item(0))
    tx.insert_item(sid, _item(1, ("bottoms",)))
    tx.commit()

    rows, total = repo.list_submissions(SubmissionQuery(search=marker))
    assert total == 1
    assert rows[0]["item_count"] == 2
    assert rows[0]["primary_category"] == "tops"

    detail = repo.get_submission(sid)
    assert detail["status"] == "pending"
    assert [i["category_path"] for i in detail["items"]] == [["womens", "tops", "blouses"], ["womens", "bottoms"]]
    assert detail["items"][0]["images"] == {"front": "/uploads/x/item_0_front.jpg"}

    assert repo.update_status([sid], "contacted") == 1
    assert repo.update_notes(sid, "left voicemail") is True
    detail = repo.get_submission(sid)
    assert detail["status"] == "contacted"
    assert detail["notes"] == "left voicemail"

    first_item = detail["items"][0]["id"]
    removed, parent_deleted = repo.delete_item(first_item)
    assert removed["id"] == first_item
    assert parent_deleted is False

    items = repo.delete_submission(sid)
    assert len(items) == 1
    assert repo.get_submission(sid) is None


def test_rollback_leaves_nothing(repo):
    marker = f"Rollback {uuid.uuid4().hex[:8]}"
    tx = repo.begin()
    sid = tx.insert_submission(_contact(marker))
    tx.insert_item(sid, _item(0))
    tx.rollback()

    assert repo.get_submission(sid) is None
    assert repo.list_submissions(SubmissionQuery(search=marker))[1] == 0
