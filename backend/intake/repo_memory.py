"""
In-memory submission repository (dev/test default when no DSN is configured).

Transactions stage their writes locally and publish them under a lock on
commit, so readers never see a submission without its items and rolled-back
work leaves no trace.
"""
from __future__ import annotations

import copy
import itertools
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from backend.intake.domain import (
    IMAGE_SLOTS,
    ContactInfo,
    NewItem,
    SchemaUnavailable,
    SubmissionQuery,
    TransactionFailed,
)


def item_view(row: dict) -> dict:
    """Shape an item row for callers: adds `category_path` and `images`."""
    levels = [row.get(f"category_level_{i}") for i in range(4)]
    levels = [lvl for lvl in levels if lvl]
    images = {slot.value: row.get(f"image_{slot.value}") for slot in IMAGE_SLOTS if row.get(f"image_{slot.value}")}
    return {
        "id": str(row["id"]),
        "submission_id": str(row["submission_id"]),
        "position": int(row.get("position") or 0),
        "gender": row.get("gender") or "",
        "category_levels": levels,
        "category_path": [row.get("gender") or "", *levels] if row.get("gender") else levels,
        "size": row.get("size"),
        "description": row.get("description") or "",
        "images": images,
    }


def _item_row(submission_id: str, item: NewItem) -> dict:
    row: dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "submission_id": submission_id,
        "position": item.position,
        "gender": item.gender,
        "size": item.size,
        "description": item.description,
    }
    for level in range(4):
        row[f"category_level_{level}"] = item.category_levels[level] if level < len(item.category_levels) else None
    for slot in IMAGE_SLOTS:
        row[f"image_{slot.value}"] = item.image_urls.get(slot)
    return row


@dataclass
class _Staged:
    submissions: list[dict] = field(default_factory=list)
    items: list[dict] = field(default_factory=list)


class MemorySubmissionTransaction:
    def __init__(self, repo: "MemorySubmissionRepo") -> None:
        self._repo = repo
        self._staged = _Staged()
        self._open = True

    def insert_submission(self, contact: ContactInfo) -> str:
        self._check_open()
        sid = str(uuid.uuid4())
        self._staged.submissions.append(
            {
                "id": sid,
                "name": contact.name,
                "email": contact.email,
                "phone": contact.phone,
                "address": contact.address,
                "city": contact.city,
                "state": contact.state,
                "zip": contact.zip,
                "submission_date": datetime.now(timezone.utc),
                "status": "pending",
                "notes": None,
            }
        )
        return sid

    def insert_item(self, submission_id: str, item: NewItem) -> str:
        self._check_open()
        if not any(s["id"] == submission_id for s in self._staged.submissions):
            raise TransactionFailed("item references unknown submission")
        if not item.description or not item.gender or not item.category_levels:
            raise TransactionFailed("item violates not-null constraint")
        row = _item_row(submission_id, item)
        self._staged.items.append(row)
        return row["id"]

    def commit(self) -> None:
        self._check_open()
        self._open = False
        self._repo._publish(self._staged)

    def rollback(self) -> None:
        self._open = False
        self._staged = _Staged()

    def _check_open(self) -> None:
        if not self._open:
            raise TransactionFailed("transaction already closed")


class MemorySubmissionRepo:
    """Thread-safe in-memory store with the same surface as DBSubmissionRepo."""

    def __init__(self, *, schema_ready: bool = True) -> None:
        self._lock = threading.Lock()
        self._submissions: dict[str, dict] = {}
        self._items: dict[str, dict] = {}
        # Publish order breaks ties between equal timestamps.
        self._seq = itertools.count()
        self.schema_ready = schema_ready

    # --- transaction ------------------------------------------------------
    def ensure_schema(self) -> None:
        if not self.schema_ready:
            raise SchemaUnavailable("submission tables are not provisioned")

    def begin(self) -> MemorySubmissionTransaction:
        return MemorySubmissionTransaction(self)

    def _publish(self, staged: _Staged) -> None:
        with self._lock:
            for row in staged.submissions:
                self._submissions[row["id"]] = {**row, "_seq": next(self._seq)}
            for row in staged.items:
                self._items[row["id"]] = row

    # --- reads ------------------------------------------------------------
    def _items_of(self, submission_id: str) -> list[dict]:
        rows = [r for r in self._items.values() if r["submission_id"] == submission_id]
        return sorted(rows, key=lambda r: (r["position"], r["id"]))

    def _summary(self, row: dict) -> dict:
        items = self._items_of(row["id"])
        out = {k: v for k, v in row.items() if not k.startswith("_")}
        out["submission_date"] = row["submission_date"].isoformat()
        out["item_count"] = len(items)
        out["primary_category"] = items[0]["category_level_0"] if items else None
        return out

    @staticmethod
    def _matches(row: dict, items: Sequence[dict], q: SubmissionQuery) -> bool:
        if q.status and row["status"] != q.status:
            return False
        if q.search:
            needle = q.search.lower()
            haystack = [row["name"], row["email"], *(i["description"] for i in items)]
            if not any(needle in (h or "").lower() for h in haystack):
                return False
        if q.category:
            cats = set()
            for i in items:
                cats.add(i["gender"])
                cats.update(i[f"category_level_{lvl}"] for lvl in range(4))
            if q.category not in cats:
                return False
        return True

    def list_submissions(self, query: SubmissionQuery) -> tuple[list[dict], int]:
        with self._lock:
            rows = [
                r for r in self._submissions.values()
                if self._matches(r, self._items_of(r["id"]), query)
            ]
            rows.sort(key=lambda r: (r["submission_date"], r["_seq"]), reverse=True)
            total = len(rows)
            page = rows[query.offset: query.offset + query.limit]
            return [self._summary(r) for r in page], total

    def available_categories(self) -> list[str]:
        with self._lock:
            return sorted({r["category_level_0"] for r in self._items.values() if r.get("category_level_0")})

    def get_submission(self, submission_id: str) -> Optional[dict]:
        with self._lock:
            row = self._submissions.get(submission_id)
            if row is None:
                return None
            out = self._summary(row)
            out["items"] = [item_view(i) for i in self._items_of(submission_id)]
            return copy.deepcopy(out)

    def export_rows(self) -> list[dict]:
        """One row per (submission, item), newest submission first."""
        with self._lock:
            subs = sorted(self._submissions.values(), key=lambda r: (r["submission_date"], r["_seq"]), reverse=True)
            out: list[dict] = []
            for s in subs:
                base = {
                    "submission_id": s["id"],
                    "name": s["name"],
                    "email": s["email"],
                    "submission_date": s["submission_date"].isoformat(),
                    "status": s["status"],
                }
                for i in self._items_of(s["id"]) or [None]:
                    out.append({**base, "item": item_view(i) if i else None})
            return out

    # --- admin writes -----------------------------------------------------
    def update_status(self, submission_ids: Iterable[str], status: str) -> int:
        changed = 0
        with self._lock:
            for sid in submission_ids:
                row = self._submissions.get(sid)
                if row is not None:
                    row["status"] = status
                    changed += 1
        return changed

    def update_notes(self, submission_id: str, notes: str) -> bool:
        with self._lock:
            row = self._submissions.get(submission_id)
            if row is None:
                return False
            row["notes"] = notes
            return True

    def delete_submission(self, submission_id: str) -> Optional[list[dict]]:
        """Delete a submission and its items; returns the removed items or None."""
        with self._lock:
            if self._submissions.pop(submission_id, None) is None:
                return None
            removed = self._items_of(submission_id)
            for r in removed:
                self._items.pop(r["id"], None)
            return [item_view(r) for r in removed]

    def delete_item(self, item_id: str) -> Optional[tuple[dict, bool]]:
        """Delete one item; the parent goes too when it was the last one.

        Returns (removed item, parent_deleted) or None when unknown.
        """
        with self._lock:
            row = self._items.pop(item_id, None)
            if row is None:
                return None
            sid = row["submission_id"]
            parent_deleted = False
            if not self._items_of(sid):
                self._submissions.pop(sid, None)
                parent_deleted = True
            return item_view(row), parent_deleted


__all__ = ["MemorySubmissionRepo", "MemorySubmissionTransaction", "item_view"]
