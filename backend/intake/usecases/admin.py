from __future__ import annotations

import csv
import io
import json
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence

from backend.intake.domain import ALLOWED_STATUSES, SubmissionQuery
from backend.storage.ports import BinaryWriteStorage

_log = logging.getLogger("preowned.intake.admin")

STATUS_LABELS = {"pending": "Pending", "contacted": "Contacted", "completed": "Completed"}
BULK_ACTIONS = {"mark_contacted": "contacted", "mark_completed": "completed", "delete": None}

CSV_HEADER = (
    "Submission ID", "Name", "Email", "Date", "Status",
    "Item ID", "Gender", "Category", "Subcategory", "Type", "Size", "Description",
)


_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def csv_cell(value) -> str:
    """Render one export cell; text a spreadsheet would evaluate gets a leading quote."""
    text = "" if value is None else str(value)
    if text.startswith(_FORMULA_PREFIXES):
        return "'" + text
    return text


class SubmissionAdminRepoProtocol(Protocol):
    def list_submissions(self, query: SubmissionQuery) -> tuple[list[dict], int]:
        ...

    def available_categories(self) -> list[str]:
        ...

    def get_submission(self, submission_id: str) -> Optional[dict]:
        ...

    def update_status(self, submission_ids: Iterable[str], status: str) -> int:
        ...

    def update_notes(self, submission_id: str, notes: str) -> bool:
        ...

    def delete_submission(self, submission_id: str) -> Optional[list[dict]]:
        ...

    def delete_item(self, item_id: str) -> Optional[tuple[dict, bool]]:
        ...

    def export_rows(self) -> list[dict]:
        ...


def status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status or "", "Pending")


def category_path_text(path: Sequence[str]) -> str:
    return " > ".join(p for p in path if p)


@dataclass
class ListSubmissionsInput:
    search: str = ""
    status: str = ""
    category: str = ""
    page: int = 1
    page_size: int = 20


@dataclass
class SubmissionPage:
    rows: list[dict]
    total: int
    page: int
    pages: int
    page_size: int
    categories: list[str]


class ListSubmissionsUseCase:
    def __init__(self, repo: SubmissionAdminRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: ListSubmissionsInput) -> SubmissionPage:
        """Return one page of submissions matching the optional filters.

        Behavior:
            - Every filter is independently optional; blanks mean "any".
            - An unknown status filter is ignored rather than matching nothing.
            - Page size is clamped to 1..100 and page to >= 1.
        """
        page_size = max(1, min(int(req.page_size or 20), 100))
        page = max(1, int(req.page or 1))
        status = req.status.strip() if req.status and req.status.strip() in ALLOWED_STATUSES else ""
        query = SubmissionQuery(
            search=(req.search or "").strip()[:200],
            status=status,
            category=(req.category or "").strip()[:100],
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        rows, total = self._repo.list_submissions(query)
        for row in rows:
            row["status_label"] = status_label(row.get("status"))
        return SubmissionPage(
            rows=rows,
            total=total,
            page=page,
            pages=max(1, math.ceil(total / page_size)) if total else 1,
            page_size=page_size,
            categories=self._repo.available_categories(),
        )


class GetSubmissionUseCase:
    def __init__(self, repo: SubmissionAdminRepoProtocol) -> None:
        self._repo = repo

    def execute(self, submission_id: str) -> dict:
        row = self._repo.get_submission(submission_id)
        if row is None:
            raise LookupError("submission_not_found")
        row["status_label"] = status_label(row.get("status"))
        for item in row.get("items", []):
            item["category_text"] = category_path_text(item.get("category_path") or [])
        return row


def _remove_images(storage: Optional[BinaryWriteStorage], items: Iterable[dict]) -> int:
    """Best-effort removal of stored photos referenced by `items`."""
    if storage is None:
        return 0
    removed = 0
    for item in items:
        for url in (item.get("images") or {}).values():
            key = storage.key_from_url(url) if url else None
            if not key:
                continue
            try:
                if storage.delete_object(key=key):
                    removed += 1
            except Exception as exc:
                _log.warning("image delete failed key=%s: %s", key, exc.__class__.__name__)
    return removed


class UpdateSubmissionUseCase:
    """Admin writes: status, notes, bulk actions and deletions."""

    def __init__(self, repo: SubmissionAdminRepoProtocol, storage: Optional[BinaryWriteStorage] = None) -> None:
        self._repo = repo
        self._storage = storage

    def set_status(self, submission_id: str, status: str) -> None:
        if status not in ALLOWED_STATUSES:
            raise ValueError("invalid_status")
        if not self._repo.update_status([submission_id], status):
            raise LookupError("submission_not_found")
        _log.info("status changed submission=%s status=%s", submission_id, status)

    def set_notes(self, submission_id: str, notes: str) -> None:
        text = (notes or "").replace("\r\n", "\n").strip()[:5000]
        if not self._repo.update_notes(submission_id, text):
            raise LookupError("submission_not_found")

    def delete_submission(self, submission_id: str) -> int:
        """Delete a submission with all its items; returns images removed."""
        items = self._repo.delete_submission(submission_id)
        if items is None:
            raise LookupError("submission_not_found")
        removed = _remove_images(self._storage, items)
        if self._storage is not None:
            try:
                self._storage.delete_namespace(namespace=submission_id)
            except Exception as exc:
                _log.warning("namespace delete failed submission=%s: %s", submission_id, exc.__class__.__name__)
        _log.info("submission deleted submission=%s items=%s images=%s", submission_id, len(items), removed)
        return removed

    def delete_item(self, item_id: str) -> bool:
        """Delete one item; returns True when its submission was removed as well."""
        result = self._repo.delete_item(item_id)
        if result is None:
            raise LookupError("item_not_found")
        item, parent_deleted = result
        _remove_images(self._storage, [item])
        if parent_deleted and self._storage is not None:
            try:
                self._storage.delete_namespace(namespace=item["submission_id"])
            except Exception as exc:
                _log.warning("namespace delete failed: %s", exc.__class__.__name__)
        return parent_deleted

    def bulk(self, action: str, submission_ids: Sequence[str]) -> int:
        """Apply a bulk action; returns how many submissions were affected."""
        if action not in BULK_ACTIONS:
            raise ValueError("invalid_action")
        ids = [i for i in dict.fromkeys(submission_ids) if i]
        if not ids:
            return 0
        target = BULK_ACTIONS[action]
        if target is not None:
            return self._repo.update_status(ids, target)
        count = 0
        for sid in ids:
            try:
                self.delete_submission(sid)
                count += 1
            except LookupError:
                continue
        return count


class ExportSubmissionsUseCase:
    def __init__(self, repo: SubmissionAdminRepoProtocol) -> None:
        self._repo = repo

    def to_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(CSV_HEADER)
        for row in self._repo.export_rows():
            item = row.get("item") or {}
            levels = list(item.get("category_levels") or []) + [None, None, None]
            writer.writerow(
                csv_cell(value)
                for value in (
                    row["submission_id"],
                    row["name"],
                    row["email"],
                    row["submission_date"],
                    row["status"],
                    item.get("id", ""),
                    item.get("gender", ""),
                    levels[0] or "",
                    levels[1] or "",
                    levels[2] or "",
                    item.get("size") or "",
                    item.get("description", ""),
                )
            )
        return buf.getvalue()

    def to_json(self) -> str:
        grouped: dict[str, dict] = {}
        for row in self._repo.export_rows():
            entry = grouped.setdefault(
                row["submission_id"],
                {
                    "submission_id": row["submission_id"],
                    "name": row["name"],
                    "email": row["email"],
                    "date": row["submission_date"],
                    "status": row["status"],
                    "items": [],
                },
            )
            item = row.get("item")
            if item:
                entry["items"].append(
                    {
                        "item_id": item["id"],
                        "category_path": item["category_path"],
                        "size": item.get("size"),
                        "description": item["description"],
                        "images": item.get("images", {}),
                    }
                )
        return json.dumps(list(grouped.values()), indent=2)


__all__ = [
    "STATUS_LABELS",
    "BULK_ACTIONS",
    "CSV_HEADER",
    "status_label",
    "category_path_text",
    "csv_cell",
    "ListSubmissionsInput",
    "SubmissionPage",
    "ListSubmissionsUseCase",
    "GetSubmissionUseCase",
    "UpdateSubmissionUseCase",
    "ExportSubmissionsUseCase",
]
