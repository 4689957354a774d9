"""Postgres-backed repository for submissions and their items."""

from __future__ import annotations

import logging
import os
import re
import threading
import uuid
from typing import Any, Iterable, Optional

try:  # pragma: no cover -- optional dependency in some environments
    import psycopg
    from psycopg.rows import dict_row

    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover
    psycopg = None  # type: ignore
    dict_row = None  # type: ignore
    HAVE_PSYCOPG = False

from backend.intake.domain import (
    IMAGE_SLOTS,
    ContactInfo,
    NewItem,
    SchemaUnavailable,
    SubmissionQuery,
    TransactionFailed,
)
from backend.intake.repo_memory import item_view
from backend.intake.schema import ITEMS_TABLE, SUBMISSIONS_TABLE, missing_tables

_log = logging.getLogger("preowned.intake")

_ERROR_MAX_LENGTH = 256
_SENSITIVE_TOKEN_PATTERN = re.compile(r"(?i)(secret|token|password|key)[-_a-z0-9]*\s*=\s*\S+")
_DSN_PASSWORD_PATTERN = re.compile(r"(postgres(?:ql)?://[^:/\s]+:)[^@\s]+@")

_ITEM_COLUMNS = (
    "position, gender, category_level_0, category_level_1, category_level_2, category_level_3, "
    "size, description, image_front, image_back, image_brand_tag, image_material_tag, image_detail"
)


def sanitize_error_message(value: Optional[str]) -> Optional[str]:
    """Strip secrets and truncate lengthy adapter errors for safe exposure."""
    if not value:
        return None
    collapsed = " ".join(str(value).split())
    if not collapsed:
        return None
    scrubbed = _DSN_PASSWORD_PATTERN.sub(r"\1[redacted]@", collapsed)
    scrubbed = _SENSITIVE_TOKEN_PATTERN.sub("[redacted]", scrubbed)
    if len(scrubbed) > _ERROR_MAX_LENGTH:
        scrubbed = scrubbed[: _ERROR_MAX_LENGTH - 3].rstrip() + "..."
    return scrubbed


def _dsn() -> str:
    """Resolve the Postgres DSN (first non-empty wins).

      1) INTAKE_DATABASE_URL (context-specific override)
      2) DATABASE_URL (app-wide default)
    """
    for candidate in (os.getenv("INTAKE_DATABASE_URL"), os.getenv("DATABASE_URL")):
        if candidate:
            return candidate
    raise RuntimeError("Database DSN unavailable for intake repo")


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError, AttributeError):
        return False


def _item_params(submission_id: str, item: NewItem) -> tuple:
    levels = [item.category_levels[i] if i < len(item.category_levels) else None for i in range(4)]
    images = [item.image_urls.get(slot) for slot in IMAGE_SLOTS]
    return (submission_id, item.position, item.gender, *levels, item.size, item.description, *images)


class DBSubmissionTransaction:
    """One open connection; inserts are only visible after `commit()`."""

    def __init__(self, conn) -> None:
        self._conn = conn
        self._closed = False

    def insert_submission(self, contact: ContactInfo) -> str:
        try:
            with self._conn.cursor() as cur:
                cur.execute(
                    f"insert into {SUBMISSIONS_TABLE} "
                    "(name, email, phone, address, city, state, zip, status) "
                    "values (%s, %s, %s, %s, %s, %s, %s, 'pending') returning id::text",
                    (contact.name, contact.email, contact.phone, contact.address, contact.city, contact.state, contact.zip),
                )
                row = cur.fetchone()
        except Exception as exc:
            raise TransactionFailed(sanitize_error_message(str(exc)) or "insert_submission_failed") from exc
        if not row:
            raise TransactionFailed("insert_submission_returned_no_id")
        return str(row["id"] if isinstance(row, dict) else row[0])

    def insert_item(self, submission_id: str, item: NewItem) -> str:
        try:
            with self._conn.cursor() as cur:
                cur.execute(
                    f"insert into {ITEMS_TABLE} (submission_id, {_ITEM_COLUMNS}) "
                    "values (%s::uuid, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) returning id::text",
                    _item_params(submission_id, item),
                )
                row = cur.fetchone()
        except Exception as exc:
            raise TransactionFailed(sanitize_error_message(str(exc)) or "insert_item_failed") from exc
        if not row:
            raise TransactionFailed("insert_item_returned_no_id")
        return str(row["id"] if isinstance(row, dict) else row[0])

    def commit(self) -> None:
        try:
            self._conn.commit()
        except Exception as exc:
            raise TransactionFailed(sanitize_error_message(str(exc)) or "commit_failed") from exc
        finally:
            self._close()

    def rollback(self) -> None:
        if self._closed:
            return
        try:
            self._conn.rollback()
        finally:
            self._close()

    def _close(self) -> None:
        if not self._closed:
            self._closed = True
            self._conn.close()


class DBSubmissionRepo:
    """Persistence adapter used by the intake use cases.

    The schema is created by the migration CLI. The first call to
    `ensure_schema()` checks for the tables once per repo instance and raises
    `SchemaUnavailable` when they are missing; the request path never creates
    them.
    """

    def __init__(self, dsn: Optional[str] = None) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBSubmissionRepo")
        self._dsn = dsn or _dsn()
        self._schema_checked = False
        self._schema_lock = threading.Lock()

    def _connect(self):
        return psycopg.connect(self._dsn, row_factory=dict_row)  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    def ensure_schema(self) -> None:
        if self._schema_checked:
            return
        with self._schema_lock:
            if self._schema_checked:
                return
            try:
                with psycopg.connect(self._dsn) as conn:  # type: ignore[arg-type]
                    missing = missing_tables(conn)
            except Exception as exc:
                raise SchemaUnavailable(sanitize_error_message(str(exc)) or "schema_check_failed") from exc
            if missing:
                raise SchemaUnavailable(f"missing tables: {', '.join(missing)}")
            self._schema_checked = True

    def begin(self) -> DBSubmissionTransaction:
        try:
            conn = self._connect()
            conn.autocommit = False
        except Exception as exc:
            raise TransactionFailed(sanitize_error_message(str(exc)) or "connect_failed") from exc
        return DBSubmissionTransaction(conn)

    # ------------------------------------------------------------------
    @staticmethod
    def _where(q: SubmissionQuery) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if q.search:
            escaped = q.search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            like = "%" + escaped + "%"
            clauses.append("(s.name ilike %s or s.email ilike %s or i.description ilike %s)")
            params += [like, like, like]
        if q.status:
            clauses.append("s.status = %s")
            params.append(q.status)
        if q.category:
            clauses.append(
                "(i.gender = %s or i.category_level_0 = %s or i.category_level_1 = %s "
                "or i.category_level_2 = %s or i.category_level_3 = %s)"
            )
            params += [q.category] * 5
        where = (" where " + " and ".join(clauses)) if clauses else ""
        return where, params

    def list_submissions(self, query: SubmissionQuery) -> tuple[list[dict], int]:
        where, params = self._where(query)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select s.id::text as id, s.name, s.email, s.phone, s.address, s.city, s.state, s.zip,
                           s.submission_date, s.status, s.notes,
                           (select count(*) from {ITEMS_TABLE} c where c.submission_id = s.id) as item_count,
                           (select f.category_level_0 from {ITEMS_TABLE} f where f.submission_id = s.id
                             order by f.position, f.id limit 1) as primary_category
                      from {SUBMISSIONS_TABLE} s
                     where s.id in (
                           select s.id from {SUBMISSIONS_TABLE} s
                           left join {ITEMS_TABLE} i on i.submission_id = s.id{where})
                     order by s.submission_date desc, s.id
                     limit %s offset %s
                    """,
                    (*params, int(query.limit), int(query.offset)),
                )
                rows = cur.fetchall() or []
                cur.execute(
                    f"select count(distinct s.id) as total from {SUBMISSIONS_TABLE} s "
                    f"left join {ITEMS_TABLE} i on i.submission_id = s.id{where}",
                    tuple(params),
                )
                total_row = cur.fetchone() or {"total": 0}
        return [self._summary(r) for r in rows], int(total_row["total"] or 0)

    @staticmethod
    def _summary(row: dict) -> dict:
        out = dict(row)
        date = out.get("submission_date")
        out["submission_date"] = date.isoformat() if hasattr(date, "isoformat") else date
        out["item_count"] = int(out.get("item_count") or 0)
        return out

    def available_categories(self) -> list[str]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select distinct category_level_0 from {ITEMS_TABLE} "
                    "where category_level_0 is not null order by category_level_0"
                )
                return [r["category_level_0"] for r in cur.fetchall() or []]

    def _fetch_items(self, cur, submission_id: str) -> list[dict]:
        cur.execute(
            f"select id::text as id, submission_id::text as submission_id, {_ITEM_COLUMNS} "
            f"from {ITEMS_TABLE} where submission_id = %s::uuid order by position, id",
            (submission_id,),
        )
        return [item_view(r) for r in cur.fetchall() or []]

    def get_submission(self, submission_id: str) -> Optional[dict]:
        if not _is_uuid(submission_id):
            return None
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select s.id::text as id, s.name, s.email, s.phone, s.address, s.city, s.state, s.zip, "
                    f"s.submission_date, s.status, s.notes from {SUBMISSIONS_TABLE} s where s.id = %s::uuid",
                    (submission_id,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                items = self._fetch_items(cur, submission_id)
        out = self._summary(row)
        out["items"] = items
        out["item_count"] = len(items)
        out["primary_category"] = items[0]["category_levels"][0] if items and items[0]["category_levels"] else None
        return out

    def export_rows(self) -> list[dict]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select s.id::text as sid, s.name, s.email, s.submission_date, s.status,
                           i.id::text as id, i.submission_id::text as submission_id,
                           i.position, i.gender, i.category_level_0, i.category_level_1,
                           i.category_level_2, i.category_level_3, i.size, i.description,
                           i.image_front, i.image_back, i.image_brand_tag, i.image_material_tag, i.image_detail
                      from {SUBMISSIONS_TABLE} s
                      left join {ITEMS_TABLE} i on i.submission_id = s.id
                     order by s.submission_date desc, s.id, i.position, i.id
                    """
                )
                rows = cur.fetchall() or []
        out: list[dict] = []
        for r in rows:
            date = r["submission_date"]
            out.append(
                {
                    "submission_id": r["sid"],
                    "name": r["name"],
                    "email": r["email"],
                    "submission_date": date.isoformat() if hasattr(date, "isoformat") else date,
                    "status": r["status"],
                    "item": item_view(r) if r.get("id") else None,
                }
            )
        return out

    # ------------------------------------------------------------------
    def update_status(self, submission_ids: Iterable[str], status: str) -> int:
        ids = [i for i in submission_ids if _is_uuid(i)]
        if not ids:
            return 0
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update {SUBMISSIONS_TABLE} set status = %s where id = any(%s::uuid[])",
                    (status, ids),
                )
                changed = cur.rowcount
            conn.commit()
        return max(int(changed or 0), 0)

    def update_notes(self, submission_id: str, notes: str) -> bool:
        if not _is_uuid(submission_id):
            return False
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update {SUBMISSIONS_TABLE} set notes = %s where id = %s::uuid",
                    (notes, submission_id),
                )
                changed = cur.rowcount
            conn.commit()
        return bool(changed)

    def delete_submission(self, submission_id: str) -> Optional[list[dict]]:
        """Delete a submission (items cascade); returns the removed items or None."""
        if not _is_uuid(submission_id):
            return None
        with self._connect() as conn:
            try:
                with conn.cursor() as cur:
                    items = self._fetch_items(cur, submission_id)
                    cur.execute(
                        f"delete from {SUBMISSIONS_TABLE} where id = %s::uuid returning id",
                        (submission_id,),
                    )
                    deleted = cur.fetchone()
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return items if deleted else None

    def delete_item(self, item_id: str) -> Optional[tuple[dict, bool]]:
        """Delete one item; the parent goes too when it was the last one."""
        if not _is_uuid(item_id):
            return None
        with self._connect() as conn:
            try:
                with conn.cursor() as cur:
                    # Lock the parent first so concurrent sibling deletes serialise
                    # and the last one sees an empty submission.
                    cur.execute(
                        f"select s.id::text as id from {SUBMISSIONS_TABLE} s "
                        f"join {ITEMS_TABLE} i on i.submission_id = s.id "
                        "where i.id = %s::uuid for update of s",
                        (item_id,),
                    )
                    parent = cur.fetchone()
                    if not parent:
                        conn.rollback()
                        return None
                    cur.execute(
                        f"delete from {ITEMS_TABLE} where id = %s::uuid and submission_id = %s::uuid "
                        f"returning id::text as id, submission_id::text as submission_id, {_ITEM_COLUMNS}",
                        (item_id, parent["id"]),
                    )
                    row = cur.fetchone()
                    if not row:
                        conn.rollback()
                        return None
                    cur.execute(
                        f"delete from {SUBMISSIONS_TABLE} s where s.id = %s::uuid "
                        f"and not exists (select 1 from {ITEMS_TABLE} i where i.submission_id = s.id) returning s.id",
                        (row["submission_id"],),
                    )
                    parent_deleted = cur.fetchone() is not None
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return item_view(row), parent_deleted


__all__ = ["DBSubmissionRepo", "DBSubmissionTransaction", "sanitize_error_message"]
