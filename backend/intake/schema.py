"""
Database schema for submissions, items and visitor sessions.

Applied explicitly by `python -m backend.tools.migrate`, never from the
request path. Statements are idempotent (`if not exists`).
"""
from __future__ import annotations

import logging

_log = logging.getLogger("preowned.intake")

SUBMISSIONS_TABLE = "public.preowned_submissions"
ITEMS_TABLE = "public.preowned_items"
SESSIONS_TABLE = "public.app_sessions"

REQUIRED_TABLES = (SUBMISSIONS_TABLE, ITEMS_TABLE)

DDL_STATEMENTS: tuple[str, ...] = (
    f"""
    create table if not exists {SUBMISSIONS_TABLE} (
        id uuid primary key default gen_random_uuid(),
        submission_date timestamptz not null default now(),
        name text not null,
        email text not null,
        phone text,
        address text,
        city text,
        state text,
        zip text,
        status text not null default 'pending'
            check (status in ('pending', 'contacted', 'completed')),
        notes text
    )
    """,
    f"create index if not exists preowned_submissions_date_idx on {SUBMISSIONS_TABLE} (submission_date desc)",
    f"create index if not exists preowned_submissions_status_idx on {SUBMISSIONS_TABLE} (status)",
    f"""
    create table if not exists {ITEMS_TABLE} (
        id uuid primary key default gen_random_uuid(),
        submission_id uuid not null references {SUBMISSIONS_TABLE}(id) on delete cascade,
        position integer not null default 0,
        gender text not null,
        category_level_0 text not null,
        category_level_1 text,
        category_level_2 text,
        category_level_3 text,
        size text,
        description text not null check (length(description) > 0),
        image_front text,
        image_back text,
        image_brand_tag text,
        image_material_tag text,
        image_detail text
    )
    """,
    f"create index if not exists preowned_items_submission_idx on {ITEMS_TABLE} (submission_id, position)",
    f"""
    create table if not exists {SESSIONS_TABLE} (
        session_id text primary key,
        data jsonb not null default '{{}}'::jsonb,
        expires_at timestamptz not null
    )
    """,
    f"create index if not exists app_sessions_expires_idx on {SESSIONS_TABLE} (expires_at)",
)


def apply_schema(conn) -> int:
    """Run every DDL statement on `conn` inside one transaction; returns the count."""
    with conn.cursor() as cur:
        for stmt in DDL_STATEMENTS:
            cur.execute(stmt)
    conn.commit()
    _log.info("schema applied statements=%s", len(DDL_STATEMENTS))
    return len(DDL_STATEMENTS)


def missing_tables(conn) -> list[str]:
    """Return the required tables that do not exist yet."""
    missing: list[str] = []
    with conn.cursor() as cur:
        for table in REQUIRED_TABLES:
            cur.execute("select to_regclass(%s)", (table,))
            row = cur.fetchone()
            if not row or row[0] is None:
                missing.append(table)
    return missing


__all__ = [
    "SUBMISSIONS_TABLE",
    "ITEMS_TABLE",
    "SESSIONS_TABLE",
    "REQUIRED_TABLES",
    "DDL_STATEMENTS",
    "apply_schema",
    "missing_tables",
]
