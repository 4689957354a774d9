"""Command line entry point for the submission database schema.

Why:
    The web app never creates tables on a request path; it only checks that
    they exist. Operators run this CLI once per deployment (and after upgrades)
    to apply the idempotent DDL or to verify an existing database. Two
    maintenance commands ride along: purging expired visitor sessions and
    exporting all submissions without going through the admin UI.
"""
from __future__ import annotations

import click

try:  # pragma: no cover - import guard for optional dependency
    import psycopg  # type: ignore
except Exception:  # pragma: no cover
    psycopg = None  # type: ignore

from backend.intake.schema import SESSIONS_TABLE, apply_schema, missing_tables


def _ensure_psycopg() -> None:
    if psycopg is None:  # pragma: no cover - defensive branch
        click.echo("psycopg is required for the schema CLI.", err=True)
        raise click.Abort()


_dsn_option = click.option(
    "--db-dsn",
    envvar=["INTAKE_DATABASE_URL", "DATABASE_URL"],
    required=True,
    help="DSN of the submission database (falls back to INTAKE_DATABASE_URL / DATABASE_URL).",
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """Manage the clothing submission schema."""


@cli.command("apply")
@_dsn_option
def apply_cmd(db_dsn: str) -> None:
    """Create tables and indexes if they are missing (safe to re-run)."""
    _ensure_psycopg()
    click.echo("Applying submission schema")
    with psycopg.connect(db_dsn) as conn:  # type: ignore[arg-type]
        conn.autocommit = False
        count = apply_schema(conn)
        missing = missing_tables(conn)
    if missing:
        click.echo(f"Schema incomplete after apply: {', '.join(missing)}", err=True)
        raise SystemExit(1)
    click.echo(f"Applied {count} statements")


@cli.command("check")
@_dsn_option
def check_cmd(db_dsn: str) -> None:
    """Exit non-zero when a required table is missing."""
    _ensure_psycopg()
    with psycopg.connect(db_dsn) as conn:  # type: ignore[arg-type]
        missing = missing_tables(conn)
    if missing:
        click.echo(f"Missing tables: {', '.join(missing)}", err=True)
        raise SystemExit(1)
    click.echo("Schema OK")


@cli.command("purge-sessions")
@_dsn_option
def purge_sessions_cmd(db_dsn: str) -> None:
    """Delete expired visitor sessions."""
    from backend.sessions.stores_db import DBSessionStore

    removed = DBSessionStore(dsn=db_dsn, table=SESSIONS_TABLE).purge_expired()
    click.echo(f"Purged {removed} expired sessions")


@cli.command("export")
@_dsn_option
@click.option("--format", "fmt", type=click.Choice(["csv", "json"]), default="csv", show_default=True)
@click.option("--output", "-o", type=click.File("w", encoding="utf-8"), default="-", help="Target file (default: stdout).")
def export_cmd(db_dsn: str, fmt: str, output) -> None:
    """Write every submission with its items as CSV or JSON."""
    from backend.intake.repo_db import DBSubmissionRepo
    from backend.intake.usecases.admin import ExportSubmissionsUseCase

    export = ExportSubmissionsUseCase(DBSubmissionRepo(db_dsn))
    output.write(export.to_json() if fmt == "json" else export.to_csv())


if __name__ == "__main__":  # pragma: no cover
    cli()
