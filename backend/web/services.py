"""
Service graph for the web app.

Why:
    Every collaborator (catalog, repository, storage, image intake, notifier,
    session store, use cases) is constructed once by `build_services()` at
    startup and handed to the routes through `get_services()`. There are no
    lazily-initialised module globals or runtime "already wired" flags. Tests
    swap the whole graph with `set_services()`.

Selection:
    - Repository: DBSubmissionRepo when a DSN is configured, else the
      in-memory repo (refused in prod-like envs by the startup guard).
    - Sessions: DBSessionStore when SESSIONS_BACKEND=db, else in-memory.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from backend.intake.catalog import Catalog, load_catalog
from backend.intake.config import get_database_dsn, require_item_size
from backend.intake.images import ImageIntake
from backend.intake.notifications import Notifier, build_notifier
from backend.intake.repo_memory import MemorySubmissionRepo
from backend.intake.usecases.admin import (
    ExportSubmissionsUseCase,
    GetSubmissionUseCase,
    ListSubmissionsUseCase,
    UpdateSubmissionUseCase,
)
from backend.intake.usecases.submissions import ProcessSubmissionUseCase, SubmitFormUseCase
from backend.intake.validation import SubmissionValidator
from backend.sessions.stores import SessionStore
from backend.storage.local import LocalFileStorage

_log = logging.getLogger("preowned.web")


@dataclass
class Services:
    catalog: Catalog
    repo: object
    storage: LocalFileStorage
    images: ImageIntake
    notifier: Notifier
    sessions: object
    validator: SubmissionValidator
    submit: SubmitFormUseCase
    list_submissions: ListSubmissionsUseCase
    get_submission: GetSubmissionUseCase
    update_submission: UpdateSubmissionUseCase
    export_submissions: ExportSubmissionsUseCase


def _build_repo():
    dsn = get_database_dsn()
    if dsn:
        from backend.intake.repo_db import DBSubmissionRepo

        _log.info("intake repo: postgres")
        return DBSubmissionRepo(dsn)
    _log.info("intake repo: in-memory")
    return MemorySubmissionRepo()


def _build_sessions():
    if (os.getenv("SESSIONS_BACKEND", "memory") or "").strip().lower() == "db":
        from backend.sessions.stores_db import DBSessionStore

        return DBSessionStore()
    return SessionStore()


def build_services(
    *,
    repo=None,
    storage: Optional[LocalFileStorage] = None,
    notifier: Optional[Notifier] = None,
    sessions=None,
    catalog: Optional[Catalog] = None,
    require_size: Optional[bool] = None,
) -> Services:
    """Construct the full graph; keyword overrides are for tests."""
    catalog = catalog or load_catalog()
    repo = repo if repo is not None else _build_repo()
    storage = storage or LocalFileStorage()
    notifier = notifier or build_notifier()
    sessions = sessions if sessions is not None else _build_sessions()
    images = ImageIntake(storage)
    validator = SubmissionValidator(
        catalog.categories,
        require_size=require_item_size() if require_size is None else require_size,
    )
    return Services(
        catalog=catalog,
        repo=repo,
        storage=storage,
        images=images,
        notifier=notifier,
        sessions=sessions,
        validator=validator,
        submit=SubmitFormUseCase(validator, ProcessSubmissionUseCase(repo, images, notifier)),
        list_submissions=ListSubmissionsUseCase(repo),
        get_submission=GetSubmissionUseCase(repo),
        update_submission=UpdateSubmissionUseCase(repo, storage),
        export_submissions=ExportSubmissionsUseCase(repo),
    )


_SERVICES: Optional[Services] = None


def set_services(services: Services) -> None:
    global _SERVICES
    _SERVICES = services


def get_services() -> Services:
    if _SERVICES is None:
        raise RuntimeError("services not initialised; call set_services(build_services()) at startup")
    return _SERVICES


__all__ = ["Services", "build_services", "set_services", "get_services"]
