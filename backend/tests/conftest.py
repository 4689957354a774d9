"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and
keep every test on in-memory collaborators unless it opts into a live DB.
"""
import os
import sys
from pathlib import Path

import pytest

# Ensure `backend.*` and the test helpers are importable without installation.
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

# The app module builds its service graph at import time; make sure that happens
# against in-memory defaults and a throwaway upload root.
for _var in ("DATABASE_URL", "INTAKE_DATABASE_URL", "SESSION_DATABASE_URL", "PREOWNED_ENV"):
    os.environ.pop(_var, None)
os.environ["SESSIONS_BACKEND"] = "memory"
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("UPLOAD_ROOT", str(REPO_ROOT / ".tmp" / "test-uploads"))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_feature_env(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles that may leak across tests."""
    for var in (
        "PREOWNED_ENV",
        "PREOWNED_TRUST_PROXY",
        "REQUIRE_ITEM_SIZE",
        "ADMIN_USERNAME",
        "ADMIN_PASSWORD",
        "ADMIN_PAGE_SIZE",
        "MAX_IMAGE_SIZE_MB",
        "PLATFORM_MAX_UPLOAD_BYTES",
        "IMAGE_MAX_DIMENSION",
        "IMAGE_QUALITY",
        "IMAGE_MAX_PIXELS",
        "CATALOG_PATH",
        "SMTP_HOST",
        "NOTIFY_EMAIL_TO",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def services(upload_root: Path):
    """Install a fresh in-memory service graph for the web app.

    Yields the `Services` instance; the previous graph is restored afterwards.
    """
    from backend.intake.repo_memory import MemorySubmissionRepo
    from backend.sessions.stores import SessionStore
    from backend.storage.local import LocalFileStorage
    from backend.web import services as web_services
    from backend.tests.utils.notifier import RecordingNotifier

    previous = web_services._SERVICES
    svc = web_services.build_services(
        repo=MemorySubmissionRepo(),
        storage=LocalFileStorage(upload_root, base_url="/uploads"),
        notifier=RecordingNotifier(),
        sessions=SessionStore(),
    )
    web_services.set_services(svc)
    try:
        yield svc
    finally:
        web_services._SERVICES = previous
