"Preowned clothing intake"
from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from backend.intake.config import get_env
from backend.storage.config import get_upload_base_url, get_upload_root
from backend.web import config as _cfg
from backend.web.auth_utils import cookie_opts
from backend.web.routes.admin import admin_router
from backend.web.routes.submissions import submissions_router
from backend.web.services import build_services, get_services, set_services


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via PREOWNED_ENABLE_DOTENV (default true
      outside pytest).
    """
    import sys
    # Under pytest, do not load .env – tests provide their own env.
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("PREOWNED_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    from dotenv import load_dotenv

    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("preowned.web")
SESSION_COOKIE_NAME = "preowned_session"

app = FastAPI(title="Preowned Clothing Intake", description="Clothing submission form and admin review", version="1.0.0")

# --- Static Files & Routers -----------------------------------------------------

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
# Stored photos are served from the upload root; the directory appears with the first upload.
app.mount(get_upload_base_url(), StaticFiles(directory=get_upload_root(), check_dir=False), name="uploads")

app.include_router(submissions_router)
app.include_router(admin_router)

# Build the whole collaborator graph once; tests replace it via set_services().
set_services(build_services())

# --- Session Middleware ---------------------------------------------------------


def _set_session_cookie(response: Response, value: str, *, max_age: int | None = None) -> None:
    opts = cookie_opts(get_env())
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def _is_public_path(path: str) -> bool:
    return path.startswith(("/static/", get_upload_base_url() + "/")) or path in ("/health", "/favicon.ico")


@app.middleware("http")
async def visitor_session(request: Request, call_next):
    """Attach a server-side session id to every page request.

    The cookie holds only the opaque id. Unknown or expired ids are replaced by
    a fresh session and the new cookie is set on the response.
    """
    path = request.url.path
    if _is_public_path(path):
        return await call_next(request)

    store = get_services().sessions
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = store.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)
    created = None
    if rec is None:
        try:
            created = store.create()
        except Exception as exc:
            logger.error("Session store create failed: %s", exc.__class__.__name__)
            return JSONResponse({"error": "session_unavailable"}, status_code=503, headers={"Cache-Control": "private, no-store"})
        sid = created.session_id
    request.state.session_id = sid
    response = await call_next(request)
    if created is not None:
        _set_session_cookie(response, created.session_id, max_age=created.ttl_seconds)
    return response


# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    csp = (
        "default-src 'self'; script-src 'self'; style-src 'self'; "
        "img-src 'self' data:; font-src 'self' data:; connect-src 'self'; "
        "form-action 'self'; frame-ancestors 'self';"
    )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    # Support Origin/Referer fallback in CSRF checks without leaking cross-site
    # paths: strict-origin-when-cross-origin.
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    if get_env() not in ("dev", "test", "local"):
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


@app.get("/health")
async def health_check():
    # Security: include no-store to avoid caching any runtime status.
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})
