"""Public submission form: render (GET /) and post-redirect-get (POST /submit)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from backend.intake.config import get_site_name
from backend.intake.domain import ErrorKind, FileRef
from backend.intake.feedback import FeedbackChannel
from backend.intake.payload import parse_form
from backend.intake.validation import MSG_SECURITY
from backend.storage.config import get_max_image_bytes, get_max_image_size_mb
from backend.web.components import FeedbackBanner, Layout, SubmissionForm
from backend.web.routes.security import _is_same_origin, get_form_token, get_or_create_form_token
from backend.web.services import get_services

_log = logging.getLogger("preowned.web")

submissions_router = APIRouter(tags=["Submissions"])

# Generous upper bounds; the form renders far fewer.
_MAX_FORM_FILES = 60
_MAX_FORM_FIELDS = 400
ITEM_SLOTS = 3


def _is_admin_session(data: dict) -> bool:
    return bool(data.get("is_admin"))


def _form_choices(catalog):
    genders = [(g.id, g.name) for g in catalog.categories.genders.values()]
    seen: dict[str, str] = {}
    for gender in catalog.categories.genders.values():
        for cat in gender.children.values():
            seen.setdefault(cat.id, cat.name)
    sizes = catalog.sizes.sizes_for("default", "default")
    return genders, sorted(seen.items(), key=lambda kv: kv[1]), sizes


@submissions_router.get("/", response_class=HTMLResponse)
async def submission_form(request: Request):
    """Render the form and, once, any pending feedback from the last post."""
    svc = get_services()
    sid = request.state.session_id
    feedback = FeedbackChannel(svc.sessions, sid).drain()
    rec = svc.sessions.get(sid)
    show_debug = _is_admin_session(rec.data if rec else {})
    token = get_or_create_form_token(svc.sessions, sid)
    genders, categories, sizes = _form_choices(svc.catalog)
    banner = FeedbackBanner(
        feedback.status,
        feedback.message,
        debug_info=feedback.debug_info,
        show_debug=show_debug,
    ).render()
    form = SubmissionForm(
        form_token=token,
        genders=genders,
        categories=categories,
        sizes=sizes,
        item_slots=ITEM_SLOTS,
        max_image_mb=get_max_image_size_mb(),
    ).render()
    content = f'<section class="submission-page"><h1>Submit Your Clothing</h1>{banner}{form}</section>'
    body = Layout("Submit Your Clothing", content, current_path="/", site_name=get_site_name()).render()
    return HTMLResponse(body, headers={"Cache-Control": "private, no-store"})


async def _collect_fields(request: Request) -> list[tuple[str, object]]:
    limit = get_max_image_bytes()
    form = await request.form(max_files=_MAX_FORM_FILES, max_fields=_MAX_FORM_FIELDS)
    fields: list[tuple[str, object]] = []
    try:
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if not value.filename:
                    continue
                # Read one byte past the limit so oversize files are detectable without buffering them whole.
                data = await value.read(limit + 1)
                fields.append((key, FileRef(filename=value.filename, content_type=value.content_type or "", data=data)))
            else:
                fields.append((key, value))
    finally:
        await form.close()
    return fields


@submissions_router.post("/submit")
async def submit(request: Request):
    """Handle a form post and always answer with a 303 redirect (PRG)."""
    svc = get_services()
    sid = request.state.session_id
    channel = FeedbackChannel(svc.sessions, sid)

    if not _is_same_origin(request):
        _log.warning("cross-origin submission rejected origin=%s", request.headers.get("origin"))
        channel.set("error", MSG_SECURITY, f"{ErrorKind.SECURITY_ERROR.value}: cross-origin post")
        return RedirectResponse(url="/", status_code=303)

    try:
        fields = await _collect_fields(request)
    except Exception as exc:
        _log.warning("form parsing failed: %s", exc.__class__.__name__)
        channel.set("error", "There was a problem processing your submission. Please try again.", f"form parsing failed: {exc.__class__.__name__}")
        return RedirectResponse(url="/", status_code=303)

    payload = parse_form(fields)
    expected = get_form_token(svc.sessions, sid)
    result = await run_in_threadpool(
        svc.submit.execute, payload, expected_token=expected, feedback=channel
    )
    target = f"/?{result.redirect_hint}" if result.ok and result.redirect_hint else "/"
    return RedirectResponse(url=target, status_code=303)
