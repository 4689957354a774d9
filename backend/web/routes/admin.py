"""
Admin screens for reviewing and acting on submissions.

Permissions:
    Every route requires HTTP Basic credentials matching ADMIN_USERNAME /
    ADMIN_PASSWORD. A successful login marks the visitor session as admin so
    the public page may show debug details of the last submission.

Writes:
    POST routes additionally require same-origin headers and a one-shot token
    minted by the page that rendered the form (403 otherwise). Destructive
    actions require an explicit `confirm` field (400 otherwise).
"""
from __future__ import annotations

import hmac
import logging
import os
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.concurrency import run_in_threadpool

from backend.intake.config import get_admin_page_size, get_site_name
from backend.intake.usecases.admin import ListSubmissionsInput
from backend.web.components import FilterBar, Layout, Pagination, SubmissionDetail, SubmissionTable
from backend.web.routes.security import AdminTokens, _is_same_origin, consume_admin_token
from backend.web.services import get_services

_log = logging.getLogger("preowned.web.admin")

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

_PRIVATE = {"Cache-Control": "private, no-store"}


def _private_text(body: str, *, status_code: int, headers: Optional[dict] = None) -> PlainTextResponse:
    return PlainTextResponse(body, status_code=status_code, headers={**_PRIVATE, **(headers or {})})


_basic = HTTPBasic(auto_error=False, realm="admin")


async def _credentials_ok(request: Request) -> bool:
    username = (os.getenv("ADMIN_USERNAME") or "admin").strip()
    password = os.getenv("ADMIN_PASSWORD") or ""
    if not password:
        return False
    try:
        credentials: Optional[HTTPBasicCredentials] = await _basic(request)
    except HTTPException:
        # Malformed Basic header (bad base64 or no colon).
        return False
    if credentials is None:
        return False
    user_ok = hmac.compare_digest(credentials.username.encode("utf-8"), username.encode("utf-8"))
    pw_ok = hmac.compare_digest(credentials.password.encode("utf-8"), password.encode("utf-8"))
    return user_ok and pw_ok


async def _require_admin(request: Request) -> Optional[Response]:
    """Return an error response when the caller is not an admin, else None."""
    if not os.getenv("ADMIN_PASSWORD"):
        return _private_text("admin_disabled", status_code=503)
    if not await _credentials_ok(request):
        return _private_text("unauthenticated", status_code=401, headers={"WWW-Authenticate": 'Basic realm="admin"'})
    svc = get_services()
    sid = request.state.session_id
    rec = svc.sessions.get(sid)
    if rec is not None and not rec.data.get("is_admin"):
        data = dict(rec.data)
        data["is_admin"] = True
        svc.sessions.save(sid, data)
    return None


async def _guard_write(request: Request) -> tuple[Optional[Response], dict]:
    """Admin + same-origin + one-shot token; returns (error, form fields)."""
    error = await _require_admin(request)
    if error:
        return error, {}
    if not _is_same_origin(request):
        return _private_text("csrf_violation", status_code=403), {}
    form = await request.form()
    fields = {"ids": form.getlist("ids")}
    for key, value in form.multi_items():
        if key != "ids" and isinstance(value, str):
            fields[key] = value
    svc = get_services()
    if not consume_admin_token(svc.sessions, request.state.session_id, fields.get("csrf_token")):
        return _private_text("invalid_token", status_code=403), {}
    return None, fields


def _confirmed(fields: dict) -> bool:
    return (fields.get("confirm") or "").strip().lower() in ("1", "true", "yes", "on")


def _page(request: Request, title: str, content: str) -> HTMLResponse:
    body = Layout(title, content, admin=True, current_path=request.url.path, site_name=get_site_name()).render()
    return HTMLResponse(body, headers=_PRIVATE)


@admin_router.get("", response_class=HTMLResponse)
async def admin_list(request: Request, s: str = "", status: str = "", category: str = "", paged: str = "1"):
    error = await _require_admin(request)
    if error:
        return error
    svc = get_services()
    try:
        page_no = int(paged)
    except (TypeError, ValueError):
        page_no = 1
    page = await run_in_threadpool(
        svc.list_submissions.execute,
        ListSubmissionsInput(search=s, status=status, category=category, page=page_no, page_size=get_admin_page_size()),
    )
    tokens = AdminTokens(svc.sessions, request.state.session_id)
    content = (
        "<h1>Clothing Submissions</h1>"
        + FilterBar(search=s, status=status, category=category, categories=page.categories).render()
        + SubmissionTable(page.rows, token_for=tokens.mint).render()
        + Pagination(page=page.page, pages=page.pages, total=page.total, params={"s": s, "status": status, "category": category}).render()
    )
    tokens.save()
    return _page(request, "Submissions", content)


@admin_router.get("/submissions/{submission_id}", response_class=HTMLResponse)
async def admin_detail(request: Request, submission_id: str, msg: str = ""):
    error = await _require_admin(request)
    if error:
        return error
    svc = get_services()
    try:
        row = await run_in_threadpool(svc.get_submission.execute, submission_id)
    except LookupError:
        return _private_text("not_found", status_code=404)
    tokens = AdminTokens(svc.sessions, request.state.session_id)
    content = SubmissionDetail(row, token_for=tokens.mint, message=msg[:200] or None).render()
    tokens.save()
    return _page(request, f"Submission {row.get('name') or ''}", content)


@admin_router.post("/submissions/{submission_id}/status")
async def admin_set_status(request: Request, submission_id: str):
    error, fields = await _guard_write(request)
    if error:
        return error
    svc = get_services()
    try:
        await run_in_threadpool(svc.update_submission.set_status, submission_id, (fields.get("status") or "").strip())
    except ValueError:
        return _private_text("invalid_status", status_code=400)
    except LookupError:
        return _private_text("not_found", status_code=404)
    return RedirectResponse(url=f"/admin/submissions/{submission_id}?msg=Status+updated", status_code=303)


@admin_router.post("/submissions/{submission_id}/notes")
async def admin_set_notes(request: Request, submission_id: str):
    error, fields = await _guard_write(request)
    if error:
        return error
    svc = get_services()
    try:
        await run_in_threadpool(svc.update_submission.set_notes, submission_id, fields.get("notes") or "")
    except LookupError:
        return _private_text("not_found", status_code=404)
    return RedirectResponse(url=f"/admin/submissions/{submission_id}?msg=Notes+saved", status_code=303)


@admin_router.post("/submissions/{submission_id}/delete")
async def admin_delete_submission(request: Request, submission_id: str):
    error, fields = await _guard_write(request)
    if error:
        return error
    if not _confirmed(fields):
        return _private_text("confirmation_required", status_code=400)
    svc = get_services()
    try:
        await run_in_threadpool(svc.update_submission.delete_submission, submission_id)
    except LookupError:
        return _private_text("not_found", status_code=404)
    return RedirectResponse(url="/admin", status_code=303)


@admin_router.post("/items/{item_id}/delete")
async def admin_delete_item(request: Request, item_id: str):
    error, fields = await _guard_write(request)
    if error:
        return error
    if not _confirmed(fields):
        return _private_text("confirmation_required", status_code=400)
    svc = get_services()
    submission_id = (fields.get("submission_id") or "").strip()
    try:
        parent_deleted = await run_in_threadpool(svc.update_submission.delete_item, item_id)
    except LookupError:
        return _private_text("not_found", status_code=404)
    if parent_deleted or not submission_id:
        return RedirectResponse(url="/admin", status_code=303)
    return RedirectResponse(url=f"/admin/submissions/{submission_id}?msg=Item+deleted", status_code=303)


@admin_router.post("/bulk")
async def admin_bulk(request: Request):
    error, fields = await _guard_write(request)
    if error:
        return error
    action = (fields.get("action") or "").strip()
    if action == "delete" and not _confirmed(fields):
        return _private_text("confirmation_required", status_code=400)
    svc = get_services()
    try:
        count = await run_in_threadpool(svc.update_submission.bulk, action, fields.get("ids") or [])
    except ValueError:
        return _private_text("invalid_action", status_code=400)
    _log.info("bulk action=%s affected=%s", action, count)
    return RedirectResponse(url="/admin", status_code=303)


@admin_router.get("/export")
async def admin_export(request: Request, format: str = "csv"):
    error = await _require_admin(request)
    if error:
        return error
    svc = get_services()
    stamp = date.today().isoformat()
    if format == "json":
        body = await run_in_threadpool(svc.export_submissions.to_json)
        media, ext = "application/json", "json"
    elif format == "csv":
        body = await run_in_threadpool(svc.export_submissions.to_csv)
        media, ext = "text/csv", "csv"
    else:
        return _private_text("invalid_format", status_code=400)
    headers = {**_PRIVATE, "Content-Disposition": f'attachment; filename="clothing-submissions-{stamp}.{ext}"'}
    return Response(content=body, media_type=media, headers=headers)
