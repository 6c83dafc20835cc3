"""Public routes: home page, submission, entry listing, exports, widget script."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from guestbook.services import entries as entry_store
from guestbook.services.app_config import AppConfig
from guestbook.services.validation import SubmissionRejected, validate_submission
from web.api.cors import CorsPolicy, get_cors
from web.api.utils import get_app_config, public_api_base
from web.pages import render_client_script, render_home

router = APIRouter(tags=["public"])

SHORT_CACHE = "public, max-age=60, s-maxage=60"
EXPORT_CACHE = "public, max-age=60"


def _parse_cursor(value: Optional[str]) -> Optional[int]:
    """Cursor from the query string; anything non-numeric means "first page"."""
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@router.get("/", response_class=HTMLResponse)
async def home(request: Request, cfg: AppConfig = Depends(get_app_config)):
    """Home page with the latest approved entries."""
    page = await entry_store.list_public()
    body = render_home(cfg, request.app.state.assets, page.entries, page.next_cursor)
    return HTMLResponse(body, headers={"Cache-Control": SHORT_CACHE})


@router.get("/favicon.ico")
async def favicon(cfg: AppConfig = Depends(get_app_config)):
    return RedirectResponse(cfg.site_icon_url, status_code=301)


@router.post("/api/submit")
async def submit_entry(
    request: Request,
    cfg: AppConfig = Depends(get_app_config),
    cors: CorsPolicy = Depends(get_cors),
):
    """Create an entry from form fields. Pending when moderation is on."""
    form = await request.form()
    try:
        entry = await validate_submission(form, cfg)
    except SubmissionRejected as e:
        return JSONResponse(
            {"success": False, "error": e.reason}, status_code=400, headers=cors.public_headers()
        )
    entry_id = await entry_store.insert_entry(entry)
    return JSONResponse(
        {"success": True, "id": entry_id, "approved": entry.approved},
        headers=cors.public_headers(),
    )


@router.get("/api/entries")
async def list_entries(
    cursor: Optional[str] = None,
    cors: CorsPolicy = Depends(get_cors),
):
    """Approved entries, newest first. Pass ``nextCursor`` back as ``cursor`` for the next page."""
    page = await entry_store.list_public(cursor=_parse_cursor(cursor))
    return JSONResponse(
        {
            "success": True,
            "entries": [entry_store.public_entry_dict(e) for e in page.entries],
            "nextCursor": page.next_cursor,
        },
        headers={**cors.public_headers(), "Cache-Control": SHORT_CACHE},
    )


@router.get("/data.json")
async def export_json(cors: CorsPolicy = Depends(get_cors)):
    """Public export of approved entries (no emails)."""
    body = await entry_store.export_public("json")
    return Response(
        body,
        media_type="application/json",
        headers={**cors.public_headers(), "Cache-Control": EXPORT_CACHE},
    )


@router.get("/data.csv")
async def export_csv(cors: CorsPolicy = Depends(get_cors)):
    body = await entry_store.export_public("csv")
    return Response(
        body,
        media_type="text/csv; charset=utf-8",
        headers={
            **cors.public_headers(),
            "Cache-Control": EXPORT_CACHE,
            "Content-Disposition": 'attachment; filename="guestbook-data.csv"',
        },
    )


@router.get("/client.js")
async def client_script(
    request: Request,
    turnstile: Optional[str] = None,
    cfg: AppConfig = Depends(get_app_config),
    cors: CorsPolicy = Depends(get_cors),
):
    """Embeddable widget. ``?turnstile=false`` forces the CAPTCHA off."""
    enabled = cfg.turnstile_enabled and turnstile != "false"
    body = render_client_script(cfg, request.app.state.assets, public_api_base(cfg, request), enabled)
    return Response(body, media_type="application/javascript", headers=cors.public_headers())
