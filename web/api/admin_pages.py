"""Admin pages. Without a session the browser is sent to /login."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from guestbook.services.app_config import AppConfig
from guestbook.services.entries import list_all
from web.api.utils import get_app_config, public_api_base
from web.auth import get_session_id
from web.pages import render_admin, render_embed, render_settings

router = APIRouter(prefix="/admin", tags=["admin"])


def _login_redirect() -> RedirectResponse:
    return RedirectResponse("/login", status_code=302)


@router.get("", response_class=HTMLResponse)
async def admin_entries(
    request: Request,
    cfg: AppConfig = Depends(get_app_config),
    session_id: Optional[str] = Depends(get_session_id),
):
    """All entries, pending included, newest first."""
    if not session_id:
        return _login_redirect()
    return HTMLResponse(render_admin(cfg, request.app.state.assets, await list_all()))


@router.get("/settings", response_class=HTMLResponse)
async def admin_settings(
    request: Request,
    cfg: AppConfig = Depends(get_app_config),
    session_id: Optional[str] = Depends(get_session_id),
):
    if not session_id:
        return _login_redirect()
    return HTMLResponse(render_settings(cfg, request.app.state.assets))


@router.get("/embed", response_class=HTMLResponse)
async def admin_embed(
    request: Request,
    cfg: AppConfig = Depends(get_app_config),
    session_id: Optional[str] = Depends(get_session_id),
):
    """Copy-paste snippet for the embeddable widget."""
    if not session_id:
        return _login_redirect()
    return HTMLResponse(render_embed(cfg, request.app.state.assets, public_api_base(cfg, request)))
