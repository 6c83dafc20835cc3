"""Auth routes: login form, login, logout."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from guestbook.services.app_config import AppConfig
from web.api.utils import get_app_config
from web.auth import (
    check_password,
    check_same_origin,
    clear_session_cookie,
    get_session_id,
    issue_session_token,
    session_secret,
    set_session_cookie,
)
from web.pages import render_login

router = APIRouter(tags=["auth"])


@router.get("/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    cfg: AppConfig = Depends(get_app_config),
    session_id: Optional[str] = Depends(get_session_id),
):
    """Login form; already logged-in admins go straight to /admin."""
    if session_id:
        return RedirectResponse("/admin", status_code=302)
    return HTMLResponse(render_login(cfg, request.app.state.assets))


@router.post("/login")
async def login(request: Request, cfg: AppConfig = Depends(get_app_config)):
    """Check the admin password and set the session cookie."""
    form = await request.form()
    password = form.get("password")
    if not password or not cfg.admin_password or not check_password(str(password), cfg.admin_password):
        return JSONResponse({"success": False}, status_code=401)
    response = JSONResponse({"success": True})
    set_session_cookie(response, issue_session_token(session_secret(cfg)))
    return response


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(request: Request):
    """Clear the session cookie. POSTs must come from our own origin."""
    if request.method == "POST":
        check_same_origin(request)
    response = JSONResponse({"success": True})
    clear_session_cookie(response)
    return response
