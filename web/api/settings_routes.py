"""Site settings API (admin write). Stored values override the environment."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from guestbook.services.app_config import save_settings, settings_from_form
from web.auth import require_admin_request

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.post("")
async def update_settings(request: Request, session_id: str = Depends(require_admin_request)):
    """Save the settings form (admin only). Every overlay key is written."""
    form = await request.form()
    await save_settings(settings_from_form(form))
    return {"success": True}
