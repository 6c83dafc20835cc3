"""Moderation API: approve or delete entries (admin only, same origin)."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from guestbook.services.entries import approve_entry, delete_entry
from web.auth import require_admin_request

router = APIRouter(prefix="/api", tags=["moderation"])


@router.post("/approve/{entry_id}")
async def approve(entry_id: int, session_id: str = Depends(require_admin_request)):
    """Publish a pending entry. Approving twice, or an unknown id, is a no-op."""
    await approve_entry(entry_id)
    return {"success": True}


@router.post("/delete/{entry_id}")
async def remove(entry_id: int, session_id: str = Depends(require_admin_request)):
    """Remove an entry for good. Unknown ids are ignored."""
    await delete_entry(entry_id)
    return {"success": True}
