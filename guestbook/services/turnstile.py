"""Cloudflare Turnstile verification (server-side token check)."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

import config

logger = logging.getLogger("guestbook.turnstile")


async def verify_turnstile(
    token: str,
    secret: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """Forward ``token`` to the siteverify endpoint. Fails closed.

    Unreachable service, timeouts, error statuses and malformed bodies all
    count as a failed verification.
    """
    if not token:
        return False
    payload = {"secret": secret, "response": token}
    try:
        if client is not None:
            r = await client.post(config.TURNSTILE_VERIFY_URL, json=payload)
        else:
            async with httpx.AsyncClient(timeout=config.TURNSTILE_TIMEOUT) as c:
                r = await c.post(config.TURNSTILE_VERIFY_URL, json=payload)
    except httpx.HTTPError as e:
        logger.warning("Turnstile verification request failed: %s", e)
        return False
    if r.status_code != 200:
        logger.warning("Turnstile siteverify returned %s", r.status_code)
        return False
    try:
        result = r.json()
    except ValueError:
        logger.warning("Turnstile siteverify returned a non-JSON body")
        return False
    return isinstance(result, dict) and result.get("success") is True
