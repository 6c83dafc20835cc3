"""Authentication for the admin: signed session cookies, password check, origin check."""
from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlsplit

from fastapi import Depends, HTTPException, Request, Response, status
from itsdangerous import BadSignature, Signer

import config
from guestbook.services.app_config import AppConfig
from web.api.utils import get_app_config, request_origin

# Last resort when neither SESSION_SECRET nor ADMIN_PASSWORD is configured
INSECURE_DEFAULT_SECRET = "default-insecure-secret"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DEFAULT_PORTS = {"http": 80, "https": 443}


def session_secret(cfg: AppConfig) -> str:
    """Signing secret: SESSION_SECRET, else ADMIN_PASSWORD, else the insecure default."""
    return cfg.session_secret or cfg.admin_password or INSECURE_DEFAULT_SECRET


def uses_insecure_secret(cfg: AppConfig) -> bool:
    return session_secret(cfg) == INSECURE_DEFAULT_SECRET


def _signer(secret: str) -> Signer:
    # Plain HMAC-SHA256 keyed with the secret itself; signatures are URL-safe unpadded base64
    return Signer(secret, sep=".", key_derivation="none", digest_method=hashlib.sha256)


def sign(data: str, secret: str) -> str:
    return _signer(secret).sign(data).decode("utf-8")


def issue_session_token(secret: str) -> str:
    """Fresh random session id, signed with ``secret``."""
    return sign(str(uuid.uuid4()), secret)


def verify_session_token(token: Optional[str], secret: str) -> Optional[str]:
    """Return the session id if ``token`` carries a valid signature, else None."""
    if not token:
        return None
    try:
        payload = _signer(secret).unsign(token).decode("utf-8")
    except BadSignature:
        return None
    # The last base64 character has spare bits: only the canonical encoding is accepted
    if sign(payload, secret) != token:
        return None
    return payload


def check_password(candidate: Optional[str], expected: Optional[str]) -> bool:
    """Compare passwords without short-circuiting on the first differing byte.

    Both sides are hashed first so the loop always runs over two fixed-size
    digests.
    """
    if not candidate or not expected:
        return False
    a = hashlib.sha256(candidate.encode("utf-8")).digest()
    b = hashlib.sha256(expected.encode("utf-8")).digest()
    if len(a) != len(b):
        return False
    diff = 0
    for x, y in zip(a, b):
        diff |= x ^ y
    return diff == 0


def set_session_cookie(response: Response, token: str) -> None:
    expires = datetime.now(timezone.utc) + timedelta(days=config.SESSION_EXPIRE_DAYS)
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        token,
        expires=expires,
        path="/",
        httponly=True,
        secure=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    """Overwrite the cookie with an empty, already expired one."""
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        "",
        expires=_EPOCH,
        path="/",
        httponly=True,
        secure=True,
        samesite="lax",
    )


def _host_and_port(scheme: Optional[str], hostname: Optional[str], port: Optional[int]):
    """Host comparison key: lowercase hostname plus the port unless it is the scheme's default."""
    if port == _DEFAULT_PORTS.get(scheme or ""):
        port = None
    return (hostname or "").lower(), port


def check_same_origin(request: Request) -> None:
    """Reject cross-site state changes. Raises 403.

    Only the host (hostname and non-default port) is compared, so an http/https
    mismatch is tolerated. A request without an Origin header is allowed.
    """
    origin = request.headers.get("origin")
    if not origin:
        return
    own_origin = request_origin(request)
    if origin == own_origin:
        return
    try:
        parsed = urlsplit(origin)
        origin_host = _host_and_port(parsed.scheme, parsed.hostname, parsed.port)
    except ValueError:
        origin_host = ("", None)
    if not origin_host[0]:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "CSRF Forbidden: Invalid Origin")
    own_host = _host_and_port(request.url.scheme, request.url.hostname, request.url.port)
    if origin_host != own_host:
        raise HTTPException(
            status.HTTP_403_FORBIDDEN,
            f"CSRF Forbidden: Origin '{origin}' does not match '{own_origin}'",
        )


async def get_session_id(
    request: Request,
    cfg: AppConfig = Depends(get_app_config),
) -> Optional[str]:
    """Return the admin session id from the cookie, or None if absent/invalid."""
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    return verify_session_token(token, session_secret(cfg))


async def require_session(
    session_id: Optional[str] = Depends(get_session_id),
) -> str:
    """Require a valid admin session. Raises 401 if not logged in."""
    if not session_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return session_id


async def require_admin_request(
    request: Request,
    session_id: str = Depends(require_session),
) -> str:
    """Dependency for state-changing admin API calls: session, then same origin."""
    check_same_origin(request)
    return session_id
