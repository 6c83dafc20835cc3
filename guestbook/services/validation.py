"""Submission validation for new guestbook entries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlsplit

from guestbook.services import turnstile
from guestbook.services.app_config import AppConfig

MAX_NAME = 100
MAX_MESSAGE = 2000
MAX_SITE = 255
MAX_EMAIL = 255

TURNSTILE_FIELD = "cf-turnstile-response"


class SubmissionRejected(ValueError):
    """Input failed validation; ``reason`` is safe to show to the visitor."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class ValidEntry:
    name: str
    message: str
    site: Optional[str]
    email: Optional[str]
    approved: bool


def _clean(value) -> Optional[str]:
    """Trim; blank or missing becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def check_site_url(site: str) -> None:
    """Only absolute http(s) URLs are allowed (no javascript: and friends)."""
    try:
        parts = urlsplit(site)
        host = parts.hostname
    except ValueError:
        raise SubmissionRejected("Invalid website URL") from None
    if parts.scheme and parts.scheme not in ("http", "https"):
        raise SubmissionRejected("Invalid website URL. Must start with http:// or https://")
    if not parts.scheme or not host:
        raise SubmissionRejected("Invalid website URL")


async def validate_submission(fields: Mapping[str, object], cfg: AppConfig) -> ValidEntry:
    """Validate raw form fields. First failing rule wins.

    Raises SubmissionRejected. The CAPTCHA oracle is only consulted when
    Turnstile is enabled in ``cfg``.
    """
    name = _clean(fields.get("name"))
    message = _clean(fields.get("message"))
    site = _clean(fields.get("site"))
    email = _clean(fields.get("email"))
    token = fields.get(TURNSTILE_FIELD)

    if name and len(name) > MAX_NAME:
        raise SubmissionRejected(f"Name too long (max {MAX_NAME} chars)")
    if message and len(message) > MAX_MESSAGE:
        raise SubmissionRejected(f"Message too long (max {MAX_MESSAGE} chars)")
    if site and len(site) > MAX_SITE:
        raise SubmissionRejected(f"URL too long (max {MAX_SITE} chars)")
    if email and len(email) > MAX_EMAIL:
        raise SubmissionRejected(f"Email too long (max {MAX_EMAIL} chars)")

    if site:
        check_site_url(site)

    if not name or not message:
        raise SubmissionRejected("Name and message are required")

    if cfg.turnstile_enabled:
        if not token:
            raise SubmissionRejected("Turnstile verification required")
        if not await turnstile.verify_turnstile(str(token), cfg.turnstile_secret_key):
            raise SubmissionRejected("Verification failed")

    return ValidEntry(
        name=name,
        message=message,
        site=site,
        email=email,
        approved=not cfg.entry_moderation,
    )
