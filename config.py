"""Configuration for the guestbook service."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str) -> bool:
    """Boolean env flag: enabled unless explicitly set to "false"."""
    return os.getenv(name) != "false"


def _str(name: str, default: str = "") -> str:
    return os.getenv(name) or default


# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'guestbook.db'}",
)

# Secrets (environment only, never persisted)
ADMIN_PASSWORD = _str("ADMIN_PASSWORD")
SESSION_SECRET = _str("SESSION_SECRET")
API_URL = _str("API_URL")  # Public base URL for the embeddable widget; empty = request origin

# Site defaults (can be overridden from /admin/settings)
SITENAME = _str("SITENAME", "Guestbook")
SITE_INTRO = _str("SITE_INTRO", "A simple guestbook. You can edit this in /admin/settings.")
SITE_DESCRIPTION = _str("SITE_DESCRIPTION", "A simple guestbook.")
SITE_ICON_URL = _str("SITE_ICON_URL", "https://static.mighil.com/images/2026/gb.webp")
SITE_COVER_IMAGE_URL = _str("SITE_COVER_IMAGE_URL")
NAV_LINKS = _str("NAV_LINKS", "[]")  # JSON list of {"label": ..., "url": ...}
CANONICAL_URL = _str("CANONICAL_URL")
CUSTOM_CSS = _str("CUSTOM_CSS")
ALLOW_INDEXING = _flag("ALLOW_INDEXING")
ENTRY_MODERATION = _flag("ENTRY_MODERATION")

# Cloudflare Turnstile (CAPTCHA)
TURNSTILE_ENABLED = _flag("TURNSTILE_ENABLED")
TURNSTILE_SITE_KEY = _str("TURNSTILE_SITE_KEY")
TURNSTILE_SECRET_KEY = _str("TURNSTILE_SECRET_KEY")
TURNSTILE_VERIFY_URL = _str(
    "TURNSTILE_VERIFY_URL", "https://challenges.cloudflare.com/turnstile/v0/siteverify"
)
TURNSTILE_TIMEOUT = float(os.getenv("TURNSTILE_TIMEOUT", "10"))

# Admin session
SESSION_COOKIE_NAME = "gb_session"
SESSION_EXPIRE_DAYS = 7
