"""Site configuration: environment defaults overlaid with stored settings.

Precedence is stored setting > environment > compiled default. The environment
part is built once at startup (``environment_defaults``); ``resolve`` layers the
``settings`` table on top of it for every request that needs configuration.
"""
from __future__ import annotations

import logging
from typing import Mapping

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

import config
from guestbook.models import Setting, ensure_schema, ensure_settings_table
from guestbook.models.base import async_session_factory

logger = logging.getLogger("guestbook.config")

# Stored key -> AppConfig field. Only these keys can be overridden from the store.
OVERLAY_FIELDS = {
    "SITENAME": "sitename",
    "SITE_INTRO": "site_intro",
    "SITE_DESCRIPTION": "site_description",
    "SITE_ICON_URL": "site_icon_url",
    "SITE_COVER_IMAGE_URL": "site_cover_image_url",
    "NAV_LINKS": "nav_links",
    "CANONICAL_URL": "canonical_url",
    "ALLOW_INDEXING": "allow_indexing",
    "ENTRY_MODERATION": "entry_moderation",
    "TURNSTILE_ENABLED": "turnstile_enabled",
    "TURNSTILE_SITE_KEY": "turnstile_site_key",
    "TURNSTILE_SECRET_KEY": "turnstile_secret_key",
    "CUSTOM_CSS": "custom_css",
}

BOOLEAN_KEYS = frozenset({"ALLOW_INDEXING", "ENTRY_MODERATION", "TURNSTILE_ENABLED"})

# Form defaults used by the settings page when a field is left blank
_FORM_DEFAULTS = {"SITENAME": "Guestbook", "NAV_LINKS": "[]"}


class AppConfig(BaseModel):
    """Merged site configuration for one request."""

    model_config = ConfigDict(frozen=True)

    sitename: str = "Guestbook"
    site_intro: str = ""
    site_description: str = ""
    site_icon_url: str = ""
    site_cover_image_url: str = ""
    nav_links: str = "[]"
    canonical_url: str = ""
    allow_indexing: bool = True
    entry_moderation: bool = True
    turnstile_enabled: bool = True
    turnstile_site_key: str = ""
    turnstile_secret_key: str = ""
    custom_css: str = ""
    # Environment only
    admin_password: str = ""
    session_secret: str = ""
    api_url: str = ""


def environment_defaults() -> AppConfig:
    """Build the environment layer from the ``config`` module."""
    return AppConfig(
        sitename=config.SITENAME,
        site_intro=config.SITE_INTRO,
        site_description=config.SITE_DESCRIPTION,
        site_icon_url=config.SITE_ICON_URL,
        site_cover_image_url=config.SITE_COVER_IMAGE_URL,
        nav_links=config.NAV_LINKS,
        canonical_url=config.CANONICAL_URL,
        allow_indexing=config.ALLOW_INDEXING,
        entry_moderation=config.ENTRY_MODERATION,
        turnstile_enabled=config.TURNSTILE_ENABLED,
        turnstile_site_key=config.TURNSTILE_SITE_KEY,
        turnstile_secret_key=config.TURNSTILE_SECRET_KEY,
        custom_css=config.CUSTOM_CSS,
        admin_password=config.ADMIN_PASSWORD,
        session_secret=config.SESSION_SECRET,
        api_url=config.API_URL,
    )


def apply_overlay(defaults: AppConfig, stored: Mapping[str, str | None]) -> AppConfig:
    """Return ``defaults`` with stored values applied.

    Boolean keys are true only for the exact string "true"; anything else,
    including garbage, is false. Unknown and environment-only keys are ignored.
    """
    updates = {}
    for key, value in stored.items():
        field = OVERLAY_FIELDS.get(key)
        if field is None:
            continue
        if key in BOOLEAN_KEYS:
            updates[field] = value == "true"
        else:
            updates[field] = value or ""
    return defaults.model_copy(update=updates)


async def load_settings() -> dict[str, str | None]:
    """All stored settings as a dict."""
    async with async_session_factory() as session:
        result = await session.execute(select(Setting))
        return {row.key: row.value for row in result.scalars().all()}


async def resolve(defaults: AppConfig) -> AppConfig:
    """Merge stored settings over ``defaults``.

    A missing settings table (first run) triggers schema creation and the
    defaults are returned unchanged.
    """
    try:
        stored = await load_settings()
    except SQLAlchemyError as e:
        logger.info("Settings unavailable (%s), initializing schema", e.__class__.__name__)
        await ensure_schema()
        return defaults
    return apply_overlay(defaults, stored)


async def save_settings(settings: Mapping[str, object]) -> None:
    """Insert-or-replace every given key in one statement. Keys not passed keep their stored value."""
    if not settings:
        return
    await ensure_settings_table()
    stmt = sqlite_insert(Setting).values(
        [{"key": key, "value": _stringify(value)} for key, value in settings.items()]
    )
    stmt = stmt.on_conflict_do_update(index_elements=[Setting.key], set_={"value": stmt.excluded.value})
    async with async_session_factory() as session:
        await session.execute(stmt)
        await session.commit()


def _stringify(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def settings_from_form(form: Mapping[str, str]) -> dict[str, str]:
    """Translate the admin settings form into a full overlay.

    Checkboxes are only submitted when ticked, so every boolean key is written
    explicitly as "true"/"false".
    """
    settings = {}
    for key in OVERLAY_FIELDS:
        if key in BOOLEAN_KEYS:
            settings[key] = _stringify(form.get(key) == "on")
        else:
            settings[key] = form.get(key) or _FORM_DEFAULTS.get(key, "")
    return settings
