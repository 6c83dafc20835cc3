"""Database models."""
from guestbook.models.base import Base, ensure_schema, ensure_settings_table
from guestbook.models.entry import Entry  # noqa: F401 - for metadata
from guestbook.models.setting import Setting  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Entry",
    "Setting",
    "ensure_schema",
    "ensure_settings_table",
]
