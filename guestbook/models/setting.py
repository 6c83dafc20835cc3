"""Key/value settings overlay on top of environment defaults."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from guestbook.models.base import Base


class Setting(Base):
    """One site setting; the whole value is replaced on every save."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
