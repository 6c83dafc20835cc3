"""Guestbook entry model."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from guestbook.models.base import Base


class Entry(Base):
    """A visitor submission. Pending until approved when moderation is on."""

    __tablename__ = "entries"
    # AUTOINCREMENT keeps ids monotonic: deleted ids are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    site: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.current_timestamp(), index=True
    )  # UTC, assigned by the store
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
