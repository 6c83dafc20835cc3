"""Entry storage: submission, moderation, public listing and export."""
from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy import delete, select, update

from guestbook.models import Entry
from guestbook.models.base import async_session_factory
from guestbook.services.validation import ValidEntry

PUBLIC_PAGE_SIZE = 20
ADMIN_PAGE_SIZE = 100

EXPORT_FORMATS = ("json", "csv")
CSV_HEADER = ["Name", "Message", "Website", "Date"]


class EntryPage(NamedTuple):
    entries: list[Entry]
    next_cursor: Optional[int]  # None once the end of the list is reached


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Stored timestamps are naive UTC; render as YYYY-MM-DDTHH:MM:SSZ."""
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def public_entry_dict(entry: Entry) -> dict:
    """Public view of an entry. Email is never included."""
    return {
        "id": entry.id,
        "name": entry.name,
        "message": entry.message,
        "site": entry.site,
        "created_at": format_timestamp(entry.created_at),
    }


async def insert_entry(entry: ValidEntry) -> int:
    """Store a validated entry and return its new id."""
    async with async_session_factory() as session:
        row = Entry(
            name=entry.name,
            message=entry.message,
            site=entry.site,
            email=entry.email,
            approved=entry.approved,
        )
        session.add(row)
        await session.commit()
        return row.id


async def list_public(cursor: Optional[int] = None, limit: int = PUBLIC_PAGE_SIZE) -> EntryPage:
    """Approved entries, newest id first, keyset-paginated by ``id < cursor``."""
    query = select(Entry).where(Entry.approved.is_(True))
    if cursor is not None:
        query = query.where(Entry.id < cursor)
    query = query.order_by(Entry.id.desc()).limit(limit)
    async with async_session_factory() as session:
        result = await session.execute(query)
        entries = list(result.scalars().all())
    next_cursor = entries[-1].id if entries and len(entries) == limit else None
    return EntryPage(entries, next_cursor)


async def list_all(limit: int = ADMIN_PAGE_SIZE) -> list[Entry]:
    """All entries (pending and approved), newest first. Admin view."""
    async with async_session_factory() as session:
        result = await session.execute(
            select(Entry).order_by(Entry.created_at.desc(), Entry.id.desc()).limit(limit)
        )
        return list(result.scalars().all())


async def approve_entry(entry_id: int) -> None:
    """Mark an entry approved. No-op for unknown or already approved ids."""
    async with async_session_factory() as session:
        await session.execute(
            update(Entry).where(Entry.id == entry_id, Entry.approved.is_(False)).values(approved=True)
        )
        await session.commit()


async def delete_entry(entry_id: int) -> None:
    """Remove an entry. No-op for unknown ids."""
    async with async_session_factory() as session:
        await session.execute(delete(Entry).where(Entry.id == entry_id))
        await session.commit()


async def _approved_for_export() -> list[Entry]:
    async with async_session_factory() as session:
        result = await session.execute(
            select(Entry)
            .where(Entry.approved.is_(True))
            .order_by(Entry.created_at.desc(), Entry.id.desc())
        )
        return list(result.scalars().all())


async def export_public(fmt: str) -> bytes:
    """Approved entries as JSON or CSV, without email addresses."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    rows = [
        {
            "name": e.name,
            "message": e.message,
            "site": e.site,
            "created_at": format_timestamp(e.created_at),
        }
        for e in await _approved_for_export()
    ]
    if fmt == "json":
        return json.dumps(rows, indent=2, ensure_ascii=False).encode("utf-8")

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buf.write(",".join(CSV_HEADER) + "\n")
    for row in rows:
        writer.writerow([row["name"], row["message"], row["site"] or "", row["created_at"] or ""])
    return buf.getvalue().encode("utf-8")
