"""Task service."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.task import Task


def _coerce_date(value: object) -> date | None:
    """Coerce common date representations into a Python `date`.

    asyncpg needs a real date object for Date columns, even where SQLite
    would accept a string.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            return None

    return None


async def create_task(db: AsyncSession, user_id: uuid.UUID, **kwargs) -> Task:
    """Create a task. Flushes only; automation commits with its activity row."""
    if "due_date" in kwargs:
        kwargs["due_date"] = _coerce_date(kwargs.get("due_date"))
    task = Task(user_id=user_id, **kwargs)
    db.add(task)
    await db.flush()
    return task
