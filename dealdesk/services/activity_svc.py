"""Activity service - append-only audit trail."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.activity import Activity


async def log_activity(
    db: AsyncSession,
    user_id: uuid.UUID,
    type: str,
    note: str | None = None,
    *,
    contact_id: uuid.UUID | None = None,
    deal_id: uuid.UUID | None = None,
    data: dict | None = None,
) -> Activity:
    """Append an activity. Flushes only; the caller owns the transaction."""
    activity = Activity(
        user_id=user_id,
        type=type,
        note=note,
        contact_id=contact_id,
        deal_id=deal_id,
        data=data,
    )
    db.add(activity)
    await db.flush()
    return activity
