"""Idempotency guard for inbound webhook deliveries.

Every delivery gets one key: the caller's event id when the payload carries
one, otherwise a SHA-256 of the canonical JSON payload (sorted keys, compact
separators). The WebhookLog unique constraint on (source, delivery_id) is
what actually deduplicates; ``already_processed`` is only a fast path.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.webhook_log import WebhookLog

logger = logging.getLogger(__name__)

MAX_DELIVERY_ID_LENGTH = 128


@dataclass(frozen=True)
class DeliveryKey:
    delivery_id: str
    event_id: str | None = None

    @property
    def display(self) -> str:
        """What is echoed back to the sender as ``eventId``."""
        return self.event_id or self.delivery_id


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def content_hash(payload: Any) -> str:
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def caller_event_id(payload: dict) -> str | None:
    for key in ("event_id", "eventId"):
        raw = payload.get(key)
        if raw is None or isinstance(raw, (dict, list, bool)):
            continue
        value = str(raw).strip()
        if value:
            return value
    return None


def delivery_key(payload: dict, unwrapped: dict | None = None) -> DeliveryKey:
    """Derive the dedup key for one delivery.

    ``unwrapped`` is the inner event object when the sender wrapped it in
    ``data``/``payload``; its event id counts too.
    """
    event_id = caller_event_id(payload)
    if event_id is None and unwrapped is not None and unwrapped is not payload:
        event_id = caller_event_id(unwrapped)

    if event_id is not None:
        delivery_id = f"id:{event_id}"
        if len(delivery_id) > MAX_DELIVERY_ID_LENGTH:
            delivery_id = f"id-sha256:{hashlib.sha256(event_id.encode('utf-8')).hexdigest()}"
        return DeliveryKey(delivery_id=delivery_id, event_id=event_id)

    return DeliveryKey(delivery_id=f"sha256:{content_hash(payload)}")


async def already_processed(db: AsyncSession, source: str, key: DeliveryKey) -> WebhookLog | None:
    stmt = select(WebhookLog).where(
        WebhookLog.source == source, WebhookLog.delivery_id == key.delivery_id
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def claim(
    db: AsyncSession,
    source: str,
    key: DeliveryKey,
    *,
    endpoint: str,
    event_type: str | None,
    payload: dict,
) -> WebhookLog | None:
    """Insert and commit the log row for ``key``. Returns None if another delivery holds it."""
    log = WebhookLog(
        source=source,
        endpoint=endpoint,
        delivery_id=key.delivery_id,
        event_id=key.event_id[:200] if key.event_id else None,
        event_type=event_type,
        payload=payload,
    )
    db.add(log)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Delivery %s/%s already claimed", source, key.delivery_id)
        return None
    return log


def finalize(log: WebhookLog, status_code: int = 200) -> None:
    """Mark ``log`` processed; committed together with the mutation it records."""
    log.status_code = status_code
    log.error = None
    log.processed_at = datetime.now(timezone.utc)


async def mark_failed(db: AsyncSession, log_id: uuid.UUID, error: str, status_code: int = 500) -> None:
    """Record a failed delivery after the mutation transaction was rolled back."""
    await db.execute(
        update(WebhookLog)
        .where(WebhookLog.id == log_id)
        .values(status_code=status_code, error=error[:4000], processed_at=datetime.now(timezone.utc))
    )
    await db.commit()


async def list_failed(db: AsyncSession, source: str | None = None, limit: int = 50) -> list[WebhookLog]:
    """Failed deliveries, newest first, for manual replay or inspection."""
    stmt = select(WebhookLog).where(WebhookLog.status_code >= 400)
    if source:
        stmt = stmt.where(WebhookLog.source == source)
    stmt = stmt.order_by(WebhookLog.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
