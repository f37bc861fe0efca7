"""Webhook core - the per-delivery pipeline shared by every inbound endpoint.

Order per delivery: shape check, idempotency pre-check, owner resolution,
dispatch lookup, idempotency claim, mutation, log finalize. Once the shape
check passes the sender always gets a 200, except when the duplicate check or
owner lookup fails in storage (500).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import WebhookProcessingError
from ..schemas.webhook import WebhookResponse
from ..security.webhooks import WebhookRejected
from ..services import idempotency_svc
from ..services.idempotency_svc import DeliveryKey
from ..services.owner_svc import OwnerPolicy, owner_policy_from_settings
from .dispatcher import EventContext, EventDispatcher, normalize_event
from .payload import event_name, unwrap

logger = logging.getLogger(__name__)

MISSING_EVENT_MESSAGE = "Bad Request: Missing event in payload"
OWNER_LOOKUP_FAILED_MESSAGE = "Internal Server Error: Failed to find user"
DUPLICATE_CHECK_FAILED_MESSAGE = "Internal Server Error: Failed to check delivery"
PROCESSED_MESSAGE = "Webhook processed successfully"
DUPLICATE_MESSAGE = "Duplicate event - already processed"
NO_OWNER_MESSAGE = "Webhook received but no owning user could be resolved; nothing was processed"


@dataclass
class WebhookOutcome:
    status_code: int
    body: dict
    automation: list[tuple[str, uuid.UUID]] = field(default_factory=list)


def _respond(status: str, message: str, key: DeliveryKey | None = None, status_code: int = 200) -> WebhookOutcome:
    response = WebhookResponse(status=status, message=message, eventId=key.display if key else None)
    return WebhookOutcome(status_code=status_code, body=response.body())


class WebhookProcessor:
    """Runs one delivery for ``source`` through ``dispatcher``.

    ``owner_policy`` defaults to the one named by ``DEALDESK_OWNER_POLICY``,
    read per delivery so settings changes apply without a restart.
    """

    def __init__(
        self,
        source: str,
        dispatcher: EventDispatcher,
        endpoint: str,
        owner_policy: OwnerPolicy | None = None,
    ):
        self.source = source
        self.dispatcher = dispatcher
        self.endpoint = endpoint
        self.owner_policy = owner_policy

    async def process(self, db: AsyncSession, body: Any) -> WebhookOutcome:
        fields = unwrap(body)
        raw_event = event_name(fields)
        if not raw_event:
            raise WebhookRejected(MISSING_EVENT_MESSAGE, status_code=400)
        event = normalize_event(raw_event)

        key = idempotency_svc.delivery_key(body, fields)
        try:
            duplicate = await idempotency_svc.already_processed(db, self.source, key)
        except SQLAlchemyError:
            logger.exception("Duplicate check failed for %s delivery %s", self.source, key.delivery_id)
            await db.rollback()
            raise WebhookRejected(DUPLICATE_CHECK_FAILED_MESSAGE, status_code=500)
        if duplicate:
            logger.info("Duplicate %s delivery %s", self.source, key.delivery_id)
            return _respond("success", DUPLICATE_MESSAGE, key)

        policy = self.owner_policy or owner_policy_from_settings()
        try:
            owner = await policy.resolve(db, fields)
        except SQLAlchemyError:
            logger.exception("Owner lookup failed for %s delivery %s", self.source, key.delivery_id)
            await db.rollback()
            raise WebhookRejected(OWNER_LOOKUP_FAILED_MESSAGE, status_code=500)
        if owner is None:
            logger.error(
                "No owner for %s delivery %s (policy %s); skipping",
                self.source, key.delivery_id, policy.name,
            )
            return _respond("error", NO_OWNER_MESSAGE, key)

        handler = self.dispatcher.resolve(event)
        if handler is None:
            logger.info("Unhandled %s event %r", self.source, raw_event)
            return _respond("success", f"Event type {raw_event} received but not processed", key)

        log = await idempotency_svc.claim(
            db, self.source, key, endpoint=self.endpoint, event_type=event, payload=body
        )
        if log is None:
            return _respond("success", DUPLICATE_MESSAGE, key)
        log_id = log.id

        try:
            result = await handler(EventContext(db=db, owner=owner, event=event, fields=fields, payload=body))
            idempotency_svc.finalize(log)
            await db.commit()
        except Exception as exc:
            if isinstance(exc, WebhookProcessingError):
                logger.warning("%s event %r (%s) rejected: %s", self.source, event, key.delivery_id, exc)
            else:
                logger.exception("Processing %s event %r (%s) failed", self.source, event, key.delivery_id)
            await db.rollback()
            error = f"{type(exc).__name__}: {exc}"
            try:
                await idempotency_svc.mark_failed(db, log_id, error)
            except SQLAlchemyError:
                logger.exception("Could not record failure for delivery %s", key.delivery_id)
                await db.rollback()
            return _respond("error", f"Webhook received but processing failed: {exc}", key)

        outcome = _respond("success", PROCESSED_MESSAGE, key)
        outcome.automation = list(dict.fromkeys(result.automation))
        return outcome
