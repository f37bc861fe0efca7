"""Kixie call and SMS event handlers.

Kixie events never create contacts; they attach an activity to whichever
contact matches by email or phone, or to none.
"""

from __future__ import annotations

import logging

from ..models.activity import kixie_activity_type
from ..services import activity_svc, contact_svc
from .dispatcher import EventContext, EventDispatcher, HandlerResult
from .payload import extract_contact

logger = logging.getLogger(__name__)

SOURCE = "Kixie"

CALL_EVENTS = ("call_started", "call_ended", "missed_call")
SMS_EVENTS = ("sms_sent", "sms_delivered", "sms_failed", "sms_received")

kixie_call_dispatcher = EventDispatcher("kixie_call")
kixie_sms_dispatcher = EventDispatcher("kixie_sms")

CALL_NOTES = {
    "call_started": "Call started with {who}",
    "call_ended": "Call ended with {who}",
    "missed_call": "Missed call from {who}",
}
SMS_NOTES = {
    "sms_sent": "SMS sent to {who}",
    "sms_delivered": "SMS delivered to {who}",
    "sms_failed": "SMS to {who} failed",
    "sms_received": "SMS received from {who}",
}

CALL_META_KEYS = ("call_id", "callId", "duration", "direction", "outcome", "recording_url", "recordingUrl", "agent")
SMS_META_KEYS = ("message_id", "messageId", "message", "body", "direction", "status", "error", "agent")


def _metadata(fields: dict, keys: tuple[str, ...]) -> dict:
    return {key: fields[key] for key in keys if fields.get(key) not in (None, "")}


async def _record(ctx: EventContext, notes: dict[str, str], meta_keys: tuple[str, ...]) -> HandlerResult:
    contact_fields = extract_contact(ctx.fields)
    contact = await contact_svc.find_contact(
        ctx.db, email=contact_fields.email, phone=contact_fields.phone
    )
    who = contact.full_name if contact else (contact_fields.phone or contact_fields.email or "unknown number")
    if contact is None:
        logger.info("Kixie %s for %s matched no contact", ctx.event, who)

    data = {"source": SOURCE, "event": ctx.event, **_metadata(ctx.fields, meta_keys)}
    if contact is None and contact_fields.phone:
        data["phone"] = contact_fields.phone

    activity = await activity_svc.log_activity(
        ctx.db,
        contact.user_id if contact else ctx.owner.id,
        kixie_activity_type(ctx.event),
        notes[ctx.event].format(who=who),
        contact_id=contact.id if contact else None,
        data=data,
    )
    result = HandlerResult(contact_id=contact.id if contact else None, activity_ids=[activity.id])
    result.fire(ctx.event)
    return result


@kixie_call_dispatcher.on(*CALL_EVENTS)
async def handle_call_event(ctx: EventContext) -> HandlerResult:
    return await _record(ctx, CALL_NOTES, CALL_META_KEYS)


@kixie_sms_dispatcher.on(*SMS_EVENTS)
async def handle_sms_event(ctx: EventContext) -> HandlerResult:
    return await _record(ctx, SMS_NOTES, SMS_META_KEYS)
