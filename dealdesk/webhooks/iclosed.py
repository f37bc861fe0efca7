"""iClosed (and Zapier-relayed iClosed) event handlers."""

from __future__ import annotations

import logging

from ..errors import WebhookProcessingError
from ..models.activity import (
    APPOINTMENT_BOOKED,
    CONTACT_SYNCED,
    DEAL_CREATED,
    DEAL_STATUS_CHANGED,
    DEAL_UPDATED,
)
from ..models.contact import Contact
from ..services import activity_svc, contact_svc, pipeline_svc
from .dispatcher import EventContext, EventDispatcher, HandlerResult
from .payload import ContactFields, extract_contact, extract_deal

logger = logging.getLogger(__name__)

SOURCE = "iClosed"

iclosed_dispatcher = EventDispatcher("iclosed")


class DealReferenceMissing(WebhookProcessingError):
    """A status change arrived without a deal id or external reference."""


class DealNotFound(WebhookProcessingError):
    """A status change referenced a deal that does not exist."""


class BookingIncomplete(WebhookProcessingError):
    """A booking carried neither a usable contact email nor a deal title."""


async def _resolve(ctx: EventContext, contact: ContactFields) -> Contact | None:
    return await contact_svc.resolve_contact(
        ctx.db,
        ctx.owner.id,
        contact.email,
        name=contact.name,
        phone=contact.phone,
        company_name=contact.company,
    )


@iclosed_dispatcher.on("appointment_booked", "call_booked")
async def handle_booking(ctx: EventContext) -> HandlerResult:
    """Contact, then a deal in the first pipeline stage, then an APPOINTMENT_BOOKED activity."""
    deal_fields = extract_deal(ctx.fields)
    contact = await _resolve(ctx, deal_fields.contact)

    title = deal_fields.title
    if title is None and contact is not None:
        title = f"Appointment - {contact.full_name}"
    if title is None:
        raise BookingIncomplete("Booking payload has no contact email or deal title")

    pipeline = await pipeline_svc.resolve_default_pipeline(ctx.db, ctx.owner.id)
    stage = pipeline_svc.resolve_stage(pipeline, deal_fields.stage_id)
    upsert = await pipeline_svc.upsert_deal(
        ctx.db,
        user_id=ctx.owner.id,
        pipeline=pipeline,
        stage=stage,
        title=title,
        source=SOURCE,
        value=deal_fields.value,
        contact_id=contact.id if contact else None,
        external_ref=deal_fields.external_ref,
        extra={"event": ctx.event},
    )
    deal = upsert.deal

    activity = await activity_svc.log_activity(
        ctx.db,
        ctx.owner.id,
        APPOINTMENT_BOOKED,
        f"Appointment booked for {deal.title}",
        contact_id=contact.id if contact else None,
        deal_id=deal.id,
        data={
            "source": SOURCE,
            "deal_title": deal.title,
            "booking_details": ctx.fields.get("booking_details"),
            "appointment_time": ctx.fields.get("appointment_time"),
        },
    )

    result = HandlerResult(
        contact_id=contact.id if contact else None,
        deal_id=deal.id,
        activity_ids=[activity.id],
    )
    result.fire("appointment_booked")
    if upsert.created:
        result.fire("deal_created")
    return result


@iclosed_dispatcher.on("status_changed", "deal_status_changed", "stage_changed")
async def handle_status_change(ctx: EventContext) -> HandlerResult:
    """Move a known deal to the stage named by ``new_status``; no title fallback."""
    deal_fields = extract_deal(ctx.fields)
    if not deal_fields.deal_id and not deal_fields.external_ref:
        raise DealReferenceMissing("status change requires deal.id")

    deal = None
    if deal_fields.deal_id:
        deal = await pipeline_svc.get_deal(ctx.db, deal_fields.deal_id)
    if deal is None:
        ref = deal_fields.external_ref or deal_fields.deal_id
        deal = await pipeline_svc.get_deal_by_external_ref(ctx.db, ctx.owner.id, ref)
    if deal is None:
        raise DealNotFound(f"Deal {deal_fields.deal_id or deal_fields.external_ref} not found")

    previous_stage = deal.stage.name if deal.stage else None
    target = pipeline_svc.resolve_stage(deal.pipeline, deal_fields.stage_id, deal_fields.new_status)
    pipeline_svc.move_deal_stage(deal, target)
    if deal_fields.value is not None:
        deal.value = deal_fields.value

    activity = await activity_svc.log_activity(
        ctx.db,
        deal.user_id,
        DEAL_STATUS_CHANGED,
        f"Deal status changed to: {target.name}",
        contact_id=deal.contact_id,
        deal_id=deal.id,
        data={
            "source": SOURCE,
            "previous_stage": previous_stage,
            "new_stage": target.name,
            "new_status": deal_fields.new_status,
        },
    )

    result = HandlerResult(contact_id=deal.contact_id, deal_id=deal.id, activity_ids=[activity.id])
    result.fire("pipeline_stage_changed")
    return result


@iclosed_dispatcher.on(
    "lead_status_changed",
    "deal_created",
    "deal_updated",
    "contact_created",
    "contact_updated",
)
async def handle_sync(ctx: EventContext) -> HandlerResult:
    """Upsert the contact and, when a titled deal is present, the deal."""
    deal_fields = extract_deal(ctx.fields)
    main_contact = extract_contact({k: v for k, v in ctx.fields.items() if k != "deal"})
    contact = await _resolve(ctx, main_contact)

    if deal_fields.title is None:
        if contact is None:
            logger.info("iClosed %s carried no contact email or deal title; nothing to sync", ctx.event)
            return HandlerResult()
        activity = await activity_svc.log_activity(
            ctx.db,
            ctx.owner.id,
            CONTACT_SYNCED,
            f"Contact synced from {SOURCE} ({ctx.event})",
            contact_id=contact.id,
            data={"source": SOURCE, "event": ctx.event},
        )
        result = HandlerResult(contact_id=contact.id, activity_ids=[activity.id])
        result.fire(ctx.event)
        return result

    # The deal may name a different contact than the payload's main one.
    deal_contact = contact
    if deal_fields.contact.email and (
        contact is None or contact_svc.normalize_email(deal_fields.contact.email) != contact.email
    ):
        deal_contact = await _resolve(ctx, deal_fields.contact)

    pipeline = await pipeline_svc.resolve_default_pipeline(ctx.db, ctx.owner.id)
    status_hint = deal_fields.new_status if ctx.event == "lead_status_changed" else None
    stage = pipeline_svc.resolve_stage(pipeline, deal_fields.stage_id, status_hint)
    upsert = await pipeline_svc.upsert_deal(
        ctx.db,
        user_id=ctx.owner.id,
        pipeline=pipeline,
        stage=stage,
        title=deal_fields.title,
        source=SOURCE,
        value=deal_fields.value,
        contact_id=deal_contact.id if deal_contact else None,
        external_ref=deal_fields.external_ref,
        update_stage=bool(deal_fields.stage_id or status_hint),
    )
    deal = upsert.deal

    activity = await activity_svc.log_activity(
        ctx.db,
        ctx.owner.id,
        DEAL_CREATED if upsert.created else DEAL_UPDATED,
        f"Deal {'created' if upsert.created else 'updated'} from {SOURCE}: {deal.title}",
        contact_id=deal_contact.id if deal_contact else None,
        deal_id=deal.id,
        data={
            "source": SOURCE,
            "event": ctx.event,
            "stage": next((s.name for s in pipeline.stages if s.id == deal.stage_id), None),
        },
    )

    result = HandlerResult(
        contact_id=deal_contact.id if deal_contact else None,
        deal_id=deal.id,
        activity_ids=[activity.id],
    )
    if upsert.created:
        result.fire("deal_created")
    elif upsert.stage_changed:
        result.fire("pipeline_stage_changed")
    return result
