"""Inbound webhook routes for iClosed/Zapier and Kixie."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import get_db, get_session_factory
from ..security.webhooks import verify_shared_secret
from ..services import automation_svc
from ..webhooks.iclosed import iclosed_dispatcher
from ..webhooks.kixie import kixie_call_dispatcher, kixie_sms_dispatcher
from ..webhooks.processor import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

ICLOSED_PATH = "/api/v1/webhooks/iclosed"
KIXIE_CALL_PATH = "/webhooks/kixie/call"
KIXIE_SMS_PATH = "/webhooks/kixie/sms"

iclosed_processor = WebhookProcessor("iclosed", iclosed_dispatcher, ICLOSED_PATH)
kixie_call_processor = WebhookProcessor("kixie", kixie_call_dispatcher, KIXIE_CALL_PATH)
kixie_sms_processor = WebhookProcessor("kixie", kixie_sms_dispatcher, KIXIE_SMS_PATH)


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        logger.info("Webhook %s sent a body that is not JSON", request.url.path)
        return None


async def _handle(
    processor: WebhookProcessor,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
) -> JSONResponse:
    verify_shared_secret(request, processor.source)
    body = await _read_json(request)
    outcome = await processor.process(db, body)
    # Runs after the response, on its own session.
    for event_name, contact_id in outcome.automation:
        background_tasks.add_task(
            automation_svc.trigger_workflow, session_factory, event_name, contact_id
        )
    return JSONResponse(outcome.body, status_code=outcome.status_code)


@router.post(ICLOSED_PATH)
async def iclosed_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    return await _handle(iclosed_processor, request, background_tasks, db, session_factory)


@router.post(KIXIE_CALL_PATH)
async def kixie_call_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    return await _handle(kixie_call_processor, request, background_tasks, db, session_factory)


@router.post(KIXIE_SMS_PATH)
async def kixie_sms_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    return await _handle(kixie_sms_processor, request, background_tasks, db, session_factory)
