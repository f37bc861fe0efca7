"""End-to-end tests for the Kixie call and SMS webhooks."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from dealdesk.config import settings
from dealdesk.models.activity import Activity
from dealdesk.models.contact import Contact
from dealdesk.models.webhook_log import WebhookLog
from dealdesk.services import contact_svc, user_svc

CALL_URL = "/webhooks/kixie/call"
SMS_URL = "/webhooks/kixie/sms"


async def _rows(session_factory, model, *where):
    async with session_factory() as s:
        return list((await s.execute(select(model).where(*where))).scalars().all())


@pytest.mark.asyncio
async def test_call_ended_logs_activity_for_known_contact(client: AsyncClient, db, session_factory, user):
    other = await user_svc.create_user(db, "rep@example.com", "rep-pass")
    contact = await contact_svc.resolve_contact(db, other.id, "ada@x.com", name="Ada Lovelace", phone="+15550001111")
    await db.commit()

    resp = await client.post(CALL_URL, json={
        "event": "call_ended",
        "call_id": "K-1",
        "customer_number": "+15550001111",
        "duration": 95,
        "direction": "outbound",
    })

    assert resp.status_code == 200
    assert resp.json()["status"] == "success"
    assert resp.json()["eventId"].startswith("sha256:")
    [activity] = await _rows(session_factory, Activity)
    assert activity.type == "KIXIE_CALL_ENDED"
    assert activity.contact_id == contact.id
    # Logged under the contact's owner, not the fallback user.
    assert activity.user_id == other.id
    assert activity.note == "Call ended with Ada Lovelace"
    assert activity.data["duration"] == 95
    assert activity.data["call_id"] == "K-1"


@pytest.mark.asyncio
async def test_sms_for_unknown_number_never_creates_contact(client: AsyncClient, session_factory, user):
    resp = await client.post(SMS_URL, json={
        "event": "sms_received",
        "event_id": "sms-1",
        "phone": "+19998887777",
        "message": "hi there",
    })

    assert resp.json()["status"] == "success"
    assert await _rows(session_factory, Contact) == []
    [activity] = await _rows(session_factory, Activity)
    assert activity.type == "KIXIE_SMS_RECEIVED"
    assert activity.contact_id is None
    assert activity.user_id == user.id
    assert activity.data["phone"] == "+19998887777"
    assert activity.note == "SMS received from +19998887777"


@pytest.mark.asyncio
async def test_sms_event_on_call_endpoint_is_not_processed(client: AsyncClient, session_factory, user):
    resp = await client.post(CALL_URL, json={"event": "sms_sent", "phone": "+1555"})

    assert resp.status_code == 200
    assert resp.json()["message"] == "Event type sms_sent received but not processed"
    assert await _rows(session_factory, Activity) == []


@pytest.mark.asyncio
async def test_kixie_duplicate_and_sources_are_separate(client: AsyncClient, session_factory, user):
    body = {"event": "missed_call", "event_id": "shared-1", "phone": "+1555"}
    first = await client.post(CALL_URL, json=body)
    second = await client.post(CALL_URL, json=body)
    iclosed = await client.post(
        "/api/v1/webhooks/iclosed",
        json={"event": "contact_created", "event_id": "shared-1", "email": "x@x.com"},
    )

    assert "already processed" in second.json()["message"]
    assert iclosed.json()["message"] == "Webhook processed successfully"
    assert first.json()["message"] == "Webhook processed successfully"
    logs = await _rows(session_factory, WebhookLog)
    assert sorted(log.source for log in logs) == ["iclosed", "kixie"]


@pytest.mark.asyncio
async def test_kixie_secret(client: AsyncClient, session_factory, user, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "kixie_webhook_secret", "kx-secret")

    denied = await client.post(SMS_URL, json={"event": "sms_sent", "phone": "+1555"})
    allowed = await client.post(
        SMS_URL,
        json={"event": "sms_sent", "phone": "+1555"},
        headers={"X-Webhook-Secret": "kx-secret"},
    )

    assert denied.status_code == 401
    assert allowed.status_code == 200
    assert len(await _rows(session_factory, WebhookLog)) == 1
