"""Tests for delivery keys and the webhook log claim."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.models.webhook_log import WebhookLog
from dealdesk.services import idempotency_svc


def test_delivery_key_prefers_event_id():
    key = idempotency_svc.delivery_key({"event": "x", "event_id": "E1"})
    assert key.delivery_id == "id:E1"
    assert key.display == "E1"

    camel = idempotency_svc.delivery_key({"event": "x", "eventId": 77})
    assert camel.delivery_id == "id:77"


def test_delivery_key_reads_wrapped_event_id():
    body = {"data": {"event": "x", "event_id": "E2"}}
    key = idempotency_svc.delivery_key(body, {"event": "x", "event_id": "E2"})
    assert key.delivery_id == "id:E2"


def test_delivery_key_hash_ignores_key_order():
    a = idempotency_svc.delivery_key({"event": "x", "contact": {"email": "a@x.com", "name": "A"}})
    b = idempotency_svc.delivery_key({"contact": {"name": "A", "email": "a@x.com"}, "event": "x"})
    c = idempotency_svc.delivery_key({"event": "x", "contact": {"email": "b@x.com", "name": "A"}})

    assert a.delivery_id.startswith("sha256:")
    assert a == b
    assert a != c
    assert a.event_id is None
    assert a.display == a.delivery_id


def test_delivery_key_hashes_oversized_event_id():
    key = idempotency_svc.delivery_key({"event": "x", "event_id": "E" * 500})
    assert key.delivery_id.startswith("id-sha256:")
    assert len(key.delivery_id) <= idempotency_svc.MAX_DELIVERY_ID_LENGTH
    assert key.event_id == "E" * 500


def test_blank_event_id_falls_back_to_hash():
    key = idempotency_svc.delivery_key({"event": "x", "event_id": "   "})
    assert key.delivery_id.startswith("sha256:")


@pytest.mark.asyncio
async def test_claim_is_exclusive(db: AsyncSession):
    key = idempotency_svc.delivery_key({"event": "x", "event_id": "E1"})

    first = await idempotency_svc.claim(
        db, "iclosed", key, endpoint="/hook", event_type="x", payload={"event": "x"}
    )
    second = await idempotency_svc.claim(
        db, "iclosed", key, endpoint="/hook", event_type="x", payload={"event": "x"}
    )
    other_source = await idempotency_svc.claim(
        db, "kixie", key, endpoint="/hook", event_type="x", payload={"event": "x"}
    )

    assert first is not None
    assert second is None
    assert other_source is not None
    assert await idempotency_svc.already_processed(db, "iclosed", key) is not None
    count = (await db.execute(select(func.count()).select_from(WebhookLog))).scalar()
    assert count == 2


@pytest.mark.asyncio
async def test_finalize_and_mark_failed(db: AsyncSession):
    ok_key = idempotency_svc.delivery_key({"event": "x", "event_id": "ok"})
    bad_key = idempotency_svc.delivery_key({"event": "x", "event_id": "bad"})

    ok = await idempotency_svc.claim(db, "iclosed", ok_key, endpoint="/h", event_type="x", payload={})
    idempotency_svc.finalize(ok)
    await db.commit()

    bad = await idempotency_svc.claim(db, "iclosed", bad_key, endpoint="/h", event_type="x", payload={})
    await idempotency_svc.mark_failed(db, bad.id, "DealNotFound: Deal 123 not found")

    failed = await idempotency_svc.list_failed(db)
    assert [log.delivery_id for log in failed] == ["id:bad"]
    assert failed[0].status_code == 500
    assert failed[0].failed is True
    assert "DealNotFound" in failed[0].error
    assert ok.status_code == 200
    assert ok.processed_at is not None
