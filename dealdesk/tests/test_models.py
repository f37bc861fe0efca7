"""Tests for DealDesk model constraints and helpers."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.models import AutomationWorkflow, Contact, WebhookLog
from dealdesk.models.activity import kixie_activity_type


def test_contact_full_name_falls_back_to_email():
    assert Contact(email="a@x.com", first_name="Ada", last_name="Lovelace").full_name == "Ada Lovelace"
    assert Contact(email="a@x.com", first_name="Ada").full_name == "Ada"
    assert Contact(email="a@x.com").full_name == "a@x.com"


def test_workflow_listens_to():
    workflow = AutomationWorkflow(name="wf", trigger_events=["deal_created", "appointment_booked"])
    assert workflow.listens_to("deal_created")
    assert not workflow.listens_to("call_ended")
    assert not AutomationWorkflow(name="empty", trigger_events=None).listens_to("deal_created")


def test_webhook_log_failed():
    assert WebhookLog(status_code=500).failed
    assert not WebhookLog(status_code=200).failed
    assert not WebhookLog(status_code=None).failed


def test_kixie_activity_type():
    assert kixie_activity_type("call_started") == "KIXIE_CALL_STARTED"


@pytest.mark.asyncio
async def test_contact_email_is_unique(db: AsyncSession, user):
    db.add(Contact(user_id=user.id, email="dup@x.com"))
    await db.commit()

    db.add(Contact(user_id=user.id, email="dup@x.com"))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


@pytest.mark.asyncio
async def test_webhook_log_delivery_is_unique_per_source(db: AsyncSession):
    db.add(WebhookLog(source="iclosed", endpoint="/h", delivery_id="id:E1"))
    db.add(WebhookLog(source="kixie", endpoint="/h", delivery_id="id:E1"))
    await db.commit()

    db.add(WebhookLog(source="iclosed", endpoint="/h", delivery_id="id:E1"))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()
