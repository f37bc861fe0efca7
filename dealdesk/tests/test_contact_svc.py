"""Tests for contact resolution."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.models.contact import Contact
from dealdesk.services import contact_svc, user_svc


def test_normalize_email():
    assert contact_svc.normalize_email("  Ada@Example.COM ") == "ada@example.com"
    assert contact_svc.normalize_email("not-an-email") is None
    assert contact_svc.normalize_email("") is None
    assert contact_svc.normalize_email(None) is None
    assert contact_svc.normalize_email(42) is None


def test_split_name():
    assert contact_svc.split_name("Ada Lovelace") == ("Ada", "Lovelace")
    assert contact_svc.split_name("  Ada   King  Lovelace ") == ("Ada", "King Lovelace")
    assert contact_svc.split_name("Cher") == ("Cher", None)
    assert contact_svc.split_name("   ") == (None, None)
    assert contact_svc.split_name(None) == (None, None)


@pytest.mark.asyncio
async def test_resolve_contact_creates(db: AsyncSession, user):
    contact = await contact_svc.resolve_contact(
        db, user.id, "A@X.com", name="Ada Lovelace", phone="+15550001111"
    )
    await db.commit()

    assert contact.email == "a@x.com"
    assert contact.first_name == "Ada"
    assert contact.last_name == "Lovelace"
    assert contact.phone == "+15550001111"
    assert contact.user_id == user.id


@pytest.mark.asyncio
async def test_resolve_contact_without_email_returns_none(db: AsyncSession, user):
    assert await contact_svc.resolve_contact(db, user.id, None, name="Nobody") is None
    assert await contact_svc.resolve_contact(db, user.id, "no-at-sign", name="Nobody") is None
    count = (await db.execute(select(func.count()).select_from(Contact))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_resolve_contact_keeps_fields_missing_from_update(db: AsyncSession, user):
    await contact_svc.resolve_contact(db, user.id, "a@x.com", name="Ada Lovelace", phone="P1")
    await db.commit()

    contact = await contact_svc.resolve_contact(db, user.id, "a@x.com", name=None, phone=None)
    await db.commit()

    assert contact.phone == "P1"
    assert contact.first_name == "Ada"
    assert contact.last_name == "Lovelace"


@pytest.mark.asyncio
async def test_resolve_contact_updates_present_fields(db: AsyncSession, user):
    await contact_svc.resolve_contact(db, user.id, "a@x.com", name="Ada", phone="P1")
    await db.commit()

    contact = await contact_svc.resolve_contact(
        db, user.id, "A@x.com", name="Ada Byron", phone="P2", company_name="Analytical Engines"
    )
    await db.commit()

    assert contact.first_name == "Ada"
    assert contact.last_name == "Byron"
    assert contact.phone == "P2"
    assert contact.company_name == "Analytical Engines"
    count = (await db.execute(select(func.count()).select_from(Contact))).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_resolve_contact_reassigns_owner(db: AsyncSession, user):
    other = await user_svc.create_user(db, "second@example.com", "another-pass")
    await contact_svc.resolve_contact(db, user.id, "a@x.com", name="Ada")
    await db.commit()

    contact = await contact_svc.resolve_contact(db, other.id, "a@x.com")
    await db.commit()

    assert contact.user_id == other.id


@pytest.mark.asyncio
async def test_find_contact_by_phone_never_creates(db: AsyncSession, user):
    await contact_svc.resolve_contact(db, user.id, "a@x.com", phone="+15550001111")
    await db.commit()

    found = await contact_svc.find_contact(db, phone="+15550001111")
    assert found is not None
    assert found.email == "a@x.com"

    assert await contact_svc.find_contact(db, email="missing@x.com") is None
    assert await contact_svc.find_contact(db, phone="+19999999999") is None
    count = (await db.execute(select(func.count()).select_from(Contact))).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_concurrent_create_is_applied_as_update(
    db: AsyncSession, session_factory, user, monkeypatch: pytest.MonkeyPatch
):
    async with session_factory() as other:
        other.add(Contact(user_id=user.id, email="race@x.com", first_name="First", phone="111"))
        await other.commit()
    await db.commit()

    real_lookup = contact_svc.get_contact_by_email
    missed = []

    async def lookup_misses_once(session, email):
        if not missed:
            missed.append(email)
            return None
        return await real_lookup(session, email)

    monkeypatch.setattr(contact_svc, "get_contact_by_email", lookup_misses_once)

    contact = await contact_svc.resolve_contact(db, user.id, "Race@x.com", name="Second Person")
    await db.commit()

    assert missed == ["race@x.com"]
    rows = (await db.execute(select(Contact).where(Contact.email == "race@x.com"))).scalars().all()
    assert [row.id for row in rows] == [contact.id]
    assert (contact.first_name, contact.last_name, contact.phone) == ("Second", "Person", "111")
