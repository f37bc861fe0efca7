"""Contact service - lookup and find-or-create by email."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.contact import Contact
from ..models.deal import Deal
from ..models.pipeline import Pipeline

logger = logging.getLogger(__name__)


def normalize_email(raw) -> str | None:
    """Return a trimmed, lowercased email, or None when it is not usable.

    Only presence and an "@" are checked.
    """
    if not isinstance(raw, str):
        return None
    email = raw.strip().lower()
    if "@" not in email:
        return None
    return email


def split_name(name) -> tuple[str | None, str | None]:
    """Split a free-text name into (first, last). One token gives a null last name."""
    if not isinstance(name, str):
        return None, None
    parts = name.split()
    if not parts:
        return None, None
    return parts[0], " ".join(parts[1:]) or None


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


async def get_contact(db: AsyncSession, contact_id: uuid.UUID) -> Contact | None:
    """Get a contact with deals (and their stage/pipeline) loaded."""
    stmt = (
        select(Contact)
        .where(Contact.id == contact_id)
        .options(
            selectinload(Contact.deals).selectinload(Deal.stage),
            selectinload(Contact.deals).selectinload(Deal.pipeline).selectinload(Pipeline.stages),
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_contact_by_email(db: AsyncSession, email: str) -> Contact | None:
    normalized = normalize_email(email)
    if normalized is None:
        return None
    stmt = select(Contact).where(Contact.email == normalized)
    return (await db.execute(stmt)).scalar_one_or_none()


async def find_contact(
    db: AsyncSession, *, email: str | None = None, phone: str | None = None
) -> Contact | None:
    """Look up a contact by email, then by phone. Never creates."""
    if email:
        contact = await get_contact_by_email(db, email)
        if contact is not None:
            return contact
    phone = _clean(phone)
    if phone:
        stmt = (
            select(Contact)
            .where(Contact.phone == phone)
            .order_by(Contact.created_at.asc())
            .limit(1)
        )
        return (await db.execute(stmt)).scalar_one_or_none()
    return None


def _apply_incoming(
    contact: Contact,
    user_id: uuid.UUID,
    first_name: str | None,
    last_name: str | None,
    phone: str | None,
    company_name: str | None,
) -> None:
    # Missing incoming values never erase what is stored.
    if first_name:
        contact.first_name = first_name
    if last_name:
        contact.last_name = last_name
    if phone:
        contact.phone = phone
    if company_name:
        contact.company_name = company_name
    contact.user_id = user_id


async def resolve_contact(
    db: AsyncSession,
    user_id: uuid.UUID,
    email,
    name=None,
    phone=None,
    company_name=None,
) -> Contact | None:
    """Find-or-create a contact keyed on email and assign it to ``user_id``.

    Emails are unique across all users, so an existing contact is re-owned by
    whoever the delivery resolved to. The caller owns the transaction; this
    only flushes.
    """
    email = normalize_email(email)
    if email is None:
        return None

    first_name, last_name = split_name(name)
    phone = _clean(phone)
    company_name = _clean(company_name)

    contact = await get_contact_by_email(db, email)
    if contact is not None:
        _apply_incoming(contact, user_id, first_name, last_name, phone, company_name)
        await db.flush()
        return contact

    contact = Contact(
        user_id=user_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        company_name=company_name,
    )
    try:
        async with db.begin_nested():
            db.add(contact)
    except IntegrityError:
        # A concurrent delivery created it first.
        logger.info("Contact %s created concurrently; applying as update", email)
        contact = await get_contact_by_email(db, email)
        if contact is None:
            raise
        _apply_incoming(contact, user_id, first_name, last_name, phone, company_name)
        await db.flush()
    return contact
