"""User service - registration, lookup and credential checks."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from ..security.passwords import hash_password


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    role: str = "user",
) -> User:
    user = User(
        email=_normalize_email(email),
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    stmt = select(User).where(User.email == _normalize_email(email))
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_earliest_user(db: AsyncSession) -> User | None:
    """Return the first-registered user, or None when there are no users."""
    stmt = select(User).order_by(User.created_at.asc(), User.email.asc()).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none()
