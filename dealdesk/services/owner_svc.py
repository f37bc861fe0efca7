"""Owner resolution policies for inbound webhook deliveries.

A delivery may carry ``userId``. What happens when it does not is a
deployment decision, so the policy is injected rather than hardcoded:

- ``FirstUserOwnerPolicy``: explicit id, else the earliest-registered user.
  This is a single-tenant fallback; every anonymous delivery lands on one
  account.
- ``ExplicitOwnerPolicy``: the payload must name its owner.

Storage errors propagate to the caller (SQLAlchemyError); "no owner" is a
plain ``None``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.user import User
from . import user_svc

logger = logging.getLogger(__name__)


def _parse_user_id(raw: Any) -> uuid.UUID | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        logger.warning("Ignoring malformed userId %r in webhook payload", raw)
        return None


class OwnerPolicy:
    name = "base"

    async def resolve(self, db: AsyncSession, payload: dict) -> User | None:
        raise NotImplementedError

    async def _explicit(self, db: AsyncSession, payload: dict) -> User | None:
        user_id = _parse_user_id(payload.get("userId") or payload.get("user_id"))
        if user_id is None:
            return None
        return await user_svc.get_user(db, user_id)


class FirstUserOwnerPolicy(OwnerPolicy):
    name = "first_user"

    async def resolve(self, db: AsyncSession, payload: dict) -> User | None:
        user = await self._explicit(db, payload)
        if user is not None:
            return user
        return await user_svc.get_earliest_user(db)


class ExplicitOwnerPolicy(OwnerPolicy):
    name = "explicit"

    async def resolve(self, db: AsyncSession, payload: dict) -> User | None:
        return await self._explicit(db, payload)


OWNER_POLICIES: dict[str, type[OwnerPolicy]] = {
    FirstUserOwnerPolicy.name: FirstUserOwnerPolicy,
    ExplicitOwnerPolicy.name: ExplicitOwnerPolicy,
}


def owner_policy_from_settings() -> OwnerPolicy:
    policy_cls = OWNER_POLICIES.get(settings.owner_policy.strip().lower())
    if policy_cls is None:
        raise ValueError(
            f"Unknown owner policy {settings.owner_policy!r}; "
            f"expected one of {sorted(OWNER_POLICIES)}"
        )
    return policy_cls()
