"""Kixie calling/SMS API client and per-user credential storage.

Credentials live in an Integration row (provider ``kixie``) with the business
id and API key encrypted. Every Kixie operation is a POST of an ``event_name``
payload to a single event endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.integration import Integration
from ..security.crypto import DecryptionError, decrypt_secret, encrypt_secret

logger = logging.getLogger(__name__)

PROVIDER = "kixie"


class KixieError(Exception):
    """Base exception for Kixie API errors."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class KixieNotConfigured(KixieError):
    """No active Kixie integration, or it lacks credentials."""


class KixieCredentialsError(KixieError):
    """Stored credentials could not be decrypted."""


class KixieClient:
    """Async Kixie event API client.

    Usage:
        async with KixieClient(business_id, api_key) as kixie:
            await kixie.start_call("+15551234567")

    Transport errors and 5xx responses are retried with exponential backoff;
    4xx responses raise immediately.
    """

    def __init__(
        self,
        business_id: str,
        api_key: str,
        *,
        api_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        base_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.business_id = business_id
        self.api_key = api_key
        self.api_url = api_url or settings.kixie_api_url
        self.max_retries = settings.kixie_max_retries if max_retries is None else max_retries
        self.base_delay = settings.kixie_retry_base_delay if base_delay is None else base_delay
        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=timeout or settings.kixie_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        await self._client.aclose()

    def _delay(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)

    async def _post_event(self, event_name: str, **fields: Any) -> dict:
        payload = {
            "event_name": event_name,
            "business_id": self.business_id,
            "api_key": self.api_key,
            **fields,
        }
        for attempt in range(self.max_retries + 1):
            try:
                response = await self._client.post(self.api_url, json=payload)
            except httpx.TransportError as exc:
                if attempt == self.max_retries:
                    raise KixieError(f"Kixie request failed: {type(exc).__name__}") from exc
                delay = self._delay(attempt)
                logger.warning(
                    "Retry %d/%d for Kixie %s (connection error: %s), waiting %.1fs",
                    attempt + 1, self.max_retries, event_name, type(exc).__name__, delay,
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 500 and attempt < self.max_retries:
                delay = self._delay(attempt)
                logger.warning(
                    "Retry %d/%d for Kixie %s (HTTP %d), waiting %.1fs",
                    attempt + 1, self.max_retries, event_name, response.status_code, delay,
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise KixieError(
                    f"Kixie API error: {response.status_code}",
                    response.status_code,
                    response.text,
                )
            return response.json() if response.content else {}

        raise KixieError(f"Kixie {event_name} exhausted retries")  # pragma: no cover

    async def start_call(self, phone: str) -> dict:
        return await self._post_event("start_call", phone_number=phone)

    async def send_sms(self, phone: str, message: str) -> dict:
        return await self._post_event("send_sms", phone_number=phone, message=message)

    async def get_call_logs(self, **filters: Any) -> dict:
        return await self._post_event("get_call_logs", **filters)


# ── Credentials ────────────────────────────────────────────────────────────

async def get_integration(db: AsyncSession, user_id: uuid.UUID) -> Integration | None:
    stmt = select(Integration).where(
        Integration.user_id == user_id, Integration.provider == PROVIDER
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def save_credentials(
    db: AsyncSession, user_id: uuid.UUID, business_id: str, api_key: str
) -> Integration:
    """Encrypt and store (or replace) the user's Kixie credentials."""
    if not business_id or not api_key:
        raise ValueError("business_id and api_key are required")
    credentials = {
        "encrypted_business_id": encrypt_secret(business_id),
        "encrypted_api_key": encrypt_secret(api_key),
    }
    integration = await get_integration(db, user_id)
    if integration is None:
        integration = Integration(user_id=user_id, provider=PROVIDER, credentials=credentials)
        db.add(integration)
    else:
        integration.credentials = credentials
        integration.is_active = True
    await db.commit()
    await db.refresh(integration)
    return integration


async def load_credentials(db: AsyncSession, user_id: uuid.UUID) -> tuple[str, str]:
    """Return decrypted (business_id, api_key) for the user's active integration."""
    integration = await get_integration(db, user_id)
    if integration is None or not integration.is_active:
        raise KixieNotConfigured("Kixie integration not found")

    credentials = integration.credentials or {}
    encrypted_business_id = credentials.get("encrypted_business_id")
    encrypted_api_key = credentials.get("encrypted_api_key")
    if not encrypted_business_id or not encrypted_api_key:
        raise KixieNotConfigured("Incomplete Kixie credentials found for this user")

    try:
        return decrypt_secret(encrypted_business_id), decrypt_secret(encrypted_api_key)
    except DecryptionError as exc:
        logger.error("Could not decrypt Kixie credentials for user %s", user_id)
        raise KixieCredentialsError("Failed to process credentials") from exc


async def client_for_user(db: AsyncSession, user_id: uuid.UUID, **client_kwargs: Any) -> KixieClient:
    business_id, api_key = await load_credentials(db, user_id)
    return KixieClient(business_id, api_key, **client_kwargs)


# ── Operations ─────────────────────────────────────────────────────────────

async def make_call(db: AsyncSession, user_id: uuid.UUID, phone: str, **client_kwargs: Any) -> dict:
    async with await client_for_user(db, user_id, **client_kwargs) as kixie:
        return await kixie.start_call(phone)


async def send_sms(
    db: AsyncSession, user_id: uuid.UUID, phone: str, message: str, **client_kwargs: Any
) -> dict:
    async with await client_for_user(db, user_id, **client_kwargs) as kixie:
        return await kixie.send_sms(phone, message)


async def get_call_logs(
    db: AsyncSession, user_id: uuid.UUID, filters: dict | None = None, **client_kwargs: Any
) -> dict:
    async with await client_for_user(db, user_id, **client_kwargs) as kixie:
        return await kixie.get_call_logs(**(filters or {}))
