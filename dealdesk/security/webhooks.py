"""Shared-secret validation for inbound webhooks."""

from __future__ import annotations

import hmac
import logging

from fastapi import Request

from ..config import settings

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized: Invalid or missing secret token"


class WebhookRejected(Exception):
    """Raised before any state is touched; rendered as the webhook response envelope."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


def verify_shared_secret(request: Request, source: str) -> None:
    """Compare the configured secret header for ``source`` when a secret is set.

    With no secret configured the endpoint stays open, unless
    ``DEALDESK_SECURITY_FAIL_CLOSED`` is enabled.
    """
    expected = settings.webhook_secrets.get(source, "")
    if not expected:
        if settings.security_fail_closed:
            raise WebhookRejected(
                f"Service Unavailable: {source} webhook secret is not configured",
                status_code=503,
            )
        return

    provided = request.headers.get(settings.webhook_secret_header, "").strip()
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        client_host = request.client.host if request.client else "unknown"
        logger.warning("Rejected %s webhook from %s: bad secret", source, client_host)
        raise WebhookRejected(UNAUTHORIZED_MESSAGE, status_code=401)
