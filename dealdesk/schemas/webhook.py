"""Webhook response envelope."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class WebhookResponse(BaseModel):
    status: Literal["success", "error"]
    message: str
    eventId: str | None = None

    def body(self) -> dict:
        return self.model_dump(exclude_none=True)
