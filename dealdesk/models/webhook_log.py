"""WebhookLog model - idempotency claim and audit record per delivery."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin


class WebhookLog(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "webhook_log"
    __table_args__ = (
        UniqueConstraint("source", "delivery_id", name="uq_webhook_log_source_delivery"),
    )

    source: Mapped[str] = mapped_column(String(50), index=True)  # iclosed, kixie
    endpoint: Mapped[str] = mapped_column(String(200))
    delivery_id: Mapped[str] = mapped_column(String(128))
    event_id: Mapped[str | None] = mapped_column(String(200), default=None)
    event_type: Mapped[str | None] = mapped_column(String(100), default=None)
    payload: Mapped[dict | None] = mapped_column(JSON, default=None)
    status_code: Mapped[int | None] = mapped_column(Integer, default=None)  # None while processing
    error: Mapped[str | None] = mapped_column(Text, default=None)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    @property
    def failed(self) -> bool:
        return self.status_code is not None and self.status_code >= 400

    def __repr__(self) -> str:
        return f"<WebhookLog {self.source}:{self.delivery_id} status={self.status_code}>"
