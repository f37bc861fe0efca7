"""Activity model - append-only audit trail."""

from __future__ import annotations

import uuid

from sqlalchemy import JSON, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, CreatedAtMixin, OwnerMixin

APPOINTMENT_BOOKED = "APPOINTMENT_BOOKED"
DEAL_STATUS_CHANGED = "DEAL_STATUS_CHANGED"
DEAL_CREATED = "DEAL_CREATED"
DEAL_UPDATED = "DEAL_UPDATED"
CONTACT_SYNCED = "CONTACT_SYNCED"
WORKFLOW_EXECUTED = "WORKFLOW_EXECUTED"
WORKFLOW_FAILED = "WORKFLOW_FAILED"


def kixie_activity_type(event: str) -> str:
    return f"KIXIE_{event.upper()}"


class Activity(UUIDMixin, CreatedAtMixin, OwnerMixin, Base):
    __tablename__ = "activity"

    type: Mapped[str] = mapped_column(String(50), index=True)
    note: Mapped[str | None] = mapped_column(Text, default=None)
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contact.id", ondelete="SET NULL"), default=None, index=True
    )
    deal_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("deal.id", ondelete="SET NULL"), default=None, index=True
    )
    data: Mapped[dict | None] = mapped_column(JSON, default=None)

    def __repr__(self) -> str:
        return f"<Activity {self.type}>"
