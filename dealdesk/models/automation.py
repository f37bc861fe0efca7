"""Internal automation workflow model.

Config format:
    trigger_events: ["appointment_booked", "deal_created"]
    conditions: {"conditions": [{"field": "deal_value", "operator": "greater_than", "value": 500}]}
    actions: [{"type": "create_task", "title": "Follow up"}]
"""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, OwnerMixin


class AutomationWorkflow(UUIDMixin, TimestampMixin, OwnerMixin, Base):
    __tablename__ = "automation_workflow"

    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    trigger_events: Mapped[list] = mapped_column(JSON, default=list)
    conditions: Mapped[dict | None] = mapped_column(JSON, default=None)
    actions: Mapped[list] = mapped_column(JSON, default=list)

    def listens_to(self, event_name: str) -> bool:
        return event_name in (self.trigger_events or [])

    def __repr__(self) -> str:
        return f"<AutomationWorkflow {self.name!r}>"
