"""Automation context - the contact, deal and workflow an action runs against."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..models.automation import AutomationWorkflow
from ..models.contact import Contact
from ..models.deal import Deal


def latest_deal(contact: Contact) -> Deal | None:
    """The contact's most recently created deal."""
    if not contact.deals:
        return None
    return max(contact.deals, key=lambda d: d.created_at)


@dataclass
class AutomationContext:
    event_name: str
    contact: Contact
    deal: Deal | None
    workflow: AutomationWorkflow | None = None

    @classmethod
    def for_contact(cls, event_name: str, contact: Contact) -> "AutomationContext":
        return cls(event_name=event_name, contact=contact, deal=latest_deal(contact))

    def facts(self) -> dict[str, Any]:
        """Values conditions are evaluated against. No deal means value 0 and no stage."""
        if self.deal is None:
            return {"deal_value": 0.0, "deal_stage": None}
        return {
            "deal_value": self.deal.value or 0.0,
            "deal_stage": self.deal.stage.name if self.deal.stage else None,
        }
