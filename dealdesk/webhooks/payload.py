"""Tolerant field extraction for third-party webhook bodies.

Senders (iClosed directly, or relayed through Zapier) disagree on casing,
nesting and wrappers, so every lookup tries a list of key variants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EVENT_KEYS = ("event", "event_type", "eventType", "type")
WRAPPER_KEYS = ("data", "payload", "body")

CONTACT_EMAIL_KEYS = ("email", "Email", "contact_email", "contactEmail")
CONTACT_NAME_KEYS = ("name", "Name", "full_name", "Full_Name", "fullName")
CONTACT_PHONE_KEYS = (
    "phone", "Phone", "phone_number", "Phone_Number", "phoneNumber",
    "customer_number", "customerNumber",
)
CONTACT_COMPANY_KEYS = ("company", "Company", "company_name", "companyName")

DEAL_TITLE_KEYS = ("title", "name", "Title", "Name")
DEAL_VALUE_KEYS = ("value", "amount", "Value", "Amount")
DEAL_STAGE_KEYS = ("stageId", "stage_id", "pipeline_stage_id", "StageId", "Pipeline_Stage_Id")
DEAL_STATUS_KEYS = ("new_status", "newStatus", "status", "stage")
DEAL_ID_KEYS = ("id", "deal_id", "dealId")
DEAL_EXTERNAL_KEYS = ("external_id", "externalId", "external_ref", "externalRef")


def first_value(mapping: Any, *keys: str) -> Any:
    """First present, non-blank value among ``keys``."""
    if not isinstance(mapping, dict):
        return None
    for key in keys:
        value = mapping.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        return value
    return None


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def coerce_amount(raw: Any) -> float | None:
    """Parse 1000, "1000", "$1,000.50"; anything else gives None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        cleaned = raw.strip().replace(",", "").lstrip("$").strip()
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def unwrap(body: Any) -> dict:
    """Flatten a ``data``/``payload``/``body`` wrapper into one dict.

    Top-level keys win over wrapped ones.
    """
    if not isinstance(body, dict):
        return {}
    wrapper_key = next((k for k in WRAPPER_KEYS if isinstance(body.get(k), dict)), None)
    merged = dict(body[wrapper_key]) if wrapper_key else {}
    merged.update({k: v for k, v in body.items() if k != wrapper_key})
    return merged


def event_name(fields: dict) -> str | None:
    value = first_value(fields, *EVENT_KEYS)
    return value if isinstance(value, str) else None


@dataclass
class ContactFields:
    email: str | None = None
    name: str | None = None
    phone: str | None = None
    company: str | None = None


@dataclass
class DealFields:
    title: str | None = None
    value: float | None = None
    stage_id: str | None = None
    new_status: str | None = None
    deal_id: str | None = None
    external_ref: str | None = None
    contact: ContactFields = field(default_factory=ContactFields)


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _name_from_parts(mapping: dict) -> str | None:
    first = _text(first_value(mapping, "first_name", "firstName", "First_Name"))
    last = _text(first_value(mapping, "last_name", "lastName", "Last_Name"))
    parts = [p for p in (first, last) if p]
    return " ".join(parts) or None


def extract_contact(fields: dict) -> ContactFields:
    """Contact from ``contact: {...}``, flattened top-level keys, or the deal's contact* keys."""
    nested = _dict(fields.get("contact"))
    deal = _dict(fields.get("deal"))
    return ContactFields(
        email=_text(first_value(nested, *CONTACT_EMAIL_KEYS))
        or _text(first_value(fields, *CONTACT_EMAIL_KEYS))
        or _text(first_value(deal, "contactEmail", "contact_email", "ContactEmail")),
        name=_text(first_value(nested, *CONTACT_NAME_KEYS))
        or _name_from_parts(nested)
        or _text(first_value(fields, *CONTACT_NAME_KEYS))
        or _name_from_parts(fields)
        or _text(first_value(deal, "contactName", "contact_name")),
        phone=_text(first_value(nested, *CONTACT_PHONE_KEYS))
        or _text(first_value(fields, *CONTACT_PHONE_KEYS))
        or _text(first_value(deal, "contactPhone", "contact_phone")),
        company=_text(first_value(nested, *CONTACT_COMPANY_KEYS))
        or _text(first_value(fields, *CONTACT_COMPANY_KEYS)),
    )


def extract_deal(fields: dict) -> DealFields:
    """Deal from ``deal: {...}``; a few keys are also accepted at top level."""
    deal = _dict(fields.get("deal"))
    value = coerce_amount(first_value(deal, *DEAL_VALUE_KEYS))
    if value is None:
        value = coerce_amount(first_value(fields, "deal_value", "dealValue"))
    return DealFields(
        title=_text(first_value(deal, *DEAL_TITLE_KEYS))
        or _text(first_value(fields, "deal_title", "dealTitle")),
        value=value,
        stage_id=_text(first_value(deal, *DEAL_STAGE_KEYS))
        or _text(first_value(fields, "stageId", "stage_id", "pipeline_stage_id")),
        new_status=_text(first_value(deal, *DEAL_STATUS_KEYS))
        or _text(first_value(fields, "new_status", "newStatus")),
        deal_id=_text(first_value(deal, *DEAL_ID_KEYS))
        or _text(first_value(fields, "deal_id", "dealId")),
        external_ref=_text(first_value(deal, *DEAL_EXTERNAL_KEYS))
        or _text(first_value(fields, "deal_external_id", "dealExternalId")),
        contact=extract_contact(fields),
    )
