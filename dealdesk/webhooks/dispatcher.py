"""Event dispatcher - maps webhook event names to handler coroutines."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User


@dataclass
class HandlerResult:
    """What a handler changed, and which automation events it wants fired.

    ``automation`` holds (event_name, contact_id) pairs, fired after commit.
    """

    contact_id: uuid.UUID | None = None
    deal_id: uuid.UUID | None = None
    activity_ids: list[uuid.UUID] = field(default_factory=list)
    automation: list[tuple[str, uuid.UUID]] = field(default_factory=list)

    def fire(self, event_name: str) -> None:
        if self.contact_id is not None:
            self.automation.append((event_name, self.contact_id))


@dataclass
class EventContext:
    db: AsyncSession
    owner: User
    event: str
    fields: dict
    payload: dict


Handler = Callable[[EventContext], Awaitable[HandlerResult]]


def normalize_event(name: str) -> str:
    return name.strip().lower().replace("-", "_").replace(" ", "_")


class EventDispatcher:
    """Registry of event handlers for one webhook endpoint.

    Usage:
        dispatcher = EventDispatcher("iclosed")

        @dispatcher.on("appointment_booked", "call_booked")
        async def handle_booking(ctx): ...
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: dict[str, Handler] = {}

    def register(self, handler: Handler, *events: str) -> Handler:
        for event in events:
            key = normalize_event(event)
            if key in self._handlers:
                raise ValueError(f"{self.name}: handler for {key!r} already registered")
            self._handlers[key] = handler
        return handler

    def on(self, *events: str) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            return self.register(handler, *events)

        return decorator

    def resolve(self, event: str | None) -> Handler | None:
        """Handler for ``event``, or None when it is not handled here."""
        if not event:
            return None
        return self._handlers.get(normalize_event(event))

    @property
    def events(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, event: str) -> bool:
        return self.resolve(event) is not None
