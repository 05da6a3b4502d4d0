"""In-memory event bus.

Events are delivered synchronously to every handler subscribed to the
event's exact class.  A failing handler is logged and does not prevent
delivery to the others: events are published after the transaction that
raised them has committed, so there is nothing left to roll back.
"""

from __future__ import annotations

from typing import Dict, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.get(event_class, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]:
        return list(self._handlers.get(event_class, []))

    def publish(self, event: DomainEvent) -> None:
        for handler in self.handlers_for(type(event)):
            try:
                handler.handle(event)
            except Exception:
                logger.exception(
                    "event_bus.handler_failed",
                    event_name=event.event_name,
                    event_id=str(event.event_id),
                    handler=type(handler).__name__,
                )


# Process-wide bus; handlers are subscribed in each app's ``ready()``.
event_bus = InMemoryEventBus()
