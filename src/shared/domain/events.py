"""Domain event primitives shared by the marketplace modules."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict
from uuid import UUID

import uuid6
from django.utils import timezone


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable).

    ``aggregate_id`` is the id of the entity that raised the event.
    """

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid6.uuid7)
    occurred_on: datetime = field(default_factory=timezone.now)
    event_name: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)

    def as_log_context(self) -> Dict[str, Any]:
        """Flat, string-valued view of the event for structured logs."""
        return {
            key: value if isinstance(value, (int, bool)) or value is None else str(value)
            for key, value in asdict(self).items()
        }


class DomainEventMixin:
    """Mixin for aggregate roots that collect domain events until saved."""

    _domain_events: list[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        self._domain_events.append(event)

    def pull_domain_events(self) -> list[DomainEvent]:
        """Return the pending events and forget them."""
        events = self.domain_events
        self.clear_domain_events()
        return events

    def clear_domain_events(self) -> None:
        if hasattr(self, "_domain_events"):
            self._domain_events.clear()

    @property
    def domain_events(self) -> list[DomainEvent]:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        return list(self._domain_events)
