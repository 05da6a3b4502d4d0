"""Event bus contracts for in-process domain event delivery."""

from __future__ import annotations

from typing import Generic, List, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    def publish(self, event: DomainEvent) -> None: ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def unsubscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]: ...
