"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is placed."""

    order_type: str = ""


@dataclass(frozen=True)
class OrderSplit(DomainEvent):
    """Raised when a mixed order is split into parts."""

    part_count: int = 0


@dataclass(frozen=True)
class OrderForwarded(DomainEvent):
    """Raised when vendor items are forwarded for fulfilment."""

    part_id: Optional[str] = None
    commission_amount: str = "0.00"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order or one of its parts changes status."""

    old_status: str = ""
    new_status: str = ""
    part_id: Optional[str] = None


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when the customer cancels an order."""

    reason: str = ""
