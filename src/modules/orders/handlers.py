"""Event handlers for Orders domain events.

Handlers run after the transaction that raised the event has committed.
They record the event in the structured log; integrations (notifications,
search indexing) subscribe alongside them.
"""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderForwarded,
    OrderSplit,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class _LoggingHandler:
    log_event = "order.event"

    def handle(self, event: DomainEvent) -> None:
        logger.info(self.log_event, **event.as_log_context())


class OrderCreatedHandler(_LoggingHandler, IEventHandler[OrderCreated]):
    log_event = "order.event.created"


class OrderSplitHandler(_LoggingHandler, IEventHandler[OrderSplit]):
    log_event = "order.event.split"


class OrderForwardedHandler(_LoggingHandler, IEventHandler[OrderForwarded]):
    log_event = "order.event.forwarded"


class OrderStatusChangedHandler(_LoggingHandler, IEventHandler[OrderStatusChanged]):
    log_event = "order.event.status_changed"


class OrderCancelledHandler(_LoggingHandler, IEventHandler[OrderCancelled]):
    log_event = "order.event.cancelled"


order_created_handler = OrderCreatedHandler()
order_split_handler = OrderSplitHandler()
order_forwarded_handler = OrderForwardedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()

SUBSCRIPTIONS = (
    (OrderCreated, order_created_handler),
    (OrderSplit, order_split_handler),
    (OrderForwarded, order_forwarded_handler),
    (OrderStatusChanged, order_status_changed_handler),
    (OrderCancelled, order_cancelled_handler),
)
