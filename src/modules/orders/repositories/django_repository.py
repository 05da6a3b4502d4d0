"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + OrderItems + OrderParts) is persisted
atomically.

Concurrency control on status updates uses ``select_for_update()``.
Domain events collected on the order are handed to the in-process event
bus once the surrounding transaction commits.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.orders.constants import HandlerKind
from modules.orders.models import Order, OrderItem, OrderPart, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            customer_name=data["customer_name"],
            customer_email=data["customer_email"],
            customer_phone=data.get("customer_phone", ""),
            shipping_address=data.get("shipping_address", ""),
            shipping_city=data.get("shipping_city", ""),
            payment_method=data.get("payment_method", "cash_on_delivery"),
            order_type=data["order_type"],
            notes=data.get("notes", ""),
        )
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_ref=item_data["product_ref"],
                title=item_data["title"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
                handled_by=item_data.get("handled_by", HandlerKind.ADMIN),
                vendor_id=item_data.get("vendor_id"),
            )
            item.save()
            total += item.total_amount

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items, parts and history.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.prefetch_related("items", "parts", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_number(self, order_number: str) -> Optional[Order]:
        return (
            Order.objects.prefetch_related("items", "parts")
            .filter(order_number=order_number)
            .first()
        )

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters.

        Supported filter keys include ``status``, ``order_type``,
        ``customer_email__iexact`` and ``created_at__range``.
        """
        queryset = Order.objects.prefetch_related("parts")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_for_customer(self, email: str) -> List[Order]:
        return list(
            Order.objects.prefetch_related("parts")
            .filter(customer_email__iexact=email.strip())
            .order_by("-created_at", "-id")
        )

    def list_items(self, order_id: str, part_id: Optional[str] = None) -> List[OrderItem]:
        queryset = OrderItem.objects.select_related("vendor").filter(order_id=order_id)
        if part_id is not None:
            queryset = queryset.filter(part_id=part_id)
        return list(queryset)

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order and schedule its events."""
        entity.save()

        events = entity.pull_domain_events()
        for event in events:
            transaction.on_commit(lambda event=event: event_bus.publish(event))

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    @transaction.atomic
    def save_item(
        self, item: OrderItem, update_fields: Optional[Iterable[str]] = None
    ) -> OrderItem:
        if update_fields is not None:
            item.save(update_fields=list(update_fields))
        else:
            item.save()
        return item

    # ------------------------------------------------------------------
    # Parts
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_part(
        self,
        order: Order,
        handler_kind: str,
        part_number: str,
        status: str,
        total_amount: Decimal,
        vendor_id: Optional[str] = None,
    ) -> OrderPart:
        part = OrderPart(
            order=order,
            handler_kind=handler_kind,
            vendor_id=vendor_id,
            part_number=part_number,
            status=status,
            total_amount=total_amount,
        )
        part.clean()
        part.save()
        logger.info(
            "order.part_created",
            order_id=str(order.id),
            part_id=str(part.id),
            part_number=part_number,
            handler_kind=handler_kind,
        )
        return part

    @transaction.atomic
    def assign_items(self, part: OrderPart, items: Iterable[OrderItem]) -> int:
        items = list(items)
        ids = [item.id for item in items]
        updated = OrderItem.objects.filter(id__in=ids).update(part=part)
        for item in items:
            item.part = part
        return updated

    def get_part(self, id: str) -> Optional[OrderPart]:
        try:
            return OrderPart.objects.select_related("order", "vendor").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_part_for_update(self, id: str) -> Optional[OrderPart]:
        try:
            return OrderPart.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list_parts(self, order_id: str) -> List[OrderPart]:
        return list(
            OrderPart.objects.select_related("vendor").filter(order_id=order_id)
        )

    @transaction.atomic
    def save_part(
        self, part: OrderPart, update_fields: Optional[Iterable[str]] = None
    ) -> OrderPart:
        if update_fields is not None:
            part.save(update_fields=list(update_fields))
        else:
            part.save()
        return part

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: str,
        new_status: str,
        old_status: Optional[str] = None,
        actor: str = "",
        actor_role: str = "",
        notes: str = "",
        part_id: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            part_id=part_id,
            item_id=item_id,
            old_status=old_status,
            new_status=new_status,
            actor=actor,
            actor_role=actor_role,
            notes=notes,
        )
        logger.debug(
            "order.history_added",
            order_id=str(order_id),
            part_id=str(part_id) if part_id else None,
            item_id=str(item_id) if item_id else None,
            old_status=old_status,
            new_status=new_status,
        )
        return history

    def list_history(
        self, order_id: str, item_level: Optional[bool] = None
    ) -> List[OrderStatusHistory]:
        queryset = OrderStatusHistory.objects.filter(order_id=order_id)
        if item_level is True:
            queryset = queryset.filter(item__isnull=False)
        elif item_level is False:
            queryset = queryset.filter(item__isnull=True)
        return list(queryset)
