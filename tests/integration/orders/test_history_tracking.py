"""Integration tests for automatic OrderStatusHistory tracking."""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import OrderPart, OrderStatusHistory

pytestmark = pytest.mark.integration


def test_create_order_generates_initial_history(mixed_order):
    history = OrderStatusHistory.objects.filter(order=mixed_order, item__isnull=True)
    assert history.count() == 1
    entry = history.get()
    assert entry.old_status is None
    assert entry.new_status == OrderStatus.PLACED
    assert entry.actor == "system"


def test_split_records_part_and_order_history(split_order, mixed_order):
    part_entries = OrderStatusHistory.objects.filter(
        order=mixed_order, part__isnull=False, item__isnull=True
    )
    assert part_entries.count() == 3

    order_entry = OrderStatusHistory.objects.filter(
        order=mixed_order, part__isnull=True, item__isnull=True
    ).last()
    assert order_entry.old_status == OrderStatus.PLACED
    assert order_entry.new_status == OrderStatus.PROCESSING
    assert order_entry.actor == "admin@example.com"


def test_full_lifecycle_history_sequence(order_service, admin_order):
    for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        order_service.update_status(admin_order.id, status)

    statuses = list(
        OrderStatusHistory.objects.filter(
            order=admin_order, item__isnull=True
        ).values_list("new_status", flat=True)
    )
    assert statuses == ["placed", "processing", "shipped", "delivered"]


def test_item_history_follows_part_changes(order_service, split_order, mixed_order, vendor):
    part = OrderPart.objects.get(order=mixed_order, vendor=vendor)
    order_service.forward_part(part.id)
    order_service.update_part_status(part.id, OrderStatus.SHIPPED)

    item = part.items.get()
    statuses = list(item.status_history.values_list("new_status", flat=True))
    assert statuses == ["placed", "processing", "shipped"]
