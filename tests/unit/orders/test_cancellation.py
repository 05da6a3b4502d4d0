"""Unit tests for customer cancellation.

Covers:
- Cancel a simple order: order, items and history.
- Cancel a split order: every part still in progress is cancelled.
- Commission reversal for forwarded parts and vendor-only orders.
- Finished orders (delivered, cancelled) cannot be cancelled.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.commissions.models import MonthlyCommission
from modules.orders.constants import CUSTOMER_ROLE, OrderStatus
from modules.orders.exceptions import OrderNotFound, StatusChangeNotAllowed
from modules.orders.models import Order, OrderPart, OrderStatusHistory

pytestmark = pytest.mark.unit


class TestCancelSimpleOrder:
    def test_cancel_placed_order(self, order_service, admin_order):
        order = order_service.cancel_order_by_customer(admin_order.id, "Changed my mind")

        assert order.status == OrderStatus.CANCELLED_BY_CUSTOMER
        assert order.cancellation_reason == "Changed my mind"
        assert set(order.items.values_list("status", flat=True)) == {
            "cancelled_by_customer"
        }

    def test_history_records_customer(self, order_service, admin_order):
        order_service.cancel_order_by_customer(admin_order.id, "Too slow")
        entry = OrderStatusHistory.objects.filter(
            order=admin_order, item__isnull=True
        ).last()
        assert entry.new_status == OrderStatus.CANCELLED_BY_CUSTOMER
        assert entry.actor == admin_order.customer_email
        assert entry.actor_role == CUSTOMER_ROLE
        assert entry.notes == "Too slow"

    def test_default_note(self, order_service, admin_order):
        order_service.cancel_order_by_customer(admin_order.id)
        entry = OrderStatusHistory.objects.filter(order=admin_order).last()
        assert entry.notes == "Cancelled by customer"

    def test_shipped_order_can_be_cancelled(self, order_service, admin_order):
        Order.objects.filter(id=admin_order.id).update(status=OrderStatus.SHIPPED)
        order = order_service.cancel_order_by_customer(admin_order.id)
        assert order.status == OrderStatus.CANCELLED_BY_CUSTOMER

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
            OrderStatus.CANCELLED_BY_CUSTOMER,
            "Delivered",
        ],
    )
    def test_finished_orders_rejected(self, order_service, admin_order, status):
        Order.objects.filter(id=admin_order.id).update(status=status)
        with pytest.raises(StatusChangeNotAllowed):
            order_service.cancel_order_by_customer(admin_order.id)

    def test_forwarded_vendor_order_reverses_commission(
        self, order_service, vendor_order, vendor
    ):
        order_service.forward_order(vendor_order.id)
        order_service.cancel_order_by_customer(vendor_order.id)

        item = vendor_order.items.get()
        assert item.commission_reversed is True
        assert item.commission_reversed_at is not None
        ledger = MonthlyCommission.objects.get(vendor=vendor)
        assert ledger.total_commission == Decimal("0.00")
        assert ledger.total_sales == Decimal("0.00")

    def test_missing_order(self, order_service):
        with pytest.raises(OrderNotFound):
            order_service.cancel_order_by_customer(uuid4())


class TestCancelSplitOrder:
    def test_cancels_every_part(self, order_service, split_order, mixed_order):
        order_service.cancel_order_by_customer(mixed_order.id)

        statuses = set(
            OrderPart.objects.filter(order=mixed_order).values_list("status", flat=True)
        )
        assert statuses == {"cancelled_by_customer"}
        mixed_order.refresh_from_db()
        assert mixed_order.status == OrderStatus.CANCELLED_BY_CUSTOMER

    def test_reverses_forwarded_parts_only(
        self, order_service, split_order, mixed_order, vendor, other_vendor
    ):
        part = OrderPart.objects.get(order=mixed_order, vendor=vendor)
        order_service.forward_part(part.id)

        order_service.cancel_order_by_customer(mixed_order.id)

        part.refresh_from_db()
        assert part.commission_reversed is True
        other = OrderPart.objects.get(order=mixed_order, vendor=other_vendor)
        assert other.commission_reversed is False
        ledger = MonthlyCommission.objects.get(vendor=vendor)
        assert ledger.total_orders == 0
        assert ledger.total_commission == Decimal("0.00")

    def test_delivered_parts_are_left_alone(
        self, order_service, split_order, mixed_order
    ):
        admin_part_id = split_order.admin_part.part_id
        order_service.update_part_status(admin_part_id, OrderStatus.SHIPPED)
        order_service.update_part_status(admin_part_id, OrderStatus.DELIVERED)

        order_service.cancel_order_by_customer(mixed_order.id)

        assert OrderPart.objects.get(id=admin_part_id).status == OrderStatus.DELIVERED

    def test_fully_delivered_split_order_rejected(
        self, order_service, split_order, mixed_order
    ):
        OrderPart.objects.filter(order=mixed_order).update(status=OrderStatus.DELIVERED)
        with pytest.raises(StatusChangeNotAllowed):
            order_service.cancel_order_by_customer(mixed_order.id)
