"""Unit tests for Order, OrderPart, OrderItem and OrderStatusHistory models.

Covers:
- Auto-generated order_number format and uniqueness.
- OrderItem total calculation and quantity validation.
- OrderPart constraints: one admin part, one part per vendor.
- OrderPart vendor validation.
- Effective commission of reversed items and parts.
- OrderStatusHistory ordering and reverse relations.
"""

from __future__ import annotations

import re
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from modules.orders.constants import HandlerKind, OrderStatus, OrderType
from modules.orders.models import Order, OrderItem, OrderPart, OrderStatusHistory

pytestmark = pytest.mark.unit


def _order(**kwargs):
    defaults = {
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "order_type": OrderType.ADMIN_ONLY,
    }
    defaults.update(kwargs)
    return Order.objects.create(**defaults)


class TestOrder:
    def test_order_number_is_generated(self):
        order = _order()
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

    def test_order_numbers_are_unique(self):
        numbers = {_order().order_number for _ in range(5)}
        assert len(numbers) == 5

    def test_defaults(self):
        order = _order()
        assert order.status == OrderStatus.PLACED
        assert order.is_split is False
        assert order.total_amount == Decimal("0.00")

    def test_is_mixed(self):
        assert _order(order_type=OrderType.MIXED).is_mixed is True
        assert _order().is_mixed is False

    def test_gives_up_after_repeated_number_collisions(self):
        existing = _order()
        with patch.object(
            Order, "generate_order_number", return_value=existing.order_number
        ):
            with pytest.raises(RuntimeError):
                _order()

    def test_legacy_status_is_stored_verbatim(self):
        order = _order(order_type=OrderType.LEGACY, status="Confirmed")
        order.refresh_from_db()
        assert order.status == "Confirmed"

    def test_str(self):
        order = _order()
        assert str(order) == f"{order.order_number} (placed)"


class TestOrderItem:
    def test_total_amount_is_quantity_times_price(self):
        order = _order()
        item = OrderItem.objects.create(
            order=order,
            product_ref="SKU-1",
            title="Mug",
            quantity=3,
            unit_price=Decimal("12.50"),
        )
        assert item.total_amount == Decimal("37.50")

    def test_total_amount_refreshed_with_update_fields(self):
        order = _order()
        item = OrderItem.objects.create(
            order=order,
            product_ref="SKU-1",
            title="Mug",
            quantity=1,
            unit_price=Decimal("10.00"),
        )
        item.quantity = 4
        item.save(update_fields=["quantity"])
        item.refresh_from_db()
        assert item.total_amount == Decimal("40.00")

    def test_quantity_below_one_fails_validation(self):
        item = OrderItem(
            order=_order(),
            product_ref="SKU-1",
            title="Mug",
            quantity=0,
            unit_price=Decimal("10.00"),
            total_amount=Decimal("0.00"),
        )
        with pytest.raises(ValidationError):
            item.full_clean()

    def test_reversed_item_has_no_effective_commission(self):
        item = OrderItem(commission_amount=Decimal("10.00"), commission_reversed=True)
        assert item.effective_commission == Decimal("0.00")

    def test_forwarded_item_keeps_its_commission(self):
        item = OrderItem(commission_amount=Decimal("10.00"))
        assert item.effective_commission == Decimal("10.00")


class TestOrderPart:
    def test_single_admin_part_per_order(self):
        order = _order(order_type=OrderType.MIXED)
        OrderPart.objects.create(
            order=order, handler_kind=HandlerKind.ADMIN, part_number="P-ADMIN-1"
        )
        with pytest.raises(IntegrityError), transaction.atomic():
            OrderPart.objects.create(
                order=order, handler_kind=HandlerKind.ADMIN, part_number="P-ADMIN-2"
            )

    def test_single_part_per_vendor(self, vendor):
        order = _order(order_type=OrderType.MIXED)
        OrderPart.objects.create(
            order=order,
            handler_kind=HandlerKind.VENDOR,
            vendor=vendor,
            part_number="P-V-1",
        )
        with pytest.raises(IntegrityError), transaction.atomic():
            OrderPart.objects.create(
                order=order,
                handler_kind=HandlerKind.VENDOR,
                vendor=vendor,
                part_number="P-V-2",
            )

    def test_vendor_part_requires_vendor(self):
        part = OrderPart(handler_kind=HandlerKind.VENDOR, part_number="P-1")
        with pytest.raises(ValidationError):
            part.clean()

    def test_admin_part_rejects_vendor(self, vendor):
        part = OrderPart(handler_kind=HandlerKind.ADMIN, vendor=vendor, part_number="P-1")
        with pytest.raises(ValidationError):
            part.clean()

    def test_forwarded_flag(self):
        part = OrderPart(handler_kind=HandlerKind.VENDOR)
        assert part.is_forwarded is False
        assert part.is_admin_part is False

    def test_reversed_part_has_no_effective_commission(self):
        part = OrderPart(commission_amount=Decimal("4.00"), commission_reversed=True)
        assert part.effective_commission == Decimal("0.00")


class TestOrderStatusHistory:
    def test_history_is_ordered_oldest_first(self):
        order = _order()
        first = OrderStatusHistory.objects.create(
            order=order, new_status=OrderStatus.PLACED
        )
        second = OrderStatusHistory.objects.create(
            order=order, old_status=OrderStatus.PLACED, new_status=OrderStatus.PROCESSING
        )
        assert list(order.status_history.all()) == [first, second]

    def test_str(self):
        order = _order()
        entry = OrderStatusHistory.objects.create(
            order=order, old_status="placed", new_status="processing"
        )
        assert str(entry) == f"{order.id} : placed -> processing"
