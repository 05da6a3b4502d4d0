"""Unit tests for Order DTOs.

Covers:
- CreateOrderItemDTO: quantity and price validation, frozen immutability.
- CreateOrderDTO: items list validation.
- StatusResolution: degraded results must carry the error.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.constants import OrderStatus, StatusSource
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    StatusResolution,
)

pytestmark = pytest.mark.unit


def _item(**kwargs):
    data = {
        "product_ref": "SKU-1",
        "title": "Mug",
        "quantity": 1,
        "unit_price": Decimal("10.00"),
    }
    data.update(kwargs)
    return CreateOrderItemDTO(**data)


class TestCreateOrderItemDTO:
    def test_valid_admin_item(self):
        item = _item()
        assert item.vendor_id is None

    def test_valid_vendor_item(self):
        vendor_id = uuid4()
        assert _item(vendor_id=vendor_id).vendor_id == vendor_id

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError, match="Quantity must be at least 1"):
            _item(quantity=0)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            _item(unit_price=Decimal("-1.00"))

    def test_frozen(self):
        item = _item()
        with pytest.raises(ValidationError):
            item.quantity = 5


class TestCreateOrderDTO:
    def test_valid(self):
        dto = CreateOrderDTO(
            customer_name="Jane", customer_email="jane@example.com", items=[_item()]
        )
        assert dto.payment_method == "cash_on_delivery"
        assert len(dto.items) == 1

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            CreateOrderDTO(
                customer_name="Jane", customer_email="jane@example.com", items=[]
            )


class TestStatusResolution:
    def test_normal_resolution_is_not_degraded(self):
        resolution = StatusResolution(
            status=OrderStatus.SHIPPED,
            source=StatusSource.DIRECT,
            can_customer_cancel=True,
            can_admin_change=True,
        )
        assert resolution.degraded is False
        assert resolution.error is None

    def test_fallback_is_degraded_and_permissive(self):
        resolution = StatusResolution.fallback("boom")
        assert resolution.status == OrderStatus.PLACED
        assert resolution.source == StatusSource.ERROR
        assert resolution.degraded is True
        assert resolution.error == "boom"
        assert resolution.can_customer_cancel is True
        assert resolution.can_admin_change is True

    def test_degraded_without_error_rejected(self):
        with pytest.raises(ValidationError, match="must carry the error"):
            StatusResolution(
                status=OrderStatus.PLACED,
                source=StatusSource.ERROR,
                can_customer_cancel=True,
                can_admin_change=True,
                degraded=True,
            )

    def test_accepts_raw_values(self):
        resolution = StatusResolution(
            status="processing",
            source="main-order-not-split",
            can_customer_cancel=True,
            can_admin_change=True,
        )
        assert resolution.status is OrderStatus.PROCESSING
        assert resolution.source is StatusSource.MAIN_ORDER_NOT_SPLIT
