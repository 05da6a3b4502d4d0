"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO`` / ``CreateOrderDTO``: input for order creation.
- ``StatusResolution``: result of resolving an order's display status.
  It says explicitly whether the status was resolved normally or
  degraded to a safe default after a failure.
- ``CustomerOrderDTO``: one row of a customer's order listing.
- ``OrderTrackingDTO`` and friends: customer-facing tracking view.
- ``SplitResultDTO``: summary of a split.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.orders.constants import OrderStatus, StatusSource

if TYPE_CHECKING:
    from modules.orders.models import OrderStatusHistory


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single cart line.

    ``vendor_id`` is ``None`` for items the marketplace operator fulfils.
    """

    model_config = ConfigDict(frozen=True)

    product_ref: str
    title: str
    quantity: int
    unit_price: Decimal
    vendor_id: Optional[UUID] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Unit price cannot be negative.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout.

    Validates that ``items`` contains at least one line.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str
    customer_email: str
    customer_phone: str = ""
    shipping_address: str = ""
    shipping_city: str = ""
    payment_method: str = "cash_on_delivery"
    items: List[CreateOrderItemDTO]
    notes: Optional[str] = ""

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v


# ---------------------------------------------------------------------------
# Status resolution
# ---------------------------------------------------------------------------


class VendorPartStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor_id: UUID
    status: str


class StatusResolution(BaseModel):
    """Display status of an order and what the viewer may do with it."""

    model_config = ConfigDict(frozen=True)

    status: OrderStatus
    source: StatusSource
    can_customer_cancel: bool
    can_admin_change: bool
    degraded: bool = False
    error: Optional[str] = None
    sub_order_statuses: List[str] = []
    admin_part_status: Optional[str] = None
    vendor_part_statuses: List[VendorPartStatus] = []

    @model_validator(mode="after")
    def degraded_results_name_the_error(self):
        if self.degraded and not self.error:
            raise ValueError("A degraded resolution must carry the error.")
        return self

    @classmethod
    def fallback(cls, error: str) -> StatusResolution:
        """Safe default used when resolution fails."""
        return cls(
            status=OrderStatus.PLACED,
            source=StatusSource.ERROR,
            can_customer_cancel=True,
            can_admin_change=True,
            degraded=True,
            error=error,
        )


class CustomerOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    order_type: str
    total_amount: Decimal
    created_at: datetime
    status: StatusResolution


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------


class TrackedItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_ref: str
    title: str
    quantity: int
    status: str


class AdminItemsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int
    status: Optional[str]
    items: List[TrackedItemDTO]


class VendorItemsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor_id: UUID
    vendor_name: str
    status: str
    items: List[TrackedItemDTO]


class TrackedItemsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    admin: AdminItemsDTO
    vendors: List[VendorItemsDTO]


class TimelineEntryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    timestamp: datetime
    actor: str
    note: str

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> TimelineEntryDTO:
        return cls(
            status=history.new_status,
            timestamp=history.created_at,
            actor=history.actor,
            note=history.notes,
        )


class OrderTrackingDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_number: str
    order_date: datetime
    order_type: str
    current_status: OrderStatus
    status_source: StatusSource
    degraded: bool
    items: TrackedItemsDTO
    timeline: List[TimelineEntryDTO]


# ---------------------------------------------------------------------------
# Split
# ---------------------------------------------------------------------------


class SplitPartDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    part_id: UUID
    part_number: str
    vendor_id: Optional[UUID]
    item_count: int
    subtotal: Decimal


class SplitResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    admin_part: Optional[SplitPartDTO]
    vendor_parts: List[SplitPartDTO]
