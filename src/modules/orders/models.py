"""Order, OrderItem, OrderPart and OrderStatusHistory models.

Business rules implemented:
- Order number auto-generated as human-readable identifier.
- Order type categorised from the cart (admin / vendor / mixed).
- A split order owns one ``OrderPart`` per handler: at most one admin
  part and at most one part per vendor (database constraints).
- OrderItem snapshots the unit price; ``total_amount`` is always
  ``quantity * unit_price`` (calculated on save).
- Item commission is only meaningful once forwarded; a reversed item
  contributes zero regardless of its stored amount.
- Every status change generates an append-only history record.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.commissions.calculator import effective_commission
from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    HandlerKind,
    OrderStatus,
    OrderType,
    PaymentStatus,
)
from modules.orders.status import is_valid_status_transition
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class StatusMachineMixin:
    """FSM helpers shared by orders and order parts."""

    status: str

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the entity is in a terminal state."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        return is_valid_status_transition(self.status, new_status)


class Order(DomainEventMixin, StatusMachineMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references.

    For a split mixed order ``status`` is only a cache: the display status
    is recomputed from the order's parts.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField(max_length=254)
    customer_phone = models.CharField(max_length=20, blank=True, default="")
    shipping_address = models.TextField(blank=True, default="")
    shipping_city = models.CharField(max_length=100, blank=True, default="")
    payment_method = models.CharField(max_length=50, default="cash_on_delivery")
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    # No ``choices``: legacy rows carry historical values such as "Confirmed".
    status = models.CharField(max_length=32, default=OrderStatus.PLACED)
    order_type = models.CharField(
        max_length=20,
        choices=OrderType.choices,
        default=OrderType.ADMIN_ONLY,
    )
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    is_split = models.BooleanField(default=False)
    split_at = models.DateTimeField(null=True, blank=True, default=None)
    forwarded_at = models.DateTimeField(null=True, blank=True, default=None)
    notes = models.TextField(blank=True, default="")
    cancellation_reason = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["customer_email"], name="orders_email_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @property
    def is_mixed(self) -> bool:
        return self.order_type == OrderType.MIXED

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderPart(StatusMachineMixin, BaseModel):
    """One independently tracked fulfilment unit of a split order.

    The admin part has ``handler_kind=admin`` and no vendor; each vendor
    part references its vendor.  Parts are created once, at split time,
    and are never deleted.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="parts",
    )
    handler_kind = models.CharField(max_length=10, choices=HandlerKind.choices)
    vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.PROTECT,
        related_name="order_parts",
        null=True,
        blank=True,
    )
    part_number = models.CharField(max_length=40, unique=True)
    status = models.CharField(max_length=32, default=OrderStatus.PLACED)
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
    )
    commission_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    forwarded_at = models.DateTimeField(null=True, blank=True, default=None)
    commission_reversed = models.BooleanField(default=False)
    commission_reversed_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "order_parts"
        ordering = ["handler_kind", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(handler_kind=HandlerKind.ADMIN),
                name="order_parts_single_admin_part",
            ),
            models.UniqueConstraint(
                fields=["order", "vendor"],
                name="order_parts_unique_vendor",
            ),
        ]

    @property
    def is_admin_part(self) -> bool:
        return self.handler_kind == HandlerKind.ADMIN

    @property
    def is_forwarded(self) -> bool:
        return self.forwarded_at is not None

    @property
    def effective_commission(self) -> Decimal:
        return effective_commission(self.commission_amount, self.commission_reversed)

    def clean(self) -> None:
        super().clean()
        if self.handler_kind == HandlerKind.VENDOR and self.vendor_id is None:
            raise ValidationError({"vendor": "Vendor parts must reference a vendor."})
        if self.handler_kind == HandlerKind.ADMIN and self.vendor_id is not None:
            raise ValidationError({"vendor": "The admin part has no vendor."})

    def __str__(self) -> str:
        return f"{self.part_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an order's cart.

    ``unit_price`` is a snapshot of the product price at checkout.
    ``total_amount`` is always ``quantity * unit_price``, recalculated on
    every save.  ``part`` is set when the parent order is split.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    part = models.ForeignKey(
        "orders.OrderPart",
        on_delete=models.SET_NULL,
        related_name="items",
        null=True,
        blank=True,
    )
    product_ref = models.CharField(max_length=64)
    title = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )
    handled_by = models.CharField(
        max_length=10,
        choices=HandlerKind.choices,
        default=HandlerKind.ADMIN,
    )
    vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.PROTECT,
        related_name="order_items",
        null=True,
        blank=True,
    )
    status = models.CharField(max_length=32, default=OrderStatus.PLACED)
    commission_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    commission_reversed = models.BooleanField(default=False)
    commission_reversed_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    @property
    def effective_commission(self) -> Decimal:
        return effective_commission(self.commission_amount, self.commission_reversed)

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.total_amount = self.quantity * self.unit_price
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "total_amount" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["total_amount"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.title} x{self.quantity} (${self.total_amount})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for status transitions.

    A row always belongs to an order; ``part`` and ``item`` narrow it down
    to the sub-order or line item that changed.  ``actor`` is free text
    (``"system"`` for automatic changes).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    part = models.ForeignKey(
        "orders.OrderPart",
        on_delete=models.CASCADE,
        related_name="status_history",
        null=True,
        blank=True,
    )
    item = models.ForeignKey(
        "orders.OrderItem",
        on_delete=models.CASCADE,
        related_name="status_history",
        null=True,
        blank=True,
    )
    old_status = models.CharField(max_length=32, null=True, blank=True)  # noqa: DJ01
    new_status = models.CharField(max_length=32)
    actor = models.CharField(max_length=255, blank=True, default="")
    actor_role = models.CharField(max_length=20, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"
