"""Order domain constants.

Defines the canonical status vocabulary, order types, handler kinds and
the valid status transitions of the order state machine.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "placed", "Placed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    CANCELLED_BY_CUSTOMER = "cancelled_by_customer", "Cancelled by customer"


class OrderType(models.TextChoices):
    ADMIN_ONLY = "admin_only", "Admin only"
    VENDOR_ONLY = "vendor_only", "Vendor only"
    MIXED = "mixed", "Mixed"
    LEGACY = "legacy", "Legacy"


class HandlerKind(models.TextChoices):
    ADMIN = "admin", "Admin"
    VENDOR = "vendor", "Vendor"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class StatusSource(models.TextChoices):
    """Where a resolved display status came from."""

    DIRECT = "direct", "Direct"
    LEGACY = "legacy", "Legacy"
    MAIN_ORDER_NOT_SPLIT = "main-order-not-split", "Main order not split"
    MIXED_CALCULATED = "mixed-calculated", "Mixed calculated"
    ERROR = "error", "Error"


CANCELLED_STATES: frozenset[str] = frozenset(
    {OrderStatus.CANCELLED, OrderStatus.CANCELLED_BY_CUSTOMER}
)

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, *CANCELLED_STATES}
)

VALID_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PLACED: frozenset(
        {OrderStatus.PROCESSING, *CANCELLED_STATES}
    ),
    OrderStatus.PROCESSING: frozenset(
        {OrderStatus.SHIPPED, *CANCELLED_STATES}
    ),
    OrderStatus.SHIPPED: frozenset(
        {OrderStatus.DELIVERED, *CANCELLED_STATES}
    ),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.CANCELLED_BY_CUSTOMER: frozenset(),
}

# Keys are compared lowercased.
LEGACY_STATUS_MAP: dict[str, str] = {
    "pending": OrderStatus.PLACED,
    "confirmed": OrderStatus.PROCESSING,
    "shipped": OrderStatus.SHIPPED,
    "delivered": OrderStatus.DELIVERED,
    "cancelled": OrderStatus.CANCELLED,
}

# Statuses from which a mixed order may still be split.
SPLITTABLE_STATES: frozenset[str] = frozenset(
    {OrderStatus.PLACED, OrderStatus.PROCESSING}
)

ADMIN_ROLE = "admin"
VENDOR_ROLE = "vendor"
CUSTOMER_ROLE = "customer"
SYSTEM_ACTOR = "system"

ORDER_NUMBER_MAX_RETRIES = 5
