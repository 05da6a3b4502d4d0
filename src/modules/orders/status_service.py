"""Order status resolution for customers and administrators.

Turns the stored state of an order into the status shown to people:

- simple orders (admin-only, vendor-only) show their own status;
- legacy orders show their historical status mapped to the canonical
  vocabulary;
- split mixed orders show the aggregation of their parts' statuses.

Resolution never raises.  When anything goes wrong the caller gets a
``StatusResolution`` flagged ``degraded`` with a safe default status and
the error text, so listings keep working while the failure stays visible.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import structlog

from modules.orders.constants import (
    ADMIN_ROLE,
    HandlerKind,
    OrderType,
    StatusSource,
)
from modules.orders.dtos import (
    AdminItemsDTO,
    CustomerOrderDTO,
    OrderTrackingDTO,
    StatusResolution,
    TimelineEntryDTO,
    TrackedItemDTO,
    TrackedItemsDTO,
    VendorItemsDTO,
    VendorPartStatus,
)
from modules.orders.exceptions import OrderAccessDenied, OrderNotFound
from modules.orders.status import (
    calculate_mixed_order_status,
    can_change_status,
    can_customer_cancel_order,
    map_legacy_status,
    parse_status,
)

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem, OrderPart
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.vendors.models import Vendor

logger = structlog.get_logger(__name__)


class OrderStatusService:
    """Read-side service resolving display statuses."""

    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    def get_order_status(self, order: Order) -> StatusResolution:
        """Resolve the display status of *order*.  Never raises."""
        try:
            return self._resolve(order)
        except Exception as exc:
            logger.exception(
                "order.status_resolution_failed",
                order_id=str(getattr(order, "id", None)),
                raw_status=getattr(order, "status", None),
            )
            return StatusResolution.fallback(str(exc) or exc.__class__.__name__)

    def list_customer_orders(self, email: str) -> List[CustomerOrderDTO]:
        """The customer's orders, newest first, with their display status."""
        orders = self._order_repo.list_for_customer(email)
        return [
            CustomerOrderDTO(
                id=order.id,
                order_number=order.order_number,
                order_type=order.order_type,
                total_amount=order.total_amount,
                created_at=order.created_at,
                status=self.get_order_status(order),
            )
            for order in orders
        ]

    def track_order(
        self, order_number: str, email: Optional[str] = None
    ) -> OrderTrackingDTO:
        """Customer-facing tracking view of an order.

        Raises:
            OrderNotFound: no order with *order_number*.
            OrderAccessDenied: *email* given and not the order's customer.
        """
        order = self._order_repo.get_by_number(order_number)
        if not order:
            raise OrderNotFound(f"Order {order_number} not found.")
        if email is not None and (
            email.strip().lower() != order.customer_email.strip().lower()
        ):
            logger.warning("order.tracking_denied", order_number=order_number)
            raise OrderAccessDenied(
                f"Order {order_number} does not belong to this customer."
            )

        resolution = self.get_order_status(order)
        items = self._order_repo.list_items(order.id)
        parts = self._order_repo.list_parts(order.id) if order.is_split else []
        timeline = self._order_repo.list_history(order.id, item_level=False)

        return OrderTrackingDTO(
            order_number=order.order_number,
            order_date=order.created_at,
            order_type=order.order_type,
            current_status=resolution.status,
            status_source=resolution.source,
            degraded=resolution.degraded,
            items=_group_items(items, parts),
            timeline=[TimelineEntryDTO.from_entity(entry) for entry in timeline],
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self, order: Order) -> StatusResolution:
        status = parse_status(order.status)

        if order.order_type == OrderType.LEGACY:
            return _resolution(status, StatusSource.LEGACY)
        if order.order_type != OrderType.MIXED:
            return _resolution(status, StatusSource.DIRECT)

        parts = self._order_repo.list_parts(order.id)
        if not parts:
            return _resolution(status, StatusSource.MAIN_ORDER_NOT_SPLIT)

        part_statuses = [parse_status(part.status) for part in parts]
        admin_status = None
        vendor_statuses = []
        for part, part_status in zip(parts, part_statuses):
            if part.handler_kind == HandlerKind.ADMIN:
                admin_status = str(part_status)
            else:
                vendor_statuses.append(
                    VendorPartStatus(vendor_id=part.vendor_id, status=str(part_status))
                )

        return _resolution(
            calculate_mixed_order_status(part_statuses),
            StatusSource.MIXED_CALCULATED,
            sub_order_statuses=[str(s) for s in part_statuses],
            admin_part_status=admin_status,
            vendor_part_statuses=vendor_statuses,
        )


def _resolution(status, source, **breakdown) -> StatusResolution:
    return StatusResolution(
        status=status,
        source=source,
        can_customer_cancel=can_customer_cancel_order(status),
        can_admin_change=can_change_status(status, ADMIN_ROLE),
        **breakdown,
    )


def _tracked(item: OrderItem) -> TrackedItemDTO:
    return TrackedItemDTO(
        product_ref=item.product_ref,
        title=item.title,
        quantity=item.quantity,
        status=map_legacy_status(item.status),
    )


def _group_items(items: List[OrderItem], parts: List[OrderPart]) -> TrackedItemsDTO:
    """Group items by who fulfils them.

    Group statuses come from the order parts when the order is split, and
    from the items otherwise.
    """
    part_status: Dict[str, str] = {}
    admin_status = None
    for part in parts:
        if part.handler_kind == HandlerKind.ADMIN:
            admin_status = map_legacy_status(part.status)
        else:
            part_status[str(part.vendor_id)] = map_legacy_status(part.status)

    admin_items = [item for item in items if item.vendor_id is None]
    if admin_items and admin_status is None:
        admin_status = map_legacy_status(admin_items[0].status)

    vendors: Dict[str, Tuple[Vendor, str]] = {}
    vendor_items: Dict[str, List[TrackedItemDTO]] = {}
    for item in items:
        if item.vendor_id is None:
            continue
        key = str(item.vendor_id)
        vendor_items.setdefault(key, []).append(_tracked(item))
        if key not in vendors:
            vendors[key] = (
                item.vendor,
                part_status.get(key) or map_legacy_status(item.status),
            )

    return TrackedItemsDTO(
        total=len(items),
        admin=AdminItemsDTO(
            count=len(admin_items),
            status=admin_status,
            items=[_tracked(item) for item in admin_items],
        ),
        vendors=[
            VendorItemsDTO(
                vendor_id=vendor.id,
                vendor_name=vendor.business_name,
                status=status,
                items=vendor_items[key],
            )
            for key, (vendor, status) in vendors.items()
        ],
    )
