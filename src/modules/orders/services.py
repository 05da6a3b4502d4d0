"""Order service layer (Use Cases).

Orchestrates the order lifecycle of the marketplace: checkout,
splitting mixed orders into parts, forwarding vendor items, status
updates and customer cancellation.  All write operations are atomic;
the service defines the unit-of-work boundary.

Business rules enforced:
- Orders are categorised from their cart (admin / vendor / mixed).
- Status transitions validated against the state machine, and against
  the acting role for terminal statuses.
- Only mixed orders are split, once, while still placed or processing.
- Commission is computed per item when vendor items are forwarded or
  first move past ``placed`` through a status update, with the rate read
  once per request.  It is reversed when a forwarded order or part is
  cancelled.
- A failing ledger update never fails the order operation.
- History recorded on every status change, for orders, parts and items.
"""

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.commissions.calculator import CommissionPeriod, calculate_commission
from modules.commissions.constants import ZERO
from modules.orders.constants import (
    ADMIN_ROLE,
    CANCELLED_STATES,
    CUSTOMER_ROLE,
    SPLITTABLE_STATES,
    SYSTEM_ACTOR,
    TERMINAL_STATES,
    HandlerKind,
    OrderStatus,
    OrderType,
)
from modules.orders.dtos import SplitPartDTO, SplitResultDTO
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderForwarded,
    OrderSplit,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderAlreadySplit,
    OrderNotForwardable,
    OrderNotFound,
    OrderNotSplittable,
    OrderPartNotFound,
    StatusChangeNotAllowed,
)
from modules.orders.status import (
    calculate_mixed_order_status,
    can_change_status,
    can_customer_cancel_order,
    is_valid_status_transition,
    map_legacy_status,
    parse_status,
)
from modules.vendors.exceptions import InactiveVendor, VendorNotFound

if TYPE_CHECKING:
    from modules.commissions.services import CommissionService
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order, OrderItem, OrderPart
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.vendors.repositories.interfaces import IVendorRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the commission service via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        vendor_repository: IVendorRepository,
        commission_service: CommissionService,
    ) -> None:
        self._order_repo = order_repository
        self._vendor_repo = vendor_repository
        self._commission_service = commission_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Place a new order.

        Items with a ``vendor_id`` are vendor items; the rest are fulfilled
        by the marketplace operator.  The order type follows from the mix.

        Raises:
            VendorNotFound: an item references an unknown vendor.
            InactiveVendor: an item references an inactive vendor.
        """
        log = logger.bind(customer_email=dto.customer_email)
        log.info("order.creation_started", item_count=len(dto.items))

        vendor_ids = {str(item.vendor_id) for item in dto.items if item.vendor_id}
        vendors = self._vendor_repo.get_many(vendor_ids)
        for vendor_id in sorted(vendor_ids):
            vendor = vendors.get(vendor_id)
            if vendor is None:
                raise VendorNotFound(f"Vendor {vendor_id} not found.")
            if not vendor.is_active:
                raise InactiveVendor(f"Vendor {vendor_id} is inactive.")

        has_admin_items = any(item.vendor_id is None for item in dto.items)
        if vendor_ids and has_admin_items:
            order_type = OrderType.MIXED
        elif vendor_ids:
            order_type = OrderType.VENDOR_ONLY
        else:
            order_type = OrderType.ADMIN_ONLY

        order = self._order_repo.create(
            {
                "customer_name": dto.customer_name,
                "customer_email": dto.customer_email,
                "customer_phone": dto.customer_phone,
                "shipping_address": dto.shipping_address,
                "shipping_city": dto.shipping_city,
                "payment_method": dto.payment_method,
                "order_type": order_type,
                "notes": dto.notes or "",
                "items": [
                    {
                        "product_ref": item.product_ref,
                        "title": item.title,
                        "quantity": item.quantity,
                        "unit_price": item.unit_price,
                        "handled_by": (
                            HandlerKind.VENDOR if item.vendor_id else HandlerKind.ADMIN
                        ),
                        "vendor_id": item.vendor_id,
                    }
                    for item in dto.items
                ],
            }
        )

        order.add_domain_event(OrderCreated(aggregate_id=order.id, order_type=order_type))
        self._order_repo.save(order)

        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.PLACED,
            actor=SYSTEM_ACTOR,
            notes="Order placed",
        )
        for item in self._order_repo.list_items(order.id):
            self._order_repo.add_history(
                order_id=order.id,
                item_id=item.id,
                new_status=OrderStatus.PLACED,
                actor=SYSTEM_ACTOR,
                notes="Order placed",
            )

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            order_type=order_type,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def split_order(self, order_id: UUID, actor: str = SYSTEM_ACTOR) -> SplitResultDTO:
        """Split a mixed order into an admin part and one part per vendor.

        The admin part starts ``processing`` (the operator already holds
        the order); vendor parts start ``placed`` until forwarded.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotSplittable: not a mixed order, or status forbids it.
            OrderAlreadySplit: the order already has parts.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)

        if not order.is_mixed:
            raise OrderNotSplittable(
                f"Order {order.order_number} is {order.order_type}; only mixed "
                f"orders can be split."
            )
        if order.is_split or self._order_repo.list_parts(order.id):
            raise OrderAlreadySplit(f"Order {order.order_number} is already split.")

        current = parse_status(order.status)
        if current not in SPLITTABLE_STATES:
            raise OrderNotSplittable(
                f"Order {order.order_number} cannot be split while '{current}'."
            )

        admin_items: List[OrderItem] = []
        vendor_items: Dict[str, List[OrderItem]] = OrderedDict()
        for item in self._order_repo.list_items(order.id):
            if item.vendor_id is None:
                admin_items.append(item)
            else:
                vendor_items.setdefault(str(item.vendor_id), []).append(item)

        admin_part = None
        if admin_items:
            admin_part = self._create_part(
                order,
                admin_items,
                handler_kind=HandlerKind.ADMIN,
                part_number=f"{order.order_number}-ADMIN",
                status=OrderStatus.PROCESSING,
                actor=actor,
            )

        vendor_parts = []
        for vendor_id, items in vendor_items.items():
            suffix = vendor_id.replace("-", "")[-6:].upper()
            vendor_parts.append(
                self._create_part(
                    order,
                    items,
                    handler_kind=HandlerKind.VENDOR,
                    part_number=f"{order.order_number}-V{suffix}",
                    status=OrderStatus.PLACED,
                    actor=actor,
                    vendor_id=vendor_id,
                )
            )

        old_status = order.status
        order.is_split = True
        order.split_at = timezone.now()
        order.status = OrderStatus.PROCESSING
        order.add_domain_event(
            OrderSplit(
                aggregate_id=order.id,
                part_count=len(vendor_parts) + (1 if admin_part else 0),
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            old_status=old_status,
            new_status=order.status,
            actor=actor,
            actor_role=ADMIN_ROLE,
            notes=f"Order split into {len(vendor_parts)} vendor part(s)",
        )

        log.info(
            "order.split",
            admin_items=len(admin_items),
            vendor_parts=len(vendor_parts),
        )
        return SplitResultDTO(
            order_id=order.id,
            admin_part=admin_part,
            vendor_parts=vendor_parts,
        )

    @transaction.atomic
    def forward_part(self, part_id: UUID, actor: str = SYSTEM_ACTOR) -> OrderPart:
        """Forward a vendor part to its vendor and accrue its commission.

        Raises:
            OrderPartNotFound: part does not exist.
            OrderNotForwardable: admin part, or part no longer ``placed``.
        """
        found = self._order_repo.get_part(str(part_id))
        if not found:
            raise OrderPartNotFound(f"Order part {part_id} not found.")
        order = self._order_repo.get_for_update(str(found.order_id))
        part = self._order_repo.get_part_for_update(str(part_id))

        if part.is_admin_part:
            raise OrderNotForwardable(
                f"Part {part.part_number} is fulfilled by the marketplace."
            )
        if part.is_forwarded or map_legacy_status(part.status) != OrderStatus.PLACED:
            raise OrderNotForwardable(
                f"Part {part.part_number} has already been forwarded."
            )

        items = self._order_repo.list_items(order.id, part_id=part.id)
        old_status = part.status
        part.status = OrderStatus.PROCESSING
        rate = self._charge_part(order, part, items)
        self._order_repo.save_part(part)
        self._order_repo.add_history(
            order_id=order.id,
            part_id=part.id,
            old_status=old_status,
            new_status=part.status,
            actor=actor,
            actor_role=ADMIN_ROLE,
            notes="Forwarded to vendor",
        )
        self._cascade_items(
            order, items, OrderStatus.PROCESSING, actor, ADMIN_ROLE, "Forwarded to vendor"
        )
        self._refresh_order_status(order, actor, ADMIN_ROLE)

        logger.info(
            "order.part_forwarded",
            order_id=str(order.id),
            part_id=str(part.id),
            vendor_id=str(part.vendor_id),
            rate=str(rate),
            commission=str(part.commission_amount),
        )
        return part

    @transaction.atomic
    def forward_order(self, order_id: UUID, actor: str = SYSTEM_ACTOR) -> Order:
        """Forward an unsplit vendor-only order and accrue its commission.

        One ledger accrual is made per vendor in the cart.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotForwardable: not vendor-only, or no longer ``placed``.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        if order.order_type != OrderType.VENDOR_ONLY:
            raise OrderNotForwardable(
                f"Order {order.order_number} is {order.order_type}; split it and "
                f"forward its vendor parts instead."
            )
        if order.forwarded_at is not None or parse_status(order.status) != OrderStatus.PLACED:
            raise OrderNotForwardable(
                f"Order {order.order_number} has already been forwarded."
            )

        items = self._order_repo.list_items(order.id)
        old_status = order.status
        order.status = OrderStatus.PROCESSING
        rate = self._charge_order(order, items)
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            old_status=old_status,
            new_status=order.status,
            actor=actor,
            actor_role=ADMIN_ROLE,
            notes="Forwarded to vendor",
        )
        self._cascade_items(
            order, items, OrderStatus.PROCESSING, actor, ADMIN_ROLE, "Forwarded to vendor"
        )

        logger.info("order.forwarded", order_id=str(order.id), rate=str(rate))
        return order

    @transaction.atomic
    def update_status(
        self,
        order_id: UUID,
        new_status: str,
        actor: str = SYSTEM_ACTOR,
        role: str = ADMIN_ROLE,
        notes: str = "",
    ) -> Order:
        """Transition an unsplit order to a new status.

        Cascades the status to the order's items.  A vendor-only order
        moving past ``placed`` for the first time is charged its commission
        like ``forward_order`` does.  Cancelling a forwarded order reverses
        its commission.

        Raises:
            OrderNotFound: order does not exist.
            UnknownOrderStatus: the stored status is not recognised.
            StatusChangeNotAllowed: *role* may not change the current status.
            InvalidOrderStatus: transition is not allowed, or the order is
                split (its parts carry the status).
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        if order.is_split:
            raise InvalidOrderStatus(
                f"Order {order.order_number} is split; update its parts instead."
            )

        current = parse_status(order.status)
        target = self._check_transition(current, new_status, role)

        items = self._order_repo.list_items(order.id)
        order.status = target
        if target in CANCELLED_STATES and notes:
            order.cancellation_reason = notes
        elif (
            target not in CANCELLED_STATES
            and order.order_type == OrderType.VENDOR_ONLY
            and order.forwarded_at is None
        ):
            self._charge_order(order, items)
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=current, new_status=target
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            old_status=current,
            new_status=target,
            actor=actor,
            actor_role=role,
            notes=notes,
        )
        self._cascade_items(order, items, target, actor, role, notes)

        if target in CANCELLED_STATES and order.forwarded_at is not None:
            self._reverse_commission(items, order.forwarded_at, order.order_number)

        logger.info(
            "order.status_updated",
            order_id=str(order.id),
            old_status=current,
            new_status=target,
            actor=actor,
            role=role,
        )
        return order

    @transaction.atomic
    def update_part_status(
        self,
        part_id: UUID,
        new_status: str,
        actor: str = SYSTEM_ACTOR,
        role: str = ADMIN_ROLE,
        notes: str = "",
    ) -> OrderPart:
        """Transition one part of a split order.

        The parent's cached status is recomputed from all of its parts.
        A vendor part that leaves ``placed`` here without having been
        forwarded is charged its commission like ``forward_part`` does.
        Cancelling a forwarded vendor part reverses its commission.

        Raises:
            OrderPartNotFound: part does not exist.
            UnknownOrderStatus: the stored status is not recognised.
            StatusChangeNotAllowed: *role* may not change the current status.
            InvalidOrderStatus: transition is not allowed.
        """
        found = self._order_repo.get_part(str(part_id))
        if not found:
            raise OrderPartNotFound(f"Order part {part_id} not found.")
        order = self._order_repo.get_for_update(str(found.order_id))
        part = self._order_repo.get_part_for_update(str(part_id))

        current = parse_status(part.status)
        target = self._check_transition(current, new_status, role)

        items = self._order_repo.list_items(order.id, part_id=part.id)
        part.status = target
        changed = ["status"]
        if (
            target not in CANCELLED_STATES
            and not part.is_admin_part
            and not part.is_forwarded
        ):
            self._charge_part(order, part, items)
            changed += ["commission_rate", "commission_amount", "forwarded_at"]
        self._order_repo.save_part(part, update_fields=changed)
        self._order_repo.add_history(
            order_id=order.id,
            part_id=part.id,
            old_status=current,
            new_status=target,
            actor=actor,
            actor_role=role,
            notes=notes,
        )
        self._cascade_items(order, items, target, actor, role, notes)

        if target in CANCELLED_STATES:
            self._reverse_part_commission(part, items)

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=current,
                new_status=target,
                part_id=str(part.id),
            )
        )
        self._refresh_order_status(order, actor, role)

        logger.info(
            "order.part_status_updated",
            order_id=str(order.id),
            part_id=str(part.id),
            old_status=current,
            new_status=target,
            order_status=order.status,
            actor=actor,
            role=role,
        )
        return part

    @transaction.atomic
    def cancel_order_by_customer(self, order_id: UUID, reason: str = "") -> Order:
        """Cancel an order on behalf of its customer.

        The order, its parts still in progress and their items move to
        ``cancelled_by_customer``.  Any commission already accrued for the
        order is reversed.

        Raises:
            OrderNotFound: order does not exist.
            UnknownOrderStatus: the stored status is not recognised.
            StatusChangeNotAllowed: the order can no longer be cancelled.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        parts = self._order_repo.list_parts(order.id)
        if order.is_mixed and parts:
            display = calculate_mixed_order_status(
                map_legacy_status(part.status) for part in parts
            )
        else:
            display = parse_status(order.status)

        if not can_customer_cancel_order(display):
            raise StatusChangeNotAllowed(
                f"Order {order.order_number} can no longer be cancelled ({display})."
            )

        target = OrderStatus.CANCELLED_BY_CUSTOMER
        note = reason or "Cancelled by customer"
        actor = order.customer_email

        for part in parts:
            if map_legacy_status(part.status) in TERMINAL_STATES:
                continue
            old = part.status
            part.status = target
            self._order_repo.save_part(part, update_fields=["status"])
            self._order_repo.add_history(
                order_id=order.id,
                part_id=part.id,
                old_status=old,
                new_status=target,
                actor=actor,
                actor_role=CUSTOMER_ROLE,
                notes=note,
            )
            self._reverse_part_commission(
                part, self._order_repo.list_items(order.id, part_id=part.id)
            )

        items = self._order_repo.list_items(order.id)
        self._cascade_items(order, items, target, actor, CUSTOMER_ROLE, note)
        if order.forwarded_at is not None:
            self._reverse_commission(items, order.forwarded_at, order.order_number)

        old_status = order.status
        order.status = target
        order.cancellation_reason = reason
        order.add_domain_event(OrderCancelled(aggregate_id=order.id, reason=reason))
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            old_status=old_status,
            new_status=target,
            actor=actor,
            actor_role=CUSTOMER_ROLE,
            notes=note,
        )

        logger.info(
            "order.cancelled_by_customer",
            order_id=str(order.id),
            previous_status=display,
            part_count=len(parts),
        )
        return order

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_transition(current: str, new_status: str, role: str) -> OrderStatus:
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(f"Unknown target status '{new_status}'.")
        if not can_change_status(current, role):
            raise StatusChangeNotAllowed(
                f"Role '{role}' cannot change an order that is '{current}'."
            )
        if not is_valid_status_transition(current, new_status):
            raise InvalidOrderStatus(
                f"Cannot transition from '{current}' to '{new_status}'."
            )
        return OrderStatus(new_status)

    def _create_part(
        self,
        order: Order,
        items: List[OrderItem],
        handler_kind: str,
        part_number: str,
        status: str,
        actor: str,
        vendor_id: Optional[str] = None,
    ) -> SplitPartDTO:
        subtotal = sum((item.total_amount for item in items), ZERO)
        part = self._order_repo.create_part(
            order,
            handler_kind=handler_kind,
            part_number=part_number,
            status=status,
            total_amount=subtotal,
            vendor_id=vendor_id,
        )
        self._order_repo.assign_items(part, items)
        self._order_repo.add_history(
            order_id=order.id,
            part_id=part.id,
            new_status=status,
            actor=actor,
            actor_role=ADMIN_ROLE,
            notes="Created by order split",
        )
        if status != OrderStatus.PLACED:
            self._cascade_items(order, items, status, actor, ADMIN_ROLE, "Order split")
        return SplitPartDTO(
            part_id=part.id,
            part_number=part.part_number,
            vendor_id=part.vendor_id,
            item_count=len(items),
            subtotal=subtotal,
        )

    def _cascade_items(
        self,
        order: Order,
        items: Iterable[OrderItem],
        status: str,
        actor: str,
        role: str,
        notes: str,
    ) -> None:
        for item in items:
            old = item.status
            if map_legacy_status(old) in TERMINAL_STATES or old == status:
                continue
            item.status = status
            self._order_repo.save_item(item, update_fields=["status"])
            self._order_repo.add_history(
                order_id=order.id,
                part_id=item.part_id,
                item_id=item.id,
                old_status=old,
                new_status=status,
                actor=actor,
                actor_role=role,
                notes=notes,
            )

    def _apply_commission(
        self, items: Iterable[OrderItem], rate: Decimal
    ) -> Tuple[Decimal, Decimal]:
        """Store each vendor item's commission at *rate*; return the totals."""
        order_amount = ZERO
        commission = ZERO
        for item in items:
            if item.vendor_id is None:
                continue
            item.commission_amount = calculate_commission(item.total_amount, rate)
            self._order_repo.save_item(item, update_fields=["commission_amount"])
            order_amount += item.total_amount
            commission += item.commission_amount
        return order_amount, commission

    def _charge_part(
        self, order: Order, part: OrderPart, items: List[OrderItem]
    ) -> Decimal:
        """Record a vendor part's commission at the current rate and accrue it.

        Runs once per part, the first time its vendor takes it over, whether
        through ``forward_part`` or a status update.  Returns the rate.
        """
        rate = self._commission_service.get_current_rate()
        order_amount, commission = self._apply_commission(items, rate)
        part.commission_rate = rate
        part.commission_amount = commission
        part.forwarded_at = timezone.now()
        order.add_domain_event(
            OrderForwarded(
                aggregate_id=order.id,
                part_id=str(part.id),
                commission_amount=str(commission),
            )
        )
        self._update_ledger_safely(
            "accrue",
            vendor_id=part.vendor_id,
            order_amount=order_amount,
            commission_amount=commission,
            period=CommissionPeriod.from_datetime(part.forwarded_at),
            reference=part.part_number,
        )
        return rate

    def _charge_order(self, order: Order, items: List[OrderItem]) -> Decimal:
        """Same as ``_charge_part`` for an unsplit vendor-only order.

        One ledger accrual is made per vendor in the cart.
        """
        rate = self._commission_service.get_current_rate()
        _, commission = self._apply_commission(items, rate)
        order.forwarded_at = timezone.now()
        order.add_domain_event(
            OrderForwarded(aggregate_id=order.id, commission_amount=str(commission))
        )
        period = CommissionPeriod.from_datetime(order.forwarded_at)
        for vendor_id, (sales, vendor_commission) in _totals_by_vendor(items).items():
            self._update_ledger_safely(
                "accrue",
                vendor_id=vendor_id,
                order_amount=sales,
                commission_amount=vendor_commission,
                period=period,
                reference=order.order_number,
            )
        return rate

    def _refresh_order_status(self, order: Order, actor: str, role: str) -> None:
        """Recompute a split order's cached status from its parts and save it."""
        parts = self._order_repo.list_parts(order.id)
        aggregated = calculate_mixed_order_status(
            map_legacy_status(part.status) for part in parts
        )
        old_status = order.status
        if aggregated != old_status:
            order.status = aggregated
            self._order_repo.add_history(
                order_id=order.id,
                old_status=old_status,
                new_status=aggregated,
                actor=actor,
                actor_role=role,
                notes="Recalculated from order parts",
            )
        self._order_repo.save(order)

    def _reverse_part_commission(self, part: OrderPart, items: List[OrderItem]) -> None:
        if not part.is_forwarded or part.commission_reversed:
            return
        part.commission_reversed = True
        part.commission_reversed_at = timezone.now()
        self._order_repo.save_part(
            part, update_fields=["commission_reversed", "commission_reversed_at"]
        )
        self._reverse_commission(items, part.forwarded_at, part.part_number)

    def _reverse_commission(
        self, items: Iterable[OrderItem], forwarded_at, reference: str
    ) -> None:
        """Flag forwarded vendor items as reversed and debit their ledgers.

        The ledger of the month the items were forwarded in is debited.
        """
        reversed_items = []
        now = timezone.now()
        for item in items:
            if item.vendor_id is None or item.commission_reversed:
                continue
            item.commission_reversed = True
            item.commission_reversed_at = now
            self._order_repo.save_item(
                item, update_fields=["commission_reversed", "commission_reversed_at"]
            )
            reversed_items.append(item)

        period = CommissionPeriod.from_datetime(forwarded_at)
        for vendor_id, (sales, commission) in _totals_by_vendor(reversed_items).items():
            self._update_ledger_safely(
                "reverse",
                vendor_id=vendor_id,
                order_amount=sales,
                commission_amount=commission,
                period=period,
                reference=reference,
            )

    def _update_ledger_safely(self, action: str, **kwargs) -> None:
        """Run a ledger update in a savepoint; log and swallow failures."""
        try:
            with transaction.atomic():
                getattr(self._commission_service, action)(**kwargs)
        except Exception:
            logger.exception(
                "commission.ledger_update_failed",
                action=action,
                vendor_id=str(kwargs.get("vendor_id")),
                reference=kwargs.get("reference"),
            )


def _totals_by_vendor(items: Iterable[OrderItem]) -> Dict[UUID, Tuple[Decimal, Decimal]]:
    """Sum (sales, commission) per vendor over vendor items."""
    totals: Dict[UUID, Tuple[Decimal, Decimal]] = OrderedDict()
    for item in items:
        if item.vendor_id is None:
            continue
        sales, commission = totals.get(item.vendor_id, (ZERO, ZERO))
        totals[item.vendor_id] = (
            sales + item.total_amount,
            commission + item.commission_amount,
        )
    return totals
