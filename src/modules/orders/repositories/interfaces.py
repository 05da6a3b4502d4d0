"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate
needs: atomic creation with items, order parts, item updates and
status history tracking.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import (
        Order,
        OrderItem,
        OrderPart,
        OrderStatusHistory,
    )


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children, the OrderParts a
    mixed order is split into, and OrderStatusHistory records.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` holds the order's customer fields, ``order_type`` and
        ``items`` (list of dicts with ``product_ref``, ``title``,
        ``quantity``, ``unit_price``, ``handled_by`` and ``vendor_id``).
        """

    @abstractmethod
    def get_by_number(self, order_number: str) -> Optional[Order]:
        """Retrieve an order by its human-readable number."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock."""

    @abstractmethod
    def list_for_customer(self, email: str) -> List[Order]:
        """Orders placed with *email* (case-insensitive), newest first."""

    @abstractmethod
    def list_items(self, order_id: str, part_id: Optional[str] = None) -> List[OrderItem]:
        """Items of an order, optionally narrowed to one part."""

    @abstractmethod
    def save_item(
        self, item: OrderItem, update_fields: Optional[Iterable[str]] = None
    ) -> OrderItem:
        """Persist changes to a line item."""

    # ------------------------------------------------------------------
    # Parts
    # ------------------------------------------------------------------

    @abstractmethod
    def create_part(
        self,
        order: Order,
        handler_kind: str,
        part_number: str,
        status: str,
        total_amount: Decimal,
        vendor_id: Optional[str] = None,
    ) -> OrderPart:
        """Create one part of a split order."""

    @abstractmethod
    def assign_items(self, part: OrderPart, items: Iterable[OrderItem]) -> int:
        """Attach *items* to *part*; returns the number of items updated."""

    @abstractmethod
    def get_part(self, id: str) -> Optional[OrderPart]:
        """Retrieve an order part."""

    @abstractmethod
    def get_part_for_update(self, id: str) -> Optional[OrderPart]:
        """Retrieve an order part with a row-level lock."""

    @abstractmethod
    def list_parts(self, order_id: str) -> List[OrderPart]:
        """Parts of an order: the admin part first, then vendor parts."""

    @abstractmethod
    def save_part(
        self, part: OrderPart, update_fields: Optional[Iterable[str]] = None
    ) -> OrderPart:
        """Persist changes to an order part."""

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @abstractmethod
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
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def list_history(
        self, order_id: str, item_level: Optional[bool] = None
    ) -> List[OrderStatusHistory]:
        """History of an order, oldest first.

        ``item_level=True`` keeps item entries only, ``False`` drops them.
        """
