"""Order status rules.

Pure functions over the status vocabulary in ``modules.orders.constants``:

- transition checks (``is_valid_status_transition``),
- permission checks (``can_customer_cancel_order``, ``can_change_status``),
- legacy vocabulary mapping (``map_legacy_status`` / ``parse_status``),
- the mixed-order aggregation (``calculate_mixed_order_status``).

None of these functions touch the database.
"""

from __future__ import annotations

from typing import Iterable, Optional

from modules.orders.constants import (
    ADMIN_ROLE,
    CANCELLED_STATES,
    LEGACY_STATUS_MAP,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import UnknownOrderStatus

_PROGRESSED_STATES = frozenset(
    {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED}
)
_DISPATCHED_STATES = frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED})


def allowed_transitions(current: str) -> frozenset[str]:
    """Return the statuses reachable from *current* (empty for terminal/unknown)."""
    return VALID_TRANSITIONS.get(current, frozenset())


def is_valid_status_transition(current: str, new: str) -> bool:
    return new in allowed_transitions(current)


def can_customer_cancel_order(status: str) -> bool:
    return status not in TERMINAL_STATES


def can_change_status(status: str, role: str = ADMIN_ROLE) -> bool:
    """Whether *role* may change an order (or part) currently in *status*.

    Nobody may touch an order the customer cancelled; the other terminal
    states are reserved for administrators.
    """
    if status == OrderStatus.CANCELLED_BY_CUSTOMER:
        return False
    if status in TERMINAL_STATES:
        return role == ADMIN_ROLE
    return True


def map_legacy_status(raw: Optional[str]) -> str:
    """Translate a historical status string into the canonical vocabulary.

    ``"Confirmed"`` becomes ``"processing"``, canonical values are returned
    as-is, and anything unrecognised is lowercased and passed through.
    A missing or empty value maps to ``""``.  Never raises; use
    ``parse_status`` when an unknown value must be rejected.
    """
    lowered = (raw or "").strip().lower()
    if lowered in OrderStatus.values:
        return OrderStatus(lowered)
    return LEGACY_STATUS_MAP.get(lowered, lowered)


def parse_status(raw: Optional[str]) -> OrderStatus:
    """Strict variant of ``map_legacy_status``.

    Raises:
        UnknownOrderStatus: *raw* is neither canonical nor a known legacy value.
    """
    mapped = map_legacy_status(raw)
    if mapped not in OrderStatus.values:
        raise UnknownOrderStatus(f"Unknown order status {raw!r}.", raw_status=raw)
    return OrderStatus(mapped)


def calculate_mixed_order_status(statuses: Iterable[str]) -> OrderStatus:
    """Aggregate the statuses of an order's parts into one display status.

    The parent never reports more progress than its least-advanced part
    that is still alive.  Cancelled parts are left out of the computation;
    only when every part is cancelled is the whole order ``cancelled``.
    """
    statuses = list(statuses)
    if not statuses:
        return OrderStatus.PLACED

    remaining = [status for status in statuses if status not in CANCELLED_STATES]
    if not remaining:
        return OrderStatus.CANCELLED

    if all(status in _PROGRESSED_STATES for status in remaining):
        if all(status in _DISPATCHED_STATES for status in remaining):
            if all(status == OrderStatus.DELIVERED for status in remaining):
                return OrderStatus.DELIVERED
            return OrderStatus.SHIPPED
        return OrderStatus.PROCESSING

    return OrderStatus.PLACED
