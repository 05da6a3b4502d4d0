"""Unit tests for the order status rules.

Covers:
- The transition table (happy path, skipped states, terminal states).
- Customer cancellation and role-based change permissions.
- Legacy status mapping, lenient and strict.
- Model-level FSM helpers (can_transition_to, is_terminal).
"""

from __future__ import annotations

import pytest

from modules.orders.constants import (
    ADMIN_ROLE,
    CUSTOMER_ROLE,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    VENDOR_ROLE,
    OrderStatus,
)
from modules.orders.exceptions import UnknownOrderStatus
from modules.orders.models import Order, OrderPart
from modules.orders.status import (
    allowed_transitions,
    can_change_status,
    can_customer_cancel_order,
    is_valid_status_transition,
    map_legacy_status,
    parse_status,
)

pytestmark = pytest.mark.unit

ALL_STATUSES = list(OrderStatus.values)


class TestTransitionTable:
    @pytest.mark.parametrize(
        "current,new",
        [
            ("placed", "processing"),
            ("processing", "shipped"),
            ("shipped", "delivered"),
        ],
    )
    def test_forward_steps_are_valid(self, current, new):
        assert is_valid_status_transition(current, new) is True

    @pytest.mark.parametrize("current", ["placed", "processing", "shipped"])
    @pytest.mark.parametrize("new", ["cancelled", "cancelled_by_customer"])
    def test_non_terminal_statuses_can_be_cancelled(self, current, new):
        assert is_valid_status_transition(current, new) is True

    @pytest.mark.parametrize(
        "current,new",
        [
            ("placed", "shipped"),
            ("placed", "delivered"),
            ("processing", "delivered"),
            ("shipped", "processing"),
            ("processing", "placed"),
            ("placed", "placed"),
        ],
    )
    def test_skips_and_reversals_are_invalid(self, current, new):
        assert is_valid_status_transition(current, new) is False

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATES))
    @pytest.mark.parametrize("new", ALL_STATUSES)
    def test_terminal_statuses_never_transition(self, terminal, new):
        assert is_valid_status_transition(terminal, new) is False

    def test_unknown_current_status_has_no_transitions(self):
        assert allowed_transitions("on_hold") == frozenset()
        assert is_valid_status_transition("on_hold", "processing") is False

    def test_table_covers_every_status(self):
        assert set(VALID_TRANSITIONS) == set(ALL_STATUSES)


class TestCustomerCancellation:
    @pytest.mark.parametrize("status", ["placed", "processing", "shipped"])
    def test_in_progress_orders_can_be_cancelled(self, status):
        assert can_customer_cancel_order(status) is True

    @pytest.mark.parametrize(
        "status", ["delivered", "cancelled", "cancelled_by_customer"]
    )
    def test_finished_orders_cannot_be_cancelled(self, status):
        assert can_customer_cancel_order(status) is False


class TestChangePermissions:
    @pytest.mark.parametrize("role", [ADMIN_ROLE, VENDOR_ROLE, CUSTOMER_ROLE])
    def test_nobody_changes_a_customer_cancellation(self, role):
        assert can_change_status("cancelled_by_customer", role) is False

    @pytest.mark.parametrize("status", ["delivered", "cancelled"])
    def test_only_admin_changes_other_terminal_statuses(self, status):
        assert can_change_status(status, ADMIN_ROLE) is True
        assert can_change_status(status, VENDOR_ROLE) is False

    @pytest.mark.parametrize("status", ["placed", "processing", "shipped"])
    def test_any_role_changes_non_terminal_statuses(self, status):
        assert can_change_status(status, VENDOR_ROLE) is True

    def test_role_defaults_to_admin(self):
        assert can_change_status("delivered") is True


class TestLegacyMapping:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Pending", "placed"),
            ("Confirmed", "processing"),
            ("Shipped", "shipped"),
            ("Delivered", "delivered"),
            ("Cancelled", "cancelled"),
            ("CONFIRMED", "processing"),
            (" pending ", "placed"),
        ],
    )
    def test_historical_values_map_to_canonical(self, raw, expected):
        assert map_legacy_status(raw) == expected

    @pytest.mark.parametrize("status", ALL_STATUSES)
    def test_canonical_values_pass_through(self, status):
        assert map_legacy_status(status) == status

    def test_unknown_value_is_lowercased(self):
        assert map_legacy_status("On Hold") == "on hold"

    def test_empty_value_passes_through(self):
        assert map_legacy_status("") == ""
        assert map_legacy_status(None) == ""

    @pytest.mark.parametrize("raw", ["", None])
    def test_parse_status_rejects_empty_value(self, raw):
        with pytest.raises(UnknownOrderStatus):
            parse_status(raw)

    def test_parse_status_returns_enum(self):
        assert parse_status("Confirmed") is OrderStatus.PROCESSING

    def test_parse_status_rejects_unknown_value(self):
        with pytest.raises(UnknownOrderStatus) as exc_info:
            parse_status("On Hold")
        assert exc_info.value.raw_status == "On Hold"
        assert "On Hold" in str(exc_info.value)


class TestModelHelpers:
    def test_order_can_transition_to(self):
        order = Order(status=OrderStatus.PLACED)
        assert order.can_transition_to(OrderStatus.PROCESSING) is True
        assert order.can_transition_to(OrderStatus.SHIPPED) is False

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATES))
    def test_terminal_part_reports_terminal(self, status):
        part = OrderPart(status=status)
        assert part.is_terminal is True
        assert part.can_transition_to(OrderStatus.PROCESSING) is False

    def test_non_terminal_part_is_not_terminal(self):
        assert OrderPart(status=OrderStatus.SHIPPED).is_terminal is False
