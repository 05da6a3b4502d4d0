"""Unit tests for the commission arithmetic."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest

from modules.commissions.calculator import (
    CommissionPeriod,
    calculate_commission,
    effective_commission,
    pending_commission,
    resolve_payment_status,
    validate_payment,
    validate_rate,
)
from modules.commissions.constants import LedgerPaymentStatus
from modules.commissions.exceptions import (
    InvalidCommissionRate,
    InvalidPaymentAmount,
    PaymentExceedsPending,
)

pytestmark = pytest.mark.unit


class TestCalculateCommission:
    def test_twenty_percent_of_fifty(self):
        assert calculate_commission(Decimal("50.00"), Decimal("20")) == Decimal("10.00")

    def test_rounds_half_up_to_cents(self):
        assert calculate_commission(Decimal("10.05"), Decimal("50")) == Decimal("5.03")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00"), None])
    def test_non_positive_amount_gives_zero(self, amount):
        assert calculate_commission(amount, Decimal("20")) == Decimal("0.00")

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("100")])
    def test_bounds_are_valid_rates(self, rate):
        assert calculate_commission(Decimal("10.00"), rate) == Decimal("10.00") * rate / 100

    @pytest.mark.parametrize("rate", [Decimal("-0.01"), Decimal("100.01")])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(InvalidCommissionRate):
            calculate_commission(Decimal("10.00"), rate)

    def test_validate_rate_accepts_strings(self):
        assert validate_rate("12.5") == Decimal("12.5")


class TestEffectiveCommission:
    def test_reversed_is_zero(self):
        assert effective_commission(Decimal("10.00"), True) == Decimal("0.00")

    def test_active_keeps_amount(self):
        assert effective_commission(Decimal("10.00"), False) == Decimal("10.00")

    def test_missing_amount_is_zero(self):
        assert effective_commission(None, False) == Decimal("0.00")


class TestValidatePayment:
    def test_overpayment_rejected(self):
        with pytest.raises(PaymentExceedsPending) as exc_info:
            validate_payment(Decimal("25"), Decimal("100"), Decimal("80"))
        assert exc_info.value.remaining == Decimal("20")
        assert "20.00" in str(exc_info.value)

    def test_within_tolerance_accepted(self):
        assert validate_payment(
            Decimal("20.005"), Decimal("100"), Decimal("80")
        ) == Decimal("20.005")

    def test_just_above_tolerance_rejected(self):
        with pytest.raises(PaymentExceedsPending):
            validate_payment(Decimal("20.02"), Decimal("100"), Decimal("80"))

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(InvalidPaymentAmount):
            validate_payment(amount, Decimal("100"), Decimal("0"))

    def test_pending(self):
        assert pending_commission(Decimal("100"), Decimal("35.50")) == Decimal("64.50")


class TestResolvePaymentStatus:
    @pytest.mark.parametrize(
        "total,paid,expected",
        [
            ("100", "100", LedgerPaymentStatus.PAID),
            ("100", "100.01", LedgerPaymentStatus.PAID),
            ("100", "40", LedgerPaymentStatus.PROCESSING),
            ("100", "0", LedgerPaymentStatus.PENDING),
        ],
    )
    def test_status(self, total, paid, expected):
        assert resolve_payment_status(Decimal(total), Decimal(paid)) == expected


class TestCommissionPeriod:
    def test_from_datetime(self):
        moment = datetime(2025, 3, 31, 12, 0, tzinfo=dt_timezone.utc)
        assert CommissionPeriod.from_datetime(moment) == CommissionPeriod(2025, 3)

    def test_str(self):
        assert str(CommissionPeriod(2025, 3)) == "2025-03"
