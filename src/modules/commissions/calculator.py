"""Commission arithmetic.

Pure functions: no database access, no global state.  The commission
rate is always passed in by the caller, which fetches it once per
request from the versioned ``CommissionSetting`` records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.utils import timezone

from modules.commissions.constants import (
    CENT,
    MAX_RATE,
    MIN_RATE,
    ZERO,
    LedgerPaymentStatus,
)
from modules.commissions.exceptions import (
    InvalidCommissionRate,
    InvalidPaymentAmount,
    PaymentExceedsPending,
)


@dataclass(frozen=True)
class CommissionPeriod:
    """A ledger period: one calendar month."""

    year: int
    month: int

    @classmethod
    def from_datetime(cls, value: datetime) -> CommissionPeriod:
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return cls(year=value.year, month=value.month)

    @classmethod
    def current(cls) -> CommissionPeriod:
        return cls.from_datetime(timezone.now())

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def to_money(value) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_rate(rate_percentage: Decimal) -> Decimal:
    rate = Decimal(rate_percentage)
    if rate < MIN_RATE or rate > MAX_RATE:
        raise InvalidCommissionRate(
            f"Commission rate must be between {MIN_RATE} and {MAX_RATE}, got {rate}."
        )
    return rate


def calculate_commission(amount: Decimal, rate_percentage: Decimal) -> Decimal:
    """Commission owed on *amount* at *rate_percentage* (0-100)."""
    rate = validate_rate(rate_percentage)
    if not amount or amount <= 0:
        return ZERO
    return to_money(Decimal(amount) * rate / Decimal(100))


def effective_commission(amount: Optional[Decimal], reversed_: bool) -> Decimal:
    """What a recorded commission still contributes: nothing once reversed."""
    if reversed_ or not amount:
        return ZERO
    return Decimal(amount)


def pending_commission(total: Decimal, paid: Decimal) -> Decimal:
    return Decimal(total) - Decimal(paid)


def validate_payment(
    amount: Decimal,
    total_commission: Decimal,
    paid_commission: Decimal,
    tolerance: Decimal = CENT,
) -> Decimal:
    """Check a payment against the pending balance.

    Raises:
        InvalidPaymentAmount: amount is not positive.
        PaymentExceedsPending: amount exceeds the pending balance by more
            than *tolerance*.
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise InvalidPaymentAmount(
            "Payment amount is required and must be greater than 0."
        )
    remaining = pending_commission(total_commission, paid_commission)
    if amount > remaining + Decimal(tolerance):
        raise PaymentExceedsPending(
            amount=amount,
            total_commission=Decimal(total_commission),
            paid_commission=Decimal(paid_commission),
        )
    return amount


def resolve_payment_status(total: Decimal, paid: Decimal) -> str:
    if paid >= total:
        return LedgerPaymentStatus.PAID
    if paid > 0:
        return LedgerPaymentStatus.PROCESSING
    return LedgerPaymentStatus.PENDING
