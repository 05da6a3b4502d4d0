"""Commission domain exceptions."""

from __future__ import annotations

from decimal import Decimal


class InvalidCommissionRate(Exception):
    """The commission rate is outside the 0-100 percentage range."""


class CommissionRecordNotFound(Exception):
    """No ledger row exists for the requested vendor and period."""


class InvalidPaymentAmount(Exception):
    """A payment amount must be greater than zero."""


class PaymentExceedsPending(Exception):
    """The payment is larger than the commission still pending."""

    def __init__(
        self,
        amount: Decimal,
        total_commission: Decimal,
        paid_commission: Decimal,
    ) -> None:
        self.amount = amount
        self.total_commission = total_commission
        self.paid_commission = paid_commission
        self.remaining = total_commission - paid_commission
        super().__init__(
            f"Payment amount ({amount:.2f}) exceeds pending commission amount "
            f"({self.remaining:.2f}). Total commission: {total_commission:.2f}, "
            f"already paid: {paid_commission:.2f}."
        )


class ResetNotConfirmed(Exception):
    """Resetting a vendor ledger requires explicit confirmation."""
