"""CommissionSetting, MonthlyCommission and LedgerEntry models.

Business rules implemented:
- The commission rate is versioned: every change inserts a new
  ``CommissionSetting`` with its ``effective_from`` timestamp, so the rate
  that applied at any moment can be reconstructed.  Changing the rate never
  rewrites commission already recorded on orders.
- One ``MonthlyCommission`` row per (vendor, year, month), enforced by a
  unique constraint; totals are incremented with ``F()`` expressions.
- ``paid_commission`` never exceeds ``total_commission`` beyond the payment
  tolerance.  When a reversal drops the total below what was already paid,
  the excess moves to ``credit_balance`` and is used up by later accruals
  of the same period.  ``payment_status`` follows every change of totals.
- ``LedgerEntry`` keeps an append-only record of every accrual, reversal
  and payment applied to a ledger row.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from modules.commissions.calculator import CommissionPeriod, pending_commission
from modules.commissions.constants import (
    MAX_RATE,
    MIN_LEDGER_YEAR,
    MIN_RATE,
    LedgerPaymentStatus,
    PaymentMethod,
)
from modules.core.models import BaseModel


class CommissionSetting(BaseModel):
    rate_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(MIN_RATE), MaxValueValidator(MAX_RATE)],
    )
    effective_from = models.DateTimeField(default=timezone.now)
    changed_by = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "commission_settings"
        ordering = ["-effective_from", "-id"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(rate_percentage__gte=0)
                & models.Q(rate_percentage__lte=100),
                name="commission_settings_rate_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.rate_percentage}% from {self.effective_from:%Y-%m-%d %H:%M}"


class MonthlyCommission(BaseModel):
    vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.CASCADE,
        related_name="monthly_commissions",
    )
    year = models.PositiveIntegerField(validators=[MinValueValidator(MIN_LEDGER_YEAR)])
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    total_orders = models.IntegerField(default=0)
    total_sales = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    total_commission = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    paid_commission = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    credit_balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    payment_status = models.CharField(
        max_length=20,
        choices=LedgerPaymentStatus.choices,
        default=LedgerPaymentStatus.PENDING,
    )
    last_payment_date = models.DateTimeField(null=True, blank=True, default=None)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.BANK_TRANSFER,
    )
    payment_reference = models.CharField(max_length=255, blank=True, default="")
    admin_notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "monthly_commissions"
        ordering = ["-year", "-month"]
        constraints = [
            models.UniqueConstraint(
                fields=["vendor", "year", "month"],
                name="monthly_commissions_vendor_period",
            ),
        ]
        indexes = [
            models.Index(
                fields=["vendor", "payment_status"],
                name="mc_vendor_status_idx",
            ),
            models.Index(fields=["year", "month"], name="mc_period_idx"),
        ]

    @property
    def period(self) -> CommissionPeriod:
        return CommissionPeriod(year=self.year, month=self.month)

    @property
    def pending_commission(self) -> Decimal:
        return pending_commission(self.total_commission, self.paid_commission)

    def __str__(self) -> str:
        return f"{self.vendor_id} {self.period} [{self.payment_status}]"


class LedgerEntryKind(models.TextChoices):
    ACCRUAL = "accrual", "Accrual"
    REVERSAL = "reversal", "Reversal"
    PAYMENT = "payment", "Payment"
    CREDIT = "credit", "Vendor credit"


class LedgerEntry(BaseModel):
    ledger = models.ForeignKey(
        "commissions.MonthlyCommission",
        on_delete=models.CASCADE,
        related_name="entries",
    )
    kind = models.CharField(max_length=10, choices=LedgerEntryKind.choices)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    order_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    reference = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "commission_ledger_entries"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.kind} {self.amount} ({self.reference})"
