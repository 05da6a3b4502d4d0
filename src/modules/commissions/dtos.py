"""Commission DTOs for the Service Layer.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 models.

- ``UpdateRateDTO``: input for a commission rate change.
- ``RecordPaymentDTO``: input for an admin payment against a ledger row.
- ``MonthlyCommissionDTO``: output for one ledger row.
- ``VendorCommissionSummaryDTO``: all-time totals for one vendor.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.commissions.constants import MIN_LEDGER_YEAR, PaymentMethod

if TYPE_CHECKING:
    from modules.commissions.models import MonthlyCommission


class UpdateRateDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate_percentage: Decimal = Field(ge=0, le=100)
    changed_by: str = ""
    notes: str = ""


class RecordPaymentDTO(BaseModel):
    """Immutable DTO for recording a commission payment.

    ``year`` and ``month`` default to the current period when both are
    omitted; giving only one of them is rejected.
    """

    model_config = ConfigDict(frozen=True)

    vendor_id: UUID
    amount: Decimal
    year: Optional[int] = None
    month: Optional[int] = None
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    payment_reference: str = ""
    notes: str = ""

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(
                "Payment amount is required and must be greater than 0."
            )
        return v

    @field_validator("month")
    @classmethod
    def month_in_range(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= 12:
            raise ValueError("Month must be between 1 and 12.")
        return v

    @field_validator("year")
    @classmethod
    def year_in_range(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < MIN_LEDGER_YEAR:
            raise ValueError(f"Year must be {MIN_LEDGER_YEAR} or later.")
        return v

    @model_validator(mode="after")
    def period_is_complete(self):
        if (self.year is None) != (self.month is None):
            raise ValueError("Year and month must be given together.")
        return self


class MonthlyCommissionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    vendor_id: UUID
    year: int
    month: int
    total_orders: int
    total_sales: Decimal
    total_commission: Decimal
    paid_commission: Decimal
    pending_commission: Decimal
    credit_balance: Decimal
    payment_status: str
    last_payment_date: Optional[datetime]

    @classmethod
    def from_entity(cls, row: MonthlyCommission) -> MonthlyCommissionDTO:
        return cls(
            id=row.id,
            vendor_id=row.vendor_id,
            year=row.year,
            month=row.month,
            total_orders=row.total_orders,
            total_sales=row.total_sales,
            total_commission=row.total_commission,
            paid_commission=row.paid_commission,
            pending_commission=row.pending_commission,
            credit_balance=row.credit_balance,
            payment_status=row.payment_status,
            last_payment_date=row.last_payment_date,
        )


class VendorCommissionSummaryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    vendor_id: UUID
    total_commission: Decimal
    paid_commission: Decimal
    pending_commission: Decimal
    period_count: int
    periods: List[MonthlyCommissionDTO]
