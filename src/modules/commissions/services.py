"""Commission service layer (Use Cases).

Owns the commission rate settings and the monthly ledger per vendor.

Business rules enforced:
- The rate is read once per forwarding request from the latest
  ``CommissionSetting``; changing it only affects later forwarding.
- Ledger totals are incremented atomically in the database.
- A payment may not exceed the pending balance of its period by more
  than the configured tolerance.
- Resetting a vendor ledger requires explicit confirmation.
- After every accrual or reversal the payment status is recomputed, and
  any amount paid beyond the new total becomes a vendor credit.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.commissions.calculator import (
    CommissionPeriod,
    resolve_payment_status,
    to_money,
    validate_payment,
    validate_rate,
)
from modules.commissions.constants import ZERO
from modules.commissions.dtos import (
    MonthlyCommissionDTO,
    RecordPaymentDTO,
    UpdateRateDTO,
    VendorCommissionSummaryDTO,
)
from modules.commissions.exceptions import (
    CommissionRecordNotFound,
    ResetNotConfirmed,
)
from modules.commissions.models import LedgerEntryKind
from modules.vendors.exceptions import VendorNotFound

if TYPE_CHECKING:
    from modules.commissions.models import CommissionSetting, MonthlyCommission
    from modules.commissions.repositories.interfaces import ICommissionRepository
    from modules.vendors.repositories.interfaces import IVendorRepository

logger = structlog.get_logger(__name__)


class CommissionService:
    """Application service for commission use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        commission_repository: ICommissionRepository,
        vendor_repository: IVendorRepository,
    ) -> None:
        self._commission_repo = commission_repository
        self._vendor_repo = vendor_repository

    # ------------------------------------------------------------------
    # Rate settings
    # ------------------------------------------------------------------

    def get_current_rate(self) -> Decimal:
        """Percentage (0-100) to apply to commission computed right now."""
        setting = self._commission_repo.get_current_setting()
        if setting is None:
            return Decimal(settings.COMMISSION_DEFAULT_RATE)
        return Decimal(setting.rate_percentage)

    def update_rate(self, dto: UpdateRateDTO) -> CommissionSetting:
        """Record a new commission rate, effective immediately.

        Raises:
            InvalidCommissionRate: rate outside 0-100.
        """
        rate = validate_rate(dto.rate_percentage)
        previous = self.get_current_rate()
        setting = self._commission_repo.add_setting(
            rate_percentage=rate,
            changed_by=dto.changed_by,
            notes=dto.notes,
        )
        logger.info(
            "commission.rate_updated",
            previous_rate=str(previous),
            new_rate=str(rate),
            changed_by=dto.changed_by,
        )
        return setting

    # ------------------------------------------------------------------
    # Ledger accrual / reversal
    # ------------------------------------------------------------------

    @transaction.atomic
    def accrue(
        self,
        vendor_id: UUID,
        order_amount: Decimal,
        commission_amount: Decimal,
        period: Optional[CommissionPeriod] = None,
        reference: str = "",
    ) -> MonthlyCommission:
        """Add a forwarded order's commission to the vendor's monthly row.

        The commission is computed by the caller; the ledger only
        accumulates it.  The row is created on first use.
        """
        period = period or CommissionPeriod.current()
        ledger = self._commission_repo.increment(
            vendor_id=str(vendor_id),
            period=period,
            orders=1,
            sales=order_amount,
            commission=commission_amount,
        )
        self._commission_repo.add_entry(
            ledger,
            kind=LedgerEntryKind.ACCRUAL,
            amount=commission_amount,
            order_amount=order_amount,
            reference=reference,
        )
        self._settle(ledger, reference)
        logger.info(
            "commission.accrued",
            vendor_id=str(vendor_id),
            period=str(period),
            order_amount=str(order_amount),
            commission=str(commission_amount),
            total_commission=str(ledger.total_commission),
            reference=reference,
        )
        return ledger

    @transaction.atomic
    def reverse(
        self,
        vendor_id: UUID,
        order_amount: Decimal,
        commission_amount: Decimal,
        period: CommissionPeriod,
        reference: str = "",
    ) -> Optional[MonthlyCommission]:
        """Take a previously accrued commission back out of its period.

        Returns ``None`` (and logs) when the period has no ledger row, for
        instance because the vendor ledger was reset in the meantime.
        """
        ledger = self._commission_repo.increment(
            vendor_id=str(vendor_id),
            period=period,
            orders=-1,
            sales=-order_amount,
            commission=-commission_amount,
            create=False,
        )
        log = logger.bind(
            vendor_id=str(vendor_id),
            period=str(period),
            commission=str(commission_amount),
            reference=reference,
        )
        if ledger is None:
            log.warning("commission.reverse_missing_ledger")
            return None

        self._commission_repo.add_entry(
            ledger,
            kind=LedgerEntryKind.REVERSAL,
            amount=-commission_amount,
            order_amount=-order_amount,
            reference=reference,
        )
        self._settle(ledger, reference)
        log.info("commission.reversed", total_commission=str(ledger.total_commission))
        return ledger

    def _settle(self, ledger: MonthlyCommission, reference: str = "") -> None:
        """Keep paid within total after the totals moved; refresh the status.

        Paid money above the new total is parked in ``credit_balance``.  A
        credit is spent on the pending balance as soon as there is one.
        """
        total = ledger.total_commission
        paid = ledger.paid_commission
        credit = ledger.credit_balance
        log = logger.bind(
            vendor_id=str(ledger.vendor_id), period=str(ledger.period), reference=reference
        )

        if paid > total:
            excess = to_money(paid - total)
            ledger.paid_commission = total
            ledger.credit_balance = to_money(credit + excess)
            self._commission_repo.add_entry(
                ledger, kind=LedgerEntryKind.CREDIT, amount=excess, reference=reference
            )
            log.warning("commission.overpayment_credited", credit=str(excess))
        elif credit > 0 and paid < total:
            applied = min(credit, to_money(total - paid))
            ledger.paid_commission = to_money(paid + applied)
            ledger.credit_balance = to_money(credit - applied)
            self._commission_repo.add_entry(
                ledger, kind=LedgerEntryKind.CREDIT, amount=-applied, reference=reference
            )
            log.info("commission.credit_applied", applied=str(applied))

        ledger.payment_status = resolve_payment_status(
            ledger.total_commission, ledger.paid_commission
        )
        self._commission_repo.save(ledger)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    @transaction.atomic
    def record_payment(self, dto: RecordPaymentDTO) -> MonthlyCommission:
        """Record an admin payment against a vendor's monthly commission.

        Locks the ledger row, validates the amount against the pending
        balance, then updates paid amount and payment status.

        Raises:
            VendorNotFound: vendor does not exist.
            CommissionRecordNotFound: no ledger row for the period.
            InvalidPaymentAmount: amount is not positive.
            PaymentExceedsPending: amount exceeds the pending balance.
        """
        if dto.year is not None and dto.month is not None:
            period = CommissionPeriod(year=dto.year, month=dto.month)
        else:
            period = CommissionPeriod.current()

        log = logger.bind(vendor_id=str(dto.vendor_id), period=str(period))

        if not self._vendor_repo.get_by_id(str(dto.vendor_id)):
            raise VendorNotFound(f"Vendor {dto.vendor_id} not found.")

        ledger = self._commission_repo.get_for_update(str(dto.vendor_id), period)
        if ledger is None:
            raise CommissionRecordNotFound(
                f"No commission record for vendor {dto.vendor_id} in {period}."
            )

        amount = validate_payment(
            dto.amount,
            total_commission=ledger.total_commission,
            paid_commission=ledger.paid_commission,
            tolerance=settings.COMMISSION_PAYMENT_TOLERANCE,
        )

        ledger.paid_commission = to_money(ledger.paid_commission + amount)
        ledger.payment_status = resolve_payment_status(
            ledger.total_commission, ledger.paid_commission
        )
        ledger.last_payment_date = timezone.now()
        ledger.payment_method = dto.payment_method
        ledger.payment_reference = dto.payment_reference
        ledger.admin_notes = dto.notes or "Payment marked as received by admin"
        self._commission_repo.save(ledger)

        self._commission_repo.add_entry(
            ledger,
            kind=LedgerEntryKind.PAYMENT,
            amount=amount,
            reference=dto.payment_reference,
        )
        log.info(
            "commission.payment_recorded",
            amount=str(amount),
            paid_commission=str(ledger.paid_commission),
            payment_status=ledger.payment_status,
        )
        return ledger

    @transaction.atomic
    def reset_vendor_ledger(self, vendor_id: UUID, confirm: bool = False) -> int:
        """Delete every monthly row of a vendor.  Irreversible.

        Raises:
            ResetNotConfirmed: *confirm* is not ``True``.
            VendorNotFound: vendor does not exist.
        """
        if confirm is not True:
            raise ResetNotConfirmed("Confirmation required to reset commission data.")
        if not self._vendor_repo.get_by_id(str(vendor_id)):
            raise VendorNotFound(f"Vendor {vendor_id} not found.")

        deleted = self._commission_repo.delete_for_vendor(str(vendor_id))
        logger.warning(
            "commission.ledger_reset", vendor_id=str(vendor_id), deleted=deleted
        )
        return deleted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_ledger(
        self,
        vendor_id: Optional[UUID] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> List[MonthlyCommission]:
        filters = {}
        if vendor_id is not None:
            filters["vendor_id"] = vendor_id
        if year is not None:
            filters["year"] = year
        if month is not None:
            filters["month"] = month
        return self._commission_repo.list(filters)

    def get_vendor_summary(self, vendor_id: UUID) -> VendorCommissionSummaryDTO:
        """All-time commission totals of a vendor.

        Raises:
            VendorNotFound: vendor does not exist.
        """
        if not self._vendor_repo.get_by_id(str(vendor_id)):
            raise VendorNotFound(f"Vendor {vendor_id} not found.")

        rows = self._commission_repo.list_for_vendor(str(vendor_id))
        total = sum((row.total_commission for row in rows), ZERO)
        paid = sum((row.paid_commission for row in rows), ZERO)
        return VendorCommissionSummaryDTO(
            vendor_id=vendor_id,
            total_commission=total,
            paid_commission=paid,
            pending_commission=total - paid,
            period_count=len(rows),
            periods=[MonthlyCommissionDTO.from_entity(row) for row in rows],
        )
