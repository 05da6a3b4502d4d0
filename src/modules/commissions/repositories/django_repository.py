"""Django ORM implementation of the Commission repository.

Ledger totals are updated with ``F()`` expressions so that concurrent
requests forwarding orders of the same vendor in the same month never
lose an increment.  Rows are created with ``get_or_create`` which
tolerates a concurrent insert of the same (vendor, year, month) key.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from modules.commissions.calculator import CommissionPeriod
from modules.commissions.models import (
    CommissionSetting,
    LedgerEntry,
    MonthlyCommission,
)
from modules.commissions.repositories.interfaces import ICommissionRepository

logger = structlog.get_logger(__name__)


class CommissionDjangoRepository(ICommissionRepository):
    """Concrete Commission repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_current_setting(
        self, at: Optional[datetime] = None
    ) -> Optional[CommissionSetting]:
        at = at or timezone.now()
        return (
            CommissionSetting.objects.filter(effective_from__lte=at)
            .order_by("-effective_from", "-id")
            .first()
        )

    @transaction.atomic
    def add_setting(
        self, rate_percentage: Decimal, changed_by: str = "", notes: str = ""
    ) -> CommissionSetting:
        setting = CommissionSetting.objects.create(
            rate_percentage=rate_percentage,
            changed_by=changed_by,
            notes=notes,
        )
        logger.info(
            "commission.setting_added",
            setting_id=str(setting.id),
            rate_percentage=str(rate_percentage),
        )
        return setting

    # ------------------------------------------------------------------
    # Ledger reads
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[MonthlyCommission]:
        try:
            return MonthlyCommission.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[MonthlyCommission]:
        """List ledger rows.

        Supported filter keys: ``vendor_id``, ``year``, ``month``,
        ``payment_status``.
        """
        queryset = MonthlyCommission.objects.select_related("vendor")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_for_period(
        self, vendor_id: str, period: CommissionPeriod
    ) -> Optional[MonthlyCommission]:
        return MonthlyCommission.objects.filter(
            vendor_id=vendor_id, year=period.year, month=period.month
        ).first()

    def get_for_update(
        self, vendor_id: str, period: CommissionPeriod
    ) -> Optional[MonthlyCommission]:
        return (
            MonthlyCommission.objects.select_for_update()
            .filter(vendor_id=vendor_id, year=period.year, month=period.month)
            .first()
        )

    def list_for_vendor(self, vendor_id: str) -> List[MonthlyCommission]:
        return list(MonthlyCommission.objects.filter(vendor_id=vendor_id))

    # ------------------------------------------------------------------
    # Ledger writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: MonthlyCommission) -> MonthlyCommission:
        entity.save()
        logger.info("commission.ledger_saved", ledger_id=str(entity.id))
        return entity

    @transaction.atomic
    def increment(
        self,
        vendor_id: str,
        period: CommissionPeriod,
        orders: int,
        sales: Decimal,
        commission: Decimal,
        create: bool = True,
    ) -> Optional[MonthlyCommission]:
        lookup = {"vendor_id": vendor_id, "year": period.year, "month": period.month}
        if create:
            MonthlyCommission.objects.get_or_create(**lookup)

        updated = MonthlyCommission.objects.filter(**lookup).update(
            total_orders=F("total_orders") + orders,
            total_sales=F("total_sales") + sales,
            total_commission=F("total_commission") + commission,
            updated_at=timezone.now(),
        )
        if not updated:
            return None
        return MonthlyCommission.objects.select_for_update().get(**lookup)

    @transaction.atomic
    def add_entry(
        self,
        ledger: MonthlyCommission,
        kind: str,
        amount: Decimal,
        order_amount: Decimal = Decimal("0.00"),
        reference: str = "",
    ) -> LedgerEntry:
        return LedgerEntry.objects.create(
            ledger=ledger,
            kind=kind,
            amount=amount,
            order_amount=order_amount,
            reference=reference,
        )

    @transaction.atomic
    def delete_for_vendor(self, vendor_id: str) -> int:
        _, per_model = MonthlyCommission.objects.filter(vendor_id=vendor_id).delete()
        return per_model.get(MonthlyCommission._meta.label, 0)
