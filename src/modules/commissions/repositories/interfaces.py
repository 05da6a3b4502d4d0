"""Commission repository interface.

Covers both the versioned rate settings and the monthly ledger.  Ledger
mutations must be atomic per row: increments are applied in the database,
never as read-modify-write in Python.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.commissions.calculator import CommissionPeriod
    from modules.commissions.models import (
        CommissionSetting,
        LedgerEntry,
        MonthlyCommission,
    )


class ICommissionRepository(IRepository["MonthlyCommission"]):
    """Repository contract for commission settings and ledger rows."""

    @abstractmethod
    def get_current_setting(
        self, at: Optional[datetime] = None
    ) -> Optional[CommissionSetting]:
        """Latest setting effective at *at* (default: now)."""

    @abstractmethod
    def add_setting(
        self, rate_percentage: Decimal, changed_by: str = "", notes: str = ""
    ) -> CommissionSetting:
        """Insert a new rate setting effective immediately."""

    @abstractmethod
    def get_for_period(
        self, vendor_id: str, period: CommissionPeriod
    ) -> Optional[MonthlyCommission]:
        """Ledger row of *vendor_id* for *period*, if any."""

    @abstractmethod
    def get_for_update(
        self, vendor_id: str, period: CommissionPeriod
    ) -> Optional[MonthlyCommission]:
        """Same as ``get_for_period`` with a row-level lock."""

    @abstractmethod
    def increment(
        self,
        vendor_id: str,
        period: CommissionPeriod,
        orders: int,
        sales: Decimal,
        commission: Decimal,
        create: bool = True,
    ) -> Optional[MonthlyCommission]:
        """Atomically add to the row's totals, creating it when *create*.

        Returns the updated row, locked for the rest of the transaction.
        """

    @abstractmethod
    def add_entry(
        self,
        ledger: MonthlyCommission,
        kind: str,
        amount: Decimal,
        order_amount: Decimal = Decimal("0.00"),
        reference: str = "",
    ) -> LedgerEntry:
        """Append an audit entry to a ledger row."""

    @abstractmethod
    def list_for_vendor(self, vendor_id: str) -> List[MonthlyCommission]:
        """All ledger rows of a vendor, newest period first."""

    @abstractmethod
    def delete_for_vendor(self, vendor_id: str) -> int:
        """Delete every ledger row of a vendor; return how many were removed."""
