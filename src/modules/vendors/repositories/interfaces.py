"""Vendor repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.vendors.models import Vendor


class IVendorRepository(IRepository["Vendor"]):
    """Repository contract for vendors."""

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> Dict[str, Vendor]:
        """Return the vendors with the given IDs, keyed by ``str(id)``."""
