"""Django ORM implementation of the Vendor repository.

Error handling follows the Null Object pattern: look-ups return ``None``
for missing or malformed IDs and the Service Layer decides how to
translate that into a domain exception.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.vendors.models import Vendor
from modules.vendors.repositories.interfaces import IVendorRepository

logger = structlog.get_logger(__name__)


class VendorDjangoRepository(IVendorRepository):
    """Concrete Vendor repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Vendor]:
        try:
            return Vendor.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[str]) -> Dict[str, Vendor]:
        try:
            vendors = Vendor.objects.filter(id__in=list(ids))
            return {str(vendor.id): vendor for vendor in vendors}
        except (ValueError, ValidationError):
            return {}

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Vendor]:
        queryset = Vendor.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Vendor) -> Vendor:
        is_new = entity._state.adding
        entity.save()
        logger.info("vendor.saved", vendor_id=str(entity.id), is_new=is_new)
        return entity
