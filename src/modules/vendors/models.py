"""Vendor model.

A vendor is a third-party seller whose cart items are forwarded to it
for fulfilment.  Vendors are referenced by order items, order parts and
the monthly commission ledger; inactive vendors cannot receive new
orders.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel


class Vendor(BaseModel):
    business_name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "vendors"
        ordering = ["business_name"]
        indexes = [
            models.Index(fields=["is_active"], name="vendors_active_idx"),
        ]

    def __str__(self) -> str:
        return self.business_name
