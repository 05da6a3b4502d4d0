"""Base abstract model shared by every marketplace module.

``BaseModel`` gives vendors, orders, order parts, history rows and
commission ledgers the same identity and timestamp columns:

- ``id`` is a UUIDv7, so ``-id`` and ``-created_at`` orderings agree and
  ties inside the same millisecond still sort deterministically;
- ``updated_at`` moves on every write, including partial writes made
  with ``update_fields`` by the status cascades.
"""

from __future__ import annotations

from typing import Iterable, Optional

import uuid6
from django.db import models


def with_updated_at(update_fields: Optional[Iterable[str]]) -> Optional[list]:
    """Return *update_fields* with ``updated_at`` appended once."""
    if update_fields is None:
        return None
    fields = list(dict.fromkeys(update_fields))
    if "updated_at" not in fields:
        fields.append("updated_at")
    return fields


class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now is skipped by Django unless the field is listed.
        if "update_fields" in kwargs:
            kwargs["update_fields"] = with_updated_at(kwargs["update_fields"])
        super().save(*args, **kwargs)
