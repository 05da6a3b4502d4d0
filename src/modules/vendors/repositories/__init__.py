"""Vendor repositories package."""

from modules.vendors.repositories.django_repository import VendorDjangoRepository
from modules.vendors.repositories.interfaces import IVendorRepository

__all__ = ["IVendorRepository", "VendorDjangoRepository"]
