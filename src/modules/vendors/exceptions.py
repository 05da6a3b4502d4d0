"""Vendor domain exceptions."""

from __future__ import annotations


class VendorNotFound(Exception):
    """The referenced vendor does not exist."""


class InactiveVendor(Exception):
    """The vendor is inactive and cannot receive new orders."""
