"""Unit tests for VendorDjangoRepository."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.vendors.models import Vendor
from modules.vendors.repositories import IVendorRepository, VendorDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return VendorDjangoRepository()


def test_implements_interface(repo):
    assert isinstance(repo, IVendorRepository)


def test_get_by_id(repo, vendor):
    assert repo.get_by_id(str(vendor.id)) == vendor
    assert repo.get_by_id(str(uuid4())) is None
    assert repo.get_by_id("not-a-uuid") is None


def test_get_many_keys_by_string_id(repo, vendor, other_vendor):
    found = repo.get_many([str(vendor.id), str(other_vendor.id), str(uuid4())])
    assert found == {str(vendor.id): vendor, str(other_vendor.id): other_vendor}


def test_list_filters(repo, vendor, inactive_vendor):
    assert repo.list({"is_active": False}) == [inactive_vendor]


def test_save(repo):
    saved = repo.save(Vendor(business_name="New Shop", email="new@example.com"))
    assert Vendor.objects.filter(id=saved.id).exists()
