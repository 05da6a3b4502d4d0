from decimal import Decimal

import pytest

from modules.commissions.repositories.django_repository import (
    CommissionDjangoRepository,
)
from modules.commissions.services import CommissionService
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.status_service import OrderStatusService
from modules.vendors.models import Vendor
from modules.vendors.repositories.django_repository import VendorDjangoRepository


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------


@pytest.fixture()
def vendor():
    return Vendor.objects.create(
        business_name="Acme Crafts",
        email="acme@example.com",
        is_active=True,
    )


@pytest.fixture()
def other_vendor():
    return Vendor.objects.create(
        business_name="Blue Pottery",
        email="blue@example.com",
        is_active=True,
    )


@pytest.fixture()
def inactive_vendor():
    return Vendor.objects.create(
        business_name="Closed Shop",
        email="closed@example.com",
        is_active=False,
    )


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_repository():
    return OrderDjangoRepository()


@pytest.fixture()
def commission_service():
    return CommissionService(
        commission_repository=CommissionDjangoRepository(),
        vendor_repository=VendorDjangoRepository(),
    )


@pytest.fixture()
def order_service(order_repository, commission_service):
    return OrderService(
        order_repository=order_repository,
        vendor_repository=VendorDjangoRepository(),
        commission_service=commission_service,
    )


@pytest.fixture()
def status_service(order_repository):
    return OrderStatusService(order_repository=order_repository)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def _make_order_dto(
    *vendor_ids, admin_items=0, unit_price="50.00", email="jane@example.com"
):
    """Checkout DTO with *admin_items* operator lines and one line per vendor id."""
    items = [
        CreateOrderItemDTO(
            product_ref=f"ADM-{index}",
            title=f"House product {index}",
            quantity=1,
            unit_price=Decimal(unit_price),
        )
        for index in range(admin_items)
    ]
    items += [
        CreateOrderItemDTO(
            product_ref=f"VND-{index}",
            title=f"Vendor product {index}",
            quantity=1,
            unit_price=Decimal(unit_price),
            vendor_id=vendor_id,
        )
        for index, vendor_id in enumerate(vendor_ids)
    ]
    return CreateOrderDTO(
        customer_name="Jane Doe",
        customer_email=email,
        items=items,
    )


@pytest.fixture()
def make_order_dto():
    return _make_order_dto


@pytest.fixture()
def admin_order(order_service):
    return order_service.create_order(_make_order_dto(admin_items=2))


@pytest.fixture()
def vendor_order(order_service, vendor):
    return order_service.create_order(_make_order_dto(vendor.id))


@pytest.fixture()
def mixed_order(order_service, vendor, other_vendor):
    """Mixed order: one house item plus one item from each of two vendors."""
    return order_service.create_order(
        _make_order_dto(vendor.id, other_vendor.id, admin_items=1)
    )


@pytest.fixture()
def split_order(order_service, mixed_order):
    return order_service.split_order(mixed_order.id, actor="admin@example.com")
