"""Commission repositories package."""

from modules.commissions.repositories.django_repository import (
    CommissionDjangoRepository,
)
from modules.commissions.repositories.interfaces import ICommissionRepository

__all__ = ["CommissionDjangoRepository", "ICommissionRepository"]
