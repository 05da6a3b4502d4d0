"""Commission domain constants."""

from decimal import Decimal

from django.db import models


class LedgerPaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PAID = "paid", "Paid"


class PaymentMethod(models.TextChoices):
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    PAYPAL = "paypal", "PayPal"
    CHECK = "check", "Check"
    STORE_CREDIT = "store_credit", "Store credit"


MIN_RATE = Decimal("0")
MAX_RATE = Decimal("100")
CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MIN_LEDGER_YEAR = 2020
