"""Receipt domain value objects."""

from receiptmint.domain.receipt.value_objects.classification import Classification
from receiptmint.domain.receipt.value_objects.tier import Tier
from receiptmint.domain.receipt.value_objects.transaction_record import (
    LineItem,
    TransactionRecord,
)

__all__ = [
    "Classification",
    "LineItem",
    "Tier",
    "TransactionRecord",
]
