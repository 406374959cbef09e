"""Receipt domain: records, tiers and classification."""

from receiptmint.domain.receipt.services import ReceiptClassifier, RecordValidator
from receiptmint.domain.receipt.value_objects import (
    Classification,
    LineItem,
    Tier,
    TransactionRecord,
)

__all__ = [
    # Services
    "ReceiptClassifier",
    "RecordValidator",
    # Value Objects
    "Classification",
    "LineItem",
    "Tier",
    "TransactionRecord",
]
