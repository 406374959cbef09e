"""Receipt domain services."""

from receiptmint.domain.receipt.services.receipt_classifier import (
    FALLBACK_CATEGORIES,
    KEYWORD_GROUPS,
    ReceiptClassifier,
)
from receiptmint.domain.receipt.services.record_validator import RecordValidator

__all__ = [
    "FALLBACK_CATEGORIES",
    "KEYWORD_GROUPS",
    "ReceiptClassifier",
    "RecordValidator",
]
