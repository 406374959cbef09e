"""Application queries."""

from receiptmint.application.queries.verify_receipt_query import (
    ReceiptVerification,
    VerificationStatus,
    VerifyReceiptQuery,
)

__all__ = [
    "ReceiptVerification",
    "VerificationStatus",
    "VerifyReceiptQuery",
]
