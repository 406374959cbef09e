"""Security domain: record protection and key handling."""

from receiptmint.domain.security.exceptions import (
    IntegrityError,
    InvalidBundleError,
    InvalidKeyError,
    KeyCustodyError,
    SecurityDomainError,
)
from receiptmint.domain.security.services import RecordProtector
from receiptmint.domain.security.value_objects import (
    EncryptedBundle,
    ProtectedRecord,
    ReceiptKey,
)

__all__ = [
    "EncryptedBundle",
    "IntegrityError",
    "InvalidBundleError",
    "InvalidKeyError",
    "KeyCustodyError",
    "ProtectedRecord",
    "ReceiptKey",
    "RecordProtector",
    "SecurityDomainError",
]
