"""Security domain value objects."""

from receiptmint.domain.security.value_objects.encrypted_bundle import (
    ALGORITHM,
    NONCE_SIZE_BYTES,
    TAG_SIZE_BYTES,
    EncryptedBundle,
)
from receiptmint.domain.security.value_objects.protected_record import ProtectedRecord
from receiptmint.domain.security.value_objects.receipt_key import (
    KEY_SIZE_BYTES,
    ReceiptKey,
)

__all__ = [
    "ALGORITHM",
    "KEY_SIZE_BYTES",
    "NONCE_SIZE_BYTES",
    "TAG_SIZE_BYTES",
    "EncryptedBundle",
    "ProtectedRecord",
    "ReceiptKey",
]
