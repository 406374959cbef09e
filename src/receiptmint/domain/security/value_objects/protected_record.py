"""Encrypted bundle paired with the key that opens it."""

from dataclasses import dataclass

from receiptmint.domain.security.value_objects.encrypted_bundle import EncryptedBundle
from receiptmint.domain.security.value_objects.receipt_key import ReceiptKey


@dataclass(frozen=True)
class ProtectedRecord:
    """Output of one encryption: the publishable bundle and its fresh key."""

    bundle: EncryptedBundle
    key: ReceiptKey

    def __repr__(self) -> str:
        return f"ProtectedRecord(key_ref={self.bundle.key_ref!r}, key=*****)"
