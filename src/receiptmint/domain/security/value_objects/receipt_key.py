"""Symmetric key value object for protected receipts."""

from __future__ import annotations

import binascii
import hashlib
from dataclasses import dataclass

from receiptmint.domain.security.exceptions import InvalidKeyError

KEY_SIZE_BYTES = 32


@dataclass(frozen=True)
class ReceiptKey:
    """
    Value object that wraps a 256-bit data key.

    Prevents accidental exposure through:
    - String representation (__str__, __repr__)
    - Logging
    - Error messages

    The raw bytes are only accessible via explicit get_value() or to_hex().
    """

    _value: bytes

    def __post_init__(self):
        if not isinstance(self._value, bytes):
            msg = "ReceiptKey value must be bytes"
            raise InvalidKeyError(msg)
        if len(self._value) != KEY_SIZE_BYTES:
            msg = f"ReceiptKey must be {KEY_SIZE_BYTES} bytes, got {len(self._value)}"
            raise InvalidKeyError(msg)

    def get_value(self) -> bytes:
        """Get the raw key bytes."""
        return self._value

    def to_hex(self) -> str:
        return self._value.hex()

    @property
    def key_ref(self) -> str:
        """Opaque handle identifying this key without revealing it."""
        return "k1:" + hashlib.sha256(b"receiptmint-key-ref:" + self._value).hexdigest()[:32]

    @classmethod
    def from_hex(cls, value: str) -> ReceiptKey:
        try:
            raw = bytes.fromhex(value.strip())
        except (ValueError, binascii.Error) as e:
            msg = "ReceiptKey must be hex encoded"
            raise InvalidKeyError(msg) from e
        return cls(raw)

    def __str__(self) -> str:
        return "*****"

    def __repr__(self) -> str:
        return "ReceiptKey(*****)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReceiptKey):
            return False
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)
