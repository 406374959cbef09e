"""Security domain exceptions."""

from typing import Any

from receiptmint.domain.shared.exceptions import DomainException, ErrorCode


class SecurityDomainError(DomainException):
    """Base exception for security domain."""


class IntegrityError(SecurityDomainError):
    """Raised when an authentication tag does not verify.

    Covers tampered ciphertext, tag or nonce as well as a wrong key. No
    plaintext is ever returned alongside this error.
    """

    def __init__(
        self,
        message: str = "Decryption failed: authentication tag mismatch (wrong key or tampered data)",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INTEGRITY_CHECK_FAILED, details)


class InvalidBundleError(SecurityDomainError):
    """Raised when bytes cannot be parsed as an encrypted bundle."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.INVALID_BUNDLE)


class InvalidKeyError(SecurityDomainError):
    """Raised when key material has the wrong size or encoding."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.INVALID_KEY)


class KeyCustodyError(SecurityDomainError):
    """Raised when the key custody collaborator refuses a key."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.KEY_CUSTODY_FAILED, details)
