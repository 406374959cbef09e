"""Shared domain exceptions and error codes.

This module defines the base exception hierarchy and error codes for the
entire domain layer. All domain exceptions inherit from DomainException so
that the pipeline can turn any of them into a structured failure.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for pipeline callers.

    These codes are part of the public result contract. Should not be changed.
    """

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_RECORD = "INVALID_RECORD"
    INVALID_ADDRESS = "INVALID_ADDRESS"

    # Security Errors
    INTEGRITY_CHECK_FAILED = "INTEGRITY_CHECK_FAILED"
    INVALID_BUNDLE = "INVALID_BUNDLE"
    INVALID_KEY = "INVALID_KEY"
    KEY_CUSTODY_FAILED = "KEY_CUSTODY_FAILED"

    # Content Store Errors
    PUBLISH_TRANSIENT = "PUBLISH_TRANSIENT"
    PUBLISH_PERMANENT = "PUBLISH_PERMANENT"
    CONTENT_NOT_FOUND = "CONTENT_NOT_FOUND"

    # Ledger Errors
    LEDGER_RETRYABLE = "LEDGER_RETRYABLE"
    LEDGER_NON_RETRYABLE = "LEDGER_NON_RETRYABLE"

    # Pipeline Errors
    PIPELINE_TIMEOUT = "PIPELINE_TIMEOUT"

    # Not Found Errors
    ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"

    # General Errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainException(Exception):  # NOQA: N818
    """Base exception for all domain-related errors.

    Attributes
    ----------
    message
        Human-readable error message (never contains key material)
    code
        Stable error code for programmatic handling
    details
        Optional additional context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        """Whether repeating the failed operation can succeed."""
        return False

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code.value!r}, "
            f"details={self.details!r})"
        )


class ValidationError(DomainException):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EntityNotFoundError(DomainException):
    """Raised when a requested entity cannot be found."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.ENTITY_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
