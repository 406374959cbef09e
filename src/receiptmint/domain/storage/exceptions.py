"""Content storage domain exceptions."""

from __future__ import annotations

from enum import Enum
from typing import Any

from receiptmint.domain.shared.exceptions import (
    DomainException,
    EntityNotFoundError,
    ErrorCode,
)


class PublishErrorKind(Enum):
    """Whether retrying an upload can help."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class PublishError(DomainException):
    """Raised when an upload to the content store fails.

    Transient errors (timeouts, 5xx, throttling) may be retried with the
    identical bytes; permanent ones (malformed input, auth) may not.
    """

    def __init__(
        self,
        message: str,
        kind: PublishErrorKind,
        details: dict[str, Any] | None = None,
    ) -> None:
        code = (
            ErrorCode.PUBLISH_TRANSIENT
            if kind is PublishErrorKind.TRANSIENT
            else ErrorCode.PUBLISH_PERMANENT
        )
        super().__init__(message, code, details)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind is PublishErrorKind.TRANSIENT

    @classmethod
    def transient(cls, message: str, **details: Any) -> PublishError:
        return cls(message, PublishErrorKind.TRANSIENT, details or None)

    @classmethod
    def permanent(cls, message: str, **details: Any) -> PublishError:
        return cls(message, PublishErrorKind.PERMANENT, details or None)


class ContentNotFoundError(EntityNotFoundError):
    """Raised when a content identifier is unknown to the store."""

    def __init__(self, cid: str) -> None:
        super().__init__(
            message=f"No content stored under {cid}",
            code=ErrorCode.CONTENT_NOT_FOUND,
            details={"cid": cid},
        )
