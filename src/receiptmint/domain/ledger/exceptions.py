"""Ledger domain exceptions.

The ledger orders instructions by a strictly increasing per-signer sequence
number, so every failure is classified by whether the sequence number it was
assigned has been consumed and whether repeating the mint can succeed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from receiptmint.domain.shared.exceptions import DomainException, ErrorCode


class LedgerErrorReason(Enum):
    """Why a mint did not produce a token."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_INSTRUCTION = "invalid_instruction"
    # Another instruction already holds this sequence number
    SEQUENCE_COLLISION = "sequence_collision"
    # Not accepted by the node; the sequence number was not consumed
    SUBMISSION_REJECTED = "submission_rejected"
    # Accepted but not yet included within the wait window
    CONFIRMATION_PENDING = "confirmation_pending"
    # Accepted, then evicted without inclusion
    TRANSACTION_DROPPED = "transaction_dropped"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {
        LedgerErrorReason.SUBMISSION_REJECTED,
        LedgerErrorReason.CONFIRMATION_PENDING,
        LedgerErrorReason.TRANSACTION_DROPPED,
    }
)


class LedgerError(DomainException):
    """Raised when a ledger operation fails."""

    def __init__(
        self,
        message: str,
        reason: LedgerErrorReason,
        details: dict[str, Any] | None = None,
    ) -> None:
        code = (
            ErrorCode.LEDGER_RETRYABLE
            if reason.retryable
            else ErrorCode.LEDGER_NON_RETRYABLE
        )
        super().__init__(message, code, details)
        self.reason = reason

    @property
    def retryable(self) -> bool:
        return self.reason.retryable

    @property
    def kind(self) -> str:
        return self.reason.value
