"""Ledger-side view of a submitted transaction."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TransactionStatus(Enum):
    """Lifecycle of a submitted transaction on the ledger."""

    PENDING = "pending"
    INCLUDED = "included"
    FINALIZED = "finalized"
    DROPPED = "dropped"

    def has_landed(self) -> bool:
        """Whether the transaction consumed its sequence number."""
        return self in (TransactionStatus.INCLUDED, TransactionStatus.FINALIZED)

    def is_unresolved(self) -> bool:
        return self is TransactionStatus.PENDING


@dataclass(frozen=True)
class LedgerTransaction:
    """Status report for one transaction hash."""

    tx_hash: str
    status: TransactionStatus
    token_id: Optional[int] = None
    sequence: Optional[int] = None
