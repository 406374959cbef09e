"""Ledger domain: mint instructions, tokens and their bookkeeping."""

from receiptmint.domain.ledger.entities import MintedToken, MintRecord
from receiptmint.domain.ledger.exceptions import LedgerError, LedgerErrorReason
from receiptmint.domain.ledger.ports import LedgerGateway, TransactionSigner
from receiptmint.domain.ledger.repositories import MintRecordRepository
from receiptmint.domain.ledger.value_objects import (
    LedgerTransaction,
    MintInstruction,
    MintStatus,
    SignedInstruction,
    TransactionStatus,
)

__all__ = [
    # Entities
    "MintRecord",
    "MintedToken",
    # Errors
    "LedgerError",
    "LedgerErrorReason",
    # Ports & Repositories
    "LedgerGateway",
    "MintRecordRepository",
    "TransactionSigner",
    # Value Objects
    "LedgerTransaction",
    "MintInstruction",
    "MintStatus",
    "SignedInstruction",
    "TransactionStatus",
]
