"""Ledger domain value objects."""

from receiptmint.domain.ledger.value_objects.ledger_transaction import (
    LedgerTransaction,
    TransactionStatus,
)
from receiptmint.domain.ledger.value_objects.mint_instruction import (
    DEFAULT_QUANTITY,
    MintInstruction,
    SignedInstruction,
)
from receiptmint.domain.ledger.value_objects.mint_status import MintStatus

__all__ = [
    "DEFAULT_QUANTITY",
    "LedgerTransaction",
    "MintInstruction",
    "MintStatus",
    "SignedInstruction",
    "TransactionStatus",
]
