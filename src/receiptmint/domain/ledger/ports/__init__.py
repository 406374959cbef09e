"""Ledger domain ports."""

from receiptmint.domain.ledger.ports.ledger_gateway import LedgerGateway
from receiptmint.domain.ledger.ports.transaction_signer import TransactionSigner

__all__ = [
    "LedgerGateway",
    "TransactionSigner",
]
