"""Ledger domain entities."""

from receiptmint.domain.ledger.entities.mint_record import MintRecord
from receiptmint.domain.ledger.entities.minted_token import MintedToken

__all__ = [
    "MintRecord",
    "MintedToken",
]
