"""Ledger domain repositories."""

from receiptmint.domain.ledger.repositories.mint_record_repository import (
    MintRecordRepository,
)

__all__ = ["MintRecordRepository"]
