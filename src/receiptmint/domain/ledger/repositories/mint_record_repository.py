"""Repository interface for mint records."""

from abc import ABC, abstractmethod
from typing import List, Optional

from receiptmint.domain.ledger.entities import MintRecord
from receiptmint.domain.ledger.value_objects import MintStatus


class MintRecordRepository(ABC):
    """Repository interface for persisting and retrieving mint records."""

    @abstractmethod
    async def save(self, record: MintRecord) -> None:
        """
        Insert or update a mint record.

        Parameters
        ----------
        record
            Mint record to save
        """

    @abstractmethod
    async def find_by_idempotency_key(self, idempotency_key: str) -> Optional[MintRecord]:
        """
        Find the mint record of a logical transaction.

        Parameters
        ----------
        idempotency_key
            Caller-chosen idempotency key (usually the transaction id)

        Returns
        -------
        The record if one exists, None otherwise
        """

    @abstractmethod
    async def find_by_tx_hash(self, tx_hash: str) -> Optional[MintRecord]:
        """Find the mint record that submitted ``tx_hash``."""

    @abstractmethod
    async def find_by_status(self, status: MintStatus) -> List[MintRecord]:
        """Find all records with the given status."""
