"""Ledger gateway port."""

from abc import ABC, abstractmethod
from typing import Optional

from receiptmint.domain.ledger.value_objects import LedgerTransaction, SignedInstruction


class LedgerGateway(ABC):
    """Network boundary to an append-only, sequence-ordered ledger."""

    @abstractmethod
    async def get_next_sequence(self, address: str) -> int:
        """
        Return the next sequence number the ledger expects from ``address``.

        Raises
        ------
        LedgerError
            ``SUBMISSION_REJECTED`` if the ledger cannot be reached
        """

    @abstractmethod
    async def submit(self, signed: SignedInstruction) -> str:
        """
        Submit a signed instruction and return its transaction hash.

        Returns as soon as the node accepted the instruction; inclusion is
        reported later by ``get_transaction``.

        Raises
        ------
        LedgerError
            Classified by ``LedgerErrorReason``
        """

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Optional[LedgerTransaction]:
        """
        Look up a transaction by hash.

        Returns
        -------
        The transaction status, or None if the ledger has never seen it
        """

    async def close(self) -> None:  # noqa: B027
        """Release network resources, if any."""
