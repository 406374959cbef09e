"""Transaction signer port."""

from abc import ABC, abstractmethod

from receiptmint.domain.ledger.value_objects import MintInstruction, SignedInstruction


class TransactionSigner(ABC):
    """Secrets boundary holding the ledger signing identity."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Ledger address of the signing identity."""

    @abstractmethod
    def sign(self, instruction: MintInstruction) -> SignedInstruction:
        """Sign the canonical encoding of ``instruction``."""
