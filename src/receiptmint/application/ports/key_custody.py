"""Key custody port for application layer.

Receipt keys are generated per record and never persisted by the pipeline.
A deployment that must not hand keys back through the result channel routes
them to a custody service through this port instead.
"""

from abc import ABC, abstractmethod

from receiptmint.domain.security.value_objects import ReceiptKey


class KeyCustodyPort(ABC):
    """Stores the key that opens a published receipt bundle."""

    @abstractmethod
    async def store_key(
        self,
        idempotency_key: str,
        key_ref: str,
        key: ReceiptKey,
    ) -> None:
        """
        Hand ``key`` over to custody.

        Raises
        ------
        KeyCustodyError
            If the key could not be stored; the pipeline stops before
            publishing so no unrecoverable ciphertext is made public
        """
