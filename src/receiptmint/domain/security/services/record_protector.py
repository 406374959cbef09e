"""Record protector interface for the Security domain."""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from receiptmint.domain.security.value_objects import (
    EncryptedBundle,
    ProtectedRecord,
    ReceiptKey,
)


class RecordProtector(ABC):
    """Domain service interface for authenticated encryption of records."""

    @abstractmethod
    def encrypt(self, record: Mapping[str, Any]) -> ProtectedRecord:
        """
        Encrypt a JSON-serializable record under a freshly generated key.

        Parameters
        ----------
        record
            The record to protect

        Returns
        -------
        The bundle together with the key that opens it. The key is never
        persisted by the protector.
        """

    @abstractmethod
    def decrypt(self, bundle: EncryptedBundle, key: ReceiptKey) -> dict[str, Any]:
        """
        Decrypt a bundle back to the original record.

        Parameters
        ----------
        bundle
            The encrypted bundle
        key
            The key returned alongside the bundle

        Returns
        -------
        The decrypted record

        Raises
        ------
        IntegrityError
            If the authentication tag does not verify (wrong key, tampered data)
        """
