"""Mint record entity for tracking mint attempts per idempotency key."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid5

from receiptmint.domain.ledger.entities.minted_token import MintedToken
from receiptmint.domain.ledger.value_objects import MintStatus
from receiptmint.domain.shared.time import utc_now

MINT_RECORD_NAMESPACE = UUID("6f1c2a9e-3b7d-4e58-a0c4-92d5e8b7f310")


class MintRecord:
    """
    Durable trace of the mint for one logical transaction.

    Purpose:
    - Ensures idempotency (never mint twice for the same idempotency key)
    - Remembers the hash of an in-flight submission so a retry can query
      the ledger before consuming a new sequence number
    - Links the logical transaction to its token

    The record is written before submission, so a crash between submit and
    inclusion leaves a SUBMITTED record behind rather than nothing.
    """

    def __init__(  # noqa: PLR0913
        self,
        idempotency_key: str,
        signer_address: str,
        owner_address: str,
        uri: str,
        sequence: int,
        tx_hash: str,
        status: MintStatus = MintStatus.SUBMITTED,
        token_id: Optional[int] = None,
        confirmed: bool = False,
        error_message: Optional[str] = None,
        # For reconstitution from persistence:
        id: Optional[UUID] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        minted_at: Optional[datetime] = None,
    ):
        self._idempotency_key = idempotency_key
        self._signer_address = signer_address
        self._owner_address = owner_address
        self._uri = uri
        self._sequence = sequence
        self._tx_hash = tx_hash
        self._status = status
        self._token_id = token_id
        self._confirmed = confirmed
        self._error_message = error_message
        self._id = id or uuid5(MINT_RECORD_NAMESPACE, idempotency_key)
        self._created_at = created_at or utc_now()
        self._updated_at = updated_at or utc_now()
        self._minted_at = minted_at

        self._validate()

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def idempotency_key(self) -> str:
        return self._idempotency_key

    @property
    def signer_address(self) -> str:
        return self._signer_address

    @property
    def owner_address(self) -> str:
        return self._owner_address

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    @property
    def status(self) -> MintStatus:
        return self._status

    @property
    def token_id(self) -> Optional[int]:
        return self._token_id

    @property
    def confirmed(self) -> bool:
        return self._confirmed

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def minted_at(self) -> Optional[datetime]:
        return self._minted_at

    def _validate(self) -> None:
        if not self._idempotency_key:
            msg = "Mint record needs an idempotency key"
            raise ValueError(msg)

        if self._status == MintStatus.MINTED and self._token_id is None:
            msg = "Minted record must have a token id"
            raise ValueError(msg)

        if self._confirmed and self._status != MintStatus.MINTED:
            msg = "Only minted records can be confirmed"
            raise ValueError(msg)

    def mark_minted(self, token_id: int, confirmed: bool = False) -> None:
        if self._status == MintStatus.MINTED:
            msg = "Record already minted"
            raise ValueError(msg)

        self._status = MintStatus.MINTED
        self._token_id = token_id
        self._confirmed = confirmed
        self._error_message = None
        self._minted_at = utc_now()
        self._updated_at = utc_now()

    def mark_confirmed(self) -> None:
        if self._status != MintStatus.MINTED:
            msg = "Only minted records can be confirmed"
            raise ValueError(msg)

        self._confirmed = True
        self._updated_at = utc_now()

    def mark_released(self, reason: str) -> None:
        """Record that the submission never landed and freed its sequence number."""
        if self._status == MintStatus.MINTED:
            msg = "Cannot release a minted record"
            raise ValueError(msg)

        self._status = MintStatus.RELEASED
        self._error_message = reason
        self._updated_at = utc_now()

    def resubmit(self, owner_address: str, uri: str, sequence: int, tx_hash: str) -> None:
        if self._status != MintStatus.RELEASED:
            msg = f"Cannot resubmit a {self._status.value} record"
            raise ValueError(msg)

        self._owner_address = owner_address
        self._uri = uri
        self._sequence = sequence
        self._tx_hash = tx_hash
        self._status = MintStatus.SUBMITTED
        self._error_message = None
        self._updated_at = utc_now()

    def adopt_tx_hash(self, tx_hash: str) -> None:
        """Track the submission under the hash the ledger assigned to it."""
        if self._status != MintStatus.SUBMITTED:
            msg = f"Cannot change the hash of a {self._status.value} record"
            raise ValueError(msg)
        if not tx_hash:
            msg = "Transaction hash cannot be empty"
            raise ValueError(msg)

        self._tx_hash = tx_hash
        self._updated_at = utc_now()

    def is_minted(self) -> bool:
        return self._status == MintStatus.MINTED

    def is_in_flight(self) -> bool:
        return self._status == MintStatus.SUBMITTED

    def to_token(self) -> MintedToken:
        if self._status != MintStatus.MINTED or self._token_id is None:
            msg = f"Record for {self._idempotency_key} has not been minted"
            raise ValueError(msg)
        return MintedToken(
            token_id=self._token_id,
            owner_address=self._owner_address,
            uri=self._uri,
            tx_hash=self._tx_hash,
            confirmed=self._confirmed,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, MintRecord):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __str__(self) -> str:
        return f"MintRecord[{self._status.value}]: {self._idempotency_key} seq={self._sequence}"
