"""Minted token entity."""

from __future__ import annotations


class MintedToken:
    """A token recorded on the ledger for one published receipt.

    ``confirmed`` only ever moves from False to True.
    """

    def __init__(
        self,
        token_id: int,
        owner_address: str,
        uri: str,
        tx_hash: str,
        confirmed: bool = False,
    ):
        if token_id < 0:
            msg = "Token id must be an unsigned integer"
            raise ValueError(msg)
        self._token_id = token_id
        self._owner_address = owner_address
        self._uri = uri
        self._tx_hash = tx_hash
        self._confirmed = confirmed

    @property
    def token_id(self) -> int:
        return self._token_id

    @property
    def owner_address(self) -> str:
        return self._owner_address

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    @property
    def confirmed(self) -> bool:
        return self._confirmed

    def mark_confirmed(self) -> None:
        self._confirmed = True

    def to_dict(self) -> dict:
        return {
            "token_id": self._token_id,
            "owner_address": self._owner_address,
            "uri": self._uri,
            "tx_hash": self._tx_hash,
            "confirmed": self._confirmed,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, MintedToken):
            return False
        return (self._token_id, self._tx_hash) == (other._token_id, other._tx_hash)

    def __hash__(self) -> int:
        return hash((self._token_id, self._tx_hash))

    def __repr__(self) -> str:
        return (
            f"MintedToken(token_id={self._token_id}, tx_hash={self._tx_hash!r}, "
            f"confirmed={self._confirmed})"
        )
