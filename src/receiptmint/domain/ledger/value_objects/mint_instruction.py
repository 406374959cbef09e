"""Mint instruction value objects."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any

DEFAULT_QUANTITY = 1


@dataclass(frozen=True)
class MintInstruction:
    """Unsigned request to mint ``quantity`` tokens referencing ``uri``.

    ``memo`` carries the idempotency key so the instruction can be traced
    back to its logical transaction on the ledger.
    """

    signer_address: str
    owner_address: str
    uri: str
    sequence: int
    quantity: int = DEFAULT_QUANTITY
    memo: str = ""

    def __post_init__(self):
        if self.sequence < 0:
            msg = "Sequence number cannot be negative"
            raise ValueError(msg)
        if self.quantity <= 0:
            msg = "Quantity must be positive"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "mint",
            "signer": self.signer_address,
            "owner": self.owner_address,
            "quantity": self.quantity,
            "uri": self.uri,
            "sequence": self.sequence,
            "memo": self.memo,
        }

    def canonical_bytes(self) -> bytes:
        """Deterministic encoding covered by the signature."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode(
            "utf-8"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MintInstruction:
        return cls(
            signer_address=str(data["signer"]),
            owner_address=str(data["owner"]),
            uri=str(data["uri"]),
            sequence=int(data["sequence"]),
            quantity=int(data.get("quantity", DEFAULT_QUANTITY)),
            memo=str(data.get("memo", "")),
        )


@dataclass(frozen=True)
class SignedInstruction:
    """A mint instruction with the signer's public key and signature."""

    instruction: MintInstruction
    public_key: str
    signature: str

    def to_envelope(self) -> dict[str, Any]:
        return {
            "instruction": self.instruction.to_dict(),
            "public_key": self.public_key,
            "signature": self.signature,
        }

    @property
    def tx_hash(self) -> str:
        """Hash of the signed envelope; known before submission."""
        encoded = json.dumps(
            self.to_envelope(),
            sort_keys=True,
            separators=(",", ":"),
        ).encode("utf-8")
        return "0x" + hashlib.sha256(encoded).hexdigest()

    @classmethod
    def from_envelope(cls, envelope: dict[str, Any]) -> SignedInstruction:
        return cls(
            instruction=MintInstruction.from_dict(envelope["instruction"]),
            public_key=str(envelope["public_key"]),
            signature=str(envelope["signature"]),
        )
