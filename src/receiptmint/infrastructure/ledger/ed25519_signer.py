"""Ed25519 transaction signer."""

from __future__ import annotations

import hashlib
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from receiptmint.domain.ledger.ports import TransactionSigner
from receiptmint.domain.ledger.value_objects import MintInstruction, SignedInstruction
from receiptmint.domain.security.exceptions import InvalidKeyError

logger = logging.getLogger(__name__)

SEED_SIZE_BYTES = 32
ADDRESS_SIZE_BYTES = 20


def address_from_public_key(public_key: bytes) -> str:
    """Derive the ledger address (``0x`` + last 20 bytes of sha256)."""
    digest = hashlib.sha256(public_key).digest()
    return "0x" + digest[-ADDRESS_SIZE_BYTES:].hex()


def verify_signature(signed: SignedInstruction) -> bool:
    """Check the signature and that the public key owns the signer address."""
    try:
        public_bytes = bytes.fromhex(signed.public_key)
        signature = bytes.fromhex(signed.signature)
        public_key = Ed25519PublicKey.from_public_bytes(public_bytes)
    except ValueError:
        return False

    if address_from_public_key(public_bytes) != signed.instruction.signer_address:
        return False

    try:
        public_key.verify(signature, signed.instruction.canonical_bytes())
    except InvalidSignature:
        return False
    return True


class Ed25519TransactionSigner(TransactionSigner):
    """Holds one Ed25519 private key and signs mint instructions with it."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self._public_bytes = private_key.public_key().public_bytes(
            Encoding.Raw,
            PublicFormat.Raw,
        )
        self._address = address_from_public_key(self._public_bytes)

    @classmethod
    def from_hex_seed(cls, seed_hex: str) -> Ed25519TransactionSigner:
        try:
            seed = bytes.fromhex(seed_hex.strip().removeprefix("0x"))
        except ValueError as e:
            msg = "Signer seed must be hex encoded"
            raise InvalidKeyError(msg) from e

        if len(seed) != SEED_SIZE_BYTES:
            msg = f"Signer seed must be {SEED_SIZE_BYTES} bytes, got {len(seed)}"
            raise InvalidKeyError(msg)
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def generate(cls) -> Ed25519TransactionSigner:
        return cls(Ed25519PrivateKey.generate())

    @property
    def address(self) -> str:
        return self._address

    @property
    def public_key_hex(self) -> str:
        return self._public_bytes.hex()

    def seed_hex(self) -> str:
        """Export the private seed. Only used by ``keys generate``."""
        return self._private_key.private_bytes(
            Encoding.Raw,
            PrivateFormat.Raw,
            NoEncryption(),
        ).hex()

    def sign(self, instruction: MintInstruction) -> SignedInstruction:
        if instruction.signer_address != self._address:
            msg = (
                f"Instruction signer {instruction.signer_address} does not match "
                f"signing identity {self._address}"
            )
            raise ValueError(msg)

        signature = self._private_key.sign(instruction.canonical_bytes())
        return SignedInstruction(
            instruction=instruction,
            public_key=self._public_bytes.hex(),
            signature=signature.hex(),
        )

    def __repr__(self) -> str:
        return f"Ed25519TransactionSigner(address={self._address!r})"
