"""Encrypted bundle value object and its wire format."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from receiptmint.domain.security.exceptions import InvalidBundleError

ALGORITHM = "AES-256-GCM"
BUNDLE_VERSION = 1
NONCE_SIZE_BYTES = 12
TAG_SIZE_BYTES = 16


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(data: str, field: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        msg = f"Bundle field {field!r} is not valid base64"
        raise InvalidBundleError(msg) from e


@dataclass(frozen=True)
class EncryptedBundle:
    """AEAD output for one record.

    ``key_ref`` is an opaque handle for the key, never the key itself.
    """

    nonce: bytes
    auth_tag: bytes
    ciphertext: bytes
    key_ref: str = ""

    def __post_init__(self):
        if len(self.nonce) != NONCE_SIZE_BYTES:
            msg = f"Nonce must be {NONCE_SIZE_BYTES} bytes, got {len(self.nonce)}"
            raise InvalidBundleError(msg)
        if len(self.auth_tag) != TAG_SIZE_BYTES:
            msg = f"Auth tag must be {TAG_SIZE_BYTES} bytes, got {len(self.auth_tag)}"
            raise InvalidBundleError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "v": BUNDLE_VERSION,
            "alg": ALGORITHM,
            "nonce": _b64encode(self.nonce),
            "tag": _b64encode(self.auth_tag),
            "ciphertext": _b64encode(self.ciphertext),
            "key_ref": self.key_ref,
        }

    def to_bytes(self) -> bytes:
        """Canonical serialization: identical bundles give identical bytes."""
        return json.dumps(
            self.to_dict(),
            sort_keys=True,
            separators=(",", ":"),
        ).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> EncryptedBundle:
        """Parse a published bundle.

        Accepts the JSON document written by ``to_bytes`` and the compact
        ``base64(nonce || tag || ciphertext)`` form, optionally JSON quoted.
        """
        try:
            text = data.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            msg = "Bundle is not UTF-8 text"
            raise InvalidBundleError(msg) from e

        if text.startswith("{"):
            return cls._from_document(text)
        if text.startswith('"'):
            try:
                text = json.loads(text)
            except json.JSONDecodeError as e:
                msg = "Bundle is not a valid JSON string"
                raise InvalidBundleError(msg) from e
        return cls._from_compact(text)

    @classmethod
    def _from_document(cls, text: str) -> EncryptedBundle:
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            msg = "Bundle is not valid JSON"
            raise InvalidBundleError(msg) from e

        if not isinstance(doc, dict):
            msg = "Bundle document must be a JSON object"
            raise InvalidBundleError(msg)
        if doc.get("v") != BUNDLE_VERSION or doc.get("alg") != ALGORITHM:
            msg = f"Unsupported bundle version/algorithm: {doc.get('v')!r}/{doc.get('alg')!r}"
            raise InvalidBundleError(msg)

        missing = [f for f in ("nonce", "tag", "ciphertext") if not isinstance(doc.get(f), str)]
        if missing:
            msg = f"Bundle is missing fields: {', '.join(missing)}"
            raise InvalidBundleError(msg)

        return cls(
            nonce=_b64decode(doc["nonce"], "nonce"),
            auth_tag=_b64decode(doc["tag"], "tag"),
            ciphertext=_b64decode(doc["ciphertext"], "ciphertext"),
            key_ref=str(doc.get("key_ref") or ""),
        )

    @classmethod
    def _from_compact(cls, text: str) -> EncryptedBundle:
        raw = _b64decode(text, "payload")
        if len(raw) < NONCE_SIZE_BYTES + TAG_SIZE_BYTES:
            msg = "Compact bundle is too short"
            raise InvalidBundleError(msg)
        return cls(
            nonce=raw[:NONCE_SIZE_BYTES],
            auth_tag=raw[NONCE_SIZE_BYTES : NONCE_SIZE_BYTES + TAG_SIZE_BYTES],
            ciphertext=raw[NONCE_SIZE_BYTES + TAG_SIZE_BYTES :],
        )
