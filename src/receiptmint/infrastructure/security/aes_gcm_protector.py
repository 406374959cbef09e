"""AES-256-GCM record protector implementation."""

import json
import os
from typing import Any, Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from receiptmint.domain.security.exceptions import IntegrityError, InvalidBundleError
from receiptmint.domain.security.services import RecordProtector
from receiptmint.domain.security.value_objects import (
    KEY_SIZE_BYTES,
    NONCE_SIZE_BYTES,
    TAG_SIZE_BYTES,
    EncryptedBundle,
    ProtectedRecord,
    ReceiptKey,
)


class AesGcmRecordProtector(RecordProtector):
    """AES-256-GCM protector with a fresh key and nonce per record."""

    def encrypt(self, record: Mapping[str, Any]) -> ProtectedRecord:
        key = ReceiptKey(self.generate_key())
        nonce = os.urandom(NONCE_SIZE_BYTES)
        plaintext = json.dumps(record, ensure_ascii=False, separators=(",", ":")).encode(
            "utf-8"
        )

        sealed = AESGCM(key.get_value()).encrypt(nonce, plaintext, None)

        bundle = EncryptedBundle(
            nonce=nonce,
            auth_tag=sealed[-TAG_SIZE_BYTES:],
            ciphertext=sealed[:-TAG_SIZE_BYTES],
            key_ref=key.key_ref,
        )
        return ProtectedRecord(bundle=bundle, key=key)

    def decrypt(self, bundle: EncryptedBundle, key: ReceiptKey) -> dict[str, Any]:
        try:
            plaintext = AESGCM(key.get_value()).decrypt(
                bundle.nonce,
                bundle.ciphertext + bundle.auth_tag,
                None,
            )
        except InvalidTag as e:
            raise IntegrityError(details={"key_ref": bundle.key_ref}) from e

        try:
            record = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            msg = "Decrypted payload is not a JSON document"
            raise InvalidBundleError(msg) from e

        if not isinstance(record, dict):
            msg = "Decrypted payload is not a JSON object"
            raise InvalidBundleError(msg)
        return record

    @staticmethod
    def generate_key() -> bytes:
        return AESGCM.generate_key(bit_length=KEY_SIZE_BYTES * 8)
