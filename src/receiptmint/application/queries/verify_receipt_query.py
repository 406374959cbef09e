"""Verify that a tokenized receipt resolves to an intact encrypted bundle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from receiptmint.domain.ledger.entities import MintedToken
from receiptmint.domain.security.exceptions import IntegrityError, InvalidBundleError
from receiptmint.domain.security.value_objects import EncryptedBundle, ReceiptKey
from receiptmint.domain.shared.exceptions import ValidationError
from receiptmint.domain.storage.exceptions import ContentNotFoundError, PublishError
from receiptmint.domain.storage.value_objects import cid_from_uri

if TYPE_CHECKING:
    from receiptmint.application.factories import PipelineFactory
    from receiptmint.application.services import LedgerClient
    from receiptmint.domain.security.services import RecordProtector
    from receiptmint.domain.storage.ports import ContentStore

logger = logging.getLogger(__name__)


class VerificationStatus(Enum):
    VERIFIED = "verified"
    PUBLISHED = "published"
    NOT_MINTED = "not_minted"
    UNSUPPORTED_URI = "unsupported_uri"
    CONTENT_UNAVAILABLE = "content_unavailable"
    INVALID_BUNDLE = "invalid_bundle"
    INTEGRITY_FAILED = "integrity_failed"


@dataclass(frozen=True)
class ReceiptVerification:
    """Outcome of a verification lookup.

    ``PUBLISHED`` means the token and its bundle check out but no key was
    supplied; ``VERIFIED`` additionally means the key opened the bundle.
    """

    idempotency_key: str
    status: VerificationStatus
    token: Optional[MintedToken] = None
    cid: Optional[str] = None
    record: Optional[dict[str, Any]] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (VerificationStatus.VERIFIED, VerificationStatus.PUBLISHED)


class VerifyReceiptQuery:
    """Resolve token, content and (optionally) plaintext for an idempotency key."""

    def __init__(
        self,
        content_store: ContentStore,
        ledger_client: LedgerClient,
        protector: RecordProtector,
    ):
        self._content_store = content_store
        self._ledger = ledger_client
        self._protector = protector

    @classmethod
    def from_factory(cls, factory: PipelineFactory) -> VerifyReceiptQuery:
        return cls(
            content_store=factory.content_store(),
            ledger_client=factory.ledger_client(),
            protector=factory.record_protector(),
        )

    async def execute(
        self,
        idempotency_key: str,
        key: Union[ReceiptKey, str, None] = None,
    ) -> ReceiptVerification:
        token = await self._ledger.lookup(idempotency_key)
        if token is None:
            return ReceiptVerification(
                idempotency_key,
                VerificationStatus.NOT_MINTED,
                message=f"No token minted for {idempotency_key}",
            )

        def result(status, **kwargs) -> ReceiptVerification:
            return ReceiptVerification(idempotency_key, status, token=token, **kwargs)

        try:
            cid = cid_from_uri(token.uri)
        except ValidationError as e:
            return result(VerificationStatus.UNSUPPORTED_URI, message=e.message)

        try:
            data = await self._content_store.fetch(cid)
        except (ContentNotFoundError, PublishError) as e:
            logger.warning("Content %s for token %d unavailable: %s", cid, token.token_id, e)
            return result(VerificationStatus.CONTENT_UNAVAILABLE, cid=cid, message=e.message)

        try:
            bundle = EncryptedBundle.from_bytes(data)
        except InvalidBundleError as e:
            return result(VerificationStatus.INVALID_BUNDLE, cid=cid, message=e.message)

        if key is None:
            return result(VerificationStatus.PUBLISHED, cid=cid)

        receipt_key = key if isinstance(key, ReceiptKey) else ReceiptKey.from_hex(key)
        if bundle.key_ref and bundle.key_ref != receipt_key.key_ref:
            return result(
                VerificationStatus.INTEGRITY_FAILED,
                cid=cid,
                message="Key does not match the bundle's key reference",
            )

        try:
            record = self._protector.decrypt(bundle, receipt_key)
        except IntegrityError as e:
            return result(VerificationStatus.INTEGRITY_FAILED, cid=cid, message=e.message)
        except InvalidBundleError as e:
            return result(VerificationStatus.INVALID_BUNDLE, cid=cid, message=e.message)

        return result(VerificationStatus.VERIFIED, cid=cid, record=record)
