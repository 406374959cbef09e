"""Tokenize one transaction record: classify, encrypt, publish and mint."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Union

from receiptmint.application.dtos import (
    PipelineFailure,
    PipelineResult,
    PipelineSuccess,
)
from receiptmint.application.services import Deadline, RetryPolicy, run_with_retry
from receiptmint.domain.ledger.entities import MintedToken
from receiptmint.domain.ledger.exceptions import LedgerError, LedgerErrorReason
from receiptmint.domain.pipeline import PipelineStage, PipelineStep
from receiptmint.domain.receipt import (
    Classification,
    ReceiptClassifier,
    RecordValidator,
    TransactionRecord,
)
from receiptmint.domain.security.exceptions import SecurityDomainError
from receiptmint.domain.security.value_objects import ProtectedRecord, ReceiptKey
from receiptmint.domain.shared.exceptions import (
    DomainException,
    ErrorCode,
    ValidationError,
)
from receiptmint.domain.storage.exceptions import ContentNotFoundError, PublishError
from receiptmint.domain.storage.value_objects import PublishedObject, cid_from_uri

if TYPE_CHECKING:
    from receiptmint.application.factories import PipelineFactory
    from receiptmint.application.ports import KeyCustodyPort
    from receiptmint.application.services import LedgerClient
    from receiptmint.domain.security.services import RecordProtector
    from receiptmint.domain.storage.ports import ContentStore
    from receiptmint_config.settings import Settings

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

MINT_QUANTITY = 1


@dataclass(frozen=True)
class TokenizeOptions:
    """Retry, deadline and key-handling policy of the pipeline."""

    publish_policy: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(max_attempts=4, attempt_timeout=20.0)
    )
    mint_policy: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(max_attempts=3, attempt_timeout=90.0)
    )
    deadline: Optional[float] = 180.0
    await_finality: bool = False
    confirmation_timeout: Optional[float] = None
    return_key_in_result: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenizeOptions:
        backoff = {
            "base_delay": settings.retry_base_delay,
            "max_delay": settings.retry_max_delay,
            "jitter": settings.retry_jitter,
        }
        return cls(
            publish_policy=RetryPolicy(
                max_attempts=settings.publish_max_attempts,
                attempt_timeout=settings.publish_attempt_timeout,
                **backoff,
            ),
            mint_policy=RetryPolicy(
                max_attempts=settings.mint_max_attempts,
                attempt_timeout=settings.mint_attempt_timeout,
                **backoff,
            ),
            deadline=settings.pipeline_deadline,
            await_finality=settings.await_finality,
            confirmation_timeout=settings.confirmation_timeout,
            return_key_in_result=settings.return_key_in_result,
        )


@dataclass
class _RunState:
    """Forward-only progress of one invocation, used to report failures."""

    idempotency_key: str
    step: PipelineStep = PipelineStep.VALIDATE
    stage: Optional[PipelineStage] = None
    protected: Optional[ProtectedRecord] = None
    cid: Optional[str] = None

    def advance(self, stage: PipelineStage) -> None:
        self.stage = stage


class TokenizeReceiptCommand:
    """
    Turn one transaction record into an encrypted, published, tokenized receipt.

    The run is a forward-only saga: VALIDATED, CLASSIFIED, ENCRYPTED,
    PUBLISHED, MINTED. Published objects are never deleted; a failed mint
    reports the ``cid`` and the protected record so the caller can resubmit
    the identical bundle. At most one token is minted per idempotency key.

    Every invocation returns either a ``PipelineSuccess`` or a
    ``PipelineFailure``; nothing but cancellation escapes ``execute``.
    """

    def __init__(  # noqa: PLR0913
        self,
        protector: RecordProtector,
        content_store: ContentStore,
        ledger_client: LedgerClient,
        options: Optional[TokenizeOptions] = None,
        key_custody: Optional[KeyCustodyPort] = None,
        classifier: Optional[ReceiptClassifier] = None,
        validator: Optional[RecordValidator] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._protector = protector
        self._content_store = content_store
        self._ledger = ledger_client
        self._options = options or TokenizeOptions()
        self._key_custody = key_custody
        self._classifier = classifier or ReceiptClassifier()
        self._validator = validator or RecordValidator()
        self._sleep = sleep

    @classmethod
    def from_factory(cls, factory: PipelineFactory) -> TokenizeReceiptCommand:
        return cls(
            protector=factory.record_protector(),
            content_store=factory.content_store(),
            ledger_client=factory.ledger_client(),
            options=TokenizeOptions.from_settings(factory.settings),
            key_custody=factory.key_custody(),
        )

    async def execute(
        self,
        record: Union[TransactionRecord, Mapping[str, Any]],
        owner_address: str,
        idempotency_key: Optional[str] = None,
        protected: Optional[ProtectedRecord] = None,
    ) -> PipelineResult:
        """
        Run the pipeline for ``record`` on behalf of ``owner_address``.

        Parameters
        ----------
        record
            Validated model or raw payload (``txnId``, ``merchant``, ...)
        owner_address
            Ledger address that receives the token
        idempotency_key
            Logical transaction identity; defaults to the record's ``txnId``
        protected
            Bundle and key returned by an earlier failed run, to republish
            the identical bytes instead of encrypting again
        """
        state = _RunState(idempotency_key=idempotency_key or _payload_key(record))
        try:
            return await self._run(state, record, owner_address, protected)
        except DomainException as e:
            return self._failure(state, e)
        except Exception as e:
            logger.exception(
                "Unexpected error in %s step for %s",
                state.step.value,
                state.idempotency_key,
            )
            return self._failure(state, e)

    async def _run(
        self,
        state: _RunState,
        raw_record: Union[TransactionRecord, Mapping[str, Any]],
        owner_address: str,
        protected: Optional[ProtectedRecord],
    ) -> PipelineResult:
        options = self._options
        deadline = Deadline(options.deadline)

        # Validate (no side effects before this succeeds)
        state.step = PipelineStep.VALIDATE
        record = (
            raw_record
            if isinstance(raw_record, TransactionRecord)
            else TransactionRecord.from_payload(dict(raw_record))
        )
        state.idempotency_key = state.idempotency_key or record.txn_id
        self._validator.validate(record, owner_address)
        state.advance(PipelineStage.VALIDATED)

        existing = await self._lookup(state.idempotency_key)
        if existing is not None:
            logger.info(
                "Transaction %s already tokenized as %d, replaying",
                state.idempotency_key,
                existing.token_id,
            )
            return self._success(state, self._classify(record), existing, None, True)

        # Classify
        state.step = PipelineStep.CLASSIFY
        classification = self._classify(record)
        state.advance(PipelineStage.CLASSIFIED)

        # Encrypt
        state.step = PipelineStep.ENCRYPT
        if protected is None:
            protected = self._protector.encrypt(record.to_payload())
        state.protected = protected

        if self._key_custody is not None:
            state.step = PipelineStep.KEY_CUSTODY
            await self._key_custody.store_key(
                state.idempotency_key,
                protected.bundle.key_ref,
                protected.key,
            )
        state.advance(PipelineStage.ENCRYPTED)

        # Publish
        state.step = PipelineStep.PUBLISH
        published = await self._publish(protected.bundle.to_bytes(), deadline)
        state.cid = published.cid
        state.advance(PipelineStage.PUBLISHED)
        logger.info("Published %s for %s", published.cid, state.idempotency_key)

        # Mint
        state.step = PipelineStep.MINT
        token = await self._mint(state.idempotency_key, owner_address, published, deadline)
        state.advance(PipelineStage.MINTED)

        # A concurrent run for the same key won the mint with its own bundle
        replayed = token.uri != published.uri
        if replayed:
            logger.info(
                "Transaction %s was minted concurrently as %d; %s stays unreferenced",
                state.idempotency_key,
                token.token_id,
                published.cid,
            )

        if options.await_finality and not token.confirmed:
            state.step = PipelineStep.CONFIRM
            token = await self._ledger.await_confirmation(
                token,
                deadline.clamp(options.confirmation_timeout),
            )

        key = protected.key if options.return_key_in_result and not replayed else None
        return self._success(state, classification, token, key, replayed)

    def _classify(self, record: TransactionRecord) -> Classification:
        return self._classifier.classify(record.total, record.merchant, record.items)

    async def _lookup(self, idempotency_key: str) -> Optional[MintedToken]:
        try:
            return await self._ledger.lookup(idempotency_key)
        except LedgerError as e:
            # The ledger client deduplicates again before minting
            logger.warning("Lookup for %s failed: %s", idempotency_key, e)
            return None

    async def _publish(self, data: bytes, deadline: Deadline) -> PublishedObject:
        def on_timeout(timeout: float) -> Exception:
            return PublishError.transient(f"Publish attempt timed out after {timeout:.1f}s")

        return await run_with_retry(
            lambda attempt: self._content_store.publish(data),
            self._options.publish_policy,
            deadline,
            PipelineStep.PUBLISH,
            is_retryable=_is_retryable,
            on_timeout=on_timeout,
            shield=True,
            sleep=self._sleep,
        )

    async def _mint(
        self,
        idempotency_key: str,
        owner_address: str,
        published: PublishedObject,
        deadline: Deadline,
    ) -> MintedToken:
        def on_timeout(timeout: float) -> Exception:
            msg = f"Mint attempt timed out after {timeout:.1f}s"
            return LedgerError(msg, LedgerErrorReason.CONFIRMATION_PENDING)

        async def before_retry(attempt: int) -> Optional[MintedToken]:
            return await self._lookup(idempotency_key)

        return await run_with_retry(
            lambda attempt: self._ledger.mint(
                owner_address,
                MINT_QUANTITY,
                published.uri,
                idempotency_key,
            ),
            self._options.mint_policy,
            deadline,
            PipelineStep.MINT,
            is_retryable=_is_retryable,
            on_timeout=on_timeout,
            before_retry=before_retry,
            sleep=self._sleep,
        )

    def _success(
        self,
        state: _RunState,
        classification: Classification,
        token: MintedToken,
        key: Optional[ReceiptKey],
        replayed: bool,
    ) -> PipelineSuccess:
        return PipelineSuccess(
            idempotency_key=state.idempotency_key,
            tier=classification.tier,
            categories=tuple(classification.sorted_categories()),
            cid=cid_from_uri(token.uri),
            key=key,
            token_id=token.token_id,
            tx_hash=token.tx_hash,
            confirmed=token.confirmed,
            replayed=replayed,
        )

    def _failure(self, state: _RunState, error: Exception) -> PipelineFailure:
        if isinstance(error, DomainException):
            kind = _kind_of(error)
            retryable = error.retryable
            code = error.code.value
            message = error.message
            details = dict(error.details)
        else:
            kind = "internal"
            retryable = False
            code = ErrorCode.INTERNAL_ERROR.value
            message = f"{type(error).__name__}: {error}"
            details = {}

        logger.warning(
            "Pipeline for %s failed at %s (%s, retryable=%s): %s",
            state.idempotency_key,
            state.step.value,
            kind,
            retryable,
            message,
        )
        return PipelineFailure(
            idempotency_key=state.idempotency_key,
            step=state.step,
            last_completed_stage=state.stage,
            kind=kind,
            retryable=retryable,
            message=message,
            code=code,
            cid=state.cid,
            protected=state.protected,
            details=details,
        )


def _is_retryable(error: Exception) -> bool:
    return isinstance(error, DomainException) and error.retryable


def _kind_of(error: DomainException) -> str:  # noqa: PLR0911
    if isinstance(error, PublishError):
        return error.kind.value
    if isinstance(error, LedgerError):
        return error.kind
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, SecurityDomainError):
        return "security"
    if isinstance(error, ContentNotFoundError):
        return "not_found"
    kind = getattr(error, "kind", None)
    if isinstance(kind, str):
        return kind
    return "domain"


def _payload_key(record: Union[TransactionRecord, Mapping[str, Any]]) -> str:
    if isinstance(record, TransactionRecord):
        return record.txn_id
    for name in ("txn_id", "txnId", "id"):
        value = record.get(name)
        if value:
            return str(value)
    return ""
