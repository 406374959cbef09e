"""Ledger client: serialized, idempotent minting against a sequenced ledger.

The signer's sequence counter is the only shared mutable state of the
pipeline. It is owned by a single worker task that drains a FIFO queue of
mint jobs, so no two mints can observe or consume the same number. Callers
only ever hold a future for their job.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from receiptmint.domain.ledger.entities import MintedToken, MintRecord
from receiptmint.domain.ledger.exceptions import LedgerError, LedgerErrorReason
from receiptmint.domain.ledger.ports import LedgerGateway, TransactionSigner
from receiptmint.domain.ledger.repositories import MintRecordRepository
from receiptmint.domain.ledger.value_objects import (
    LedgerTransaction,
    MintInstruction,
    TransactionStatus,
)
from receiptmint.domain.shared.exceptions import DomainException

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class _MintJob:
    owner_address: str
    quantity: int
    uri: str
    idempotency_key: str
    future: asyncio.Future = field(repr=False)


class LedgerClientClosedError(RuntimeError):
    """Raised when minting through a client that has been closed."""


class LedgerClient:
    """Mint tokens through one signing identity, at most once per key."""

    def __init__(  # noqa: PLR0913
        self,
        gateway: LedgerGateway,
        signer: TransactionSigner,
        repository: MintRecordRepository,
        confirmation_timeout: float = 60.0,
        poll_interval: float = 1.0,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._gateway = gateway
        self._signer = signer
        self._repository = repository
        self._confirmation_timeout = confirmation_timeout
        self._poll_interval = poll_interval
        self._sleep = sleep

        self._queue: asyncio.Queue[Optional[_MintJob]] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._closed = False

        # Owned by the worker task only
        self._next_sequence: Optional[int] = None
        self._outstanding: Optional[MintRecord] = None

    @property
    def signer_address(self) -> str:
        return self._signer.address

    # Public API ----------------------------------------------------------

    async def mint(
        self,
        owner_address: str,
        quantity: int,
        uri: str,
        idempotency_key: str,
    ) -> MintedToken:
        """
        Mint ``quantity`` tokens referencing ``uri`` for ``owner_address``.

        Jobs are processed strictly in submission order. Cancelling the
        caller does not cancel the job: a mint that was already sent to the
        ledger is still recorded, only its result is discarded.

        Raises
        ------
        LedgerError
            Classified by ``LedgerErrorReason``
        LedgerClientClosedError
            If ``close()`` has been called
        """
        if quantity <= 0:
            msg = f"Mint quantity must be positive, got {quantity}"
            raise LedgerError(
                msg,
                LedgerErrorReason.INVALID_INSTRUCTION,
                {"quantity": quantity},
            )
        if self._closed:
            msg = "Ledger client is closed"
            raise LedgerClientClosedError(msg)

        self._ensure_worker()
        future = asyncio.get_running_loop().create_future()
        await self._queue.put(
            _MintJob(
                owner_address=owner_address,
                quantity=quantity,
                uri=uri,
                idempotency_key=idempotency_key,
                future=future,
            )
        )
        return await future

    async def lookup(self, idempotency_key: str) -> Optional[MintedToken]:
        """
        Return the token minted for ``idempotency_key``, if any.

        An in-flight submission that the ledger already included counts as
        minted; the local record is brought up to date by the worker.
        """
        record = await self._repository.find_by_idempotency_key(idempotency_key)
        if record is None:
            return None
        if record.is_minted():
            return record.to_token()
        if not record.is_in_flight():
            return None

        tx = await self._gateway.get_transaction(record.tx_hash)
        if tx is None or not tx.status.has_landed() or tx.token_id is None:
            return None
        return MintedToken(
            token_id=tx.token_id,
            owner_address=record.owner_address,
            uri=record.uri,
            tx_hash=record.tx_hash,
            confirmed=tx.status is TransactionStatus.FINALIZED,
        )

    async def await_confirmation(
        self,
        token: MintedToken,
        timeout: Optional[float] = None,
    ) -> MintedToken:
        """
        Wait until the ledger reports the token's transaction as finalized.

        Raises
        ------
        LedgerError
            ``CONFIRMATION_PENDING`` if ``timeout`` elapses first,
            ``TRANSACTION_DROPPED`` if the ledger discarded the transaction
        """
        if token.confirmed:
            return token

        loop = asyncio.get_running_loop()
        timeout = self._confirmation_timeout if timeout is None else timeout
        give_up_at = loop.time() + timeout

        while True:
            tx = await self._gateway.get_transaction(token.tx_hash)
            if tx is not None and tx.status is TransactionStatus.FINALIZED:
                break
            if tx is not None and tx.status is TransactionStatus.DROPPED:
                msg = f"Transaction {token.tx_hash} was dropped before finality"
                raise LedgerError(msg, LedgerErrorReason.TRANSACTION_DROPPED)
            if loop.time() >= give_up_at:
                msg = f"Token {token.token_id} not finalized within {timeout:.1f}s"
                raise LedgerError(
                    msg,
                    LedgerErrorReason.CONFIRMATION_PENDING,
                    {"tx_hash": token.tx_hash},
                )
            await self._sleep(self._poll_interval)

        token.mark_confirmed()
        record = await self._repository.find_by_tx_hash(token.tx_hash)
        if record is not None and record.is_minted() and not record.confirmed:
            record.mark_confirmed()
            await self._repository.save(record)
        logger.info("Token %d finalized", token.token_id)
        return token

    async def close(self) -> None:
        """Finish queued jobs, stop the worker and close the gateway."""
        self._closed = True
        if self._worker is not None and not self._worker.done():
            await self._queue.put(None)
            await self._worker
        self._worker = None
        await self._gateway.close()

    # Worker --------------------------------------------------------------

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="ledger-client")

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job is None:
                    return
                await self._handle(job)
            finally:
                self._queue.task_done()

    async def _handle(self, job: _MintJob) -> None:
        try:
            token = await self._process(job)
        except Exception as e:  # delivered to the caller
            if not isinstance(e, DomainException):
                logger.exception("Unexpected error minting %s", job.idempotency_key)
            if job.future.cancelled():
                logger.warning(
                    "Mint for %s failed after its caller left: %s",
                    job.idempotency_key,
                    e,
                )
            else:
                job.future.set_exception(e)
            return

        if job.future.cancelled():
            logger.info(
                "Mint for %s completed after its caller left (token %d)",
                job.idempotency_key,
                token.token_id,
            )
        else:
            job.future.set_result(token)

    async def _process(self, job: _MintJob) -> MintedToken:
        record = await self._repository.find_by_idempotency_key(job.idempotency_key)

        if record is not None and record.is_minted():
            logger.info(
                "Mint for %s already recorded as token %d",
                job.idempotency_key,
                record.token_id,
            )
            return record.to_token()

        if record is not None and record.is_in_flight():
            token = await self._resolve_in_flight(record)
            if token is not None:
                return token

        await self._settle_outstanding()
        sequence = await self._current_sequence()

        instruction = MintInstruction(
            signer_address=self._signer.address,
            owner_address=job.owner_address,
            uri=job.uri,
            sequence=sequence,
            quantity=job.quantity,
            memo=job.idempotency_key,
        )
        signed = self._signer.sign(instruction)

        if record is None:
            record = MintRecord(
                idempotency_key=job.idempotency_key,
                signer_address=self._signer.address,
                owner_address=job.owner_address,
                uri=job.uri,
                sequence=sequence,
                tx_hash=signed.tx_hash,
            )
        else:
            record.resubmit(job.owner_address, job.uri, sequence, signed.tx_hash)
        await self._repository.save(record)

        try:
            accepted_hash = await self._gateway.submit(signed)
        except LedgerError as e:
            token = await self._handle_submit_failure(record, e)
            if token is None:
                raise
            return token

        self._next_sequence = sequence + 1
        if accepted_hash != record.tx_hash:
            logger.warning(
                "Ledger accepted %s as %s; tracking the ledger hash",
                record.tx_hash,
                accepted_hash,
            )
            record.adopt_tx_hash(accepted_hash)
            await self._repository.save(record)
        logger.info(
            "Submitted mint for %s with sequence %d (%s)",
            job.idempotency_key,
            sequence,
            record.tx_hash,
        )
        return await self._await_inclusion(record)

    async def _resolve_in_flight(self, record: MintRecord) -> Optional[MintedToken]:
        """Query a previous submission before spending a new sequence number."""
        logger.info(
            "Found unresolved submission %s for %s, querying ledger",
            record.tx_hash,
            record.idempotency_key,
        )
        tx = await self._gateway.get_transaction(record.tx_hash)
        if tx is not None and tx.status.has_landed() and tx.token_id is not None:
            return await self._record_minted(record, tx)
        if tx is not None and tx.status.is_unresolved():
            return await self._await_inclusion(record)

        reason = "dropped by the ledger" if tx is not None else "never seen by the ledger"
        await self._release(record, f"Submission {reason}")
        return None

    async def _settle_outstanding(self) -> None:
        """Never hand out a new sequence while an older one is unresolved."""
        outstanding = self._outstanding
        if outstanding is None:
            return
        current = await self._repository.find_by_idempotency_key(
            outstanding.idempotency_key
        )
        if current is None or not current.is_in_flight():
            self._outstanding = None
            return

        logger.info(
            "Sequence %d (%s) still unresolved, waiting before minting further",
            current.sequence,
            current.idempotency_key,
        )
        await self._resolve_in_flight(current)

    async def _current_sequence(self) -> int:
        if self._next_sequence is None:
            self._next_sequence = await self._gateway.get_next_sequence(
                self._signer.address
            )
            logger.debug("Synchronized sequence counter at %d", self._next_sequence)
        return self._next_sequence

    def _resync(self) -> None:
        self._next_sequence = None

    async def _await_inclusion(self, record: MintRecord) -> MintedToken:
        loop = asyncio.get_running_loop()
        give_up_at = loop.time() + self._confirmation_timeout

        while True:
            tx = await self._gateway.get_transaction(record.tx_hash)
            if tx is not None:
                if tx.status.has_landed() and tx.token_id is not None:
                    return await self._record_minted(record, tx)
                if tx.status is TransactionStatus.DROPPED:
                    await self._release(record, "Transaction dropped before inclusion")
                    msg = f"Transaction {record.tx_hash} was dropped"
                    raise LedgerError(
                        msg,
                        LedgerErrorReason.TRANSACTION_DROPPED,
                        {"sequence": record.sequence},
                    )

            if loop.time() >= give_up_at:
                self._outstanding = record
                msg = (
                    f"Transaction {record.tx_hash} not included within "
                    f"{self._confirmation_timeout:.1f}s"
                )
                raise LedgerError(
                    msg,
                    LedgerErrorReason.CONFIRMATION_PENDING,
                    {"tx_hash": record.tx_hash, "sequence": record.sequence},
                )
            await self._sleep(self._poll_interval)

    async def _handle_submit_failure(
        self,
        record: MintRecord,
        error: LedgerError,
    ) -> Optional[MintedToken]:
        reason = error.reason
        logger.warning(
            "Submission of sequence %d for %s failed: %s (%s)",
            record.sequence,
            record.idempotency_key,
            error.message,
            reason.value,
        )

        if reason is LedgerErrorReason.SUBMISSION_REJECTED:
            return await self._check_rejected(record)

        await self._release(record, f"{reason.value}: {error.message}")
        if reason is LedgerErrorReason.SEQUENCE_COLLISION:
            logger.error(
                "Sequence collision at %d for signer %s; resynchronizing",
                record.sequence,
                record.signer_address,
            )
        return None

    async def _check_rejected(self, record: MintRecord) -> Optional[MintedToken]:
        """A rejected submission may still have landed: ask before retrying."""
        try:
            tx = await self._gateway.get_transaction(record.tx_hash)
        except LedgerError:
            # Unknown outcome: keep the record in flight and re-read the counter
            self._outstanding = record
            self._resync()
            return None

        if tx is not None and tx.status.has_landed() and tx.token_id is not None:
            self._next_sequence = record.sequence + 1
            return await self._record_minted(record, tx)
        if tx is not None and tx.status.is_unresolved():
            self._next_sequence = record.sequence + 1
            return await self._await_inclusion(record)

        # Confirmed not to have landed: the same sequence number is reused
        record.mark_released("Submission rejected before reaching the ledger")
        await self._repository.save(record)
        return None

    async def _record_minted(
        self,
        record: MintRecord,
        tx: LedgerTransaction,
    ) -> MintedToken:
        record.mark_minted(
            tx.token_id,
            confirmed=tx.status is TransactionStatus.FINALIZED,
        )
        await self._repository.save(record)
        if self._outstanding is not None and self._outstanding.id == record.id:
            self._outstanding = None
        logger.info(
            "Minted token %d for %s (sequence %d)",
            record.token_id,
            record.idempotency_key,
            record.sequence,
        )
        return record.to_token()

    async def _release(self, record: MintRecord, reason: str) -> None:
        record.mark_released(reason)
        await self._repository.save(record)
        if self._outstanding is not None and self._outstanding.id == record.id:
            self._outstanding = None
        self._resync()
