"""In-process append-only ledger for local development and tests.

Behaves like a strict account-sequence ledger: every signer address has an
expected next sequence number, an instruction with any other sequence is
refused, and accepted instructions are included immediately with a fresh
token id. A transaction reports ``finalized`` once it has been polled
``finalize_after`` times.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from receiptmint.domain.ledger.exceptions import LedgerError, LedgerErrorReason
from receiptmint.domain.ledger.ports import LedgerGateway
from receiptmint.domain.ledger.value_objects import (
    LedgerTransaction,
    SignedInstruction,
    TransactionStatus,
)
from receiptmint.infrastructure.ledger.ed25519_signer import verify_signature

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    signed: SignedInstruction
    status: TransactionStatus
    token_id: Optional[int] = None
    polls: int = 0


@dataclass
class _Account:
    next_sequence: int = 0
    balance: Optional[int] = None
    submitted: list[int] = field(default_factory=list)


class InMemoryLedger(LedgerGateway):
    """Append-only ledger kept in memory."""

    def __init__(self, finalize_after: int = 1):
        self._finalize_after = finalize_after
        self._accounts: dict[str, _Account] = {}
        self._entries: dict[str, _Entry] = {}
        self._next_token_id = 1
        self._failures: deque[LedgerErrorReason] = deque()
        self._lock = asyncio.Lock()

    # Test hooks ---------------------------------------------------------

    def inject_failure(self, reason: LedgerErrorReason, times: int = 1) -> None:
        """Make the next ``times`` submissions fail with ``reason``.

        ``CONFIRMATION_PENDING`` accepts the instruction but keeps it pending
        until ``include_pending`` is called; ``TRANSACTION_DROPPED`` accepts it
        and then drops it without consuming its sequence number.
        """
        self._failures.extend([reason] * times)

    def include_pending(self) -> int:
        """Include every pending transaction. Returns how many were included."""
        included = 0
        for entry in self._entries.values():
            if entry.status is TransactionStatus.PENDING:
                self._include(entry)
                included += 1
        return included

    def set_balance(self, address: str, mints: Optional[int]) -> None:
        """Limit how many more mints ``address`` can pay for (None = unlimited)."""
        self._account(address).balance = mints

    def sequences_for(self, address: str) -> list[int]:
        """Sequence numbers of the instructions ``address`` got included, in order."""
        return list(self._account(address).submitted)

    @property
    def transaction_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.status.has_landed())

    # LedgerGateway -------------------------------------------------------

    async def get_next_sequence(self, address: str) -> int:
        return self._account(address).next_sequence

    async def submit(self, signed: SignedInstruction) -> str:
        async with self._lock:
            instruction = signed.instruction
            account = self._account(instruction.signer_address)

            if not verify_signature(signed):
                msg = "Signature does not verify for the signer address"
                raise LedgerError(msg, LedgerErrorReason.INVALID_INSTRUCTION)

            tx_hash = signed.tx_hash
            existing = self._entries.get(tx_hash)
            if existing is not None and existing.status is not TransactionStatus.DROPPED:
                return tx_hash

            injected = self._failures.popleft() if self._failures else None
            if injected in (
                LedgerErrorReason.INSUFFICIENT_FUNDS,
                LedgerErrorReason.INVALID_INSTRUCTION,
                LedgerErrorReason.SUBMISSION_REJECTED,
            ):
                msg = f"Injected failure: {injected.value}"
                raise LedgerError(msg, injected, {"sequence": instruction.sequence})

            if instruction.sequence != account.next_sequence:
                msg = (
                    f"Sequence {instruction.sequence} does not match expected "
                    f"{account.next_sequence}"
                )
                raise LedgerError(
                    msg,
                    LedgerErrorReason.SEQUENCE_COLLISION,
                    {"expected": account.next_sequence, "got": instruction.sequence},
                )

            if account.balance is not None and account.balance <= 0:
                msg = f"Account {instruction.signer_address} cannot pay for the mint"
                raise LedgerError(msg, LedgerErrorReason.INSUFFICIENT_FUNDS)

            if injected is LedgerErrorReason.TRANSACTION_DROPPED:
                self._entries[tx_hash] = _Entry(signed, TransactionStatus.DROPPED)
                logger.debug("Dropped %s (sequence %d)", tx_hash, instruction.sequence)
                return tx_hash

            entry = _Entry(signed, TransactionStatus.PENDING)
            self._entries[tx_hash] = entry
            account.next_sequence += 1
            account.submitted.append(instruction.sequence)
            if account.balance is not None:
                account.balance -= 1

            if injected is not LedgerErrorReason.CONFIRMATION_PENDING:
                self._include(entry)
            return tx_hash

    async def get_transaction(self, tx_hash: str) -> Optional[LedgerTransaction]:
        entry = self._entries.get(tx_hash)
        if entry is None:
            return None

        if entry.status is TransactionStatus.INCLUDED:
            entry.polls += 1
            if entry.polls >= self._finalize_after:
                entry.status = TransactionStatus.FINALIZED

        return LedgerTransaction(
            tx_hash=tx_hash,
            status=entry.status,
            token_id=entry.token_id,
            sequence=entry.signed.instruction.sequence,
        )

    # Internals -----------------------------------------------------------

    def _account(self, address: str) -> _Account:
        return self._accounts.setdefault(address, _Account())

    def _include(self, entry: _Entry) -> None:
        entry.status = TransactionStatus.INCLUDED
        entry.token_id = self._next_token_id
        self._next_token_id += 1
        logger.debug(
            "Included sequence %d as token %d",
            entry.signed.instruction.sequence,
            entry.token_id,
        )
