"""Mint record status enumeration."""

from enum import Enum


class MintStatus(Enum):
    """Local bookkeeping status of a mint attempt for an idempotency key."""

    SUBMITTED = "submitted"
    MINTED = "minted"
    RELEASED = "released"

    def is_final(self) -> bool:
        return self is MintStatus.MINTED

    def is_in_flight(self) -> bool:
        return self is MintStatus.SUBMITTED
