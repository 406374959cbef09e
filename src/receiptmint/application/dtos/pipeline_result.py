"""DTOs for the terminal result of one tokenization run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from receiptmint.domain.pipeline.stages import PipelineStage, PipelineStep
from receiptmint.domain.receipt.value_objects import Tier
from receiptmint.domain.security.value_objects import ProtectedRecord, ReceiptKey
from receiptmint.domain.storage.value_objects import content_uri


@dataclass(frozen=True)
class PipelineSuccess:
    """A record that is published and anchored by a token.

    ``key`` is None when the token was replayed (keys are never stored) or
    when keys are routed through custody instead of the result.
    """

    idempotency_key: str
    tier: Tier
    categories: tuple[str, ...]
    cid: str
    key: Optional[ReceiptKey]
    token_id: int
    tx_hash: str
    confirmed: bool = False
    replayed: bool = False

    @property
    def success(self) -> bool:
        return True

    @property
    def uri(self) -> str:
        return content_uri(self.cid)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "idempotency_key": self.idempotency_key,
            "tier": self.tier.value,
            "categories": list(self.categories),
            "cid": self.cid,
            "uri": self.uri,
            "key": self.key.to_hex() if self.key is not None else None,
            "token_id": self.token_id,
            "tx_hash": self.tx_hash,
            "confirmed": self.confirmed,
            "replayed": self.replayed,
        }


@dataclass(frozen=True)
class PipelineFailure:
    """A run that stopped at ``step``.

    ``cid`` is set once the bundle was published; ``protected`` lets the
    caller resubmit the identical bundle after a failed mint.
    """

    idempotency_key: str
    step: PipelineStep
    last_completed_stage: Optional[PipelineStage]
    kind: str
    retryable: bool
    message: str
    code: str
    cid: Optional[str] = None
    protected: Optional[ProtectedRecord] = field(default=None, repr=False)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "idempotency_key": self.idempotency_key,
            "step": self.step.value,
            "last_completed_stage": (
                self.last_completed_stage.value if self.last_completed_stage else None
            ),
            "kind": self.kind,
            "retryable": self.retryable,
            "message": self.message,
            "code": self.code,
            "cid": self.cid,
            "details": self.details,
        }


PipelineResult = Union[PipelineSuccess, PipelineFailure]
