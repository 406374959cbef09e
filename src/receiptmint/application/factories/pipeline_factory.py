"""Pipeline factory protocol for application layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

from receiptmint.application.ports import KeyCustodyPort
from receiptmint.domain.security.services import RecordProtector
from receiptmint.domain.storage.ports import ContentStore

if TYPE_CHECKING:
    from receiptmint.application.services import LedgerClient
    from receiptmint_config.settings import Settings


class PipelineFactory(Protocol):
    """Protocol for wiring the pipeline's collaborators."""

    @property
    def settings(self) -> Settings:
        """Settings the collaborators were built from."""
        ...

    def record_protector(self) -> RecordProtector:
        """Get the record protector."""
        ...

    def content_store(self) -> ContentStore:
        """Get the content store (one instance per factory)."""
        ...

    def ledger_client(self) -> LedgerClient:
        """Get the ledger client; there must be exactly one per signer."""
        ...

    def key_custody(self) -> Optional[KeyCustodyPort]:
        """Get the key custody collaborator, if one is configured."""
        ...
