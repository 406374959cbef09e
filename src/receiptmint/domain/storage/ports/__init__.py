"""Storage domain ports."""

from receiptmint.domain.storage.ports.content_store import ContentStore

__all__ = ["ContentStore"]
