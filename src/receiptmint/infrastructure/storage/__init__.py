"""Content store adapters."""

from receiptmint.infrastructure.storage.in_memory_content_store import (
    InMemoryContentStore,
)
from receiptmint.infrastructure.storage.ipfs_content_store import IpfsContentStore

__all__ = [
    "InMemoryContentStore",
    "IpfsContentStore",
]
