"""Storage domain: content-addressed publication of protected payloads."""

from receiptmint.domain.storage.exceptions import (
    ContentNotFoundError,
    PublishError,
    PublishErrorKind,
)
from receiptmint.domain.storage.ports import ContentStore
from receiptmint.domain.storage.value_objects import (
    PublishedObject,
    cid_from_uri,
    compute_cid,
    content_uri,
)

__all__ = [
    "ContentNotFoundError",
    "ContentStore",
    "PublishError",
    "PublishErrorKind",
    "PublishedObject",
    "cid_from_uri",
    "compute_cid",
    "content_uri",
]
