"""Storage domain value objects."""

from receiptmint.domain.storage.value_objects.content_id import (
    URI_SCHEME,
    cid_from_uri,
    compute_cid,
    content_uri,
)
from receiptmint.domain.storage.value_objects.published_object import PublishedObject

__all__ = [
    "URI_SCHEME",
    "PublishedObject",
    "cid_from_uri",
    "compute_cid",
    "content_uri",
]
