"""In-process content-addressed store for local development and tests."""

import asyncio
import logging

from receiptmint.domain.storage.exceptions import ContentNotFoundError
from receiptmint.domain.storage.ports import ContentStore
from receiptmint.domain.storage.value_objects import PublishedObject, compute_cid

logger = logging.getLogger(__name__)


class InMemoryContentStore(ContentStore):
    """Append-only dictionary keyed by content identifier."""

    def __init__(self):
        self._objects: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    @property
    def object_count(self) -> int:
        return len(self._objects)

    async def publish(self, data: bytes) -> PublishedObject:
        cid = compute_cid(data)
        async with self._lock:
            if cid in self._objects:
                logger.debug("Content %s already stored", cid)
            else:
                self._objects[cid] = bytes(data)
                logger.debug("Stored %d bytes as %s", len(data), cid)
        return PublishedObject(cid=cid, size_bytes=len(data))

    async def fetch(self, cid: str) -> bytes:
        try:
            return self._objects[cid]
        except KeyError:
            raise ContentNotFoundError(cid) from None
