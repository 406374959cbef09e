"""Content store port."""

from abc import ABC, abstractmethod

from receiptmint.domain.storage.value_objects import PublishedObject


class ContentStore(ABC):
    """Content-addressed object store.

    Identical bytes always map to the identical identifier, so publishing
    the same payload twice never creates a second object.
    """

    @abstractmethod
    async def publish(self, data: bytes) -> PublishedObject:
        """
        Upload bytes and return their content identifier.

        Raises
        ------
        PublishError
            ``transient`` for timeouts and backend errors, ``permanent`` for
            malformed input or rejected credentials
        """

    @abstractmethod
    async def fetch(self, cid: str) -> bytes:
        """
        Retrieve previously published bytes.

        Raises
        ------
        ContentNotFoundError
            If nothing is stored under ``cid``
        PublishError
            If the store cannot be reached
        """

    async def close(self) -> None:  # noqa: B027
        """Release network resources, if any."""
