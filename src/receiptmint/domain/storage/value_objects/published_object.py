"""Published object value object."""

from dataclasses import dataclass

from receiptmint.domain.storage.value_objects.content_id import content_uri


@dataclass(frozen=True)
class PublishedObject:
    """Reference to bytes held by the content-addressed store."""

    cid: str
    size_bytes: int

    @property
    def uri(self) -> str:
        return content_uri(self.cid)
