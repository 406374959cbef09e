"""SQLAlchemy models."""

from receiptmint.infrastructure.persistence.sqlalchemy.models.base import (
    Base,
    TimestampMixin,
)
from receiptmint.infrastructure.persistence.sqlalchemy.models.mint_record_model import (
    MintRecordModel,
)

__all__ = [
    "Base",
    "MintRecordModel",
    "TimestampMixin",
]
