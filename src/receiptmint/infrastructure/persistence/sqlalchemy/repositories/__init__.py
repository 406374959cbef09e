"""SQLAlchemy repository implementations."""

from receiptmint.infrastructure.persistence.sqlalchemy.repositories.mint_record_repository import (  # noqa: E501
    MintRecordRepositorySQLAlchemy,
)

__all__ = ["MintRecordRepositorySQLAlchemy"]
