"""SQLAlchemy model for MintRecord entity."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from receiptmint.domain.ledger.value_objects import MintStatus
from receiptmint.infrastructure.persistence.sqlalchemy.models.base import (
    Base,
    TimestampMixin,
)


class MintRecordModel(Base, TimestampMixin):
    """
    SQLAlchemy model for persisting MintRecord entities.

    One row per idempotency key. The row is written before the instruction is
    submitted and updated once the ledger reports the outcome.

    Database Constraints:
    - If status = 'minted', token_id must not be NULL
    - If status = 'released', error_message must not be NULL
    """

    __tablename__ = "mint_records"

    __table_args__ = (
        CheckConstraint(
            "(status != 'minted' OR token_id IS NOT NULL)",
            name="check_minted_has_token_id",
        ),
        CheckConstraint(
            "(status != 'released' OR error_message IS NOT NULL)",
            name="check_released_has_error_message",
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True)
    idempotency_key: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )

    signer_address: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_address: Mapped[str] = mapped_column(String(128), nullable=False)
    uri: Mapped[str] = mapped_column(Text, nullable=False)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tx_hash: Mapped[str] = mapped_column(String(80), nullable=False, index=True)

    status: Mapped[MintStatus] = mapped_column(
        SQLEnum(
            MintStatus,
            values_callable=lambda x: [e.value for e in x],
            native_enum=False,
        ),
        default=MintStatus.SUBMITTED,
        index=True,
    )

    token_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Why the submission was released (if it never landed)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    minted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<MintRecordModel(key={self.idempotency_key}, "
            f"status={self.status.value}, "
            f"seq={self.sequence})>"
        )
