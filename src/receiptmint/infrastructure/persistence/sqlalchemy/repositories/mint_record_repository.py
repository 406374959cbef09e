"""SQLAlchemy implementation of MintRecordRepository."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from receiptmint.domain.ledger.entities import MintRecord
from receiptmint.domain.ledger.repositories import MintRecordRepository
from receiptmint.domain.ledger.value_objects import MintStatus
from receiptmint.domain.shared.time import ensure_tz_aware
from receiptmint.infrastructure.persistence.sqlalchemy.models import MintRecordModel


class MintRecordRepositorySQLAlchemy(MintRecordRepository):
    """SQLAlchemy implementation of MintRecordRepository.

    Opens a short-lived session per operation: the ledger worker and any
    number of pipelines read through the same repository concurrently.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save(self, record: MintRecord) -> None:
        async with self._session_factory() as session, session.begin():
            stmt = select(MintRecordModel).where(MintRecordModel.id == record.id)
            result = await session.execute(stmt)
            existing = result.scalar_one_or_none()

            if existing:
                existing.owner_address = record.owner_address
                existing.uri = record.uri
                existing.sequence = record.sequence
                existing.tx_hash = record.tx_hash
                existing.status = record.status
                existing.token_id = record.token_id
                existing.confirmed = record.confirmed
                existing.error_message = record.error_message
                existing.updated_at = record.updated_at
                existing.minted_at = record.minted_at
            else:
                model = MintRecordModel(
                    id=record.id,
                    idempotency_key=record.idempotency_key,
                    signer_address=record.signer_address,
                    owner_address=record.owner_address,
                    uri=record.uri,
                    sequence=record.sequence,
                    tx_hash=record.tx_hash,
                    status=record.status,
                    token_id=record.token_id,
                    confirmed=record.confirmed,
                    error_message=record.error_message,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                    minted_at=record.minted_at,
                )
                session.add(model)

    async def find_by_idempotency_key(
        self,
        idempotency_key: str,
    ) -> Optional[MintRecord]:
        stmt = select(MintRecordModel).where(
            MintRecordModel.idempotency_key == idempotency_key,
        )
        return await self._find_one(stmt)

    async def find_by_tx_hash(self, tx_hash: str) -> Optional[MintRecord]:
        stmt = select(MintRecordModel).where(MintRecordModel.tx_hash == tx_hash)
        return await self._find_one(stmt)

    async def find_by_status(self, status: MintStatus) -> List[MintRecord]:
        stmt = (
            select(MintRecordModel)
            .where(MintRecordModel.status == status)
            .order_by(MintRecordModel.sequence)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            models = result.scalars().all()

        return [self._model_to_domain(model) for model in models]

    async def _find_one(self, stmt) -> Optional[MintRecord]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()

        if not model:
            return None

        return self._model_to_domain(model)

    def _model_to_domain(self, model: MintRecordModel) -> MintRecord:
        return MintRecord(
            id=model.id,
            idempotency_key=model.idempotency_key,
            signer_address=model.signer_address,
            owner_address=model.owner_address,
            uri=model.uri,
            sequence=model.sequence,
            tx_hash=model.tx_hash,
            status=model.status,
            token_id=model.token_id,
            confirmed=model.confirmed,
            error_message=model.error_message,
            created_at=ensure_tz_aware(model.created_at),
            updated_at=ensure_tz_aware(model.updated_at),
            minted_at=ensure_tz_aware(model.minted_at) if model.minted_at else None,
        )
