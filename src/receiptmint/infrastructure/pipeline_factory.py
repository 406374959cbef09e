"""Settings-driven wiring of the pipeline's infrastructure."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from receiptmint.application.ports import KeyCustodyPort
from receiptmint.application.services import LedgerClient
from receiptmint.domain.ledger.ports import LedgerGateway, TransactionSigner
from receiptmint.domain.storage.ports import ContentStore
from receiptmint.infrastructure.ledger import (
    Ed25519TransactionSigner,
    InMemoryLedger,
    JsonRpcLedgerGateway,
)
from receiptmint.infrastructure.persistence.sqlalchemy.init_db import (
    create_engine,
    create_tables,
)
from receiptmint.infrastructure.persistence.sqlalchemy.repositories import (
    MintRecordRepositorySQLAlchemy,
)
from receiptmint.infrastructure.security import AesGcmRecordProtector
from receiptmint.infrastructure.storage import InMemoryContentStore, IpfsContentStore
from receiptmint_config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class SettingsPipelineFactory:
    """Builds one set of collaborators from ``Settings`` and owns their lifetime."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        engine: Optional[AsyncEngine] = None,
        key_custody: Optional[KeyCustodyPort] = None,
    ):
        self._settings = settings or get_settings()
        self._engine = engine
        self._owns_engine = engine is None
        self._key_custody = key_custody

        # Cached instances (created on demand)
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._protector: AesGcmRecordProtector | None = None
        self._content_store: ContentStore | None = None
        self._gateway: LedgerGateway | None = None
        self._signer: TransactionSigner | None = None
        self._ledger_client: LedgerClient | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_engine(self._settings.effective_database_url)
        return self._engine

    async def initialize(self) -> None:
        """Create the mint record tables if they do not exist yet."""
        await create_tables(self.engine)

    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                expire_on_commit=False,
            )
        return self._session_factory

    def mint_record_repository(self) -> MintRecordRepositorySQLAlchemy:
        return MintRecordRepositorySQLAlchemy(self.session_factory())

    def record_protector(self) -> AesGcmRecordProtector:
        if self._protector is None:
            self._protector = AesGcmRecordProtector()
        return self._protector

    def content_store(self) -> ContentStore:
        if self._content_store is None:
            settings = self._settings
            if settings.content_store_backend == "ipfs":
                self._content_store = IpfsContentStore(
                    api_url=settings.ipfs_api_url,
                    auth=settings.ipfs_auth,
                    timeout=settings.ipfs_timeout,
                )
            else:
                self._content_store = InMemoryContentStore()
            logger.debug("Using %s content store", settings.content_store_backend)
        return self._content_store

    def ledger_gateway(self) -> LedgerGateway:
        if self._gateway is None:
            settings = self._settings
            if settings.ledger_backend == "jsonrpc":
                self._gateway = JsonRpcLedgerGateway(
                    rpc_url=settings.ledger_rpc_url,
                    timeout=settings.ledger_timeout,
                )
            else:
                self._gateway = InMemoryLedger()
            logger.debug("Using %s ledger", settings.ledger_backend)
        return self._gateway

    def transaction_signer(self) -> TransactionSigner:
        if self._signer is None:
            secret = self._settings.signer_private_key
            if secret is not None:
                self._signer = Ed25519TransactionSigner.from_hex_seed(
                    secret.get_secret_value()
                )
            elif self._settings.ledger_backend == "memory":
                self._signer = Ed25519TransactionSigner.generate()
                logger.info(
                    "No signer key configured, using ephemeral identity %s",
                    self._signer.address,
                )
            else:
                msg = "SIGNER_PRIVATE_KEY is required for the jsonrpc ledger backend"
                raise ValueError(msg)
        return self._signer

    def ledger_client(self) -> LedgerClient:
        if self._ledger_client is None:
            self._ledger_client = LedgerClient(
                gateway=self.ledger_gateway(),
                signer=self.transaction_signer(),
                repository=self.mint_record_repository(),
                confirmation_timeout=self._settings.confirmation_timeout,
                poll_interval=self._settings.confirmation_poll_interval,
            )
        return self._ledger_client

    def key_custody(self) -> Optional[KeyCustodyPort]:
        return self._key_custody

    async def close(self) -> None:
        """Drain the ledger client and release network and database resources."""
        if self._ledger_client is not None:
            await self._ledger_client.close()
        elif self._gateway is not None:
            await self._gateway.close()
        if self._content_store is not None:
            await self._content_store.close()
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
