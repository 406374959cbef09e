"""
Pytest configuration for receiptmint tests.

Provides the SQLite fixtures and ready-wired in-memory collaborators.
"""

import pytest
import pytest_asyncio

from receiptmint.application.services import LedgerClient
from receiptmint.infrastructure.ledger import Ed25519TransactionSigner, InMemoryLedger
from receiptmint.infrastructure.persistence.sqlalchemy.repositories import (
    MintRecordRepositorySQLAlchemy,
)
from receiptmint.infrastructure.security import AesGcmRecordProtector
from receiptmint.infrastructure.storage import InMemoryContentStore
from tests.shared.fixtures.database import async_engine, session_factory
from tests.shared.fixtures.timing import no_sleep

# Make fixtures available
__all__ = ["async_engine", "session_factory"]

# Fixed seed - ensures deterministic signer addresses
TEST_SIGNER_SEED = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"


@pytest.fixture
def signer() -> Ed25519TransactionSigner:
    return Ed25519TransactionSigner.from_hex_seed(TEST_SIGNER_SEED)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def content_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def protector() -> AesGcmRecordProtector:
    return AesGcmRecordProtector()


@pytest.fixture
def mint_repository(session_factory) -> MintRecordRepositorySQLAlchemy:
    return MintRecordRepositorySQLAlchemy(session_factory)


@pytest_asyncio.fixture
async def ledger_client(ledger, signer, mint_repository):
    """Ledger client on the in-memory ledger; closed after the test."""
    client = LedgerClient(
        gateway=ledger,
        signer=signer,
        repository=mint_repository,
        confirmation_timeout=1.0,
        poll_interval=0.0,
        sleep=no_sleep,
    )
    yield client
    await client.close()
