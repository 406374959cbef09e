"""Tests for TokenizeReceiptCommand on in-memory collaborators."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from receiptmint.application.commands import TokenizeOptions, TokenizeReceiptCommand
from receiptmint.application.dtos import PipelineFailure, PipelineSuccess
from receiptmint.application.ports import KeyCustodyPort
from receiptmint.application.services import LedgerClient, RetryPolicy
from receiptmint.domain.pipeline import PipelineStage, PipelineStep
from receiptmint.domain.receipt import Tier
from receiptmint.domain.security import EncryptedBundle, KeyCustodyError
from receiptmint.domain.storage.exceptions import PublishError
from receiptmint.infrastructure.ledger import InMemoryLedger
from receiptmint.infrastructure.storage import InMemoryContentStore
from tests.shared.fixtures.records import CVS_RECORD, OWNER_ADDRESS, make_record
from tests.shared.fixtures.timing import no_sleep


def _options(**overrides) -> TokenizeOptions:
    values = {
        "publish_policy": RetryPolicy(max_attempts=3, base_delay=0.0, jitter=0.0),
        "mint_policy": RetryPolicy(max_attempts=3, base_delay=0.0, jitter=0.0),
        "deadline": 30.0,
    }
    values.update(overrides)
    return TokenizeOptions(**values)


class FlakyContentStore(InMemoryContentStore):
    """Fails the first ``failures`` uploads, then behaves normally."""

    def __init__(self, failures: int, error: PublishError):
        super().__init__()
        self._failures = failures
        self._error = error
        self.attempted: list[bytes] = []

    async def publish(self, data: bytes):
        self.attempted.append(data)
        if len(self.attempted) <= self._failures:
            raise self._error
        return await super().publish(data)


class GatedContentStore(InMemoryContentStore):
    """Holds every upload until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.uploading = asyncio.Event()
        self.release = asyncio.Event()
        self.stored = asyncio.Event()

    async def publish(self, data: bytes):
        self.uploading.set()
        await self.release.wait()
        published = await super().publish(data)
        self.stored.set()
        return published


class GatedLedger(InMemoryLedger):
    """Holds every submission until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.submitting = asyncio.Event()
        self.release = asyncio.Event()

    async def submit(self, signed):
        self.submitting.set()
        await self.release.wait()
        return await super().submit(signed)


class FailingCustody(KeyCustodyPort):
    async def store_key(self, idempotency_key, key_ref, key):
        raise KeyCustodyError("vault sealed")


@pytest.fixture
def command(protector, content_store, ledger_client) -> TokenizeReceiptCommand:
    return TokenizeReceiptCommand(
        protector=protector,
        content_store=content_store,
        ledger_client=ledger_client,
        options=_options(),
        sleep=no_sleep,
    )


@pytest.mark.asyncio
class TestTokenizeReceipt:
    async def test_tokenizes_record_end_to_end(self, command, content_store, protector):
        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert isinstance(result, PipelineSuccess)
        assert result.success
        assert result.idempotency_key == "t1"
        assert result.tier is Tier.STANDARD
        assert result.categories == ("general", "receipt")
        assert result.token_id == 1
        assert result.cid.startswith("bafkrei")
        assert result.uri == f"ipfs://{result.cid}"
        assert result.key is not None
        assert not result.replayed

        bundle = EncryptedBundle.from_bytes(await content_store.fetch(result.cid))
        payload = protector.decrypt(bundle, result.key)
        assert payload["txnId"] == "t1"
        assert payload["merchant"] == "CVS Pharmacy"
        assert Decimal(payload["total"]) == Decimal("12.20")
        assert [(i["sku"], i["name"], i["quantity"]) for i in payload["items"]] == [
            ("sh1", "Shampoo", 1),
            ("tw1", "Twix", 1),
        ]
        assert [Decimal(i["unitPrice"]) for i in payload["items"]] == [
            Decimal("4.20"),
            Decimal("8.00"),
        ]

    async def test_result_serializes_key_as_hex(self, command):
        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        data = result.to_dict()

        assert data["success"] is True
        assert data["key"] == result.key.to_hex()
        assert data["tier"] == "STANDARD"

    async def test_resubmission_replays_existing_token(
        self, command, content_store, ledger
    ):
        first = await command.execute(CVS_RECORD, OWNER_ADDRESS)
        second = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert second.success
        assert second.replayed
        assert second.key is None
        assert second.token_id == first.token_id
        assert second.cid == first.cid
        assert ledger.transaction_count == 1
        assert content_store.object_count == 1

    async def test_concurrent_duplicates_mint_once(self, command, ledger):
        results = await asyncio.gather(
            command.execute(CVS_RECORD, OWNER_ADDRESS),
            command.execute(CVS_RECORD, OWNER_ADDRESS),
        )

        assert all(r.success for r in results)
        assert len({r.token_id for r in results}) == 1
        assert sorted(r.replayed for r in results) == [False, True]
        assert ledger.transaction_count == 1

    async def test_explicit_idempotency_key(self, command):
        result = await command.execute(CVS_RECORD, OWNER_ADDRESS, idempotency_key="k-9")

        assert result.idempotency_key == "k-9"

    async def test_tier_follows_total(self, command):
        result = await command.execute(
            make_record(txnId="t2", merchant="Tech Electronics", total="250.00"),
            OWNER_ADDRESS,
        )

        assert result.tier is Tier.LUXURY
        assert result.categories == ("electronics", "tech")

    async def test_key_withheld_when_configured(
        self, protector, content_store, ledger_client
    ):
        command = TokenizeReceiptCommand(
            protector,
            content_store,
            ledger_client,
            options=_options(return_key_in_result=False),
            sleep=no_sleep,
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert result.success
        assert result.key is None
        assert result.to_dict()["key"] is None

    async def test_key_handed_to_custody(self, protector, content_store, ledger_client):
        custody = AsyncMock(spec=KeyCustodyPort)
        command = TokenizeReceiptCommand(
            protector,
            content_store,
            ledger_client,
            options=_options(),
            key_custody=custody,
            sleep=no_sleep,
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        custody.store_key.assert_awaited_once()
        idempotency_key, key_ref, key = custody.store_key.await_args.args
        assert idempotency_key == "t1"
        assert key == result.key
        assert key_ref == key.key_ref

    async def test_await_finality(self, protector, content_store, signer, mint_repository):
        client = LedgerClient(
            InMemoryLedger(finalize_after=3),
            signer,
            mint_repository,
            confirmation_timeout=1.0,
            poll_interval=0.0,
            sleep=no_sleep,
        )
        command = TokenizeReceiptCommand(
            protector,
            content_store,
            client,
            options=_options(await_finality=True),
            sleep=no_sleep,
        )
        try:
            result = await command.execute(CVS_RECORD, OWNER_ADDRESS)
        finally:
            await client.close()

        assert result.success
        assert result.confirmed


@pytest.mark.asyncio
class TestTokenizeReceiptFailures:
    @pytest.mark.parametrize(
        ("overrides", "owner"),
        [
            ({"total": 0}, OWNER_ADDRESS),
            ({"total": "-1"}, OWNER_ADDRESS),
            ({"merchant": ""}, OWNER_ADDRESS),
            ({"items": []}, OWNER_ADDRESS),
            ({"total": "abc"}, OWNER_ADDRESS),
            ({}, ""),
        ],
    )
    async def test_invalid_input_has_no_side_effects(
        self, command, content_store, ledger, overrides, owner
    ):
        result = await command.execute(make_record(**overrides), owner)

        assert isinstance(result, PipelineFailure)
        assert result.step is PipelineStep.VALIDATE
        assert result.last_completed_stage is None
        assert result.kind == "validation"
        assert not result.retryable
        assert result.cid is None
        assert content_store.object_count == 0
        assert ledger.transaction_count == 0

    async def test_mint_failure_keeps_published_bundle(
        self, command, content_store, ledger, signer
    ):
        ledger.set_balance(signer.address, 0)

        failure = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert not failure.success
        assert failure.step is PipelineStep.MINT
        assert failure.last_completed_stage is PipelineStage.PUBLISHED
        assert failure.kind == "insufficient_funds"
        assert not failure.retryable
        assert failure.cid is not None
        assert failure.protected is not None
        assert await content_store.fetch(failure.cid)

        ledger.set_balance(signer.address, None)
        retried = await command.execute(
            CVS_RECORD, OWNER_ADDRESS, protected=failure.protected
        )

        assert retried.success
        assert retried.cid == failure.cid
        assert retried.key == failure.protected.key
        assert content_store.object_count == 1

    async def test_transient_publish_failure_is_retried(
        self, protector, ledger_client
    ):
        store = FlakyContentStore(2, PublishError.transient("node busy"))
        command = TokenizeReceiptCommand(
            protector, store, ledger_client, options=_options(), sleep=no_sleep
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert result.success
        assert len(store.attempted) == 3
        # Every attempt uploads the identical bytes
        assert len(set(store.attempted)) == 1
        assert store.object_count == 1

    async def test_permanent_publish_failure(self, protector, ledger_client, ledger):
        store = FlakyContentStore(10, PublishError.permanent("unauthorized"))
        command = TokenizeReceiptCommand(
            protector, store, ledger_client, options=_options(), sleep=no_sleep
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert result.step is PipelineStep.PUBLISH
        assert result.last_completed_stage is PipelineStage.ENCRYPTED
        assert result.kind == "permanent"
        assert not result.retryable
        assert result.cid is None
        assert result.protected is not None
        assert len(store.attempted) == 1
        assert ledger.transaction_count == 0

    async def test_exhausted_publish_retries(self, protector, ledger_client):
        store = FlakyContentStore(10, PublishError.transient("node busy"))
        command = TokenizeReceiptCommand(
            protector, store, ledger_client, options=_options(), sleep=no_sleep
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert result.kind == "transient"
        assert result.retryable
        assert len(store.attempted) == 3

    async def test_expired_deadline(self, protector, content_store, ledger_client):
        command = TokenizeReceiptCommand(
            protector,
            content_store,
            ledger_client,
            options=_options(deadline=0.0),
            sleep=no_sleep,
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert result.step is PipelineStep.PUBLISH
        assert result.kind == "timeout"
        assert not result.retryable
        assert content_store.object_count == 0

    async def test_custody_failure_stops_before_publish(
        self, protector, content_store, ledger_client
    ):
        custody = FailingCustody()
        command = TokenizeReceiptCommand(
            protector,
            content_store,
            ledger_client,
            options=_options(),
            key_custody=custody,
            sleep=no_sleep,
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert result.step is PipelineStep.KEY_CUSTODY
        assert result.kind == "security"
        assert content_store.object_count == 0

    async def test_unexpected_error_becomes_internal_failure(
        self, content_store, ledger_client
    ):
        protector = MagicMock()
        protector.encrypt.side_effect = RuntimeError("boom")
        command = TokenizeReceiptCommand(
            protector, content_store, ledger_client, options=_options(), sleep=no_sleep
        )

        result = await command.execute(CVS_RECORD, OWNER_ADDRESS)

        assert result.step is PipelineStep.ENCRYPT
        assert result.kind == "internal"
        assert result.code == "INTERNAL_ERROR"
        assert "boom" in result.message
        assert result.last_completed_stage is PipelineStage.CLASSIFIED


@pytest.mark.asyncio
class TestTokenizeReceiptCancellation:
    async def test_cancelled_during_publish_still_stores_bundle(
        self, protector, ledger_client, ledger
    ):
        store = GatedContentStore()
        command = TokenizeReceiptCommand(
            protector, store, ledger_client, options=_options(), sleep=no_sleep
        )

        run = asyncio.create_task(command.execute(CVS_RECORD, OWNER_ADDRESS))
        await asyncio.wait_for(store.uploading.wait(), timeout=1.0)
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run

        store.release.set()
        await asyncio.wait_for(store.stored.wait(), timeout=1.0)

        assert store.object_count == 1
        # The caller left before the mint step
        assert ledger.transaction_count == 0
        assert await ledger_client.lookup("t1") is None

    async def test_cancelled_during_mint_still_records_token(
        self, protector, content_store, signer, mint_repository
    ):
        ledger = GatedLedger()
        client = LedgerClient(
            gateway=ledger,
            signer=signer,
            repository=mint_repository,
            confirmation_timeout=1.0,
            poll_interval=0.0,
            sleep=no_sleep,
        )
        command = TokenizeReceiptCommand(
            protector, content_store, client, options=_options(), sleep=no_sleep
        )

        run = asyncio.create_task(command.execute(CVS_RECORD, OWNER_ADDRESS))
        await asyncio.wait_for(ledger.submitting.wait(), timeout=1.0)
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run

        ledger.release.set()
        await client.close()

        record = await mint_repository.find_by_idempotency_key("t1")
        assert record.is_minted()
        assert ledger.transaction_count == 1
        assert content_store.object_count == 1

        replay_client = LedgerClient(
            gateway=ledger,
            signer=signer,
            repository=mint_repository,
            poll_interval=0.0,
            sleep=no_sleep,
        )
        replay = TokenizeReceiptCommand(
            protector, content_store, replay_client, options=_options(), sleep=no_sleep
        )
        try:
            result = await replay.execute(CVS_RECORD, OWNER_ADDRESS)
        finally:
            await replay_client.close()

        assert result.success
        assert result.replayed
        assert result.token_id == record.token_id
        assert ledger.transaction_count == 1
