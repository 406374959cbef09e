"""Unit tests for LedgerClient against the in-memory ledger and a JSON-RPC node."""

import asyncio
import json

import httpx
import pytest

from receiptmint.application.services import LedgerClient, LedgerClientClosedError
from receiptmint.domain.ledger.exceptions import LedgerError, LedgerErrorReason
from receiptmint.domain.ledger.value_objects import MintInstruction, MintStatus
from receiptmint.infrastructure.ledger import InMemoryLedger, JsonRpcLedgerGateway
from tests.shared.fixtures.records import OWNER_ADDRESS
from tests.shared.fixtures.timing import no_sleep

URI = "ipfs://bafkreiexample"
RPC_URL = "https://ledger.test/rpc"


def _client(ledger, signer, repository, confirmation_timeout=0.05) -> LedgerClient:
    return LedgerClient(
        gateway=ledger,
        signer=signer,
        repository=repository,
        confirmation_timeout=confirmation_timeout,
        poll_interval=0.0,
        sleep=no_sleep,
    )


@pytest.mark.asyncio
class TestLedgerClientMint:
    async def test_mint_records_token(self, ledger_client, ledger, signer, mint_repository):
        token = await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")

        assert token.token_id == 1
        assert token.owner_address == OWNER_ADDRESS
        assert token.uri == URI
        record = await mint_repository.find_by_idempotency_key("t1")
        assert record.status is MintStatus.MINTED
        assert record.token_id == 1
        assert record.sequence == 0
        assert ledger.sequences_for(signer.address) == [0]

    async def test_same_key_mints_once(self, ledger_client, ledger, signer):
        first = await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")
        second = await ledger_client.mint(OWNER_ADDRESS, 1, "ipfs://other", "t1")

        assert first == second
        assert ledger.transaction_count == 1
        assert await ledger.get_next_sequence(signer.address) == 1

    async def test_concurrent_mints_get_consecutive_sequences(
        self, ledger_client, ledger, signer
    ):
        tokens = await asyncio.gather(
            *(
                ledger_client.mint(OWNER_ADDRESS, 1, f"{URI}{n}", f"t{n}")
                for n in range(50)
            )
        )

        assert ledger.sequences_for(signer.address) == list(range(50))
        assert len({token.token_id for token in tokens}) == 50

    async def test_concurrent_duplicates_mint_once(self, ledger_client, ledger):
        tokens = await asyncio.gather(
            *(ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1") for _ in range(5))
        )

        assert len(set(tokens)) == 1
        assert ledger.transaction_count == 1

    async def test_rejected_submission_reuses_sequence(
        self, ledger_client, ledger, signer, mint_repository
    ):
        ledger.inject_failure(LedgerErrorReason.SUBMISSION_REJECTED)

        with pytest.raises(LedgerError) as exc_info:
            await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")
        assert exc_info.value.reason is LedgerErrorReason.SUBMISSION_REJECTED
        assert exc_info.value.retryable
        released = await mint_repository.find_by_idempotency_key("t1")
        assert released.status is MintStatus.RELEASED

        token = await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")

        assert token.token_id == 1
        assert ledger.sequences_for(signer.address) == [0]

    async def test_insufficient_funds_is_not_retryable(
        self, ledger_client, ledger, signer
    ):
        ledger.set_balance(signer.address, 0)

        with pytest.raises(LedgerError) as exc_info:
            await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")

        assert exc_info.value.reason is LedgerErrorReason.INSUFFICIENT_FUNDS
        assert not exc_info.value.retryable
        assert ledger.transaction_count == 0

    async def test_sequence_collision_resynchronizes(
        self, ledger_client, ledger, signer
    ):
        await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")
        # Another process using the same identity takes sequence 1
        await ledger.submit(
            signer.sign(
                MintInstruction(
                    signer_address=signer.address,
                    owner_address=OWNER_ADDRESS,
                    uri="ipfs://elsewhere",
                    sequence=1,
                )
            )
        )

        with pytest.raises(LedgerError) as exc_info:
            await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t2")
        assert exc_info.value.reason is LedgerErrorReason.SEQUENCE_COLLISION
        assert not exc_info.value.retryable

        token = await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t2")

        assert token.token_id == 3
        assert ledger.sequences_for(signer.address) == [0, 1, 2]

    async def test_dropped_transaction_is_released(
        self, ledger_client, ledger, signer, mint_repository
    ):
        ledger.inject_failure(LedgerErrorReason.TRANSACTION_DROPPED)

        with pytest.raises(LedgerError) as exc_info:
            await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")
        assert exc_info.value.reason is LedgerErrorReason.TRANSACTION_DROPPED
        record = await mint_repository.find_by_idempotency_key("t1")
        assert record.status is MintStatus.RELEASED

        await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")

        assert ledger.sequences_for(signer.address) == [0]

    async def test_pending_confirmation_is_resolved_without_second_mint(
        self, ledger, signer, mint_repository
    ):
        client = _client(ledger, signer, mint_repository)
        ledger.inject_failure(LedgerErrorReason.CONFIRMATION_PENDING)
        try:
            with pytest.raises(LedgerError) as exc_info:
                await client.mint(OWNER_ADDRESS, 1, URI, "t1")
            assert exc_info.value.reason is LedgerErrorReason.CONFIRMATION_PENDING
            record = await mint_repository.find_by_idempotency_key("t1")
            assert record.status is MintStatus.SUBMITTED

            ledger.include_pending()
            token = await client.mint(OWNER_ADDRESS, 1, URI, "t1")
        finally:
            await client.close()

        assert token.token_id == 1
        assert ledger.transaction_count == 1
        assert ledger.sequences_for(signer.address) == [0]

    async def test_unresolved_sequence_blocks_next_mint(
        self, ledger, signer, mint_repository
    ):
        client = _client(ledger, signer, mint_repository)
        ledger.inject_failure(LedgerErrorReason.CONFIRMATION_PENDING)
        try:
            with pytest.raises(LedgerError):
                await client.mint(OWNER_ADDRESS, 1, URI, "t1")

            ledger.include_pending()
            second = await client.mint(OWNER_ADDRESS, 1, URI, "t2")
        finally:
            await client.close()

        first = await mint_repository.find_by_idempotency_key("t1")
        assert first.status is MintStatus.MINTED
        assert second.token_id == 2
        assert ledger.sequences_for(signer.address) == [0, 1]

    async def test_cancelled_caller_still_records_mint(
        self, ledger, signer, mint_repository
    ):
        client = _client(ledger, signer, mint_repository)
        caller = asyncio.create_task(client.mint(OWNER_ADDRESS, 1, URI, "t1"))
        await asyncio.sleep(0)
        caller.cancel()

        with pytest.raises(asyncio.CancelledError):
            await caller
        await client.close()

        record = await mint_repository.find_by_idempotency_key("t1")
        assert record.status is MintStatus.MINTED
        assert ledger.transaction_count == 1

    async def test_mint_after_close(self, ledger, signer, mint_repository):
        client = _client(ledger, signer, mint_repository)
        await client.close()

        with pytest.raises(LedgerClientClosedError):
            await client.mint(OWNER_ADDRESS, 1, URI, "t1")


@pytest.mark.asyncio
class TestLedgerClientQueries:
    async def test_lookup(self, ledger_client):
        assert await ledger_client.lookup("t1") is None

        token = await ledger_client.mint(OWNER_ADDRESS, 1, URI, "t1")

        assert await ledger_client.lookup("t1") == token

    async def test_lookup_sees_landed_in_flight_submission(
        self, ledger, signer, mint_repository
    ):
        client = _client(ledger, signer, mint_repository)
        ledger.inject_failure(LedgerErrorReason.CONFIRMATION_PENDING)
        try:
            with pytest.raises(LedgerError):
                await client.mint(OWNER_ADDRESS, 1, URI, "t1")
            assert await client.lookup("t1") is None

            ledger.include_pending()
            token = await client.lookup("t1")
        finally:
            await client.close()

        assert token is not None
        assert token.token_id == 1
        # Lookups never write
        record = await mint_repository.find_by_idempotency_key("t1")
        assert record.status is MintStatus.SUBMITTED

    async def test_await_confirmation(self, signer, mint_repository):
        ledger = InMemoryLedger(finalize_after=3)
        client = _client(ledger, signer, mint_repository, confirmation_timeout=1.0)
        try:
            token = await client.mint(OWNER_ADDRESS, 1, URI, "t1")
            assert not token.confirmed

            confirmed = await client.await_confirmation(token)
        finally:
            await client.close()

        assert confirmed.confirmed
        record = await mint_repository.find_by_idempotency_key("t1")
        assert record.confirmed

    async def test_await_confirmation_times_out(self, signer, mint_repository):
        ledger = InMemoryLedger(finalize_after=1_000_000)
        client = _client(ledger, signer, mint_repository)
        try:
            token = await client.mint(OWNER_ADDRESS, 1, URI, "t1")

            with pytest.raises(LedgerError) as exc_info:
                await client.await_confirmation(token, timeout=0.02)
        finally:
            await client.close()

        assert exc_info.value.reason is LedgerErrorReason.CONFIRMATION_PENDING


class RehashingNode:
    """JSON-RPC ledger node that assigns its own transaction hashes."""

    def __init__(self, include: bool = True):
        self.include = include
        self.submissions: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        if method == "ledger_getNextSequence":
            result = len(self.submissions)
        elif method == "ledger_submit":
            self.submissions.append(params[0]["instruction"])
            result = f"0xnode{len(self.submissions) - 1}"
        else:
            result = self._transaction(params[0])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def _transaction(self, tx_hash: str):
        if not tx_hash.startswith("0xnode"):
            return None
        sequence = int(tx_hash.removeprefix("0xnode"))
        if not self.include:
            return {"hash": tx_hash, "status": "pending", "sequence": sequence}
        return {
            "hash": tx_hash,
            "status": "included",
            "tokenId": sequence + 1,
            "sequence": sequence,
        }


@pytest.mark.asyncio
class TestLedgerClientNodeHashes:
    async def test_tracks_hash_assigned_by_node(self, signer, mint_repository):
        node = RehashingNode()
        gateway = JsonRpcLedgerGateway(RPC_URL, transport=httpx.MockTransport(node.handler))
        client = _client(gateway, signer, mint_repository)
        try:
            first = await client.mint(OWNER_ADDRESS, 1, URI, "t1")
            second = await client.mint(OWNER_ADDRESS, 1, URI, "t1")
        finally:
            await client.close()

        assert first == second
        assert first.tx_hash == "0xnode0"
        assert [s["memo"] for s in node.submissions] == ["t1"]
        record = await mint_repository.find_by_idempotency_key("t1")
        assert record.tx_hash == "0xnode0"
        assert record.status is MintStatus.MINTED

    async def test_pending_under_node_hash_is_not_minted_again(
        self, signer, mint_repository
    ):
        node = RehashingNode(include=False)
        gateway = JsonRpcLedgerGateway(RPC_URL, transport=httpx.MockTransport(node.handler))
        client = _client(gateway, signer, mint_repository)
        try:
            with pytest.raises(LedgerError) as exc_info:
                await client.mint(OWNER_ADDRESS, 1, URI, "t1")
            assert exc_info.value.reason is LedgerErrorReason.CONFIRMATION_PENDING

            node.include = True
            token = await client.mint(OWNER_ADDRESS, 1, URI, "t1")
        finally:
            await client.close()

        assert token.token_id == 1
        assert len(node.submissions) == 1


@pytest.mark.asyncio
class TestLedgerClientQuantity:
    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_rejects_non_positive_quantity(self, ledger, ledger_client, quantity):
        with pytest.raises(LedgerError) as exc_info:
            await ledger_client.mint(OWNER_ADDRESS, quantity, URI, "t1")

        assert exc_info.value.reason is LedgerErrorReason.INVALID_INSTRUCTION
        assert ledger.transaction_count == 0
