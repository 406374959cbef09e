"""Unit tests for IpfsContentStore using httpx.MockTransport."""

import httpx
import pytest

from receiptmint.domain.storage.exceptions import (
    ContentNotFoundError,
    PublishError,
    PublishErrorKind,
)
from receiptmint.domain.storage.value_objects import compute_cid
from receiptmint.infrastructure.storage import IpfsContentStore

API_URL = "https://ipfs.test:5001"


def _store(handler, **kwargs) -> IpfsContentStore:
    return IpfsContentStore(API_URL, transport=httpx.MockTransport(handler), **kwargs)


def _add_ok(request: httpx.Request) -> httpx.Response:
    data = request.content
    # The multipart body wraps the payload; the node hashes the payload only
    payload = data.split(b"\r\n\r\n", 1)[1].rsplit(b"\r\n--", 1)[0]
    return httpx.Response(
        200,
        json={"Name": "receipt.bin", "Hash": compute_cid(payload), "Size": "12"},
    )


@pytest.mark.asyncio
class TestIpfsContentStorePublish:
    async def test_publish_sends_add_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return _add_ok(request)

        store = _store(handler, auth=("project", "secret"))
        published = await store.publish(b"bundle-bytes")
        await store.close()

        request = seen["request"]
        assert request.url.path == "/api/v0/add"
        assert request.url.params["cid-version"] == "1"
        assert request.url.params["raw-leaves"] == "true"
        assert request.url.params["pin"] == "true"
        assert request.headers["authorization"].startswith("Basic ")
        assert published.cid == compute_cid(b"bundle-bytes")

    async def test_transient_failure_then_same_cid(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, text="node busy")
            return _add_ok(request)

        store = _store(handler)

        with pytest.raises(PublishError) as exc_info:
            await store.publish(b"bundle-bytes")
        assert exc_info.value.kind is PublishErrorKind.TRANSIENT
        assert exc_info.value.retryable

        published = await store.publish(b"bundle-bytes")
        assert published.cid == compute_cid(b"bundle-bytes")

    @pytest.mark.parametrize("status", [408, 429, 500, 502])
    async def test_transient_statuses(self, status):
        store = _store(lambda request: httpx.Response(status))

        with pytest.raises(PublishError) as exc_info:
            await store.publish(b"x")

        assert exc_info.value.kind is PublishErrorKind.TRANSIENT

    @pytest.mark.parametrize("status", [400, 401, 403, 413])
    async def test_permanent_statuses(self, status):
        store = _store(lambda request: httpx.Response(status))

        with pytest.raises(PublishError) as exc_info:
            await store.publish(b"x")

        assert exc_info.value.kind is PublishErrorKind.PERMANENT
        assert not exc_info.value.retryable

    async def test_connection_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PublishError) as exc_info:
            await _store(handler).publish(b"x")

        assert exc_info.value.kind is PublishErrorKind.TRANSIENT

    async def test_timeout_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(PublishError) as exc_info:
            await _store(handler).publish(b"x")

        assert exc_info.value.kind is PublishErrorKind.TRANSIENT

    async def test_mismatching_cid_is_permanent(self):
        store = _store(
            lambda request: httpx.Response(200, json={"Hash": compute_cid(b"other")})
        )

        with pytest.raises(PublishError) as exc_info:
            await store.publish(b"x")

        assert exc_info.value.kind is PublishErrorKind.PERMANENT

    async def test_empty_payload_is_permanent(self):
        store = _store(_add_ok)

        with pytest.raises(PublishError) as exc_info:
            await store.publish(b"")

        assert exc_info.value.kind is PublishErrorKind.PERMANENT


@pytest.mark.asyncio
class TestIpfsContentStoreFetch:
    async def test_fetch_uses_cat(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v0/cat"
            assert request.url.params["arg"] == "bafkreiexample"
            return httpx.Response(200, content=b"bundle-bytes")

        assert await _store(handler).fetch("bafkreiexample") == b"bundle-bytes"

    async def test_fetch_not_found(self):
        store = _store(lambda request: httpx.Response(404))

        with pytest.raises(ContentNotFoundError):
            await store.fetch("bafkreiexample")
