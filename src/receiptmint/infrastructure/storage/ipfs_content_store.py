"""HTTP client for an IPFS node's RPC API (``/api/v0``)."""

from __future__ import annotations

import logging

import httpx

from receiptmint.domain.storage.exceptions import ContentNotFoundError, PublishError
from receiptmint.domain.storage.ports import ContentStore
from receiptmint.domain.storage.value_objects import PublishedObject, compute_cid

logger = logging.getLogger(__name__)

# Payloads up to the default chunk size are stored as one raw block, so the
# node must return exactly the locally computed CID for them
SINGLE_CHUNK_LIMIT = 256 * 1024

_TRANSIENT_STATUS = {408, 425, 429}

_ADD_PARAMS = {
    "cid-version": "1",
    "raw-leaves": "true",
    "hash": "sha2-256",
    "pin": "true",
}


def _is_transient_status(status_code: int) -> bool:
    return status_code in _TRANSIENT_STATUS or status_code >= 500


class IpfsContentStore(ContentStore):
    """IPFS-backed content store (Infura-compatible basic auth)."""

    def __init__(
        self,
        api_url: str,
        auth: tuple[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._auth = auth
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                timeout=self._timeout,
                auth=self._auth,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def publish(self, data: bytes) -> PublishedObject:
        if not data:
            msg = "Refusing to publish an empty payload"
            raise PublishError.permanent(msg)

        expected_cid = compute_cid(data)
        client = await self._get_client()
        try:
            response = await client.post(
                "/api/v0/add",
                params=_ADD_PARAMS,
                files={"file": ("receipt.bin", data, "application/octet-stream")},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            logger.warning("IPFS add timed out: %s", e)
            msg = f"IPFS add timed out: {e}"
            raise PublishError.transient(msg) from e
        except httpx.HTTPStatusError as e:
            raise self._status_error("add", e) from e
        except httpx.TransportError as e:
            logger.warning("IPFS connection failed: %s", e)
            msg = f"IPFS connection failed: {e}"
            raise PublishError.transient(msg) from e
        except ValueError as e:
            msg = "IPFS add returned a non-JSON response"
            raise PublishError.transient(msg) from e

        cid = payload.get("Hash") if isinstance(payload, dict) else None
        if not cid:
            msg = "IPFS add response carries no content identifier"
            raise PublishError.transient(msg, response=str(payload)[:200])

        if len(data) <= SINGLE_CHUNK_LIMIT and cid != expected_cid:
            msg = f"IPFS returned {cid}, expected {expected_cid} for identical bytes"
            raise PublishError.permanent(msg, returned=cid, expected=expected_cid)

        logger.info("Published %d bytes to IPFS as %s", len(data), cid)
        return PublishedObject(cid=cid, size_bytes=len(data))

    async def fetch(self, cid: str) -> bytes:
        client = await self._get_client()
        try:
            response = await client.post("/api/v0/cat", params={"arg": cid})
            response.raise_for_status()
        except httpx.TimeoutException as e:
            msg = f"IPFS cat timed out: {e}"
            raise PublishError.transient(msg, cid=cid) from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ContentNotFoundError(cid) from e
            raise self._status_error("cat", e) from e
        except httpx.TransportError as e:
            msg = f"IPFS connection failed: {e}"
            raise PublishError.transient(msg, cid=cid) from e
        return response.content

    @staticmethod
    def _status_error(operation: str, e: httpx.HTTPStatusError) -> PublishError:
        status = e.response.status_code
        body = e.response.text[:200] if e.response.text else "no body"
        logger.warning("IPFS %s returned error %d: %s", operation, status, body)
        msg = f"IPFS {operation} failed with HTTP {status}"
        if _is_transient_status(status):
            return PublishError.transient(msg, status=status)
        return PublishError.permanent(msg, status=status)
