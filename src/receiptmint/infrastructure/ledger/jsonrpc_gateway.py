"""JSON-RPC 2.0 ledger gateway over HTTP."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional

import httpx

from receiptmint.domain.ledger.exceptions import LedgerError, LedgerErrorReason
from receiptmint.domain.ledger.ports import LedgerGateway
from receiptmint.domain.ledger.value_objects import (
    LedgerTransaction,
    SignedInstruction,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

JSONRPC_INTERNAL_ERROR = -32603

_REASONS = {reason.value: reason for reason in LedgerErrorReason}


class JsonRpcLedgerGateway(LedgerGateway):
    """Talks to a ledger node exposing ``ledger_*`` JSON-RPC methods.

    Node errors carry the failure reason in ``error.data.reason`` using the
    ``LedgerErrorReason`` values. Transport failures are reported as
    ``SUBMISSION_REJECTED`` so callers query the transaction before retrying.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_next_sequence(self, address: str) -> int:
        result = await self._call("ledger_getNextSequence", [address])
        return int(result)

    async def submit(self, signed: SignedInstruction) -> str:
        result = await self._call("ledger_submit", [signed.to_envelope()])
        if not isinstance(result, str) or not result:
            msg = "Ledger node returned no transaction hash"
            raise LedgerError(msg, LedgerErrorReason.SUBMISSION_REJECTED)
        return result

    async def get_transaction(self, tx_hash: str) -> Optional[LedgerTransaction]:
        result = await self._call("ledger_getTransaction", [tx_hash])
        if result is None:
            return None

        try:
            status = TransactionStatus(result["status"])
        except (KeyError, ValueError, TypeError) as e:
            msg = f"Unrecognized transaction status in {result!r}"
            raise LedgerError(msg, LedgerErrorReason.SUBMISSION_REJECTED) from e

        token_id = result.get("tokenId")
        sequence = result.get("sequence")
        return LedgerTransaction(
            tx_hash=result.get("hash", tx_hash),
            status=status,
            token_id=int(token_id) if token_id is not None else None,
            sequence=int(sequence) if sequence is not None else None,
        )

    async def _call(self, method: str, params: list[Any]) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        client = await self._get_client()
        try:
            response = await client.post(self._rpc_url, json=request)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Ledger RPC %s timed out", method)
            msg = f"Ledger RPC {method} timed out"
            raise LedgerError(msg, LedgerErrorReason.SUBMISSION_REJECTED) from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Ledger RPC %s returned HTTP %d", method, e.response.status_code
            )
            msg = f"Ledger RPC {method} failed with HTTP {e.response.status_code}"
            raise LedgerError(
                msg,
                LedgerErrorReason.SUBMISSION_REJECTED,
                {"status": e.response.status_code},
            ) from e
        except httpx.TransportError as e:
            logger.warning("Ledger node unreachable: %s", e)
            msg = f"Ledger node unreachable: {e}"
            raise LedgerError(msg, LedgerErrorReason.SUBMISSION_REJECTED) from e
        except ValueError as e:
            msg = f"Ledger RPC {method} returned a non-JSON response"
            raise LedgerError(msg, LedgerErrorReason.SUBMISSION_REJECTED) from e

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            raise self._rpc_error(method, error)
        if not isinstance(body, dict) or "result" not in body:
            msg = f"Ledger RPC {method} returned neither result nor error"
            raise LedgerError(msg, LedgerErrorReason.SUBMISSION_REJECTED)
        return body["result"]

    @staticmethod
    def _rpc_error(method: str, error: dict[str, Any]) -> LedgerError:
        message = str(error.get("message", "unknown error"))
        data = error.get("data") if isinstance(error.get("data"), dict) else {}
        reason = _REASONS.get(str(data.get("reason", "")))

        if reason is None:
            reason = (
                LedgerErrorReason.SUBMISSION_REJECTED
                if error.get("code") == JSONRPC_INTERNAL_ERROR
                else LedgerErrorReason.INVALID_INSTRUCTION
            )

        logger.info("Ledger RPC %s failed (%s): %s", method, reason.value, message)
        return LedgerError(
            f"Ledger RPC {method} failed: {message}",
            reason,
            {"rpc_code": error.get("code")},
        )
