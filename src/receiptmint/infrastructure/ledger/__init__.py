"""Ledger adapters: signer, in-memory ledger and JSON-RPC gateway."""

from receiptmint.infrastructure.ledger.ed25519_signer import (
    Ed25519TransactionSigner,
    address_from_public_key,
    verify_signature,
)
from receiptmint.infrastructure.ledger.in_memory_ledger import InMemoryLedger
from receiptmint.infrastructure.ledger.jsonrpc_gateway import JsonRpcLedgerGateway

__all__ = [
    "Ed25519TransactionSigner",
    "InMemoryLedger",
    "JsonRpcLedgerGateway",
    "address_from_public_key",
    "verify_signature",
]
