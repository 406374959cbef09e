"""Application layer ports."""

from receiptmint.application.ports.key_custody import KeyCustodyPort

__all__ = ["KeyCustodyPort"]
