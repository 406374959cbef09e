"""Application commands."""

from receiptmint.application.commands.tokenize_receipt_command import (
    TokenizeOptions,
    TokenizeReceiptCommand,
)

__all__ = [
    "TokenizeOptions",
    "TokenizeReceiptCommand",
]
