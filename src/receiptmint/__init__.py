"""receiptmint - turn transaction records into ledger-anchored encrypted receipts."""

__version__ = "0.1.0"
