"""Application services."""

from receiptmint.application.services.ledger_client import (
    LedgerClient,
    LedgerClientClosedError,
)
from receiptmint.application.services.retry_policy import (
    Deadline,
    RetryPolicy,
    run_with_retry,
)

__all__ = [
    "Deadline",
    "LedgerClient",
    "LedgerClientClosedError",
    "RetryPolicy",
    "run_with_retry",
]
