"""Pre-flight validation of transaction records."""

from decimal import Decimal

from receiptmint.domain.receipt.value_objects import TransactionRecord
from receiptmint.domain.shared.exceptions import ErrorCode, ValidationError

ZERO = Decimal("0")


class RecordValidator:
    """Reject records that must not enter the pipeline.

    ``subtotal + tax`` is deliberately not reconciled against ``total``;
    the total is authoritative.
    """

    def validate(self, record: TransactionRecord, owner_address: str) -> None:
        """
        Validate a record and its destination owner.

        Raises
        ------
        ValidationError
            On the first violated rule
        """
        if not record.txn_id or not record.txn_id.strip():
            self._fail("Transaction id is required", "txn_id")

        if not record.merchant or not record.merchant.strip():
            self._fail("Merchant is required", "merchant")

        if record.total <= ZERO:
            self._fail(
                f"Total must be positive, got {record.total}",
                "total",
                ErrorCode.INVALID_AMOUNT,
            )

        if record.subtotal < ZERO:
            self._fail("Subtotal cannot be negative", "subtotal", ErrorCode.INVALID_AMOUNT)

        if record.tax < ZERO:
            self._fail("Tax cannot be negative", "tax", ErrorCode.INVALID_AMOUNT)

        if not record.items:
            self._fail("Receipt must contain at least one item", "items")

        for index, item in enumerate(record.items):
            if item.quantity <= 0:
                self._fail(
                    f"Item {index} quantity must be positive",
                    f"items.{index}.quantity",
                )
            if item.unit_price < ZERO:
                self._fail(
                    f"Item {index} unit price cannot be negative",
                    f"items.{index}.unit_price",
                    ErrorCode.INVALID_AMOUNT,
                )

        if not owner_address or not owner_address.strip():
            self._fail(
                "Owner address is required",
                "owner_address",
                ErrorCode.INVALID_ADDRESS,
            )

    @staticmethod
    def _fail(
        message: str,
        field: str,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ) -> None:
        raise ValidationError(message, code=code, details={"field": field})
