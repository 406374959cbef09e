"""Value objects for transaction records submitted to the pipeline."""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from receiptmint.domain.shared.exceptions import ErrorCode, ValidationError
from receiptmint.domain.shared.time import ensure_tz_aware, utc_now


def _to_decimal(v: Any) -> Decimal:
    if isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        msg = "Amount must be a number, got a boolean"
        raise ValueError(msg)
    if isinstance(v, (int, float, str)):
        try:
            # str() keeps 12.20 as 12.2 instead of its binary approximation
            return Decimal(str(v).strip())
        except InvalidOperation as e:
            msg = f"Invalid amount: {v!r}"
            raise ValueError(msg) from e
    msg = f"Amount must be a number or numeric string, got {type(v).__name__}"
    raise ValueError(msg)


def _generate_txn_id() -> str:
    return f"txn-{uuid4().hex}"


class LineItem(BaseModel):
    """A single purchased line on a receipt."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sku: str = ""
    name: str
    quantity: int = Field(
        default=1,
        validation_alias=AliasChoices("quantity", "qty"),
    )
    unit_price: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("unit_price", "unitPrice", "price"),
        serialization_alias="unitPrice",
    )

    @field_validator("unit_price", mode="before")
    @classmethod
    def validate_unit_price(cls, v: Any) -> Decimal:
        return _to_decimal(v)


class TransactionRecord(BaseModel):
    """A structured commercial transaction, as produced by record extraction.

    Field-level parsing only checks types. Business rules (positive total,
    at least one item, ...) are enforced by the pipeline before anything
    happens, so that a rejected record is reported as a pipeline failure.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    txn_id: str = Field(
        default_factory=_generate_txn_id,
        validation_alias=AliasChoices("txn_id", "txnId", "id"),
        serialization_alias="txnId",
    )
    merchant: str = ""
    date: datetime = Field(default_factory=utc_now)
    items: tuple[LineItem, ...] = ()
    subtotal: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal

    @field_validator("subtotal", "tax", "total", mode="before")
    @classmethod
    def validate_amounts(cls, v: Any) -> Decimal:
        return _to_decimal(v)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return ensure_tz_aware(v)
        if isinstance(v, date_type):
            return datetime(v.year, v.month, v.day, tzinfo=timezone.utc)
        if isinstance(v, str) and len(v.strip()) == len("YYYY-MM-DD"):
            d = date_type.fromisoformat(v.strip())
            return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
        return v

    @field_validator("date")
    @classmethod
    def validate_date_tz(cls, v: datetime) -> datetime:
        return ensure_tz_aware(v)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TransactionRecord:
        """Build a record from a JSON-like mapping.

        Raises
        ------
        ValidationError
            If the payload is missing fields or has malformed values
        """
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            errors = [
                {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            msg = f"Malformed transaction record: {errors[0]['loc']}: {errors[0]['msg']}"
            raise ValidationError(
                msg,
                code=ErrorCode.INVALID_RECORD,
                details={"errors": errors},
            ) from e

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serializable form that gets encrypted."""
        return self.model_dump(mode="json", by_alias=True)
