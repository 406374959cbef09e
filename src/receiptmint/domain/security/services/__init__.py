"""Security domain services."""

from receiptmint.domain.security.services.record_protector import RecordProtector

__all__ = ["RecordProtector"]
