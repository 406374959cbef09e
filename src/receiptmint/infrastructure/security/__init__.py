"""Security infrastructure."""

from receiptmint.infrastructure.security.aes_gcm_protector import AesGcmRecordProtector

__all__ = ["AesGcmRecordProtector"]
