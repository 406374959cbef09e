"""Pipeline exceptions."""

from typing import Any

from receiptmint.domain.shared.exceptions import DomainException, ErrorCode


class PipelineTimeoutError(DomainException):
    """Raised when the pipeline-wide deadline expires before a step finished."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.PIPELINE_TIMEOUT, details)

    @property
    def kind(self) -> str:
        return "timeout"
