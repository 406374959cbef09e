"""Application DTOs."""

from receiptmint.application.dtos.pipeline_result import (
    PipelineFailure,
    PipelineResult,
    PipelineSuccess,
)

__all__ = [
    "PipelineFailure",
    "PipelineResult",
    "PipelineSuccess",
]
