"""Pipeline domain: saga stages and steps."""

from receiptmint.domain.pipeline.exceptions import PipelineTimeoutError
from receiptmint.domain.pipeline.stages import PipelineStage, PipelineStep

__all__ = [
    "PipelineStage",
    "PipelineStep",
    "PipelineTimeoutError",
]
