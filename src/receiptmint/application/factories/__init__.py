"""Application factories."""

from receiptmint.application.factories.pipeline_factory import PipelineFactory

__all__ = ["PipelineFactory"]
