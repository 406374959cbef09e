"""Saga states and steps of the tokenization pipeline."""

from enum import Enum


class PipelineStage(Enum):
    """Forward-only progress of one pipeline run."""

    VALIDATED = "validated"
    CLASSIFIED = "classified"
    ENCRYPTED = "encrypted"
    PUBLISHED = "published"
    MINTED = "minted"


class PipelineStep(Enum):
    """The operation that moves the saga to its next stage."""

    VALIDATE = "validate"
    CLASSIFY = "classify"
    ENCRYPT = "encrypt"
    KEY_CUSTODY = "key_custody"
    PUBLISH = "publish"
    MINT = "mint"
    CONFIRM = "confirm"
