"""Application layer: the tokenization pipeline and its collaborators."""
