"""Domain layer of the receipt tokenization pipeline."""
