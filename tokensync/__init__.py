"""tokensync: split, consolidate and validate Token Studio design-token files."""

__version__ = "0.1.0"
