"""
Domain errors.

Raised inside the engine for exceptional I/O and parse conditions, and
converted into result objects at each public operation boundary.
"""

from __future__ import annotations

from pathlib import Path


class TokenSyncError(Exception):
    """Base class for tokensync errors."""


class JsonFileError(TokenSyncError):
    """A JSON file could not be read, parsed or written."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class SourceReadError(JsonFileError):
    """The consolidated source document could not be read or parsed."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(path, reason)
        self.args = (f"Failed to read source file {self.path}: {reason}",)

    def __str__(self) -> str:
        return str(self.args[0])
