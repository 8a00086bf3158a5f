"""
File structure component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tokensync.domain.issues import ValidationIssue, has_errors

# --- Input Models ---


@dataclass(frozen=True)
class InitializeInput:
    """Input for initializing a token directory."""

    tokens_dir: Path
    token_set_order: tuple[str, ...] = ()


@dataclass(frozen=True)
class CleanInput:
    """Input for removing managed files from a token directory."""

    tokens_dir: Path
    preserve_directory: bool = True


# --- Output Models ---


@dataclass(frozen=True)
class InitializeOutput:
    """Output from initializing a token directory."""

    success: bool
    created_files: tuple[str, ...] = ()
    existing_files: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class TokenFileListing:
    """JSON files in a token directory, split by role and sorted."""

    token_files: tuple[str, ...]
    companion_files: tuple[str, ...]

    @property
    def all_files(self) -> tuple[str, ...]:
        return self.companion_files + self.token_files


@dataclass(frozen=True)
class LayoutValidationOutput:
    """
    Outcome of checking a directory against the layout contract.

    ``metadata`` and ``themes`` hold the parsed companion files when they
    parsed and matched their required shape, otherwise None.
    """

    issues: tuple[ValidationIssue, ...]
    missing_files: tuple[str, ...] = ()
    unlisted_files: tuple[str, ...] = ()
    metadata: dict[str, Any] | None = None
    themes: list[dict[str, Any]] | None = None

    @property
    def is_valid(self) -> bool:
        return not has_errors(self.issues)


@dataclass(frozen=True)
class CleanOutput:
    """Output from cleaning a token directory."""

    success: bool
    removed_files: tuple[str, ...] = ()
    removed_directory: bool = False
    errors: tuple[str, ...] = ()
