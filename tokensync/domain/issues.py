"""
Validation issue records shared by the file structure, validation and
recovery components.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

Severity = Literal["error", "warning"]

# --- Issue types ---

MISSING_DIRECTORY = "missing_directory"
MISSING_REQUIRED_FILE = "missing_required_file"
INVALID_JSON = "invalid_json"
INVALID_METADATA_STRUCTURE = "invalid_metadata_structure"
INVALID_THEMES_STRUCTURE = "invalid_themes_structure"
MISSING_THEME_PROPERTY = "missing_theme_property"
MISSING_TOKEN_SET_FILE = "missing_token_set_file"
UNLISTED_TOKEN_FILE = "unlisted_token_file"
INVALID_TOKEN_FILE = "invalid_token_file"
MISSING_TOKEN_VALUE = "missing_token_value"
MISSING_TOKEN_TYPE = "missing_token_type"
THEME_REFERENCES_UNKNOWN_SET = "theme_references_unknown_set"
UNRESOLVED_REFERENCE = "unresolved_reference"
CIRCULAR_REFERENCE = "circular_reference"
MALFORMED_REFERENCE = "malformed_reference"
MISSING_KEY = "missing_key"
EXTRA_KEY = "extra_key"
VALUE_MISMATCH = "value_mismatch"
MISSING_DESCRIPTION = "missing_description"
MISSING_REFERENCE = "missing_reference"
INCOMPLETE_THEME = "incomplete_theme"
INVALID_ACTIVATION_MODE = "invalid_activation_mode"
ORPHANED_TOKEN_SET = "orphaned_token_set"
MISSING_FIGMA_REFERENCES = "missing_figma_references"
ROUNDTRIP_FAILED = "roundtrip_failed"


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found while validating a token directory."""

    type: str
    severity: Severity
    message: str
    file: str | None = None
    path: str | None = None
    suggestion: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == "error"


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    return any(issue.is_error for issue in issues)


def errors_only(issues: Iterable[ValidationIssue]) -> tuple[ValidationIssue, ...]:
    return tuple(issue for issue in issues if issue.is_error)


def warnings_only(issues: Iterable[ValidationIssue]) -> tuple[ValidationIssue, ...]:
    return tuple(issue for issue in issues if not issue.is_error)
