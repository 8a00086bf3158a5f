"""
Validation component - Data models.

Every output exposes ``is_valid`` (no error-severity issues) and the full
typed issue list; warnings never invalidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from tokensync.domain.issues import ValidationIssue, errors_only, has_errors, warnings_only

RoundTripDirection = Literal["split", "consolidate"]


class _IssueSummary:
    issues: tuple[ValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return not has_errors(self.issues)

    @property
    def errors(self) -> tuple[ValidationIssue, ...]:
        return errors_only(self.issues)

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return warnings_only(self.issues)


# --- Structure ---


@dataclass(frozen=True)
class StructureValidationOutput(_IssueSummary):
    """Output from the structure check."""

    issues: tuple[ValidationIssue, ...]
    files_checked: tuple[str, ...] = ()
    tokens_checked: int = 0


# --- References ---


@dataclass(frozen=True)
class UnresolvedReference:
    """A reference that did not resolve, with nearest-match candidates."""

    reference: str
    file: str | None
    path: str
    failure: str
    message: str
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReferenceValidationOutput(_IssueSummary):
    """Output from the reference check."""

    issues: tuple[ValidationIssue, ...]
    total_references: int = 0
    unresolved_references: tuple[UnresolvedReference, ...] = ()
    circular_references: tuple[UnresolvedReference, ...] = ()
    malformed_references: tuple[UnresolvedReference, ...] = ()


# --- Themes ---


@dataclass(frozen=True)
class IncompleteTheme:
    """A theme naming token sets that have no backing file."""

    theme_id: str | None
    theme_name: str | None
    missing_token_sets: tuple[str, ...]


@dataclass(frozen=True)
class ThemeValidationOutput(_IssueSummary):
    """Output from the theme completeness check."""

    issues: tuple[ValidationIssue, ...]
    themes_checked: int = 0
    incomplete_themes: tuple[IncompleteTheme, ...] = ()
    orphaned_sets: tuple[str, ...] = ()


# --- Round trip ---


@dataclass(frozen=True)
class RoundTripInput:
    """
    Input for round-trip validation.

    ``split``: split the document into a scratch directory, consolidate it
    and compare. ``consolidate``: consolidate ``tokens_dir`` and compare.
    ``layout`` defaults to the document's own shape.
    """

    source_path: Path
    tokens_dir: Path | None = None
    direction: RoundTripDirection = "split"
    layout: Literal["merged", "sets"] | None = None


@dataclass(frozen=True)
class Difference:
    """A structural difference between two documents, keyed by dotted path."""

    type: str
    path: str
    expected: Any = None
    actual: Any = None


@dataclass(frozen=True)
class RoundTripOutput(_IssueSummary):
    """Output from round-trip validation."""

    issues: tuple[ValidationIssue, ...]
    differences: tuple[Difference, ...] = ()
    layout: str | None = None
    direction: RoundTripDirection = "split"


# --- Report ---


@dataclass(frozen=True)
class ValidationReport:
    """All checks over one token directory, with a summary."""

    tokens_dir: Path
    structure: StructureValidationOutput
    references: ReferenceValidationOutput
    themes: ThemeValidationOutput
    roundtrip: RoundTripOutput | None = None
    recommendations: tuple[str, ...] = ()
    timestamp: str = ""

    @property
    def all_issues(self) -> tuple[ValidationIssue, ...]:
        issues = self.structure.issues + self.references.issues + self.themes.issues
        if self.roundtrip is not None:
            issues += self.roundtrip.issues
        return issues

    @property
    def is_valid(self) -> bool:
        return not has_errors(self.all_issues)

    @property
    def total_issues(self) -> int:
        return len(self.all_issues)

    @property
    def critical_issues(self) -> int:
        return len(errors_only(self.all_issues))
