"""
Recovery component - Data models.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from tokensync.domain.issues import ValidationIssue

ErrorSeverity = Literal["critical", "high", "medium", "low"]

MANIFEST_FILE = "backup-manifest.json"
MANIFEST_VERSION = 1
PRE_ROLLBACK_OPERATION = "pre-rollback"


# --- Configuration ---


@dataclass(frozen=True)
class BackupConfig:
    """Backup retention configuration from rules."""

    backup_dir: Path = Path(".tokensync-backups")
    max_backups_per_operation: int = 10


DEFAULT_CONFIG = BackupConfig()


# --- Backup Models ---


@dataclass(frozen=True)
class BackupInfo:
    """A backup on disk, as described by its manifest."""

    backup_id: str
    operation_type: str
    timestamp: str
    path: Path
    source_paths: tuple[str, ...]
    entries: tuple[dict[str, Any], ...]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return sum(len(entry.get("files", [])) for entry in self.entries)


@dataclass(frozen=True)
class BackupOutput:
    """Output from creating a backup."""

    success: bool
    backup_id: str | None = None
    backup_path: Path | None = None
    backed_up_files: tuple[str, ...] = ()
    pruned: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class RollbackOutput:
    """Output from restoring a backup."""

    success: bool
    backup_id: str
    dry_run: bool = False
    restored_files: tuple[str, ...] = ()
    would_restore: tuple[str, ...] = ()
    pre_rollback_backup_id: str | None = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class VerifyOutput:
    """Output from re-hashing a backup against its manifest."""

    is_valid: bool
    backup_id: str
    checked_files: int = 0
    errors: tuple[str, ...] = ()


# --- Recovery Models ---


@dataclass(frozen=True)
class RecoveryInput:
    """Input for partial recovery of a token directory."""

    issues: Sequence[ValidationIssue]
    tokens_dir: Path
    auto_fix: bool = False
    backup_first: bool = True
    suggestion_limit: int = 3
    suggestion_cutoff: float = 0.6


@dataclass(frozen=True)
class RecoveryAction:
    """A repair planned or applied for one issue."""

    issue_type: str
    file: str | None
    action: str
    applied: bool


@dataclass(frozen=True)
class ReferenceSuggestion:
    """Nearest-match candidates for an unresolved reference (never auto-applied)."""

    file: str | None
    path: str | None
    reference: str
    candidates: tuple[str, ...]


@dataclass(frozen=True)
class RecoveryOutput:
    """Output from partial recovery."""

    success: bool
    actions: tuple[RecoveryAction, ...] = ()
    suggestions: tuple[ReferenceSuggestion, ...] = ()
    skipped: tuple[ValidationIssue, ...] = ()
    backup_id: str | None = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def recovered(self) -> tuple[RecoveryAction, ...]:
        return tuple(action for action in self.actions if action.applied)


# --- Error Reports ---


@dataclass(frozen=True)
class ErrorReport:
    """Structured, user-facing description of a failure."""

    message: str
    error_type: str
    severity: ErrorSeverity
    suggestions: tuple[str, ...]
    file: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
