"""
File structure component - On-disk layout of a modular token directory.

Shell Layer - owns directory initialization, layout checks, enumeration,
cleanup and directory backups.

Key behaviors:
- Initialization never overwrites existing files
- Layout problems are returned as issues, never raised
- Listings are sorted so repeated runs enumerate files identically
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from tokensync.adapters.fs.json_files import default_json_files
from tokensync.components.recovery import BackupManager, BackupOutput
from tokensync.domain import issues as issue_types
from tokensync.domain.errors import JsonFileError
from tokensync.domain.issues import ValidationIssue
from tokensync.domain.layout import (
    COMPANION_FILES,
    METADATA_FILE,
    THEME_REQUIRED_FIELDS,
    THEMES_FILE,
    TOKEN_SET_ORDER,
    default_companion,
    default_metadata,
    is_companion_file,
    set_file_name,
    set_name_for_file,
)
from tokensync.ports.json_files import JsonFilePort

from .models import (
    CleanInput,
    CleanOutput,
    InitializeInput,
    InitializeOutput,
    LayoutValidationOutput,
    TokenFileListing,
)

logger = logging.getLogger(__name__)

DIRECTORY_BACKUP_OPERATION = "tokens"


# --- Initialize ---


def run_initialize(
    inp: InitializeInput,
    *,
    files: JsonFilePort | None = None,
) -> InitializeOutput:
    """Create the directory and any missing companion files."""
    files = files or default_json_files
    created: list[str] = []
    existing: list[str] = []

    try:
        inp.tokens_dir.mkdir(parents=True, exist_ok=True)
        for name in COMPANION_FILES:
            target = inp.tokens_dir / name
            if files.exists(target):
                existing.append(name)
                continue
            content = (
                default_metadata(list(inp.token_set_order))
                if name == METADATA_FILE
                else default_companion(name)
            )
            files.write_json(target, content)
            created.append(name)
    except (OSError, JsonFileError) as e:
        return InitializeOutput(
            success=False,
            created_files=tuple(created),
            existing_files=tuple(existing),
            errors=(f"Failed to initialize {inp.tokens_dir}: {e}",),
        )

    if created:
        logger.info("Initialized %s (created %s)", inp.tokens_dir, ", ".join(created))
    return InitializeOutput(
        success=True, created_files=tuple(created), existing_files=tuple(existing)
    )


# --- Listing ---


def run_list_files(tokens_dir: Path, *, files: JsonFilePort | None = None) -> TokenFileListing:
    """Token files and companion files in a directory, each sorted by name."""
    files = files or default_json_files
    names = files.list_json(tokens_dir)
    return TokenFileListing(
        token_files=tuple(sorted(n for n in names if not is_companion_file(n))),
        companion_files=tuple(sorted(n for n in names if is_companion_file(n))),
    )


# --- Layout validation ---


def _read_companion(
    tokens_dir: Path,
    name: str,
    files: JsonFilePort,
    issues: list[ValidationIssue],
) -> Any:
    target = tokens_dir / name
    if not files.exists(target):
        issues.append(
            ValidationIssue(
                type=issue_types.MISSING_REQUIRED_FILE,
                severity="error",
                message=f"Required file missing: {name}",
                file=name,
                suggestion="Run 'tokensync init' or recovery with auto-fix to create it",
            )
        )
        return None
    try:
        return files.read_json(target)
    except JsonFileError as e:
        issues.append(
            ValidationIssue(
                type=issue_types.INVALID_JSON,
                severity="error",
                message=f"Invalid JSON in {name}: {e.reason}",
                file=name,
                suggestion="Check for trailing commas or missing quotes",
            )
        )
        return None


def _check_metadata(data: Any, issues: list[ValidationIssue]) -> dict[str, Any] | None:
    order = data.get(TOKEN_SET_ORDER) if isinstance(data, dict) else None
    if not isinstance(order, list) or not all(isinstance(name, str) for name in order):
        issues.append(
            ValidationIssue(
                type=issue_types.INVALID_METADATA_STRUCTURE,
                severity="error",
                message=f"{METADATA_FILE} must contain a '{TOKEN_SET_ORDER}' array of strings",
                file=METADATA_FILE,
                path=TOKEN_SET_ORDER,
            )
        )
        return None
    return data


def _check_themes(data: Any, issues: list[ValidationIssue]) -> list[dict[str, Any]] | None:
    if not isinstance(data, list):
        issues.append(
            ValidationIssue(
                type=issue_types.INVALID_THEMES_STRUCTURE,
                severity="error",
                message=f"{THEMES_FILE} must contain an array of themes",
                file=THEMES_FILE,
            )
        )
        return None

    shape_ok = True
    for index, theme in enumerate(data):
        if not isinstance(theme, dict):
            issues.append(
                ValidationIssue(
                    type=issue_types.INVALID_THEMES_STRUCTURE,
                    severity="error",
                    message=f"Theme at index {index} is not an object",
                    file=THEMES_FILE,
                    path=f"[{index}]",
                )
            )
            shape_ok = False
            continue
        for field_name in THEME_REQUIRED_FIELDS:
            if field_name not in theme:
                issues.append(
                    ValidationIssue(
                        type=issue_types.MISSING_THEME_PROPERTY,
                        severity="error",
                        message=f"Theme at index {index} is missing '{field_name}'",
                        file=THEMES_FILE,
                        path=f"[{index}].{field_name}",
                    )
                )
                shape_ok = False
        selected = theme.get("selectedTokenSets")
        if "selectedTokenSets" in theme and not isinstance(selected, dict):
            issues.append(
                ValidationIssue(
                    type=issue_types.INVALID_THEMES_STRUCTURE,
                    severity="error",
                    message=f"Theme at index {index} has a non-object selectedTokenSets",
                    file=THEMES_FILE,
                    path=f"[{index}].selectedTokenSets",
                )
            )
            shape_ok = False
    return data if shape_ok else None


def run_validate_layout(
    tokens_dir: Path,
    *,
    files: JsonFilePort | None = None,
) -> LayoutValidationOutput:
    """
    Check companion files and per-set files against the layout contract.

    Issue types: missing_directory, missing_required_file, invalid_json,
    invalid_metadata_structure, invalid_themes_structure,
    missing_theme_property, missing_token_set_file (errors) and
    unlisted_token_file (warning).
    """
    files = files or default_json_files
    issues: list[ValidationIssue] = []

    if not files.is_dir(tokens_dir):
        issues.append(
            ValidationIssue(
                type=issue_types.MISSING_DIRECTORY,
                severity="error",
                message=f"Token directory does not exist: {tokens_dir}",
                suggestion="Run split to create the token directory",
            )
        )
        return LayoutValidationOutput(issues=tuple(issues))

    raw_metadata = _read_companion(tokens_dir, METADATA_FILE, files, issues)
    metadata = _check_metadata(raw_metadata, issues) if raw_metadata is not None else None
    raw_themes = _read_companion(tokens_dir, THEMES_FILE, files, issues)
    themes = _check_themes(raw_themes, issues) if raw_themes is not None else None

    listing = run_list_files(tokens_dir, files=files)
    order: list[str] = metadata[TOKEN_SET_ORDER] if metadata is not None else []

    missing: list[str] = []
    for set_name in order:
        file_name = set_file_name(set_name)
        if file_name not in listing.token_files:
            missing.append(file_name)
            issues.append(
                ValidationIssue(
                    type=issue_types.MISSING_TOKEN_SET_FILE,
                    severity="error",
                    message=f"Token set '{set_name}' has no file {file_name}",
                    file=file_name,
                    path=set_name,
                    suggestion="Run split again or remove the set from tokenSetOrder",
                )
            )

    listed = {set_file_name(name) for name in order}
    unlisted = [name for name in listing.token_files if name not in listed]
    if metadata is not None:
        for file_name in unlisted:
            issues.append(
                ValidationIssue(
                    type=issue_types.UNLISTED_TOKEN_FILE,
                    severity="warning",
                    message=f"{file_name} is not listed in tokenSetOrder and will not be merged",
                    file=file_name,
                    path=set_name_for_file(file_name, order),
                )
            )

    return LayoutValidationOutput(
        issues=tuple(issues),
        missing_files=tuple(missing),
        unlisted_files=tuple(unlisted),
        metadata=metadata,
        themes=themes,
    )


# --- Cleanup ---


def run_clean(inp: CleanInput, *, files: JsonFilePort | None = None) -> CleanOutput:
    """Remove managed JSON files; optionally remove the emptied directory."""
    files = files or default_json_files
    if not files.is_dir(inp.tokens_dir):
        return CleanOutput(success=True)

    removed: list[str] = []
    try:
        for name in run_list_files(inp.tokens_dir, files=files).all_files:
            files.remove(inp.tokens_dir / name)
            removed.append(name)

        removed_directory = False
        if not inp.preserve_directory and not any(inp.tokens_dir.iterdir()):
            inp.tokens_dir.rmdir()
            removed_directory = True
    except OSError as e:
        return CleanOutput(
            success=False,
            removed_files=tuple(removed),
            errors=(f"Failed to clean {inp.tokens_dir}: {e}",),
        )

    logger.info("Removed %d files from %s", len(removed), inp.tokens_dir)
    return CleanOutput(
        success=True, removed_files=tuple(removed), removed_directory=removed_directory
    )


# --- Backup ---


def run_backup_directory(
    tokens_dir: Path,
    backups: BackupManager,
    *,
    operation: str = DIRECTORY_BACKUP_OPERATION,
    metadata: dict[str, Any] | None = None,
) -> BackupOutput:
    """Timestamped copy of the directory's JSON contents."""
    return backups.create_backup(operation, tokens_dir, metadata, json_only=True)
