"""
Transform component - Split and consolidate design-token documents.

Shell Layer - handles I/O, backups and error conversion around the
functional core in _impl.py.

Key behaviors:
- Split writes ``$metadata.json``, ``$themes.json`` and one file per set
- Consolidate deep-merges set files in ``tokenSetOrder``; later sets win
- Affected state is backed up before anything is written; a failed backup
  is a warning, never a failure
- I/O and parse failures become failed results with suggestions; nothing
  is raised to the caller
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tokensync.adapters.fs.json_files import default_json_files, render_json
from tokensync.components.filestructure import (
    CleanInput,
    run_backup_directory,
    run_clean,
    run_list_files,
    set_file_name,
)
from tokensync.components.recovery import (
    DEFAULT_CONFIG,
    BackupConfig,
    BackupManager,
    generate_error_report,
)
from tokensync.domain.errors import JsonFileError, SourceReadError
from tokensync.domain.layout import METADATA_FILE, THEMES_FILE, TOKEN_SET_ORDER
from tokensync.domain.policy import DEFAULT_POLICY, SetClassificationPolicy
from tokensync.domain.tokens import count_tokens
from tokensync.ports.json_files import JsonFilePort

from ._impl import assemble_document, file_collisions, plan_split
from .models import ConsolidateInput, ConsolidateOutput, SplitInput, SplitOutput

logger = logging.getLogger(__name__)

SPLIT_OPERATION = "split"
CONSOLIDATE_OPERATION = "consolidate"


def _default_backups(anchor: Path) -> BackupManager:
    """Backups kept next to the data being protected."""
    return BackupManager(BackupConfig(backup_dir=anchor / DEFAULT_CONFIG.backup_dir))


def _suggestions(error: BaseException | str, **context: Any) -> tuple[str, ...]:
    return generate_error_report(error, context).suggestions


# --- Split ---


def read_source_document(source_path: Path, files: JsonFilePort) -> dict[str, Any]:
    """Read and parse the consolidated document. Raises SourceReadError."""
    try:
        document = files.read_json(source_path)
    except FileNotFoundError as e:
        raise SourceReadError(source_path, "file not found") from e
    except JsonFileError as e:
        raise SourceReadError(source_path, e.reason) from e
    if not isinstance(document, dict):
        raise SourceReadError(source_path, "top level is not a JSON object")
    return document


def _undo_split(
    output_dir: Path,
    written: list[str],
    preexisting: set[str],
    backup_id: str | None,
    previous: dict[str, str],
    backups: BackupManager,
    files: JsonFilePort,
) -> None:
    for name in written:
        if name not in preexisting:
            files.remove(output_dir / name)
    if backup_id is not None:
        backups.rollback(backup_id, force=True)
    elif previous:
        for name, text in previous.items():
            try:
                files.write_text(output_dir / name, text)
            except JsonFileError as e:
                logger.error("Could not restore %s after failed split: %s", e.path, e.reason)
    elif output_dir.is_dir() and not any(output_dir.iterdir()):
        output_dir.rmdir()


def run_split(
    inp: SplitInput,
    *,
    policy: SetClassificationPolicy = DEFAULT_POLICY,
    backups: BackupManager | None = None,
    files: JsonFilePort | None = None,
) -> SplitOutput:
    """
    Split a consolidated document into a modular token directory.

    The whole output is rendered in memory before the first write. A write
    failure removes what this call wrote and restores the pre-split backup,
    or the replaced files kept in memory when the backup could not be made.
    """
    files = files or default_json_files
    backups = backups or _default_backups(inp.output_dir.parent)

    try:
        document = read_source_document(inp.source_path, files)
    except SourceReadError as e:
        logger.warning("%s", e)
        return SplitOutput(
            success=False,
            errors=(str(e),),
            suggestions=_suggestions(
                e, operation=SPLIT_OPERATION, source_path=str(inp.source_path)
            ),
        )

    plan = plan_split(document, policy)
    collisions = file_collisions(plan.order)
    if collisions:
        return SplitOutput(success=False, errors=tuple(collisions), mode=plan.mode)

    payloads: dict[str, str] = {
        METADATA_FILE: render_json(plan.metadata),
        THEMES_FILE: render_json(plan.themes),
    }
    for name in plan.order:
        payloads[set_file_name(name)] = render_json(plan.sets[name])

    warnings = list(plan.warnings)
    backup_id: str | None = None
    preexisting = set(run_list_files(inp.output_dir, files=files).all_files)
    if preexisting:
        backup = run_backup_directory(
            inp.output_dir,
            backups,
            operation=SPLIT_OPERATION,
            metadata={"source_path": str(inp.source_path)},
        )
        if backup.success:
            backup_id = backup.backup_id
        else:
            warnings.append(f"Backup of {inp.output_dir} failed: {'; '.join(backup.errors)}")

    # Without a backup the replaced files are held in memory for the undo
    previous: dict[str, str] = {}
    if preexisting and backup_id is None:
        try:
            previous = {
                name: files.read_text(inp.output_dir / name) for name in sorted(preexisting)
            }
        except (FileNotFoundError, JsonFileError) as e:
            message = f"Refusing to overwrite {inp.output_dir} without a backup: {e}"
            logger.warning(message)
            return SplitOutput(
                success=False, errors=(message,), warnings=tuple(warnings), mode=plan.mode
            )

    if inp.clean and preexisting:
        cleaned = run_clean(CleanInput(tokens_dir=inp.output_dir), files=files)
        if not cleaned.success:
            return SplitOutput(
                success=False, errors=cleaned.errors, warnings=tuple(warnings), mode=plan.mode
            )

    written: list[str] = []
    try:
        for name, text in payloads.items():
            files.write_text(inp.output_dir / name, text)
            written.append(name)
    except JsonFileError as e:
        _undo_split(inp.output_dir, written, preexisting, backup_id, previous, backups, files)
        message = f"Failed to write {e.path.name}: {e.reason}"
        logger.warning(message)
        return SplitOutput(
            success=False,
            errors=(message,),
            warnings=tuple(warnings),
            mode=plan.mode,
            backup_id=backup_id,
            suggestions=_suggestions(e, operation=SPLIT_OPERATION, file=str(e.path)),
        )

    logger.info(
        "Split %s into %d files in %s (%s)",
        inp.source_path,
        len(written),
        inp.output_dir,
        plan.mode,
    )
    return SplitOutput(
        success=True,
        files=tuple(written),
        warnings=tuple(warnings),
        mode=plan.mode,
        backup_id=backup_id,
    )


# --- Consolidate ---


def _consolidate_failure(
    message: str,
    warnings: list[str],
    error: BaseException | None = None,
    file: Path | None = None,
) -> ConsolidateOutput:
    logger.warning(message)
    context: dict[str, Any] = {"operation": CONSOLIDATE_OPERATION}
    if file is not None:
        context["file"] = str(file)
    return ConsolidateOutput(
        success=False,
        errors=(message,),
        warnings=tuple(warnings),
        suggestions=generate_error_report(error or message, context).suggestions,
    )


def _read_metadata(tokens_dir: Path, files: JsonFilePort) -> dict[str, Any]:
    path = tokens_dir / METADATA_FILE
    if not files.exists(path):
        raise JsonFileError(path, "file not found")
    metadata = files.read_json(path)
    order = metadata.get(TOKEN_SET_ORDER) if isinstance(metadata, Mapping) else None
    if not isinstance(order, list) or not all(isinstance(name, str) for name in order):
        raise JsonFileError(path, f"'{TOKEN_SET_ORDER}' must be an array of strings")
    return dict(metadata)


def run_consolidate(
    inp: ConsolidateInput,
    *,
    backups: BackupManager | None = None,
    files: JsonFilePort | None = None,
) -> ConsolidateOutput:
    """
    Merge a modular token directory into one consolidated document.

    Missing set files and a missing themes file are warnings. Missing or
    malformed metadata, a malformed themes file and a malformed set file
    fail the call before anything is written.
    """
    files = files or default_json_files
    backups = backups or _default_backups(inp.output_path.parent)
    warnings: list[str] = []

    try:
        metadata = _read_metadata(inp.tokens_dir, files)
    except JsonFileError as e:
        return _consolidate_failure(
            f"Failed to read metadata: {e.path}: {e.reason}", warnings, e, e.path
        )
    order: list[str] = metadata[TOKEN_SET_ORDER]

    themes_path = inp.tokens_dir / THEMES_FILE
    themes: list[Any] = []
    if files.exists(themes_path):
        try:
            raw_themes = files.read_json(themes_path)
        except JsonFileError as e:
            return _consolidate_failure(
                f"Failed to read themes: {e.path}: {e.reason}", warnings, e, e.path
            )
        if not isinstance(raw_themes, list):
            return _consolidate_failure(
                f"Failed to read themes: {themes_path}: expected an array of themes",
                warnings,
                file=themes_path,
            )
        themes = raw_themes
    else:
        warnings.append("No themes file found, using default theme configuration")

    sets: dict[str, dict[str, Any]] = {}
    for name in order:
        path = inp.tokens_dir / set_file_name(name)
        if not files.exists(path):
            warnings.append(f"Token set file not found: {path.name}")
            continue
        try:
            content = files.read_json(path)
        except JsonFileError as e:
            return _consolidate_failure(
                f"Failed to parse token set '{name}' ({path.name}): {e.reason}", warnings, e, path
            )
        if not isinstance(content, dict):
            return _consolidate_failure(
                f"Failed to parse token set '{name}' ({path.name}): top level is not an object",
                warnings,
                file=path,
            )
        sets[name] = content

    document = assemble_document(sets, order, themes, metadata, inp.layout)

    backup_id: str | None = None
    if files.exists(inp.output_path):
        backup = backups.create_backup(
            CONSOLIDATE_OPERATION,
            inp.output_path,
            {"tokens_dir": str(inp.tokens_dir)},
        )
        if backup.success:
            backup_id = backup.backup_id
        else:
            warnings.append(f"Backup of {inp.output_path} failed: {'; '.join(backup.errors)}")

    try:
        files.write_text(inp.output_path, render_json(document))
    except JsonFileError as e:
        failed = _consolidate_failure(
            f"Failed to write {e.path}: {e.reason}", warnings, e, e.path
        )
        return ConsolidateOutput(
            success=False,
            errors=failed.errors,
            warnings=failed.warnings,
            backup_id=backup_id,
            suggestions=failed.suggestions,
        )

    tokens_count = count_tokens(document)
    logger.info(
        "Consolidated %d sets (%d tokens) into %s", len(sets), tokens_count, inp.output_path
    )
    return ConsolidateOutput(
        success=True,
        tokens_count=tokens_count,
        warnings=tuple(warnings),
        backup_id=backup_id,
        output_path=inp.output_path,
        sets_merged=tuple(sets),
        document=document,
    )
