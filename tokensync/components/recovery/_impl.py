"""
BackupManager - Operation-scoped backups, retention and rollback.

Key behaviors:
- Each backup lives in ``<backup_dir>/<operation>-backup-<stamp>-<hex>/``
  with a ``backup-manifest.json`` describing every copied file and its hash
- At most ``max_backups_per_operation`` backups are kept per operation type;
  oldest are deleted first
- Rollback checks targets are writable, snapshots the current state as a
  ``pre-rollback`` backup, then restores
- Dry-run rollback reports what would be restored without touching disk
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from uuid import uuid4

from tokensync.adapters.clock import SystemClock
from tokensync.adapters.fs.json_files import default_json_files
from tokensync.domain.errors import JsonFileError
from tokensync.domain.layout import JSON_SUFFIX
from tokensync.ports.clock import ClockPort
from tokensync.ports.json_files import JsonFilePort

from .models import (
    DEFAULT_CONFIG,
    MANIFEST_FILE,
    MANIFEST_VERSION,
    PRE_ROLLBACK_OPERATION,
    BackupConfig,
    BackupInfo,
    BackupOutput,
    RollbackOutput,
    VerifyOutput,
)

logger = logging.getLogger(__name__)

ITEMS_DIR = "items"
REQUIRED_MANIFEST_KEYS = ("backup_id", "operation_type", "timestamp")


def get_file_hash(file_path: Path) -> str:
    """Calculate SHA256 hash of a file."""
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _is_usable_manifest(manifest: Any) -> bool:
    if not isinstance(manifest, dict):
        return False
    if any(not isinstance(manifest.get(key), str) for key in REQUIRED_MANIFEST_KEYS):
        return False
    entries = manifest.get("entries", [])
    return isinstance(entries, list) and all(
        isinstance(entry, dict)
        and isinstance(entry.get("source"), str)
        and isinstance(entry.get("stored"), str)
        for entry in entries
    )


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.resolve().relative_to(parent.resolve())
    except ValueError:
        return False
    return True


def _nearest_existing(path: Path) -> Path:
    for candidate in [path, *path.parents]:
        if candidate.exists():
            return candidate
    return Path.cwd()


class BackupManager:
    """Creates, lists, verifies and restores operation-scoped backups."""

    def __init__(
        self,
        config: BackupConfig = DEFAULT_CONFIG,
        *,
        clock: ClockPort | None = None,
        files: JsonFilePort | None = None,
    ) -> None:
        self.config = config
        self.backup_dir = Path(config.backup_dir)
        self.clock = clock or SystemClock()
        self.files = files or default_json_files

    # --- Create ---

    def create_backup(
        self,
        operation: str,
        paths: Path | Sequence[Path],
        metadata: dict[str, Any] | None = None,
        *,
        json_only: bool = False,
        keep: frozenset[str] = frozenset(),
    ) -> BackupOutput:
        """
        Copy files or directories into a new operation-tagged backup.

        Paths that do not exist are skipped with a warning; a backup with
        nothing to copy fails. ``keep`` protects backup ids from retention
        pruning triggered by this call.
        """
        sources = [Path(paths)] if isinstance(paths, str | Path) else [Path(p) for p in paths]
        warnings: list[str] = []
        existing: list[Path] = []
        for source in sources:
            if source.exists():
                existing.append(source)
            else:
                warnings.append(f"Path not found, not backed up: {source}")

        if not existing:
            return BackupOutput(
                success=False,
                errors=(f"Nothing to back up for {operation}",),
                warnings=tuple(warnings),
            )

        now = self.clock.now()
        stamp = now.strftime("%Y%m%d_%H%M%S_%f")
        suffix = uuid4().hex[:8]
        backup_id = f"{operation}-{int(now.timestamp() * 1000)}-{suffix}"
        backup_path = self.backup_dir / f"{operation}-backup-{stamp}-{suffix}"

        entries: list[dict[str, Any]] = []
        backed_up: list[str] = []
        try:
            backup_path.mkdir(parents=True, exist_ok=False)
            for index, source in enumerate(existing):
                entry = self._copy_entry(source, backup_path / ITEMS_DIR / str(index), json_only)
                entries.append(entry)
                if entry["kind"] == "directory":
                    backed_up.extend(
                        str(Path(entry["source"]) / record["path"]) for record in entry["files"]
                    )
                else:
                    backed_up.append(entry["source"])

            manifest = {
                "backup_id": backup_id,
                "operation_type": operation,
                "timestamp": now.isoformat(),
                "source_paths": [entry["source"] for entry in entries],
                "entries": entries,
                "backed_up_files": backed_up,
                "metadata": metadata or {},
                "version": MANIFEST_VERSION,
            }
            self.files.write_json(backup_path / MANIFEST_FILE, manifest)
        except (OSError, JsonFileError) as e:
            shutil.rmtree(backup_path, ignore_errors=True)
            logger.warning("Backup for %s failed: %s", operation, e)
            return BackupOutput(
                success=False,
                errors=(f"Failed to create backup for {operation}: {e}",),
                warnings=tuple(warnings),
            )

        pruned = self._prune(operation, keep=keep | {backup_id})
        logger.info("Created backup %s (%d files)", backup_id, len(backed_up))
        return BackupOutput(
            success=True,
            backup_id=backup_id,
            backup_path=backup_path,
            backed_up_files=tuple(backed_up),
            pruned=tuple(pruned),
            warnings=tuple(warnings),
        )

    def _copy_entry(self, source: Path, destination: Path, json_only: bool) -> dict[str, Any]:
        source = source.resolve()
        destination.mkdir(parents=True, exist_ok=True)
        target = destination / source.name

        if source.is_dir():
            backup_root = self.backup_dir.resolve()

            def ignore(directory: str, names: list[str]) -> list[str]:
                skipped = []
                for name in names:
                    candidate = Path(directory) / name
                    if candidate.resolve() == backup_root:
                        skipped.append(name)
                    elif json_only and candidate.is_file() and not name.endswith(JSON_SUFFIX):
                        skipped.append(name)
                return skipped

            shutil.copytree(source, target, ignore=ignore)
            files = [
                {
                    "path": str(copied.relative_to(target)),
                    "sha256": get_file_hash(copied),
                }
                for copied in sorted(target.rglob("*"))
                if copied.is_file()
            ]
            kind = "directory"
        else:
            shutil.copy2(source, target)
            files = [{"path": source.name, "sha256": get_file_hash(target)}]
            kind = "file"

        return {
            "source": str(source),
            "stored": str(target.relative_to(destination.parent.parent)),
            "kind": kind,
            "files": files,
        }

    # --- Query ---

    def list_backups(self, operation: str | None = None) -> list[BackupInfo]:
        """Backups on disk, newest first."""
        if not self.backup_dir.is_dir():
            return []

        backups: list[BackupInfo] = []
        for candidate in self.backup_dir.iterdir():
            manifest_path = candidate / MANIFEST_FILE
            if not candidate.is_dir() or not manifest_path.exists():
                continue
            try:
                manifest = self.files.read_json(manifest_path)
            except JsonFileError as e:
                logger.warning("Ignoring backup with unreadable manifest %s: %s", candidate, e)
                continue
            if not _is_usable_manifest(manifest):
                logger.warning("Ignoring backup with incomplete manifest %s", candidate)
                continue
            if operation is not None and manifest.get("operation_type") != operation:
                continue
            backups.append(
                BackupInfo(
                    backup_id=manifest["backup_id"],
                    operation_type=manifest["operation_type"],
                    timestamp=manifest["timestamp"],
                    path=candidate,
                    source_paths=tuple(manifest.get("source_paths", [])),
                    entries=tuple(manifest.get("entries", [])),
                    metadata=manifest.get("metadata", {}),
                )
            )

        backups.sort(key=lambda info: (info.timestamp, info.path.name), reverse=True)
        return backups

    def get_backup(self, backup_id: str) -> BackupInfo | None:
        for info in self.list_backups():
            if info.backup_id == backup_id:
                return info
        return None

    def verify_backup(self, backup_id: str) -> VerifyOutput:
        """Re-hash every stored file and compare with the manifest."""
        info = self.get_backup(backup_id)
        if info is None:
            return VerifyOutput(is_valid=False, backup_id=backup_id,
                                errors=(f"Backup not found: {backup_id}",))

        errors: list[str] = []
        checked = 0
        for entry in info.entries:
            stored = info.path / entry["stored"]
            for record in entry["files"]:
                copied = stored / record["path"] if entry["kind"] == "directory" else stored
                checked += 1
                if not copied.exists():
                    errors.append(f"Missing from backup: {copied}")
                elif get_file_hash(copied) != record["sha256"]:
                    errors.append(f"Checksum mismatch: {copied}")

        return VerifyOutput(
            is_valid=not errors, backup_id=backup_id, checked_files=checked, errors=tuple(errors)
        )

    # --- Retention ---

    def _prune(self, operation: str, keep: frozenset[str] = frozenset()) -> list[str]:
        backups = self.list_backups(operation)
        removed: list[str] = []
        for info in backups[self.config.max_backups_per_operation :]:
            if info.backup_id in keep:
                continue
            shutil.rmtree(info.path, ignore_errors=True)
            removed.append(info.backup_id)
            logger.info("Pruned old backup %s", info.backup_id)
        return removed

    # --- Rollback ---

    def _safety_problems(self, info: BackupInfo) -> list[str]:
        problems: list[str] = []
        for entry in info.entries:
            target = Path(entry["source"])
            if target.exists() and not os.access(target, os.W_OK):
                problems.append(f"Restore target is not writable: {target}")
                continue
            parent = _nearest_existing(target.parent)
            if not os.access(parent, os.W_OK):
                problems.append(f"Cannot write into directory: {parent}")
        return problems

    def rollback(
        self,
        backup_id: str,
        *,
        dry_run: bool = False,
        force: bool = False,
    ) -> RollbackOutput:
        """
        Restore a backup's files to their original locations.

        The current state of every existing target is first saved as a
        ``pre-rollback`` backup. An unsafe restore (unwritable targets) is
        refused unless ``force`` is set.
        """
        info = self.get_backup(backup_id)
        if info is None:
            return RollbackOutput(
                success=False, backup_id=backup_id, errors=(f"Backup not found: {backup_id}",)
            )

        missing = [
            entry["stored"] for entry in info.entries if not (info.path / entry["stored"]).exists()
        ]
        if missing:
            return RollbackOutput(
                success=False,
                backup_id=backup_id,
                errors=tuple(f"Backup content missing: {stored}" for stored in missing),
            )

        warnings: list[str] = []
        problems = self._safety_problems(info)
        if problems:
            if not force:
                return RollbackOutput(
                    success=False,
                    backup_id=backup_id,
                    dry_run=dry_run,
                    errors=tuple(problems),
                    warnings=("Safety check failed; use force=True to restore anyway",),
                )
            warnings.extend(problems)

        targets = [Path(entry["source"]) for entry in info.entries]
        if dry_run:
            return RollbackOutput(
                success=True,
                backup_id=backup_id,
                dry_run=True,
                would_restore=tuple(str(target) for target in targets),
                warnings=tuple(warnings),
            )

        pre_rollback_id: str | None = None
        current = [target for target in targets if target.exists()]
        if current:
            snapshot = self.create_backup(
                PRE_ROLLBACK_OPERATION,
                current,
                {"rollback_of": backup_id},
                keep=frozenset({backup_id}),
            )
            if snapshot.success:
                pre_rollback_id = snapshot.backup_id
            elif not force:
                return RollbackOutput(
                    success=False,
                    backup_id=backup_id,
                    errors=("Could not snapshot current state before rollback", *snapshot.errors),
                )
            else:
                warnings.append("Pre-rollback snapshot failed; restoring without it")

        restored: list[str] = []
        errors: list[str] = []
        for entry in info.entries:
            stored = info.path / entry["stored"]
            target = Path(entry["source"])
            try:
                if entry["kind"] == "directory":
                    shutil.copytree(stored, target, dirs_exist_ok=True)
                    restored.extend(str(target / record["path"]) for record in entry["files"])
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(stored, target)
                    restored.append(str(target))
            except OSError as e:
                errors.append(f"Failed to restore {target}: {e}")

        if errors:
            logger.warning("Rollback of %s finished with %d errors", backup_id, len(errors))
        else:
            logger.info("Rolled back %s (%d files)", backup_id, len(restored))

        return RollbackOutput(
            success=not errors,
            backup_id=backup_id,
            restored_files=tuple(restored),
            pre_rollback_backup_id=pre_rollback_id,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )
