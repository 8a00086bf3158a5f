"""
Recovery component - Partial auto-repair and structured error reports.

Shell Layer - reads and rewrites token files named by validation issues.

Key behaviors:
- Missing companion files are recreated with minimal valid defaults
- Near-valid JSON gets a trailing-comma repair before giving up
- Untyped tokens get an inferred ``$type``
- Unresolved references get nearest-match suggestions, never auto-applied
- Without ``auto_fix`` every repair is reported but nothing is written
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tokensync.adapters.clock import SystemClock
from tokensync.adapters.fs.json_files import default_json_files, render_json
from tokensync.components.references import known_token_paths, parse_reference, suggest_paths
from tokensync.domain import issues as issue_types
from tokensync.domain.errors import JsonFileError, SourceReadError
from tokensync.domain.issues import ValidationIssue
from tokensync.domain.layout import COMPANION_FILES, default_companion, is_companion_file
from tokensync.domain.tokens import (
    TYPE_KEY,
    deep_merge,
    has_value,
    infer_token_type,
    is_token,
    token_value,
)
from tokensync.ports.clock import ClockPort
from tokensync.ports.json_files import JsonFilePort

from ._impl import BackupManager
from .models import (
    ErrorReport,
    ErrorSeverity,
    RecoveryAction,
    RecoveryInput,
    RecoveryOutput,
    ReferenceSuggestion,
)

logger = logging.getLogger(__name__)

TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")

RECOVERY_OPERATION = "recovery"


# --- JSON repair ---


def repair_json_text(text: str) -> tuple[str, Any] | None:
    """
    Best-effort repair of near-valid JSON.

    Returns the repaired text and its parsed value, or None when the text
    still does not parse after removing trailing commas.
    """
    repaired = TRAILING_COMMA_PATTERN.sub(r"\1", text)
    try:
        return repaired, json.loads(repaired)
    except json.JSONDecodeError:
        return None


# --- Partial recovery ---


class _Recovery:
    """Per-call state for one recovery run."""

    def __init__(self, inp: RecoveryInput, files: JsonFilePort) -> None:
        self.inp = inp
        self.files = files
        self.actions: list[RecoveryAction] = []
        self.suggestions: list[ReferenceSuggestion] = []
        self.skipped: list[ValidationIssue] = []
        self.errors: list[str] = []
        self._known_paths: list[str] | None = None

    def path_for(self, issue: ValidationIssue) -> Path | None:
        return self.inp.tokens_dir / issue.file if issue.file else None

    def record(self, issue: ValidationIssue, action: str) -> None:
        self.actions.append(
            RecoveryAction(
                issue_type=issue.type, file=issue.file, action=action, applied=self.inp.auto_fix
            )
        )

    def known_paths(self) -> list[str]:
        if self._known_paths is None:
            unified: dict[str, Any] = {}
            for name in self.files.list_json(self.inp.tokens_dir):
                if is_companion_file(name):
                    continue
                try:
                    content = self.files.read_json(self.inp.tokens_dir / name)
                except JsonFileError:
                    continue
                if isinstance(content, Mapping):
                    unified = deep_merge(unified, content)
            self._known_paths = known_token_paths(unified)
        return self._known_paths

    # --- Handlers ---

    def missing_directory(self, issue: ValidationIssue) -> None:
        if self.inp.auto_fix:
            self.inp.tokens_dir.mkdir(parents=True, exist_ok=True)
            for name in COMPANION_FILES:
                target = self.inp.tokens_dir / name
                if not self.files.exists(target):
                    self.files.write_json(target, default_companion(name))
        self.record(issue, f"Create directory {self.inp.tokens_dir} with default companion files")

    def missing_required_file(self, issue: ValidationIssue) -> None:
        target = self.path_for(issue)
        if target is None or issue.file not in COMPANION_FILES:
            self.skipped.append(issue)
            return
        if self.inp.auto_fix and not self.files.exists(target):
            self.files.write_json(target, default_companion(issue.file))
        self.record(issue, f"Create {issue.file} with default content")

    def missing_token_set_file(self, issue: ValidationIssue) -> None:
        target = self.path_for(issue)
        if target is None:
            self.skipped.append(issue)
            return
        if self.inp.auto_fix and not self.files.exists(target):
            self.files.write_json(target, {})
        self.record(issue, f"Create empty token set file {issue.file}")

    def invalid_json(self, issue: ValidationIssue) -> None:
        target = self.path_for(issue)
        if target is None:
            self.skipped.append(issue)
            return
        repaired = repair_json_text(self.files.read_text(target))
        if repaired is None:
            self.errors.append(
                f"Could not repair {issue.file}: JSON is still invalid after removing "
                "trailing commas; fix it manually"
            )
            return
        _, data = repaired
        if self.inp.auto_fix:
            self.files.write_text(target, render_json(data))
        self.record(issue, f"Remove trailing commas from {issue.file}")

    def missing_token_type(self, issue: ValidationIssue) -> None:
        target = self.path_for(issue)
        if target is None or not issue.path:
            self.skipped.append(issue)
            return
        data = self.files.read_json(target)
        node: Any = data
        for segment in issue.path.split("."):
            node = node.get(segment) if isinstance(node, dict) else None
        if not is_token(node) or not has_value(node):
            self.skipped.append(issue)
            return
        inferred = infer_token_type(token_value(node))
        if self.inp.auto_fix:
            node[TYPE_KEY] = inferred
            self.files.write_json(target, data)
        self.record(issue, f"Set $type '{inferred}' on {issue.path}")

    def unresolved_reference(self, issue: ValidationIssue) -> None:
        reference = _reference_from_issue(issue)
        target = parse_reference(reference) if reference else None
        if reference is None or target is None:
            self.skipped.append(issue)
            return
        candidates = suggest_paths(
            target,
            self.known_paths(),
            limit=self.inp.suggestion_limit,
            cutoff=self.inp.suggestion_cutoff,
        )
        self.suggestions.append(
            ReferenceSuggestion(
                file=issue.file,
                path=issue.path,
                reference=reference,
                candidates=tuple(candidates),
            )
        )


_REFERENCE_IN_MESSAGE = re.compile(r"\{[^{}]+\}")


def _reference_from_issue(issue: ValidationIssue) -> str | None:
    match = _REFERENCE_IN_MESSAGE.search(issue.message)
    return match.group(0) if match else None


_HANDLERS = {
    issue_types.MISSING_DIRECTORY: _Recovery.missing_directory,
    issue_types.MISSING_REQUIRED_FILE: _Recovery.missing_required_file,
    issue_types.MISSING_TOKEN_SET_FILE: _Recovery.missing_token_set_file,
    issue_types.INVALID_JSON: _Recovery.invalid_json,
    issue_types.MISSING_TOKEN_TYPE: _Recovery.missing_token_type,
    issue_types.UNRESOLVED_REFERENCE: _Recovery.unresolved_reference,
}

_WRITING_ISSUES = frozenset(_HANDLERS) - {issue_types.UNRESOLVED_REFERENCE}


def run_recovery(
    inp: RecoveryInput,
    *,
    backups: BackupManager | None = None,
    files: JsonFilePort | None = None,
) -> RecoveryOutput:
    """
    Attempt targeted repairs for a list of validation issues.

    With ``auto_fix`` and ``backup_first`` the token directory is backed up
    before the first write. Issue types without a handler are returned in
    ``skipped``.
    """
    files = files or default_json_files
    state = _Recovery(inp, files)
    warnings: list[str] = []
    backup_id: str | None = None

    will_write = inp.auto_fix and any(issue.type in _WRITING_ISSUES for issue in inp.issues)
    if will_write and inp.backup_first and backups is not None and inp.tokens_dir.exists():
        backup = backups.create_backup(
            RECOVERY_OPERATION,
            inp.tokens_dir,
            {"issues": len(inp.issues)},
            json_only=True,
        )
        if backup.success:
            backup_id = backup.backup_id
        else:
            warnings.extend(backup.errors)

    for issue in inp.issues:
        handler = _HANDLERS.get(issue.type)
        if handler is None:
            state.skipped.append(issue)
            continue
        try:
            handler(state, issue)
        except (OSError, JsonFileError) as e:
            state.errors.append(f"Recovery failed for {issue.type} in {issue.file}: {e}")

    if state.actions:
        verb = "Applied" if inp.auto_fix else "Planned"
        logger.info("%s %d recovery actions in %s", verb, len(state.actions), inp.tokens_dir)

    return RecoveryOutput(
        success=not state.errors,
        actions=tuple(state.actions),
        suggestions=tuple(state.suggestions),
        skipped=tuple(state.skipped),
        backup_id=backup_id,
        errors=tuple(state.errors),
        warnings=tuple(warnings),
    )


# --- Error reports ---

_MISSING_FILE_MARKERS = ("not found", "no such file", "enoent", "does not exist")
_PARSE_MARKERS = (
    "invalid json",
    "jsondecodeerror",
    "expecting",
    "unexpected token",
    "malformed",
)
_PERMISSION_MARKERS = ("permission denied", "eacces", "not writable", "read-only")
_VALIDATION_MARKERS = ("validation", "reference", "invalid_", "missing_")


def _is_missing_file(error: BaseException | str, message: str) -> bool:
    return isinstance(error, FileNotFoundError) or any(m in message for m in _MISSING_FILE_MARKERS)


def _is_parse_failure(error: BaseException | str, message: str) -> bool:
    return isinstance(error, json.JSONDecodeError) or any(m in message for m in _PARSE_MARKERS)


def _is_permission_failure(error: BaseException | str, message: str) -> bool:
    return isinstance(error, PermissionError) or any(m in message for m in _PERMISSION_MARKERS)


def classify_severity(error: BaseException | str, context: Mapping[str, Any]) -> ErrorSeverity:
    """
    Severity of a failure.

    critical: the canonical source document is missing
    high: a file failed to parse, or is not readable/writable
    medium: validation or reference failure
    low: everything else
    """
    message = str(error).lower()
    operation = str(context.get("operation", "")).lower()

    if _is_missing_file(error, message):
        is_source = isinstance(error, SourceReadError) or operation == "split"
        if is_source or context.get("source_path"):
            return "critical"
    if _is_parse_failure(error, message) or _is_permission_failure(error, message):
        return "high"
    if operation.startswith("validat") or any(m in message for m in _VALIDATION_MARKERS):
        return "medium"
    return "low"


def _suggestions_for(
    error: BaseException | str, context: Mapping[str, Any], file: str | None
) -> list[str]:
    message = str(error).lower()
    operation = str(context.get("operation", "")).lower()
    suggestions: list[str] = []

    if _is_missing_file(error, message):
        suggestions.append("Run split to create missing token files")
        if file:
            suggestions.append(f"Check that the path exists: {file}")
        if "metadata" in message or "themes" in message:
            suggestions.append("Run 'tokensync init' to create the companion files")

    if _is_parse_failure(error, message):
        suggestions.append("Check for trailing commas or missing quotes")
        suggestions.append("Run 'tokensync recover --auto-fix' to repair trailing commas")

    if _is_permission_failure(error, message):
        suggestions.append(f"Check file permissions for {file or 'the target path'}")

    if "tokensetorder" in message or "metadata" in message:
        suggestions.append("Ensure $metadata.json contains a tokenSetOrder array of set names")
    if "theme" in message:
        suggestions.append("Ensure every theme has id, name and selectedTokenSets")
    if "reference" in message:
        suggestions.append("Run 'tokensync validate references' to list unresolved references")

    if operation == "split":
        suggestions.append("Verify the source document is a JSON object keyed by token group")
    elif operation == "consolidate":
        suggestions.append("Run 'tokensync validate structure' on the tokens directory")

    if not suggestions:
        suggestions.append("Run 'tokensync validate' for a full report")
        suggestions.append("Restore the last good state with 'tokensync rollback'")

    return list(dict.fromkeys(suggestions))


def generate_error_report(
    error: BaseException | str,
    context: Mapping[str, Any] | None = None,
    *,
    clock: ClockPort | None = None,
) -> ErrorReport:
    """Classify a failure and attach suggested next actions."""
    context = dict(context or {})
    file = context.get("file")
    if file is None and isinstance(error, JsonFileError):
        file = str(error.path)
    if file is None and isinstance(error, OSError) and error.filename:
        file = str(error.filename)

    return ErrorReport(
        message=str(error),
        error_type=type(error).__name__ if isinstance(error, BaseException) else "Error",
        severity=classify_severity(error, context),
        suggestions=tuple(_suggestions_for(error, context, file)),
        file=file,
        context=context,
        timestamp=(clock or SystemClock()).now().isoformat(),
    )
