"""
Validation component - Checks over a modular token directory.

Shell Layer - reads token files and runs four independent checks:

- Structure: layout contract plus a value on every token
- References: every ``{path}`` value resolves through the unified tree
- Round trip: split/consolidate reproduces the consolidated document
- Themes: every selected set has a file; unselected sets are orphans

Data-shape problems are returned as issues, never raised.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tokensync.adapters.clock import SystemClock
from tokensync.adapters.fs.json_files import default_json_files
from tokensync.components.filestructure import (
    run_list_files,
    run_validate_layout,
    set_file_name,
    set_name_for_file,
)
from tokensync.components.recovery import BackupConfig, BackupManager
from tokensync.components.references import (
    FAILURE_CIRCULAR,
    FAILURE_MALFORMED,
    build_unified_tree,
    find_references,
    is_reference,
    known_token_paths,
    resolve_reference,
    suggest_paths,
)
from tokensync.components.transform import (
    ConsolidateInput,
    SplitInput,
    is_pre_decomposed,
    read_source_document,
    run_consolidate,
    run_split,
)
from tokensync.domain import issues as issue_types
from tokensync.domain.errors import JsonFileError, SourceReadError
from tokensync.domain.issues import ValidationIssue
from tokensync.domain.layout import (
    ACTIVATION_MODES,
    THEME_VENDOR_BLOCKS,
    THEMES_FILE,
    TOKEN_SET_ORDER,
)
from tokensync.domain.policy import DEFAULT_POLICY, SetClassificationPolicy
from tokensync.domain.tokens import (
    DESCRIPTION_KEY,
    has_value,
    is_token,
    iter_tokens,
    token_type,
    token_value,
)
from tokensync.ports.clock import ClockPort
from tokensync.ports.json_files import JsonFilePort

from .models import (
    Difference,
    IncompleteTheme,
    ReferenceValidationOutput,
    RoundTripInput,
    RoundTripOutput,
    StructureValidationOutput,
    ThemeValidationOutput,
    UnresolvedReference,
    ValidationReport,
)

logger = logging.getLogger(__name__)

DESCRIPTION_KEYS = frozenset({DESCRIPTION_KEY, "description"})
_TOKEN_ANNOTATION_KEYS = DESCRIPTION_KEYS | {"$extensions"}


# --- Loading ---


def _load_sets(
    tokens_dir: Path,
    files: JsonFilePort,
) -> tuple[dict[str, dict[str, Any]], dict[str, str], list[ValidationIssue]]:
    """
    Parse every token file, ordered by tokenSetOrder then file name.

    Returns sets by name, the file each set came from, and issues for files
    that did not parse to an object.
    """
    layout = run_validate_layout(tokens_dir, files=files)
    order: list[str] = layout.metadata[TOKEN_SET_ORDER] if layout.metadata else []
    listing = run_list_files(tokens_dir, files=files)

    by_file = {set_file_name(name): name for name in order}
    ordered_files = [f for f in by_file if f in listing.token_files]
    ordered_files += [f for f in listing.token_files if f not in by_file]

    sets: dict[str, dict[str, Any]] = {}
    file_of: dict[str, str] = {}
    issues: list[ValidationIssue] = []
    for file_name in ordered_files:
        try:
            content = files.read_json(tokens_dir / file_name)
        except JsonFileError as e:
            issues.append(
                ValidationIssue(
                    type=issue_types.INVALID_JSON,
                    severity="error",
                    message=f"Invalid JSON in {file_name}: {e.reason}",
                    file=file_name,
                    suggestion="Check for trailing commas or missing quotes",
                )
            )
            continue
        if not isinstance(content, dict):
            issues.append(
                ValidationIssue(
                    type=issue_types.INVALID_TOKEN_FILE,
                    severity="error",
                    message=f"{file_name} must contain a JSON object",
                    file=file_name,
                )
            )
            continue
        name = by_file.get(file_name) or set_name_for_file(file_name, order)
        sets[name] = content
        file_of[name] = file_name
    return sets, file_of, issues


# --- Structure ---


def _check_tokens(
    tree: Mapping[str, Any],
    file_name: str,
    issues: list[ValidationIssue],
    prefix: str = "",
) -> int:
    checked = 0
    for key, node in tree.items():
        if key.startswith("$") or not isinstance(node, Mapping):
            continue
        path = f"{prefix}.{key}" if prefix else key
        annotation_only = bool(node) and set(node) <= _TOKEN_ANNOTATION_KEYS
        if is_token(node) or annotation_only:
            checked += 1
            if not has_value(node):
                issues.append(
                    ValidationIssue(
                        type=issue_types.MISSING_TOKEN_VALUE,
                        severity="error",
                        message=f"Token {path} has no value",
                        file=file_name,
                        path=path,
                        suggestion="Add a $value to the token",
                    )
                )
            elif token_type(node) is None:
                issues.append(
                    ValidationIssue(
                        type=issue_types.MISSING_TOKEN_TYPE,
                        severity="warning",
                        message=f"Token {path} has no type; it will be inferred",
                        file=file_name,
                        path=path,
                        suggestion="Run recovery with auto-fix to set an inferred $type",
                    )
                )
        else:
            checked += _check_tokens(node, file_name, issues, path)
    return checked


def run_validate_structure(
    tokens_dir: Path,
    *,
    files: JsonFilePort | None = None,
) -> StructureValidationOutput:
    """Layout contract plus a value on every token in every file."""
    files = files or default_json_files
    layout = run_validate_layout(tokens_dir, files=files)
    issues = list(layout.issues)
    if any(issue.type == issue_types.MISSING_DIRECTORY for issue in issues):
        return StructureValidationOutput(issues=tuple(issues))

    sets, file_of, load_issues = _load_sets(tokens_dir, files)
    issues.extend(load_issues)

    checked = 0
    for name, tree in sets.items():
        checked += _check_tokens(tree, file_of[name], issues)

    if layout.themes is not None:
        token_files = set(run_list_files(tokens_dir, files=files).token_files)
        for theme in layout.themes:
            theme_name = theme.get("name")
            for set_name in theme.get("selectedTokenSets", {}):
                if set_file_name(set_name) not in token_files:
                    issues.append(
                        ValidationIssue(
                            type=issue_types.THEME_REFERENCES_UNKNOWN_SET,
                            severity="warning",
                            message=f"Theme '{theme_name}' selects unknown set '{set_name}'",
                            file=THEMES_FILE,
                            path=f"{theme.get('id')}.selectedTokenSets.{set_name}",
                        )
                    )

    return StructureValidationOutput(
        issues=tuple(issues),
        files_checked=tuple(file_of.values()),
        tokens_checked=checked,
    )


# --- References ---


def run_validate_references(
    tokens_dir: Path,
    *,
    suggestion_limit: int = 3,
    suggestion_cutoff: float = 0.6,
    files: JsonFilePort | None = None,
) -> ReferenceValidationOutput:
    """
    Resolve every reference in every set file against the unified tree.

    Unresolved, circular and malformed references are errors, tagged with
    the originating file and token path.
    """
    files = files or default_json_files
    if not files.is_dir(tokens_dir):
        return ReferenceValidationOutput(
            issues=(
                ValidationIssue(
                    type=issue_types.MISSING_DIRECTORY,
                    severity="error",
                    message=f"Token directory does not exist: {tokens_dir}",
                ),
            )
        )

    sets, file_of, issues = _load_sets(tokens_dir, files)
    unified = build_unified_tree(sets.values())
    known = known_token_paths(unified)

    total = 0
    unresolved: list[UnresolvedReference] = []
    circular: list[UnresolvedReference] = []
    malformed: list[UnresolvedReference] = []
    for name, tree in sets.items():
        for site in find_references(tree, file_of[name]):
            total += 1
            result = resolve_reference(site.reference, unified)
            if result.resolved:
                continue

            message = result.message or "unresolved"
            if site.target is None:
                malformed.append(
                    UnresolvedReference(
                        reference=site.reference,
                        file=site.file,
                        path=site.path,
                        failure=result.failure or FAILURE_MALFORMED,
                        message=message,
                    )
                )
                issues.append(
                    ValidationIssue(
                        type=issue_types.MALFORMED_REFERENCE,
                        severity="error",
                        message=f"Malformed reference {site.reference!r} at {site.path}",
                        file=site.file,
                        path=site.path,
                        suggestion="Write references as {group.token} with no empty segments",
                    )
                )
                continue

            if result.failure == FAILURE_CIRCULAR:
                circular.append(
                    UnresolvedReference(
                        reference=site.reference,
                        file=site.file,
                        path=site.path,
                        failure=result.failure,
                        message=message,
                    )
                )
                issues.append(
                    ValidationIssue(
                        type=issue_types.CIRCULAR_REFERENCE,
                        severity="error",
                        message=f"Circular reference {site.reference} at {site.path}: {message}",
                        file=site.file,
                        path=site.path,
                        suggestion="Point one of the tokens in the chain at a literal value",
                    )
                )
                continue

            candidates = suggest_paths(
                site.target, known, limit=suggestion_limit, cutoff=suggestion_cutoff
            )
            unresolved.append(
                UnresolvedReference(
                    reference=site.reference,
                    file=site.file,
                    path=site.path,
                    failure=result.failure or "missing",
                    message=message,
                    suggestions=tuple(candidates),
                )
            )
            issues.append(
                ValidationIssue(
                    type=issue_types.UNRESOLVED_REFERENCE,
                    severity="error",
                    message=f"Unresolved reference {site.reference} at {site.path}: {message}",
                    file=site.file,
                    path=site.path,
                    suggestion=(
                        f"Did you mean {', '.join('{' + c + '}' for c in candidates)}?"
                        if candidates
                        else None
                    ),
                )
            )

    if unresolved or circular or malformed:
        logger.info(
            "%d of %d references in %s did not resolve",
            len(unresolved) + len(circular) + len(malformed),
            total,
            tokens_dir,
        )
    return ReferenceValidationOutput(
        issues=tuple(issues),
        total_references=total,
        unresolved_references=tuple(unresolved),
        circular_references=tuple(circular),
        malformed_references=tuple(malformed),
    )


# --- Themes ---


def run_validate_themes(
    tokens_dir: Path,
    *,
    files: JsonFilePort | None = None,
) -> ThemeValidationOutput:
    """
    Every theme's selected sets must have a file; sets selected by no theme
    are orphans (warning).
    """
    files = files or default_json_files
    layout = run_validate_layout(tokens_dir, files=files)
    themes_problems = [
        issue
        for issue in layout.issues
        if issue.file == THEMES_FILE or issue.type == issue_types.MISSING_DIRECTORY
    ]
    if layout.themes is None:
        return ThemeValidationOutput(issues=tuple(themes_problems))

    token_files = run_list_files(tokens_dir, files=files).token_files
    order: list[str] = layout.metadata[TOKEN_SET_ORDER] if layout.metadata else []
    issues = list(themes_problems)
    incomplete: list[IncompleteTheme] = []
    selected_files: set[str] = set()

    for theme in layout.themes:
        theme_name = theme.get("name")
        selected: dict[str, Any] = theme.get("selectedTokenSets", {})
        missing: list[str] = []
        for set_name, mode in selected.items():
            file_name = set_file_name(set_name)
            selected_files.add(file_name)
            if file_name not in token_files:
                missing.append(set_name)
            if mode not in ACTIVATION_MODES:
                issues.append(
                    ValidationIssue(
                        type=issue_types.INVALID_ACTIVATION_MODE,
                        severity="error",
                        message=(
                            f"Theme '{theme_name}' sets '{set_name}' to {mode!r}; "
                            f"expected one of {', '.join(sorted(ACTIVATION_MODES))}"
                        ),
                        file=THEMES_FILE,
                        path=f"{theme.get('id')}.selectedTokenSets.{set_name}",
                    )
                )
        if missing:
            incomplete.append(
                IncompleteTheme(
                    theme_id=theme.get("id"),
                    theme_name=theme_name,
                    missing_token_sets=tuple(missing),
                )
            )
            issues.append(
                ValidationIssue(
                    type=issue_types.INCOMPLETE_THEME,
                    severity="error",
                    message=f"Theme '{theme_name}' selects sets with no file: {', '.join(missing)}",
                    file=THEMES_FILE,
                    path=str(theme.get("id")),
                    suggestion="Re-run split or remove the sets from the theme",
                )
            )
        absent_blocks = [block for block in THEME_VENDOR_BLOCKS if block not in theme]
        if absent_blocks:
            issues.append(
                ValidationIssue(
                    type=issue_types.MISSING_FIGMA_REFERENCES,
                    severity="warning",
                    message=f"Theme '{theme_name}' has no {' or '.join(absent_blocks)}",
                    file=THEMES_FILE,
                    path=str(theme.get("id")),
                )
            )

    orphans = [
        set_name_for_file(file_name, order)
        for file_name in token_files
        if file_name not in selected_files
    ]
    for set_name in orphans:
        issues.append(
            ValidationIssue(
                type=issue_types.ORPHANED_TOKEN_SET,
                severity="warning",
                message=f"Token set '{set_name}' is not selected by any theme",
                file=set_file_name(set_name),
                path=set_name,
            )
        )

    return ThemeValidationOutput(
        issues=tuple(issues),
        themes_checked=len(layout.themes),
        incomplete_themes=tuple(incomplete),
        orphaned_sets=tuple(orphans),
    )


# --- Round trip ---


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _diff(expected: Any, actual: Any, path: str, differences: list[Difference]) -> None:
    if isinstance(expected, Mapping) and isinstance(actual, Mapping):
        expected_is_token = is_token(expected)
        for key, value in expected.items():
            child = _join(path, key)
            if key not in actual:
                # Reported separately as missing_description
                if expected_is_token and key in DESCRIPTION_KEYS:
                    continue
                differences.append(
                    Difference(type=issue_types.MISSING_KEY, path=child, expected=value)
                )
            else:
                _diff(value, actual[key], child, differences)
        for key, value in actual.items():
            if key not in expected:
                differences.append(
                    Difference(type=issue_types.EXTRA_KEY, path=_join(path, key), actual=value)
                )
    elif expected != actual:
        differences.append(
            Difference(type=issue_types.VALUE_MISMATCH, path=path, expected=expected, actual=actual)
        )


def _lookup(tree: Mapping[str, Any], path: str) -> Any:
    node: Any = tree
    for segment in path.split("."):
        if not isinstance(node, Mapping) or segment not in node:
            return None
        node = node[segment]
    return node


def compare_documents(
    original: Mapping[str, Any],
    reconstituted: Mapping[str, Any],
) -> tuple[list[Difference], list[ValidationIssue]]:
    """
    Structural comparison ignoring key order.

    A token description lost in ``reconstituted`` is reported as
    missing_description instead of a missing key; a reference value that
    did not survive is also reported as missing_reference.
    """

    differences: list[Difference] = []
    _diff(original, reconstituted, "", differences)

    preservation: list[ValidationIssue] = []
    for path, token in iter_tokens(original):
        counterpart = _lookup(reconstituted, path)
        if not is_token(counterpart):
            continue
        if any(key in token for key in DESCRIPTION_KEYS) and not any(
            key in counterpart for key in DESCRIPTION_KEYS
        ):
            preservation.append(
                ValidationIssue(
                    type=issue_types.MISSING_DESCRIPTION,
                    severity="error",
                    message=f"Description of {path} was lost in the round trip",
                    path=path,
                )
            )
        value = token_value(token)
        if is_reference(value) and token_value(counterpart) != value:
            preservation.append(
                ValidationIssue(
                    type=issue_types.MISSING_REFERENCE,
                    severity="error",
                    message=f"Reference {value} at {path} was not preserved",
                    path=path,
                )
            )
    return differences, preservation


def _roundtrip_failure(
    message: str, inp: RoundTripInput, layout: str | None = None
) -> RoundTripOutput:
    return RoundTripOutput(
        issues=(
            ValidationIssue(
                type=issue_types.ROUNDTRIP_FAILED,
                severity="error",
                message=message,
                file=str(inp.source_path),
            ),
        ),
        layout=layout,
        direction=inp.direction,
    )


def run_validate_roundtrip(
    inp: RoundTripInput,
    *,
    policy: SetClassificationPolicy = DEFAULT_POLICY,
    files: JsonFilePort | None = None,
) -> RoundTripOutput:
    """
    Check that the modular form reproduces the consolidated document.

    Scratch output goes to a temporary directory; the real token directory
    is only read. A lost description is an error here.
    """
    files = files or default_json_files
    try:
        original = read_source_document(inp.source_path, files)
    except SourceReadError as e:
        return _roundtrip_failure(str(e), inp)

    layout = inp.layout or ("sets" if is_pre_decomposed(original) else "merged")

    with tempfile.TemporaryDirectory(prefix="tokensync-roundtrip-") as scratch:
        scratch_dir = Path(scratch)
        backups = BackupManager(BackupConfig(backup_dir=scratch_dir / "backups"))

        if inp.direction == "split":
            tokens_dir = scratch_dir / "tokens"
            split = run_split(
                SplitInput(source_path=inp.source_path, output_dir=tokens_dir),
                policy=policy,
                backups=backups,
                files=files,
            )
            if not split.success:
                return _roundtrip_failure("; ".join(split.errors), inp, layout)
        elif inp.tokens_dir is None:
            return _roundtrip_failure("A token directory is required to consolidate", inp, layout)
        else:
            tokens_dir = inp.tokens_dir

        consolidated = run_consolidate(
            ConsolidateInput(
                tokens_dir=tokens_dir,
                output_path=scratch_dir / "roundtrip.json",
                layout=layout,
            ),
            backups=backups,
            files=files,
        )
        if not consolidated.success:
            return _roundtrip_failure("; ".join(consolidated.errors), inp, layout)

    differences, preservation = compare_documents(original, consolidated.document)
    issues = [
        ValidationIssue(
            type=difference.type,
            severity="error",
            message=_describe(difference),
            path=difference.path,
        )
        for difference in differences
    ]
    issues.extend(preservation)

    return RoundTripOutput(
        issues=tuple(issues),
        differences=tuple(differences),
        layout=layout,
        direction=inp.direction,
    )


def _describe(difference: Difference) -> str:
    if difference.type == issue_types.MISSING_KEY:
        return f"{difference.path} is missing after the round trip"
    if difference.type == issue_types.EXTRA_KEY:
        return f"{difference.path} appeared in the round trip"
    return (
        f"{difference.path} changed: expected {difference.expected!r}, got {difference.actual!r}"
    )


# --- Report ---


def _recommendations(issues: tuple[ValidationIssue, ...]) -> tuple[str, ...]:
    types = {issue.type for issue in issues}
    recommendations: list[str] = []
    if types & {issue_types.MISSING_DIRECTORY, issue_types.MISSING_REQUIRED_FILE}:
        recommendations.append("Run 'tokensync init' or split to create the token directory")
    if issue_types.INVALID_JSON in types:
        recommendations.append("Run 'tokensync recover --auto-fix' to repair trailing commas")
    if issue_types.MISSING_TOKEN_TYPE in types:
        recommendations.append("Run 'tokensync recover --auto-fix' to set inferred token types")
    if types & {
        issue_types.UNRESOLVED_REFERENCE,
        issue_types.CIRCULAR_REFERENCE,
        issue_types.MALFORMED_REFERENCE,
    }:
        recommendations.append("Fix unresolved references before importing; see suggestions")
    if types & {issue_types.INCOMPLETE_THEME, issue_types.MISSING_TOKEN_SET_FILE}:
        recommendations.append("Re-run split or remove missing sets from metadata and themes")
    if issue_types.ORPHANED_TOKEN_SET in types:
        recommendations.append("Select orphaned token sets in a theme or delete their files")
    if types & {
        issue_types.MISSING_KEY,
        issue_types.EXTRA_KEY,
        issue_types.VALUE_MISMATCH,
        issue_types.MISSING_DESCRIPTION,
        issue_types.MISSING_REFERENCE,
        issue_types.ROUNDTRIP_FAILED,
    }:
        recommendations.append("Consolidate and split again to resynchronize both forms")
    return tuple(recommendations)


def run_report(
    tokens_dir: Path,
    *,
    source_path: Path | None = None,
    suggestion_limit: int = 3,
    suggestion_cutoff: float = 0.6,
    policy: SetClassificationPolicy = DEFAULT_POLICY,
    files: JsonFilePort | None = None,
    clock: ClockPort | None = None,
) -> ValidationReport:
    """Run every check; round trip only when a source document is given."""
    files = files or default_json_files
    structure = run_validate_structure(tokens_dir, files=files)
    references = run_validate_references(
        tokens_dir,
        suggestion_limit=suggestion_limit,
        suggestion_cutoff=suggestion_cutoff,
        files=files,
    )
    themes = run_validate_themes(tokens_dir, files=files)
    roundtrip = None
    if source_path is not None:
        roundtrip = run_validate_roundtrip(
            RoundTripInput(source_path=source_path, tokens_dir=tokens_dir, direction="consolidate"),
            policy=policy,
            files=files,
        )

    issues = structure.issues + references.issues + themes.issues
    if roundtrip is not None:
        issues += roundtrip.issues

    return ValidationReport(
        tokens_dir=tokens_dir,
        structure=structure,
        references=references,
        themes=themes,
        roundtrip=roundtrip,
        recommendations=_recommendations(issues),
        timestamp=(clock or SystemClock()).now().isoformat(),
    )
