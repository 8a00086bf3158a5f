import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tokensync.components.recovery import PRE_ROLLBACK_OPERATION, BackupManager
from tokensync.components.references import build_unified_tree, find_references, resolve_reference
from tokensync.components.transform import (
    ConsolidateInput,
    SplitInput,
    run_consolidate,
    run_split,
)
from tokensync.components.validation import (
    RoundTripInput,
    run_validate_references,
    run_validate_roundtrip,
    run_validate_themes,
)
from tokensync.domain import issues as issue_types


@pytest.fixture
def split_dir(
    tmp_path: Path,
    flat_document: dict[str, Any],
    source_file: Callable[..., Path],
    backups: BackupManager,
) -> Path:
    tokens_dir = tmp_path / "tokens"
    result = run_split(
        SplitInput(source_path=source_file(flat_document), output_dir=tokens_dir),
        backups=backups,
    )
    assert result.success
    return tokens_dir


# --- R1: Round trip ---
def test_R1_round_trip(
    tmp_path: Path,
    flat_document: dict[str, Any],
    split_dir: Path,
    backups: BackupManager,
) -> None:
    """R1: consolidate(split(D)) equals D."""
    result = run_consolidate(
        ConsolidateInput(tokens_dir=split_dir, output_path=tmp_path / "out.json"),
        backups=backups,
    )
    assert result.document == flat_document


# --- R2: Split idempotence ---
def test_R2_split_idempotence(
    tmp_path: Path,
    sets_document: dict[str, Any],
    source_file: Callable[..., Path],
    backups: BackupManager,
) -> None:
    """R2: split(consolidate(T)) reproduces T."""
    first = tmp_path / "first"
    run_split(SplitInput(source_path=source_file(sets_document), output_dir=first), backups=backups)
    mid = tmp_path / "mid.json"
    run_consolidate(
        ConsolidateInput(tokens_dir=first, output_path=mid, layout="sets"), backups=backups
    )
    second = tmp_path / "second"
    run_split(SplitInput(source_path=mid, output_dir=second), backups=backups)

    for path in first.glob("*.json"):
        assert json.loads(path.read_text()) == json.loads((second / path.name).read_text())
    assert sorted(p.name for p in first.iterdir()) == sorted(p.name for p in second.iterdir())


# --- R3: Reference closure ---
def test_R3_reference_closure(split_dir: Path) -> None:
    """R3: every reference in a validated directory resolves to a token."""
    result = run_validate_references(split_dir)
    assert result.is_valid

    sets = [
        json.loads(path.read_text())
        for path in sorted(split_dir.glob("*.json"))
        if not path.name.startswith("$")
    ]
    unified = build_unified_tree(sets)
    for tree in sets:
        for site in find_references(tree):
            assert resolve_reference(site.reference, unified).resolved


# --- R4: Merge tie-break ---
def test_R4_merge_tie_break(
    tmp_path: Path,
    tokens_dir_factory: Callable[..., Path],
    backups: BackupManager,
) -> None:
    """R4: when two sets define a path, the later set in tokenSetOrder wins."""
    tokens_dir = tokens_dir_factory(
        {
            "a": {"global": {"color": {"$type": "color", "$value": "#000000"}}},
            "b": {"global": {"color": {"$type": "color", "$value": "#ffffff"}}},
        },
        order=["a", "b"],
        themes=[],
    )
    result = run_consolidate(
        ConsolidateInput(tokens_dir=tokens_dir, output_path=tmp_path / "out.json"),
        backups=backups,
    )
    assert result.document["global"]["color"]["$value"] == "#ffffff"


# --- R5: Theme completeness ---
def test_R5_theme_completeness(split_dir: Path) -> None:
    """R5: a split directory's themes only select sets that have files."""
    result = run_validate_themes(split_dir)
    assert result.incomplete_themes == ()

    (split_dir / "global.json").unlink()
    broken = run_validate_themes(split_dir)
    assert not broken.is_valid
    assert all("global" in theme.missing_token_sets for theme in broken.incomplete_themes)


# --- R6: Minimal split ---
def test_R6_minimal_split(
    tmp_path: Path, source_file: Callable[..., Path], backups: BackupManager
) -> None:
    """R6: a single color group splits into core with one derived theme."""
    source = source_file({"color": {"primary": {"value": "#0055ff"}}})
    tokens_dir = tmp_path / "tokens"

    result = run_split(SplitInput(source_path=source, output_dir=tokens_dir), backups=backups)

    assert result.files == ("$metadata.json", "$themes.json", "core.json")
    assert json.loads((tokens_dir / "$metadata.json").read_text()) == {"tokenSetOrder": ["core"]}
    themes = json.loads((tokens_dir / "$themes.json").read_text())
    assert [theme["selectedTokenSets"] for theme in themes] == [{"core": "enabled"}]
    assert json.loads((tokens_dir / "core.json").read_text()) == {
        "color": {"primary": {"$type": "color", "$value": "#0055ff"}}
    }


# --- R7: Missing reference ---
def test_R7_missing_reference(
    tokens_dir_factory: Callable[..., Path],
) -> None:
    """R7: exactly one dangling reference yields exactly one unresolved entry."""
    tokens_dir = tokens_dir_factory(
        {
            "core": {"color": {"primary": {"$type": "color", "$value": "#0055ff"}}},
            "brand": {
                "accent": {"$type": "color", "$value": "{color.primary}"},
                "link": {"$type": "color", "$value": "{color.primry}"},
            },
        },
        themes=[],
    )

    result = run_validate_references(tokens_dir)

    assert result.total_references == 2
    [unresolved] = result.unresolved_references
    assert unresolved.reference == "{color.primry}"
    assert unresolved.file == "brand.json"
    assert unresolved.path == "link"
    assert _types(result.issues) == [issue_types.UNRESOLVED_REFERENCE]


# --- R8: Backup and rollback ---
def test_R8_backup_rollback(tmp_path: Path, backups: BackupManager) -> None:
    """R8: rollback restores backed-up content and snapshots what it replaced."""
    target = tmp_path / "F.json"
    target.write_text('{"content": "A"}', encoding="utf-8")
    backup_id = backups.create_backup("manual", target).backup_id
    target.write_text('{"content": "B"}', encoding="utf-8")

    result = backups.rollback(backup_id or "")

    assert result.success
    assert json.loads(target.read_text()) == {"content": "A"}
    assert len(backups.list_backups(PRE_ROLLBACK_OPERATION)) == 1


# --- R9: Round-trip validator ---
def test_R9_validator_detects_drift(
    tmp_path: Path,
    flat_document: dict[str, Any],
    source_file: Callable[..., Path],
    split_dir: Path,
) -> None:
    """R9: a value edited only in the directory is reported as drift."""
    source = source_file(flat_document, "reference.json")
    core = split_dir / "core.json"
    core.write_text(core.read_text().replace('"4px"', '"6px"'), encoding="utf-8")

    result = run_validate_roundtrip(
        RoundTripInput(source_path=source, tokens_dir=split_dir, direction="consolidate")
    )

    assert [d.path for d in result.differences] == ["spacing.sm.$value"]


def _types(issues: tuple[Any, ...]) -> list[str]:
    return [issue.type for issue in issues]
