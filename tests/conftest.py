import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from tokensync.components.recovery import BackupConfig, BackupManager


class SteppingClock:
    """Clock that advances one second per call so backups sort deterministically."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def now(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def backups(tmp_path: Path, clock: SteppingClock) -> BackupManager:
    """Backup manager writing under the test's temporary directory."""
    return BackupManager(BackupConfig(backup_dir=tmp_path / "backups"), clock=clock)


@pytest.fixture
def flat_document() -> dict[str, Any]:
    """Consolidated document without reserved entries, already in $-form."""
    return {
        "color": {
            "primary": {"$type": "color", "$value": "#0055ff", "$description": "Brand blue"},
            "secondary": {"$type": "color", "$value": "{color.primary}"},
        },
        "spacing": {
            "sm": {"$type": "dimension", "$value": "4px"},
            "md": {"$type": "dimension", "$value": "8px"},
        },
        "light": {
            "background": {"$type": "color", "$value": "#ffffff"},
        },
        "button": {
            "padding": {"$type": "dimension", "$value": "{spacing.md}"},
        },
    }


@pytest.fixture
def sets_document() -> dict[str, Any]:
    """Consolidated document keyed by set, with both reserved entries."""
    return {
        "core": {
            "color": {
                "primary": {
                    "$type": "color",
                    "$value": "#0055ff",
                    "$extensions": {"studio.tokens": {"modify": {"type": "alpha"}}},
                }
            }
        },
        "brand": {
            "accent": {"$type": "color", "$value": "{color.primary}", "$description": "Accent"}
        },
        "$themes": [
            {
                "id": "theme-light",
                "name": "Light",
                "selectedTokenSets": {"core": "source", "brand": "enabled"},
                "$figmaStyleReferences": {"accent": "S:123"},
                "$figmaVariableReferences": {},
            }
        ],
        "$metadata": {"tokenSetOrder": ["core", "brand"]},
    }


@pytest.fixture
def source_file(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a consolidated document and return its path."""

    def _write(document: dict[str, Any], name: str = "tokens.json") -> Path:
        return write_json(tmp_path / name, document)

    return _write


@pytest.fixture
def tokens_dir_factory(tmp_path: Path) -> Callable[..., Path]:
    """Build a modular token directory from set trees."""

    def _build(
        sets: dict[str, dict[str, Any]],
        *,
        order: list[str] | None = None,
        themes: list[dict[str, Any]] | None = None,
        name: str = "tokens",
    ) -> Path:
        tokens_dir = tmp_path / name
        tokens_dir.mkdir(parents=True, exist_ok=True)
        write_json(tokens_dir / "$metadata.json", {"tokenSetOrder": order or list(sets)})
        if themes is not None:
            write_json(tokens_dir / "$themes.json", themes)
        for set_name, tree in sets.items():
            file_name = set_name.lower().replace(" ", "-") + ".json"
            write_json(tokens_dir / file_name, tree)
        return tokens_dir

    return _build
