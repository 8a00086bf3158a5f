"""
Configuration loader tests.

Verifies the shipped tokensync.yaml and the failure modes of load_rules.
"""

from pathlib import Path

import pytest

from tokensync.rules import TokenSyncRules, load_rules, load_rules_or_default
from tokensync.rules.loader import RULES_ENV_VAR, default_rules_path, find_project_root

PROJECT_ROOT = Path(__file__).parent.parent.parent


class TestLoadRules:
    """Tests for loading tokensync.yaml."""

    def test_shipped_config_loads(self) -> None:
        """The repository's tokensync.yaml validates."""
        rules = load_rules(PROJECT_ROOT / "tokensync.yaml")

        assert rules.paths.tokens_dir == "tokens"
        assert rules.backups.max_backups_per_operation == 10
        assert rules.consolidate.layout == "merged"
        assert rules.classification.precedence[0] == "core"

    def test_shipped_config_matches_defaults(self) -> None:
        """The shipped file spells out the built-in defaults."""
        assert load_rules(PROJECT_ROOT / "tokensync.yaml") == TokenSyncRules()

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_rules(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Broken YAML raises ValueError."""
        path = tmp_path / "tokensync.yaml"
        path.write_text("paths: [unclosed\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_rules(path)

    def test_schema_violation(self, tmp_path: Path) -> None:
        """Values outside the schema raise ValueError."""
        path = tmp_path / "tokensync.yaml"
        path.write_text("consolidate:\n  layout: nested\n", encoding="utf-8")

        with pytest.raises(ValueError, match="validation failed"):
            load_rules(path)

    def test_backups_must_be_positive(self, tmp_path: Path) -> None:
        """max_backups_per_operation must be at least 1."""
        path = tmp_path / "tokensync.yaml"
        path.write_text("backups:\n  max_backups_per_operation: 0\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_rules(path)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """An empty file is valid and yields defaults."""
        path = tmp_path / "tokensync.yaml"
        path.write_text("", encoding="utf-8")

        assert load_rules(path) == TokenSyncRules()

    def test_partial_override(self, tmp_path: Path) -> None:
        """Keys not given keep their defaults."""
        path = tmp_path / "tokensync.yaml"
        path.write_text("paths:\n  tokens_dir: design/tokens\n", encoding="utf-8")

        rules = load_rules(path)
        assert rules.paths.tokens_dir == "design/tokens"
        assert rules.paths.source_document == "tokensource.json"


class TestDefaultPath:
    """Tests for locating the configuration file."""

    def test_missing_returns_defaults(self, tmp_path: Path) -> None:
        """load_rules_or_default tolerates a missing file."""
        assert load_rules_or_default(tmp_path / "none.yaml") == TokenSyncRules()

    def test_env_var_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """TOKENSYNC_RULES points at an explicit file."""
        path = tmp_path / "custom.yaml"
        monkeypatch.setenv(RULES_ENV_VAR, str(path))

        assert default_rules_path() == path

    def test_project_root_found_by_marker(self, tmp_path: Path) -> None:
        """The nearest directory holding tokensync.yaml is the project root."""
        (tmp_path / "tokensync.yaml").write_text("version: 1\n", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_project_root(nested) == tmp_path
