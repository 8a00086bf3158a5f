"""
Command line tests.

Each test writes a tokensync.yaml into a temporary project so relative
paths resolve inside it.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from tokensync.app_shell.cli import main


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "tokensync.yaml").write_text(
        "paths:\n  source_document: tokensource.json\n  tokens_dir: tokens\n"
        "logging:\n  level: WARNING\n",
        encoding="utf-8",
    )
    return tmp_path


def _run(project: Path, *args: str) -> None:
    main(["--config", str(project / "tokensync.yaml"), *args])


def _write(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


class TestCli:
    """End-to-end runs of the tokensync command."""

    def test_init(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """init creates the configured token directory."""
        _run(project, "init")

        assert (project / "tokens" / "$metadata.json").exists()
        assert "Created $themes.json" in capsys.readouterr().out

    def test_split_validate_consolidate(
        self, project: Path, flat_document: dict[str, Any], capsys: pytest.CaptureFixture[str]
    ) -> None:
        """The configured paths drive a full cycle."""
        _write(project / "tokensource.json", flat_document)

        _run(project, "split")
        _run(project, "validate")
        _run(project, "consolidate", "--output", str(project / "out.json"))

        assert json.loads((project / "out.json").read_text(encoding="utf-8")) == flat_document
        out = capsys.readouterr().out
        assert "Wrote 5 files (identified)" in out
        assert "Total issues: 0 (0 errors)" in out

    def test_validate_fails_on_broken_reference(
        self, project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Unresolved references make validate exit non-zero."""
        _write(project / "tokens" / "$metadata.json", {"tokenSetOrder": ["core"]})
        _write(project / "tokens" / "$themes.json", [])
        _write(project / "tokens" / "core.json", {"a": {"$type": "color", "$value": "{b}"}})

        with pytest.raises(SystemExit) as exc_info:
            _run(project, "validate", "references")

        assert exc_info.value.code == 1
        assert "unresolved_reference" in capsys.readouterr().out

    def test_split_missing_source(
        self, project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A missing source exits non-zero with suggestions."""
        with pytest.raises(SystemExit):
            _run(project, "split")

        out = capsys.readouterr().out
        assert "Failed to read source file" in out
        assert "Suggestions:" in out

    def test_missing_config(self, tmp_path: Path) -> None:
        """An explicit config that does not exist is fatal."""
        with pytest.raises(SystemExit):
            main(["--config", str(tmp_path / "absent.yaml"), "init"])

    def test_backup_and_rollback(
        self, project: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """backup create, list and rollback work against the configured backup dir."""
        target = project / "tokens.json"
        target.write_text('{"v": "A"}', encoding="utf-8")
        _run(project, "backup", "create", str(target))
        backup_id = capsys.readouterr().out.split("Backup created: ")[1].split(" ")[0]
        target.write_text('{"v": "B"}', encoding="utf-8")

        _run(project, "backup", "list", "--operation", "manual")
        assert backup_id in capsys.readouterr().out

        _run(project, "rollback", backup_id, "--dry-run")
        assert target.read_text(encoding="utf-8") == '{"v": "B"}'

        _run(project, "rollback", backup_id)
        assert target.read_text(encoding="utf-8") == '{"v": "A"}'
        assert (project / ".tokensync-backups").is_dir()

    def test_recover_auto_fix(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """recover --auto-fix repairs trailing commas and recreates companions."""
        _write(project / "tokens" / "$metadata.json", {"tokenSetOrder": ["core"]})
        (project / "tokens" / "core.json").write_text(
            '{"a": {"$type": "dimension", "$value": "4px",},}', encoding="utf-8"
        )

        _run(project, "recover", "--auto-fix")

        assert json.loads((project / "tokens" / "core.json").read_text(encoding="utf-8")) == {
            "a": {"$type": "dimension", "$value": "4px"}
        }
        assert (project / "tokens" / "$themes.json").exists()
        assert "Applied:" in capsys.readouterr().out
