"""
Local file system adapter for JSON token files.

Writes go through a temporary sibling file and ``os.replace`` so a reader
never observes a half-written document.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from tokensync.domain.errors import JsonFileError
from tokensync.domain.layout import JSON_SUFFIX


def render_json(data: Any) -> str:
    """Serialize data the way every tokensync file is written."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def parse_json(text: str, path: Path) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise JsonFileError(path, f"Invalid JSON: {e}") from e


class LocalJsonFileSystem:
    """Adapter for JSON files on the local file system."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def list_json(self, directory: Path) -> list[str]:
        if not directory.is_dir():
            return []
        return sorted(
            entry.name
            for entry in directory.iterdir()
            if entry.is_file() and entry.name.endswith(JSON_SUFFIX)
        )

    def read_text(self, path: Path) -> str:
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise JsonFileError(path, f"Cannot read file: {e}") from e

    def read_json(self, path: Path) -> Any:
        return parse_json(self.read_text(path), path)

    def write_text(self, path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise
        except OSError as e:
            raise JsonFileError(path, f"Cannot write file: {e}") from e

    def write_json(self, path: Path, data: Any) -> None:
        self.write_text(path, render_json(data))

    def remove(self, path: Path) -> None:
        if path.exists():
            os.remove(path)


# Default adapter instance
default_json_files = LocalJsonFileSystem()
