from pathlib import Path
from typing import Any, Protocol


class JsonFilePort(Protocol):
    """Port for reading and writing JSON token files."""

    def exists(self, path: Path) -> bool:
        """Check if a file or directory exists."""
        ...

    def is_dir(self, path: Path) -> bool: ...

    def list_json(self, directory: Path) -> list[str]:
        """Names of the ``.json`` files directly inside a directory, sorted."""
        ...

    def read_text(self, path: Path) -> str:
        """Read a UTF-8 file. Raises FileNotFoundError or JsonFileError."""
        ...

    def read_json(self, path: Path) -> Any:
        """Read and parse a JSON file. Raises FileNotFoundError or JsonFileError."""
        ...

    def write_text(self, path: Path, text: str) -> None:
        """Replace a file's content atomically. Raises JsonFileError."""
        ...

    def write_json(self, path: Path, data: Any) -> None: ...

    def remove(self, path: Path) -> None: ...
