"""
Transform component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

SplitMode = Literal["passthrough", "identified"]
ConsolidateLayout = Literal["merged", "sets"]


# --- Input Models ---


@dataclass(frozen=True)
class SplitInput:
    """Input for splitting a consolidated document into a token directory."""

    source_path: Path
    output_dir: Path
    clean: bool = False


@dataclass(frozen=True)
class ConsolidateInput:
    """Input for merging a token directory into one document."""

    tokens_dir: Path
    output_path: Path
    layout: ConsolidateLayout = "merged"


# --- Plans (functional core) ---


@dataclass(frozen=True)
class SplitPlan:
    """Everything split will write, computed without touching disk."""

    mode: SplitMode
    sets: dict[str, dict[str, Any]]
    order: list[str]
    metadata: dict[str, Any]
    themes: list[Any]
    warnings: tuple[str, ...] = ()


# --- Output Models ---


@dataclass(frozen=True)
class SplitOutput:
    """Output from split."""

    success: bool
    files: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    mode: SplitMode | None = None
    backup_id: str | None = None
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConsolidateOutput:
    """Output from consolidate."""

    success: bool
    tokens_count: int = 0
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    backup_id: str | None = None
    output_path: Path | None = None
    sets_merged: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()
    document: dict[str, Any] = field(default_factory=dict)
