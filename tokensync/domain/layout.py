"""
On-disk layout contract for a modular token directory.

A directory holds two companion files plus one JSON file per token set:

- ``$metadata.json``: ``{"tokenSetOrder": [...]}``
- ``$themes.json``: ``[{"id", "name", "selectedTokenSets", ...}]``
- ``<sanitized set name>.json``: the set's token tree
"""

from __future__ import annotations

import hashlib
from typing import Any

from tokensync.domain.tokens import METADATA_KEY, THEMES_KEY, sanitize_name

JSON_SUFFIX = ".json"
METADATA_FILE = f"{METADATA_KEY}{JSON_SUFFIX}"
THEMES_FILE = f"{THEMES_KEY}{JSON_SUFFIX}"
COMPANION_FILES = (METADATA_FILE, THEMES_FILE)

TOKEN_SET_ORDER = "tokenSetOrder"
THEME_REQUIRED_FIELDS = ("id", "name", "selectedTokenSets")
THEME_VENDOR_BLOCKS = ("$figmaStyleReferences", "$figmaVariableReferences")
ACTIVATION_MODES = frozenset({"source", "enabled", "disabled"})


def set_file_name(set_name: str) -> str:
    """File name for a token set."""
    return f"{sanitize_name(set_name)}{JSON_SUFFIX}"


def set_name_for_file(file_name: str, known_sets: list[str] | None = None) -> str:
    """
    Map a set file name back to its set name.

    A known set whose sanitized form matches the file wins; otherwise the
    file stem is used as-is.
    """
    stem = file_name[: -len(JSON_SUFFIX)] if file_name.endswith(JSON_SUFFIX) else file_name
    for name in known_sets or []:
        if sanitize_name(name) == stem:
            return name
    return stem


def is_companion_file(file_name: str) -> bool:
    return file_name.startswith("$")


def default_metadata(order: list[str] | None = None) -> dict[str, Any]:
    return {TOKEN_SET_ORDER: list(order or [])}


def default_themes() -> list[dict[str, Any]]:
    return []


def default_companion(file_name: str) -> Any:
    """Minimal valid content for a companion file."""
    if file_name == METADATA_FILE:
        return default_metadata()
    if file_name == THEMES_FILE:
        return default_themes()
    raise ValueError(f"Not a companion file: {file_name}")


def theme_id(name: str) -> str:
    """Deterministic theme id derived from the theme name."""
    return hashlib.sha1(name.encode("utf-8")).hexdigest()


def derive_themes(order: list[str]) -> list[dict[str, Any]]:
    """
    Build one theme per set, each enabling every set up to and including itself.
    """
    themes: list[dict[str, Any]] = []
    for index, name in enumerate(order):
        themes.append(
            {
                "id": theme_id(name),
                "name": name,
                "selectedTokenSets": {set_name: "enabled" for set_name in order[: index + 1]},
                "$figmaStyleReferences": {},
                "$figmaVariableReferences": {},
            }
        )
    return themes
