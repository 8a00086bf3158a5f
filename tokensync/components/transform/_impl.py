"""
Transform functional core - split planning and document assembly.

Pure functions, no I/O. The shell in component.py reads and writes files
around them.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import reduce
from typing import Any

from tokensync.domain.layout import TOKEN_SET_ORDER, derive_themes, set_file_name
from tokensync.domain.policy import SetClassificationPolicy
from tokensync.domain.tokens import (
    METADATA_KEY,
    RESERVED_KEYS,
    THEMES_KEY,
    convert_tree,
    deep_merge,
)

from .models import ConsolidateLayout, SplitMode, SplitPlan

# --- Split ---


def is_pre_decomposed(document: Mapping[str, Any]) -> bool:
    """A document carrying both reserved entries is already keyed by set."""
    return METADATA_KEY in document and THEMES_KEY in document


def identify_sets(
    document: Mapping[str, Any],
    policy: SetClassificationPolicy,
    warnings: list[str],
) -> dict[str, dict[str, Any]]:
    """Bucket top-level groups of a flat document into token sets."""
    sets: dict[str, dict[str, Any]] = {}
    for key, node in document.items():
        if key in RESERVED_KEYS:
            continue
        if not isinstance(node, Mapping):
            warnings.append(f"Skipping top-level '{key}': not a token group")
            continue
        sets.setdefault(policy.set_for_group(key), {})[key] = node
    return sets


def _passthrough_sets(
    document: Mapping[str, Any],
    warnings: list[str],
) -> dict[str, dict[str, Any]]:
    sets: dict[str, dict[str, Any]] = {}
    for key, node in document.items():
        if key in RESERVED_KEYS:
            continue
        if not isinstance(node, Mapping):
            warnings.append(f"Skipping top-level '{key}': not a token set")
            continue
        sets[key] = dict(node)
    return sets


def _existing_order(metadata: Mapping[str, Any]) -> list[str]:
    order = metadata.get(TOKEN_SET_ORDER)
    if isinstance(order, list):
        return [name for name in order if isinstance(name, str)]
    return []


def plan_split(document: Mapping[str, Any], policy: SetClassificationPolicy) -> SplitPlan:
    """
    Decide sets, order, metadata and themes for a consolidated document.

    Pre-decomposed documents keep their own set order (unlisted sets follow
    in document order); flat documents are bucketed through the policy and
    ordered by its precedence list.
    """
    warnings: list[str] = []
    raw_metadata = document.get(METADATA_KEY)
    metadata = dict(raw_metadata) if isinstance(raw_metadata, Mapping) else {}
    preferred = _existing_order(metadata)
    mode: SplitMode

    if is_pre_decomposed(document):
        mode = "passthrough"
        sets = _passthrough_sets(document, warnings)
        listed = [name for name in preferred if name in sets]
        order = listed + [name for name in sets if name not in listed]
    else:
        mode = "identified"
        sets = identify_sets(document, policy, warnings)
        order = policy.order_sets(sets, preferred=preferred)

    raw_themes = document.get(THEMES_KEY)
    if isinstance(raw_themes, list):
        themes = list(raw_themes)
    else:
        if raw_themes is not None:
            warnings.append("Ignoring $themes in source document: not an array")
        else:
            warnings.append("No themes in source document, derived default themes")
        themes = derive_themes(order)

    metadata.pop(TOKEN_SET_ORDER, None)
    return SplitPlan(
        mode=mode,
        sets={name: convert_tree(sets[name]) for name in order},
        order=order,
        metadata={TOKEN_SET_ORDER: order, **metadata},
        themes=themes,
        warnings=tuple(warnings),
    )


def file_collisions(order: list[str]) -> list[str]:
    """Errors for distinct set names that sanitize to the same file name."""
    seen: dict[str, str] = {}
    errors: list[str] = []
    for name in order:
        file_name = set_file_name(name)
        if file_name in seen:
            errors.append(
                f"Token sets '{seen[file_name]}' and '{name}' both map to file {file_name}"
            )
        else:
            seen[file_name] = name
    return errors


# --- Consolidate ---


def is_scaffolding_themes(themes: list[Any], order: list[str]) -> bool:
    """Themes that carry nothing beyond what split would derive again."""
    return not themes or themes == derive_themes(order)


def assemble_document(
    sets: dict[str, dict[str, Any]],
    order: list[str],
    themes: list[Any],
    metadata: dict[str, Any],
    layout: ConsolidateLayout = "merged",
) -> dict[str, Any]:
    """
    Build the consolidated document from loaded sets.

    ``merged``: one tree, sets deep-merged in order so later sets win;
    reserved entries only when they carry content split cannot re-derive.
    ``sets``: one top-level key per set plus both reserved entries.
    """
    loaded = [name for name in order if name in sets]

    if layout == "sets":
        document: dict[str, Any] = {name: sets[name] for name in loaded}
        document[THEMES_KEY] = themes
        document[METADATA_KEY] = metadata
        return document

    document = reduce(deep_merge, (sets[name] for name in loaded), {})
    if not is_scaffolding_themes(themes, order):
        document[THEMES_KEY] = themes
    if any(key != TOKEN_SET_ORDER for key in metadata):
        document[METADATA_KEY] = metadata
    return document
