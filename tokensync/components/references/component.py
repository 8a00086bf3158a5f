"""
References component - Resolve ``{dot.path}`` token references.

Functional core: no I/O. Operates on a unified token tree (all sets
deep-merged in order).

Key behaviors:
- A reference is a string of the exact shape ``{a.b.c}``
- Malformed references and dangling targets are failures, never exceptions
- Chains of references are followed; a repeated path is a circular failure
"""

from __future__ import annotations

import difflib
import re
from collections.abc import Iterable, Iterator, Mapping
from functools import reduce
from typing import Any

from tokensync.domain.tokens import deep_merge, is_token, iter_tokens, token_value

from .models import (
    FAILURE_CIRCULAR,
    FAILURE_MALFORMED,
    FAILURE_MISSING,
    FAILURE_NOT_A_TOKEN,
    ReferenceSite,
    ResolveOutput,
)

REFERENCE_PATTERN = re.compile(r"^\{([^{}]+)\}$")


# --- Parsing ---


def parse_reference(value: Any) -> str | None:
    """Return the dotted path inside a reference string, or None."""
    if not isinstance(value, str):
        return None
    match = REFERENCE_PATTERN.match(value.strip())
    if not match:
        return None
    path = match.group(1).strip()
    if not path or any(not segment for segment in path.split(".")):
        return None
    return path


def is_reference(value: Any) -> bool:
    return parse_reference(value) is not None


# --- Tree helpers ---


def build_unified_tree(sets: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Deep-merge set trees in order; later sets win."""
    return reduce(deep_merge, sets, {})


def known_token_paths(tree: Mapping[str, Any]) -> list[str]:
    return [path for path, _ in iter_tokens(tree)]


def _walk(tree: Mapping[str, Any], path: str) -> tuple[Any, str | None]:
    node: Any = tree
    for segment in path.split("."):
        if not isinstance(node, Mapping) or is_token(node) or segment not in node:
            return None, segment
        node = node[segment]
    return node, None


# --- Resolution ---


def resolve_reference(
    reference: str,
    tree: Mapping[str, Any],
    *,
    follow: bool = True,
) -> ResolveOutput:
    """
    Resolve a reference against a unified token tree.

    With ``follow`` set, a token whose value is itself a reference is
    followed until a literal value is reached.
    """
    target = parse_reference(reference)
    if target is None:
        return ResolveOutput(
            reference=reference,
            resolved=False,
            failure=FAILURE_MALFORMED,
            message=f"Malformed reference: {reference!r} (expected {{path.to.token}})",
        )

    chain: list[str] = []
    current = target
    while True:
        if current in chain:
            loop = " -> ".join([*chain, current])
            return ResolveOutput(
                reference=reference,
                resolved=False,
                target=target,
                chain=tuple(chain),
                failure=FAILURE_CIRCULAR,
                message=f"Circular reference: {loop}",
            )
        chain.append(current)

        node, missing = _walk(tree, current)
        if missing is not None:
            return ResolveOutput(
                reference=reference,
                resolved=False,
                target=target,
                chain=tuple(chain),
                failure=FAILURE_MISSING,
                missing_segment=missing,
                message=f"Token not found: {current} (no '{missing}' segment)",
            )
        if not is_token(node):
            return ResolveOutput(
                reference=reference,
                resolved=False,
                target=target,
                chain=tuple(chain),
                failure=FAILURE_NOT_A_TOKEN,
                message=f"Reference target is a group, not a token: {current}",
            )

        value = token_value(node)
        next_target = parse_reference(value)
        if follow and next_target is not None:
            current = next_target
            continue

        return ResolveOutput(
            reference=reference,
            resolved=True,
            target=target,
            token=dict(node),
            value=value,
            chain=tuple(chain),
        )


# --- Collection ---


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _iter_strings(item)


def _is_brace_wrapped(text: str) -> bool:
    stripped = text.strip()
    return stripped.startswith("{") and stripped.endswith("}")


def find_references(tree: Mapping[str, Any], file: str | None = None) -> list[ReferenceSite]:
    """
    Every reference-shaped string inside token values, tagged with its token path.

    Brace-wrapped strings that do not parse (``{a..b}``, ``{ }``) are kept
    with ``target=None`` so validation can report them as malformed.
    """
    sites: list[ReferenceSite] = []
    for path, token in iter_tokens(tree):
        for text in _iter_strings(token_value(token)):
            target = parse_reference(text)
            if target is not None or _is_brace_wrapped(text):
                sites.append(ReferenceSite(reference=text, target=target, path=path, file=file))
    return sites


def suggest_paths(
    target: str,
    known_paths: Iterable[str],
    *,
    limit: int = 3,
    cutoff: float = 0.6,
) -> list[str]:
    """Nearest known token paths for a dangling reference target."""
    candidates = list(known_paths)
    matches = difflib.get_close_matches(target, candidates, n=limit, cutoff=cutoff)
    if matches:
        return matches
    # Fall back to tokens sharing the final segment
    leaf = target.rsplit(".", 1)[-1].lower()
    return [path for path in candidates if path.rsplit(".", 1)[-1].lower() == leaf][:limit]
