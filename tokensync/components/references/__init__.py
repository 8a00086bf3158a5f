"""
References component - Resolve and collect ``{dot.path}`` token references.
"""

from .component import (
    REFERENCE_PATTERN,
    build_unified_tree,
    find_references,
    is_reference,
    known_token_paths,
    parse_reference,
    resolve_reference,
    suggest_paths,
)
from .models import (
    FAILURE_CIRCULAR,
    FAILURE_MALFORMED,
    FAILURE_MISSING,
    FAILURE_NOT_A_TOKEN,
    ReferenceSite,
    ResolveOutput,
)

__all__ = [
    # Entry points
    "resolve_reference",
    "find_references",
    "build_unified_tree",
    "known_token_paths",
    "suggest_paths",
    "parse_reference",
    "is_reference",
    "REFERENCE_PATTERN",
    # Models
    "ReferenceSite",
    "ResolveOutput",
    "FAILURE_CIRCULAR",
    "FAILURE_MALFORMED",
    "FAILURE_MISSING",
    "FAILURE_NOT_A_TOKEN",
]
