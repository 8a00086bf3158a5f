"""
References component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# --- Failure codes ---

FAILURE_MALFORMED = "malformed"
FAILURE_MISSING = "missing"
FAILURE_NOT_A_TOKEN = "not_a_token"
FAILURE_CIRCULAR = "circular"


# --- Output Models ---


@dataclass(frozen=True)
class ReferenceSite:
    """A reference string found inside a token value."""

    reference: str
    target: str | None
    path: str
    file: str | None = None


@dataclass(frozen=True)
class ResolveOutput:
    """
    Outcome of resolving one reference.

    ``chain`` lists every path visited while following references to
    references; ``value`` is the terminal literal value when resolved.
    """

    reference: str
    resolved: bool
    target: str | None = None
    token: dict[str, Any] | None = None
    value: Any = None
    chain: tuple[str, ...] = ()
    failure: str | None = None
    missing_segment: str | None = None
    message: str | None = None
