"""
Token model utilities.

Pure functions over JSON token trees (no I/O):

- classify a node as a leaf token, a group, a set or a plain value
- infer a token's semantic type from its raw value
- convert legacy ``type``/``value`` tokens into the ``$type``/``$value`` form
- walk, count and deep-merge token trees

Node kinds are decided by shape, never by name. A mapping is a token when it
exposes ``$type``/``$value`` or a legacy ``type``/``value`` marker; any other
mapping is a group (or a set when it sits at the top level of a document).
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any

# --- Reserved keys ---

METADATA_KEY = "$metadata"
THEMES_KEY = "$themes"
RESERVED_KEYS = frozenset({METADATA_KEY, THEMES_KEY})

TYPE_KEY = "$type"
VALUE_KEY = "$value"
DESCRIPTION_KEY = "$description"

LEGACY_KEYS = {
    "type": TYPE_KEY,
    "value": VALUE_KEY,
    "description": DESCRIPTION_KEY,
}


class NodeKind(str, Enum):
    """Structural kind of a node in a token tree."""

    TOKEN = "token"
    GROUP = "group"
    SET = "set"
    VALUE = "value"


# --- Type inference patterns ---

HEX_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{3,8}$")
FUNCTIONAL_COLOR_PATTERN = re.compile(r"^(rgba?|hsla?)\(", re.IGNORECASE)
DIMENSION_PATTERN = re.compile(r"^-?\d+(\.\d+)?(px|rem|em|%)$")
NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")

TYPOGRAPHY_KEYS = frozenset(
    {
        "fontFamily",
        "fontWeight",
        "fontSize",
        "lineHeight",
        "letterSpacing",
        "paragraphSpacing",
        "textCase",
        "textDecoration",
    }
)

NAMED_COLORS = frozenset(
    """
    aliceblue antiquewhite aqua aquamarine azure beige bisque black
    blanchedalmond blue blueviolet brown burlywood cadetblue chartreuse
    chocolate coral cornflowerblue cornsilk crimson cyan darkblue darkcyan
    darkgoldenrod darkgray darkgreen darkgrey darkkhaki darkmagenta
    darkolivegreen darkorange darkorchid darkred darksalmon darkseagreen
    darkslateblue darkslategray darkslategrey darkturquoise darkviolet
    deeppink deepskyblue dimgray dimgrey dodgerblue firebrick floralwhite
    forestgreen fuchsia gainsboro ghostwhite gold goldenrod gray green
    greenyellow grey honeydew hotpink indianred indigo ivory khaki lavender
    lavenderblush lawngreen lemonchiffon lightblue lightcoral lightcyan
    lightgoldenrodyellow lightgray lightgreen lightgrey lightpink
    lightsalmon lightseagreen lightskyblue lightslategray lightslategrey
    lightsteelblue lightyellow lime limegreen linen magenta maroon
    mediumaquamarine mediumblue mediumorchid mediumpurple mediumseagreen
    mediumslateblue mediumspringgreen mediumturquoise mediumvioletred
    midnightblue mintcream mistyrose moccasin navajowhite navy oldlace
    olive olivedrab orange orangered orchid palegoldenrod palegreen
    paleturquoise palevioletred papayawhip peachpuff peru pink plum
    powderblue purple rebeccapurple red rosybrown royalblue saddlebrown
    salmon sandybrown seagreen seashell sienna silver skyblue slateblue
    slategray slategrey snow springgreen steelblue tan teal thistle tomato
    transparent turquoise violet wheat white whitesmoke yellow yellowgreen
    """.split()
)


# --- Classification ---


def _looks_like_group(value: Any) -> bool:
    """A legacy ``value`` key holding nested mappings is a child group, not a value."""
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(isinstance(child, Mapping) for child in value.values())
    )


def is_token(node: Any) -> bool:
    """Return True when the node is a leaf token."""
    if not isinstance(node, Mapping):
        return False
    if TYPE_KEY in node or VALUE_KEY in node:
        return True
    if "type" in node and isinstance(node["type"], str):
        return True
    return "value" in node and not _looks_like_group(node["value"])


def is_group(node: Any) -> bool:
    """Return True when the node is a mapping that is not a token."""
    return isinstance(node, Mapping) and not is_token(node)


def classify(node: Any, *, top_level: bool = False) -> NodeKind:
    """Classify a node structurally."""
    if not isinstance(node, Mapping):
        return NodeKind.VALUE
    if is_token(node):
        return NodeKind.TOKEN
    return NodeKind.SET if top_level else NodeKind.GROUP


def token_value(token: Mapping[str, Any]) -> Any:
    """Value of a token in either form (``$value`` wins)."""
    if VALUE_KEY in token:
        return token[VALUE_KEY]
    return token.get("value")


def token_type(token: Mapping[str, Any]) -> str | None:
    """Declared type of a token in either form, if any."""
    declared = token.get(TYPE_KEY, token.get("type"))
    return declared if isinstance(declared, str) else None


def has_value(token: Mapping[str, Any]) -> bool:
    return VALUE_KEY in token or "value" in token


# --- Type inference ---


def _is_color_string(value: str) -> bool:
    text = value.strip()
    return (
        bool(HEX_COLOR_PATTERN.match(text))
        or bool(FUNCTIONAL_COLOR_PATTERN.match(text))
        or text.lower() in NAMED_COLORS
        or "gradient" in text.lower()
    )


def infer_token_type(value: Any) -> str:
    """
    Infer a semantic token type from a raw value.

    Strings are tested for color shapes first, then dimensions. Numbers are
    dimensions. Mappings carrying typography keys are typography composites.
    Everything else (including references) is ``other``.
    """
    if isinstance(value, bool):
        return "other"
    if isinstance(value, int | float):
        return "dimension"
    if isinstance(value, str):
        if _is_color_string(value):
            return "color"
        text = value.strip()
        if DIMENSION_PATTERN.match(text) or NUMBER_PATTERN.match(text):
            return "dimension"
        return "other"
    if isinstance(value, Mapping):
        keys = set(value.keys())
        if "fontFamily" in keys or len(keys & TYPOGRAPHY_KEYS) >= 2:
            return "typography"
    return "other"


# --- Conversion ---


def convert_token(token: Mapping[str, Any]) -> dict[str, Any]:
    """
    Convert a token to the ``$``-prefixed form.

    Already typed tokens (``$type`` and ``$value``) are returned unchanged.
    Legacy keys are renamed, a missing type is inferred from the value, and
    every other key (vendor extension blocks) is carried over verbatim.
    """
    if TYPE_KEY in token and VALUE_KEY in token:
        return dict(token)

    converted: dict[str, Any] = {}
    declared = token_type(token)
    if has_value(token):
        value = token_value(token)
        converted[TYPE_KEY] = declared if declared is not None else infer_token_type(value)
        converted[VALUE_KEY] = value
    elif declared is not None:
        converted[TYPE_KEY] = declared

    description = token.get(DESCRIPTION_KEY, token.get("description"))
    if description is not None:
        converted[DESCRIPTION_KEY] = description

    for key, value in token.items():
        if key in LEGACY_KEYS or key in LEGACY_KEYS.values():
            continue
        converted[key] = value
    return converted


def convert_tree(tree: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of a group tree with every token converted."""
    result: dict[str, Any] = {}
    for key, node in tree.items():
        if is_token(node):
            result[key] = convert_token(node)
        elif isinstance(node, Mapping):
            result[key] = convert_tree(node)
        else:
            result[key] = copy.deepcopy(node)
    return result


# --- Walking ---


def iter_tokens(tree: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, dict[str, Any]]]:
    """
    Yield ``(dotted_path, token)`` for every leaf token under a tree.

    Reserved document keys and ``$``-prefixed group attributes are skipped.
    """
    for key, node in tree.items():
        if key.startswith("$"):
            continue
        path = f"{prefix}.{key}" if prefix else key
        if is_token(node):
            yield path, node
        elif isinstance(node, Mapping):
            yield from iter_tokens(node, path)


def count_tokens(tree: Mapping[str, Any]) -> int:
    return sum(1 for _ in iter_tokens(tree))


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """
    Merge ``overlay`` onto ``base`` without mutating either.

    Groups present on both sides are merged recursively; anything else
    (tokens, scalars, a group meeting a token) is replaced by the overlay.
    """
    merged = copy.deepcopy(dict(base))
    for key, node in overlay.items():
        existing = merged.get(key)
        if is_group(existing) and is_group(node):
            merged[key] = deep_merge(existing, node)
        else:
            merged[key] = copy.deepcopy(node)
    return merged


# --- Names ---

_WHITESPACE = re.compile(r"\s+")
_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]")


def sanitize_name(name: str) -> str:
    """Lowercase, turn whitespace into hyphens and drop anything outside [a-z0-9_-]."""
    lowered = _WHITESPACE.sub("-", name.strip().lower())
    return _UNSAFE_CHARS.sub("", lowered)
