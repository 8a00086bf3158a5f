"""
Set classification policy.

Decides which token set a top-level group of a flat consolidated document
belongs to, and the precedence order of sets. The table is data
(``ClassificationRules`` in tokensync.yaml) so custom vocabularies can be
tuned without touching the split algorithm.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from tokensync.domain.tokens import sanitize_name
from tokensync.rules.models import ClassificationRules


@dataclass(frozen=True)
class SetClassificationPolicy:
    """Group-name to set-name lookup with a precedence order."""

    group_to_set: dict[str, str] = field(default_factory=dict)
    precedence: tuple[str, ...] = ()
    aliases: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_rules(cls, rules: ClassificationRules) -> "SetClassificationPolicy":
        group_to_set: dict[str, str] = {}
        for bucket in rules.buckets:
            for group in bucket.groups:
                # First bucket listing a group owns it
                group_to_set.setdefault(group, bucket.name)
        return cls(
            group_to_set=group_to_set,
            precedence=tuple(rules.precedence),
            aliases=dict(rules.aliases),
        )

    def set_for_group(self, group_name: str) -> str:
        """Set name for a top-level group; unknown groups get their own set."""
        if group_name in self.group_to_set:
            return self.group_to_set[group_name]
        normalized = sanitize_name(group_name) or "unnamed"
        return self.aliases.get(normalized, normalized)

    def order_sets(self, set_names: Iterable[str], preferred: Iterable[str] = ()) -> list[str]:
        """
        Order set names: preferred names first (when present), then the
        precedence list, then the rest in the order given.
        """
        available = list(dict.fromkeys(set_names))
        ordered: list[str] = []
        for name in [*preferred, *self.precedence, *available]:
            if name in available and name not in ordered:
                ordered.append(name)
        return ordered


DEFAULT_POLICY = SetClassificationPolicy.from_rules(ClassificationRules())
