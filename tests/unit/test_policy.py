"""
Set classification policy and directory layout helper tests.
"""

from __future__ import annotations

import pytest

from tokensync.domain.layout import (
    METADATA_FILE,
    THEMES_FILE,
    default_companion,
    derive_themes,
    is_companion_file,
    set_file_name,
    set_name_for_file,
    theme_id,
)
from tokensync.domain.policy import DEFAULT_POLICY, SetClassificationPolicy
from tokensync.rules.models import ClassificationRules, SetBucketRule


class TestSetForGroup:
    """Tests for mapping top-level groups to sets."""

    @pytest.mark.parametrize(
        ("group", "expected"),
        [
            ("Color Ramp", "core"),
            ("color", "core"),
            ("spacing", "core"),
            ("light", "global"),
            ("borderRadius", "global"),
            ("button", "components"),
            ("CTA", "components"),
            ("appBackground", "simulate"),
            ("brand", "simulate"),
        ],
    )
    def test_known_groups(self, group: str, expected: str) -> None:
        """Groups named in the default table map to their bucket."""
        assert DEFAULT_POLICY.set_for_group(group) == expected

    def test_unknown_group_gets_own_set(self) -> None:
        """An unknown group becomes a set of its sanitized name."""
        assert DEFAULT_POLICY.set_for_group("Motion Curves") == "motion-curves"

    def test_alias_applies(self) -> None:
        """Sanitized names with an alias resolve to the aliased set name."""
        assert DEFAULT_POLICY.set_for_group("Content Typography") == "Content Typography"

    def test_unsanitizable_name(self) -> None:
        """A name with no safe characters falls back to 'unnamed'."""
        assert DEFAULT_POLICY.set_for_group("***") == "unnamed"

    def test_first_bucket_wins(self) -> None:
        """A group listed in two buckets belongs to the first one."""
        rules = ClassificationRules(
            buckets=[
                SetBucketRule(name="base", groups=["color"]),
                SetBucketRule(name="extra", groups=["color", "motion"]),
            ],
            precedence=["base", "extra"],
            aliases={},
        )
        policy = SetClassificationPolicy.from_rules(rules)
        assert policy.set_for_group("color") == "base"
        assert policy.set_for_group("motion") == "extra"


class TestOrderSets:
    """Tests for set precedence ordering."""

    def test_precedence_then_rest(self) -> None:
        """Precedence sets come first; unknown sets keep their given order."""
        ordered = DEFAULT_POLICY.order_sets(["zeta", "simulate", "alpha", "core"])
        assert ordered == ["core", "simulate", "zeta", "alpha"]

    def test_preferred_first(self) -> None:
        """Preferred names lead when they are present."""
        ordered = DEFAULT_POLICY.order_sets(["core", "global", "zeta"], preferred=["zeta", "gone"])
        assert ordered == ["zeta", "core", "global"]

    def test_duplicates_dropped(self) -> None:
        """Each set name appears once."""
        assert DEFAULT_POLICY.order_sets(["core", "core", "global"]) == ["core", "global"]


class TestLayoutHelpers:
    """Tests for file naming and companion defaults."""

    def test_set_file_name(self) -> None:
        """Set names are sanitized into file names."""
        assert set_file_name("Content Typography") == "content-typography.json"

    def test_set_name_for_file_known(self) -> None:
        """A known set name is recovered from its file name."""
        known = ["core", "Content Typography"]
        assert set_name_for_file("content-typography.json", known) == "Content Typography"

    def test_set_name_for_file_unknown(self) -> None:
        """Unknown files map to their stem."""
        assert set_name_for_file("extras.json") == "extras"

    def test_companion_files(self) -> None:
        """Companion files are the $-prefixed ones."""
        assert is_companion_file(METADATA_FILE)
        assert is_companion_file(THEMES_FILE)
        assert not is_companion_file("core.json")

    def test_default_companion(self) -> None:
        """Defaults are an empty order and an empty theme list."""
        assert default_companion(METADATA_FILE) == {"tokenSetOrder": []}
        assert default_companion(THEMES_FILE) == []
        with pytest.raises(ValueError):
            default_companion("core.json")


class TestDeriveThemes:
    """Tests for default theme derivation."""

    def test_cumulative_selection(self) -> None:
        """Each theme enables every set up to and including its own."""
        themes = derive_themes(["core", "global", "components"])
        assert [theme["name"] for theme in themes] == ["core", "global", "components"]
        assert themes[0]["selectedTokenSets"] == {"core": "enabled"}
        assert themes[2]["selectedTokenSets"] == {
            "core": "enabled",
            "global": "enabled",
            "components": "enabled",
        }

    def test_ids_deterministic(self) -> None:
        """Theme ids depend only on the theme name."""
        themes = derive_themes(["core"])
        assert themes[0]["id"] == theme_id("core")
        assert derive_themes(["core"]) == themes

    def test_vendor_blocks_present(self) -> None:
        """Derived themes carry empty Figma reference blocks."""
        theme = derive_themes(["core"])[0]
        assert theme["$figmaStyleReferences"] == {}
        assert theme["$figmaVariableReferences"] == {}

    def test_empty_order(self) -> None:
        """No sets means no themes."""
        assert derive_themes([]) == []
