"""Tests for the composition describer and compiler prompt formatting."""

import pytest

from skillforge.compiler.describe import (
    CompositionPattern,
    calculate_depth,
    describe_composition,
    format_for_compiler,
)
from skillforge.core import branch, concurrent, hydrate, leaf, sequence


def make_leaf(name, instructions=None):
    """Build a leaf with default instructions."""
    return leaf({"name": name, "instructions": instructions or f"Do {name}."})


class TestDescribeLeaf:
    """Test describing a single leaf."""

    def test_single_leaf(self):
        """Test that a lone leaf yields one skill, no patterns and depth 1."""
        result = describe_composition(make_leaf("s1"))

        assert [s.name for s in result.skills] == ["s1"]
        assert result.patterns == set()
        assert result.max_depth == 1

    def test_leaf_outline(self):
        """Test the outline of a leaf."""
        result = describe_composition(make_leaf("s1", "Search the logs."))

        assert result.outline == 'SKILL "s1"\n  Instructions: Search the logs.'

    def test_long_instructions_are_truncated_in_outline(self):
        """Test that the outline preview stops at 200 characters."""
        instructions = "word " * 100
        result = describe_composition(make_leaf("long", instructions))

        preview = result.outline.split("Instructions: ", 1)[1]
        assert len(preview) == 200
        assert preview.endswith("...")
        assert result.skills[0].instructions == instructions.strip()


class TestDescribeStructure:
    """Test describing sequences, parallel groups and branches."""

    def test_sequence(self):
        """Test sequence patterns, numbering and depth."""
        result = describe_composition(sequence(make_leaf("a"), make_leaf("b")))

        assert CompositionPattern.SEQUENTIAL in result.patterns
        assert len(result.skills) == 2
        assert result.max_depth == 2
        assert "SEQUENCE" in result.outline
        assert result.outline.index('1. SKILL "a"') < result.outline.index('2. SKILL "b"')

    def test_concurrent(self):
        """Test parallel patterns and bullets."""
        result = describe_composition(concurrent(make_leaf("a"), make_leaf("b")))

        assert CompositionPattern.PARALLEL in result.patterns
        assert "PARALLEL (execute concurrently):" in result.outline
        assert '- SKILL "a"' in result.outline
        assert '- SKILL "b"' in result.outline

    def test_branch(self):
        """Test that the condition and both arms appear in the outline."""
        result = describe_composition(
            branch(when="x==1", then=make_leaf("t"), else_=make_leaf("e"))
        )

        assert CompositionPattern.CONDITIONAL in result.patterns
        assert 'BRANCH on condition: "x==1"' in result.outline
        assert "THEN:" in result.outline
        assert "ELSE:" in result.outline
        assert result.outline.index("THEN:") < result.outline.index('SKILL "t"')
        assert result.outline.index("ELSE:") < result.outline.index('SKILL "e"')

    def test_branch_without_else(self):
        """Test that no ELSE block is emitted without an else arm."""
        result = describe_composition(branch(when="ready", then=make_leaf("t")))

        assert "THEN:" in result.outline
        assert "ELSE:" not in result.outline

    def test_nested_outline_indentation(self):
        """Test that nested structures are indented one level deeper."""
        result = describe_composition(
            sequence(concurrent(make_leaf("a"), make_leaf("b")), make_leaf("c"))
        )

        lines = result.outline.splitlines()
        assert lines[0] == "SEQUENCE (execute in order):"
        assert lines[1] == "  1. PARALLEL (execute concurrently):"
        assert lines[2] == '    - SKILL "a"'

    def test_skills_in_first_visit_order(self):
        """Test that skills are listed in depth-first order."""
        result = describe_composition(
            sequence(make_leaf("c"), concurrent(make_leaf("a"), make_leaf("b")))
        )

        assert [s.name for s in result.skills] == ["c", "a", "b"]

    def test_ordered_patterns(self, incident_composition):
        """Test that ordered_patterns follows declaration order."""
        result = describe_composition(incident_composition)

        assert result.ordered_patterns() == [
            CompositionPattern.SEQUENTIAL,
            CompositionPattern.PARALLEL,
            CompositionPattern.CONDITIONAL,
            CompositionPattern.HYDRATED,
        ]


class TestDescribeHydration:
    """Test how hydration configs are collected."""

    def test_hydrated_leaf(self):
        """Test that the config is recorded on the skill."""
        result = describe_composition(hydrate(make_leaf("s"), {"a": 1}))

        assert CompositionPattern.HYDRATED in result.patterns
        assert result.skills[0].hydrations == [{"a": 1}]

    def test_hydration_is_transparent_in_outline(self):
        """Test that hydration adds a note instead of a level."""
        result = describe_composition(hydrate(make_leaf("s"), {"a": 1}))

        assert result.outline.startswith('SKILL "s" [with config: [{"a": 1}]]')
        assert result.max_depth == 1

    def test_nested_hydrations_are_ordered_outer_first(self):
        """Test that configs accumulate from the root down."""
        outer = {"team": "sre"}
        inner = {"service": "payments"}
        result = describe_composition(hydrate(sequence(hydrate(make_leaf("s"), inner)), outer))

        assert result.skills[0].hydrations == [outer, inner]

    def test_hydration_applies_to_every_descendant(self):
        """Test that a config on a subtree reaches each leaf below it."""
        config = {"env": "prod"}
        result = describe_composition(hydrate(sequence(make_leaf("a"), make_leaf("b")), config))

        assert all(s.hydrations == [config] for s in result.skills)

    def test_same_config_object_recorded_once(self):
        """Test identity-based deduplication of the same config object."""
        config = {"a": 1}
        skill = make_leaf("s")
        result = describe_composition(sequence(hydrate(skill, config), hydrate(skill, config)))

        assert len(result.skills) == 1
        assert len(result.skills[0].hydrations) == 1
        assert result.skills[0].hydrations[0] is config

    def test_equal_but_distinct_configs_both_recorded(self):
        """Test that structurally equal configs from different objects are kept."""
        skill = make_leaf("s")
        result = describe_composition(
            sequence(hydrate(skill, {"a": 1}), hydrate(skill, {"a": 1}))
        )

        assert result.skills[0].hydrations == [{"a": 1}, {"a": 1}]

    def test_unhydrated_visit_does_not_drop_configs(self):
        """Test that a later plain visit keeps earlier configs."""
        skill = make_leaf("s")
        result = describe_composition(sequence(hydrate(skill, {"a": 1}), skill))

        assert result.skills[0].hydrations == [{"a": 1}]


class TestDepth:
    """Test calculate_depth()."""

    def test_depth_of_nested_composition(self):
        """Test sequence(concurrent(leaf, leaf), leaf) has depth 3."""
        node = sequence(concurrent(make_leaf("a"), make_leaf("b")), make_leaf("c"))

        assert calculate_depth(node) == 3

    def test_branch_depth_uses_deeper_arm(self):
        """Test that the deeper branch arm determines the depth."""
        node = branch(when="c", then=make_leaf("t"), else_=sequence(sequence(make_leaf("e"))))

        assert calculate_depth(node) == 4

    def test_hydration_does_not_add_depth(self):
        """Test that hydrated wrappers are not a level."""
        node = hydrate(hydrate(make_leaf("s"), {"a": 1}), {"b": 2})

        assert calculate_depth(node) == 1

    def test_foreign_object_raises_type_error(self):
        """Test that non-nodes are rejected."""
        with pytest.raises(TypeError):
            calculate_depth("leaf")


class TestIdempotence:
    """Test that describing is repeatable."""

    def test_two_calls_give_equal_results(self, incident_composition):
        """Test that repeated calls produce equal, independent results."""
        first = describe_composition(incident_composition)
        second = describe_composition(incident_composition)

        assert first == second
        assert first.skills is not second.skills


class TestFormatForCompiler:
    """Test format_for_compiler()."""

    def test_sections(self, incident_composition):
        """Test that all sections are present."""
        text = format_for_compiler(describe_composition(incident_composition), "incident")

        assert text.startswith("# Skill Composition: incident\n")
        assert "## Composition Patterns Used: sequential, parallel, conditional, hydrated" in text
        assert "## Composition Tree:" in text
        assert "## Individual Skills:" in text
        assert "### a\n" in text
        assert "### b\n" in text

    def test_simple_pattern_for_single_leaf(self):
        """Test that a lone skill is reported as simple."""
        text = format_for_compiler(describe_composition(make_leaf("s")), "s")

        assert "## Composition Patterns Used: simple" in text

    def test_hydrations_listed(self):
        """Test that hydrated skills list their configs as JSON."""
        text = format_for_compiler(
            describe_composition(hydrate(make_leaf("s"), {"service": "payments"})), "s"
        )

        assert "**Hydrated with:**" in text
        assert '"service": "payments"' in text

    def test_description_quoted(self):
        """Test that skill descriptions are rendered as quotes."""
        node = leaf({"name": "s", "instructions": "x", "description": "Finds things"})
        text = format_for_compiler(describe_composition(node), "s")

        assert "> Finds things" in text
