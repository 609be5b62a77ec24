"""Tests for SKILL.md parsing and reconstruction."""

import pytest

from skillforge.core.errors import SkillParseError
from skillforge.core.types import Skill
from skillforge.resolve.parse import UNNAMED_SKILL, parse_skill_md, reconstruct_skill_md


class TestParseSkillMd:
    """Test parse_skill_md()."""

    def test_frontmatter(self, sample_skill_md):
        """Test name, description and body."""
        parsed = parse_skill_md(sample_skill_md)

        assert parsed.name == "sample-skill"
        assert parsed.description == "A sample skill for testing"
        assert parsed.instructions.startswith("# Sample Skill")
        assert parsed.frontmatter["version"] == "1.0.0"
        assert parsed.raw_content == sample_skill_md

    def test_no_frontmatter(self):
        """Test that plain markdown is all instructions."""
        parsed = parse_skill_md("# Just text\n\nDo things.", "skills/plain.md")

        assert parsed.name == "plain"
        assert parsed.instructions == "# Just text\n\nDo things."
        assert parsed.frontmatter == {}

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("skills/review/SKILL.md", "review"),
            ("skills/review.md", "review"),
            ("skills/SKILL.review.md", "review"),
            (None, UNNAMED_SKILL),
        ],
    )
    def test_name_fallback(self, path, expected):
        """Test names derived from the file path."""
        parsed = parse_skill_md("---\ndescription: d\n---\nBody", path)

        assert parsed.name == expected

    def test_empty_frontmatter(self):
        """Test an empty frontmatter block."""
        parsed = parse_skill_md("---\n---\nBody", "x.md")

        assert parsed.name == "x"
        assert parsed.instructions == "Body"

    def test_dashes_inside_value(self):
        """Test that --- inside a value does not close the block."""
        parsed = parse_skill_md('---\nname: s\ndescription: "a --- b"\n---\nBody')

        assert parsed.description == "a --- b"
        assert parsed.instructions == "Body"

    def test_non_string_description_ignored(self):
        """Test that a non-string description is dropped."""
        parsed = parse_skill_md("---\nname: s\ndescription: 3\n---\nBody")

        assert parsed.description is None

    def test_unclosed_frontmatter(self):
        """Test that an unterminated block is an error."""
        with pytest.raises(SkillParseError):
            parse_skill_md("---\nname: s\nBody without end")

    def test_invalid_yaml(self):
        """Test that malformed YAML is an error."""
        with pytest.raises(SkillParseError):
            parse_skill_md("---\nname: [unclosed\n---\nBody")

    def test_non_mapping_frontmatter(self):
        """Test that a YAML list is rejected."""
        with pytest.raises(SkillParseError):
            parse_skill_md("---\n- a\n- b\n---\nBody")


class TestReconstructSkillMd:
    """Test reconstruct_skill_md()."""

    def test_round_trip(self):
        """Test that a reconstructed file parses back to the same skill."""
        skill = Skill(
            name="review",
            description="Review code",
            instructions="# Review\n\nLook closely.",
            metadata={"name": "review", "version": "2.0"},
        )

        parsed = parse_skill_md(reconstruct_skill_md(skill))

        assert parsed.name == "review"
        assert parsed.description == "Review code"
        assert parsed.instructions == skill.instructions
        assert parsed.frontmatter["version"] == "2.0"

    def test_name_first(self):
        """Test that the name is the first frontmatter key."""
        text = reconstruct_skill_md(Skill(name="s", instructions="x"))

        assert text.startswith("---\nname: s\n---\n")
