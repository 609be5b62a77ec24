"""SKILL.md parsing and serialization."""

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Optional

import yaml

from skillforge.core.errors import SkillParseError
from skillforge.core.types import Skill

UNNAMED_SKILL = "unnamed-skill"


@dataclass
class ParsedSkill:
    """Contents of a SKILL.md file split into frontmatter and body."""

    name: str
    instructions: str
    raw_content: str
    description: Optional[str] = None
    frontmatter: dict[str, Any] = field(default_factory=dict)


def parse_skill_md(content: str, source_path: Optional[str] = None) -> ParsedSkill:
    """Parse SKILL.md content.

    Files without frontmatter are treated as pure instructions. The name
    comes from the ``name`` frontmatter key, falling back to the file name.

    Args:
        content: Raw file content
        source_path: Where the content came from, used for the fallback
            name and in error messages

    Returns:
        ParsedSkill

    Raises:
        SkillParseError: If the frontmatter is unterminated or not a YAML mapping
    """
    trimmed = content.strip()
    where = source_path or "unknown"

    if not trimmed.startswith("---"):
        return ParsedSkill(
            name=_name_from_path(source_path) or UNNAMED_SKILL,
            instructions=trimmed,
            raw_content=content,
        )

    match = re.match(r"^---[ \t]*\n(?:(.*?)\n)?---[ \t]*(?:\n|$)", trimmed, re.DOTALL)
    if not match:
        raise SkillParseError(f"Invalid SKILL.md: frontmatter not closed in {where}")

    try:
        frontmatter = yaml.safe_load(match.group(1) or "") or {}
    except yaml.YAMLError as e:
        raise SkillParseError(f"Invalid YAML frontmatter in {where}: {e}") from e

    if not isinstance(frontmatter, dict):
        raise SkillParseError(f"Frontmatter in {where} must be a mapping")

    name = frontmatter.get("name")
    if not isinstance(name, str) or not name.strip():
        name = _name_from_path(source_path) or UNNAMED_SKILL

    description = frontmatter.get("description")
    if not isinstance(description, str):
        description = None

    return ParsedSkill(
        name=name.strip(),
        instructions=trimmed[match.end():].strip(),
        raw_content=content,
        description=description,
        frontmatter=frontmatter,
    )


def _name_from_path(path: Optional[str]) -> Optional[str]:
    """Derive a skill name from a file path.

    ``skills/review.md`` gives ``review``; ``skills/review/SKILL.md`` gives
    ``review``; ``SKILL.review.md`` gives ``review``.
    """
    if not path:
        return None

    pure = PurePosixPath(str(path).replace("\\", "/"))
    stem = re.sub(r"\.md$", "", pure.name, flags=re.IGNORECASE)
    if stem.upper() == "SKILL":
        return pure.parent.name or None
    stem = re.sub(r"^skill\.", "", stem, flags=re.IGNORECASE)
    return stem or None


def reconstruct_skill_md(skill: Skill) -> str:
    """Serialize a skill back into SKILL.md format."""
    frontmatter: dict[str, Any] = {"name": skill.name}
    if skill.metadata:
        frontmatter.update(
            {k: v for k, v in skill.metadata.items() if k not in ("name", "description")}
        )
    if skill.description:
        frontmatter["description"] = skill.description

    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True).strip()
    return f"---\n{header}\n---\n\n{skill.instructions}\n"
