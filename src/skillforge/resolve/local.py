"""Resolution of skills stored on the local filesystem."""

from pathlib import Path
from typing import Optional

from skillforge.core.errors import ResolutionError, SkillNotFoundError
from skillforge.core.types import LocalSource, Skill
from skillforge.resolve.parse import parse_skill_md
from skillforge.utils.paths import expand_path


def resolve_local(path: Path, base_path: Optional[Path] = None) -> Skill:
    """Read and parse a local SKILL.md file.

    A directory is accepted when it contains a ``SKILL.md`` file.

    Args:
        path: File or skill directory
        base_path: Directory relative paths are resolved against

    Returns:
        The parsed Skill with a LocalSource

    Raises:
        SkillNotFoundError: If nothing exists at the path
        ResolutionError: If the file cannot be read
        SkillParseError: If the file content is malformed
    """
    path = Path(path).expanduser()
    if not path.is_absolute() and base_path is not None:
        path = Path(base_path) / path
    path = expand_path(str(path))

    if path.is_dir():
        path = path / "SKILL.md"
    if not path.is_file():
        raise SkillNotFoundError(f"Skill file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ResolutionError(f"Could not read {path}: {e}") from e

    parsed = parse_skill_md(content, str(path))
    return Skill(
        name=parsed.name,
        description=parsed.description,
        instructions=parsed.instructions,
        source=LocalSource(path=path),
        metadata=parsed.frontmatter or None,
    )
