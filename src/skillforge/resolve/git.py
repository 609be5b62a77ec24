"""Skill resolution from arbitrary git repositories via shallow clones."""

import asyncio
import hashlib
import json
import shutil
from datetime import datetime, timezone
from pathlib import Path

from skillforge.core.errors import ResolutionError, SkillNotFoundError
from skillforge.core.types import GitSource, Skill
from skillforge.resolve.cache import SkillCache
from skillforge.resolve.parse import parse_skill_md
from skillforge.resolve.reference import GitReference
from skillforge.utils.paths import ensure_dir, expand_path


class GitResolver:
    """Resolver that clones repositories with the ``git`` executable.

    Clones are kept under the cache directory and re-cloned once older than
    the TTL.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl_seconds: int = SkillCache.DEFAULT_TTL_SECONDS,
        git_executable: str = "git",
    ):
        self.cache_dir = expand_path(str(cache_dir))
        self.ttl_seconds = ttl_seconds
        self.git_executable = git_executable
        # Expiry bookkeeping shares the metadata format of the file cache
        self._cache = SkillCache(self.cache_dir, ttl_seconds)

    def clone_dir(self, reference: GitReference) -> Path:
        """Directory a repository at a given ref is cloned into."""
        identifier = f"{reference.url}@{reference.ref or 'HEAD'}"
        digest = hashlib.sha256(identifier.encode()).hexdigest()[:16]
        return self.cache_dir / f"git-{digest}"

    async def resolve(self, reference: GitReference, force_refresh: bool = False) -> Skill:
        """Clone (or reuse) the repository and parse the skill file.

        Raises:
            ResolutionError: If git fails, the path leaves the repository
                or the file cannot be read
            SkillNotFoundError: If the path does not exist in the repository
        """
        target = self.clone_dir(reference)

        if force_refresh or not target.is_dir() or self._cache.is_expired(target):
            await self._clone(reference, target)

        skill_path = (target / reference.path).resolve()
        if not skill_path.is_relative_to(target.resolve()):
            raise ResolutionError(
                f"Path escapes the repository {reference.url}: {reference.path}"
            )
        if skill_path.is_dir():
            skill_path = skill_path / "SKILL.md"
        if not skill_path.is_file():
            raise SkillNotFoundError(
                f"Skill not found in {reference.url}: {reference.path}"
            )

        try:
            content = skill_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ResolutionError(f"Could not read {skill_path}: {e}") from e

        parsed = parse_skill_md(content, f"git:{reference.url}/{reference.path}")
        return Skill(
            name=parsed.name,
            description=parsed.description,
            instructions=parsed.instructions,
            source=GitSource(url=reference.url, path=reference.path, ref=reference.ref),
            metadata=parsed.frontmatter or None,
        )

    async def _clone(self, reference: GitReference, target: Path) -> None:
        if target.exists():
            shutil.rmtree(target, ignore_errors=True)
        ensure_dir(target.parent)

        args = [self.git_executable, "clone", "--depth", "1"]
        if reference.ref:
            args += ["--branch", reference.ref]
        args += [reference.url, str(target)]

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ResolutionError(f"git executable not found: {self.git_executable}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            shutil.rmtree(target, ignore_errors=True)
            raise ResolutionError(
                f"git clone of {reference.url} failed: {stderr.decode(errors='replace').strip()}"
            )

        metadata = {
            "cached_at": datetime.now(timezone.utc).isoformat(),
            "url": reference.url,
            "ref": reference.ref,
        }
        (target / SkillCache.METADATA_FILE).write_text(json.dumps(metadata, indent=2))
