"""Resolution of skill references into Skill objects."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from skillforge.core.types import Skill, SkillNode
from skillforge.resolve.cache import SkillCache
from skillforge.resolve.git import GitResolver
from skillforge.resolve.github import GitHubResolver
from skillforge.resolve.local import resolve_local
from skillforge.resolve.parse import ParsedSkill, parse_skill_md, reconstruct_skill_md
from skillforge.resolve.protocols import SkillResolver
from skillforge.resolve.reference import (
    GitHubReference,
    GitReference,
    LocalReference,
    SkillReference,
    parse_reference,
)


@dataclass
class ResolveContext:
    """Settings shared by the resolvers.

    Attributes:
        cache_dir: Root cache directory; GitHub files and git clones live
            in subdirectories
        ttl_seconds: Lifetime of cached entries
        github_token: Token for GitHub API requests (defaults to GITHUB_TOKEN)
        base_path: Directory relative local references are resolved against
        force_refresh: Ignore cached entries
    """

    cache_dir: Path = field(default_factory=lambda: Path("~/.cache/skillforge"))
    ttl_seconds: int = SkillCache.DEFAULT_TTL_SECONDS
    github_token: Optional[str] = field(default_factory=lambda: os.getenv("GITHUB_TOKEN"))
    base_path: Optional[Path] = None
    force_refresh: bool = False

    def github_resolver(self) -> GitHubResolver:
        cache = SkillCache(Path(self.cache_dir) / "github", self.ttl_seconds)
        return GitHubResolver(token=self.github_token, cache=cache)

    def git_resolver(self) -> GitResolver:
        return GitResolver(Path(self.cache_dir) / "git", self.ttl_seconds)


async def resolve_skill(reference: str, context: Optional[ResolveContext] = None) -> Skill:
    """Resolve a reference string into a Skill.

    Args:
        reference: Local path, ``github:`` or ``git:`` reference, or GitHub URL
        context: Resolver settings (defaults apply when omitted)

    Raises:
        InvalidReferenceError: If the reference is malformed
        ResolutionError: If the skill cannot be fetched or read
    """
    context = context or ResolveContext()
    parsed = parse_reference(reference, context.base_path)

    if isinstance(parsed, LocalReference):
        return resolve_local(parsed.path)

    resolver: SkillResolver
    if isinstance(parsed, GitHubReference):
        resolver = context.github_resolver()
    else:
        resolver = context.git_resolver()
    return await resolver.resolve(parsed, context.force_refresh)


async def import_skill(reference: str, context: Optional[ResolveContext] = None) -> SkillNode:
    """Resolve a reference and wrap the skill in a leaf node."""
    return SkillNode(skill=await resolve_skill(reference, context))


__all__ = [
    "GitHubReference",
    "GitHubResolver",
    "GitReference",
    "GitResolver",
    "LocalReference",
    "ParsedSkill",
    "ResolveContext",
    "SkillCache",
    "SkillReference",
    "SkillResolver",
    "import_skill",
    "parse_reference",
    "parse_skill_md",
    "reconstruct_skill_md",
    "resolve_local",
    "resolve_skill",
]
