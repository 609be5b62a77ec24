"""Abstract interface for resolving skills from various sources."""

from typing import Protocol, TypeVar

from skillforge.core.types import Skill

ReferenceT = TypeVar("ReferenceT", contravariant=True)


class SkillResolver(Protocol[ReferenceT]):
    """Abstract interface for resolving a parsed reference into a Skill."""

    async def resolve(self, reference: ReferenceT, force_refresh: bool = False) -> Skill:
        """Resolve a reference.

        Args:
            reference: Parsed reference describing where the skill lives
            force_refresh: Bypass any cached copy

        Returns:
            The resolved Skill

        Raises:
            ResolutionError: If the skill cannot be found or parsed
        """
        ...
