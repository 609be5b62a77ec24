"""Core composition models.

A composition is a tree of immutable nodes. Leaves wrap a single ``Skill``;
inner nodes describe how their children combine (in order, concurrently,
conditionally, or with injected configuration).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union


@dataclass(frozen=True)
class InlineSource:
    """Skill defined inline in a composition file."""


@dataclass(frozen=True)
class LocalSource:
    """Skill loaded from a local SKILL.md file."""

    path: Path


@dataclass(frozen=True)
class GitHubSource:
    """Skill fetched from a GitHub repository."""

    owner: str
    repo: str
    path: str
    ref: Optional[str] = None

    @property
    def url(self) -> str:
        """Browser URL for the skill file."""
        return f"https://github.com/{self.owner}/{self.repo}/blob/{self.ref or 'HEAD'}/{self.path}"


@dataclass(frozen=True)
class GitSource:
    """Skill read from an arbitrary git repository."""

    url: str
    path: str
    ref: Optional[str] = None


SkillSource = Union[InlineSource, LocalSource, GitHubSource, GitSource]


@dataclass(frozen=True)
class Skill:
    """A single instruction document."""

    name: str
    instructions: str
    description: Optional[str] = None
    source: SkillSource = field(default_factory=InlineSource)
    metadata: Optional[dict[str, Any]] = field(default=None, hash=False, compare=True)


@dataclass(frozen=True)
class SkillNode:
    """Leaf node holding one skill."""

    skill: Skill


@dataclass(frozen=True)
class SequenceNode:
    """Children execute in strict order."""

    nodes: tuple["CompositionNode", ...]


@dataclass(frozen=True)
class ConcurrentNode:
    """Children execute without an ordering constraint."""

    nodes: tuple["CompositionNode", ...]


@dataclass(frozen=True)
class BranchNode:
    """Runtime conditional between a required and an optional subtree.

    ``when`` is an opaque expression for the synthesized document; it is never
    evaluated here.
    """

    when: str
    then: "CompositionNode"
    otherwise: Optional["CompositionNode"] = None


@dataclass(frozen=True)
class HydratedNode:
    """A subtree annotated with extra configuration.

    The config mapping is kept as the caller passed it. The describer relies
    on object identity when merging configs for the same skill.
    """

    node: "CompositionNode"
    config: Mapping[str, Any] = field(hash=False)


CompositionNode = Union[SkillNode, SequenceNode, ConcurrentNode, BranchNode, HydratedNode]

COMPOSITION_NODE_TYPES = (SkillNode, SequenceNode, ConcurrentNode, BranchNode, HydratedNode)


def is_composition_node(value: Any) -> bool:
    """Return True if value is one of the composition node types."""
    return isinstance(value, COMPOSITION_NODE_TYPES)

