"""Composition model: node types, factories and errors."""

from skillforge.core.compose import (
    SkillDefinition,
    branch,
    concurrent,
    from_skill,
    hydrate,
    leaf,
    sequence,
)
from skillforge.core.errors import (
    CompositionError,
    EmptyChildrenError,
    EmptyHydrationConfigError,
    InvalidSkillError,
    MissingConditionError,
    MissingNodeError,
    MissingThenBranchError,
)
from skillforge.core.types import (
    BranchNode,
    CompositionNode,
    ConcurrentNode,
    GitHubSource,
    GitSource,
    HydratedNode,
    InlineSource,
    LocalSource,
    SequenceNode,
    Skill,
    SkillNode,
    SkillSource,
)

__all__ = [
    # Factories
    "SkillDefinition",
    "branch",
    "concurrent",
    "from_skill",
    "hydrate",
    "leaf",
    "sequence",
    # Errors
    "CompositionError",
    "EmptyChildrenError",
    "EmptyHydrationConfigError",
    "InvalidSkillError",
    "MissingConditionError",
    "MissingNodeError",
    "MissingThenBranchError",
    # Types
    "BranchNode",
    "CompositionNode",
    "ConcurrentNode",
    "GitHubSource",
    "GitSource",
    "HydratedNode",
    "InlineSource",
    "LocalSource",
    "SequenceNode",
    "Skill",
    "SkillNode",
    "SkillSource",
]
