"""Validated factories for building compositions.

Every factory checks its invariants before building anything and returns a
new node; existing nodes are never modified.

Example:
    >>> search = leaf({"name": "search", "instructions": "Search the logs."})
    >>> summarize = leaf({"name": "summarize", "instructions": "Summarize."})
    >>> workflow = sequence(hydrate(search, {"service": "payments"}), summarize)
"""

from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from skillforge.core.errors import (
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
    HydratedNode,
    InlineSource,
    SequenceNode,
    Skill,
    SkillNode,
    SkillSource,
    is_composition_node,
)


class SkillDefinition(BaseModel):
    """Inline definition of a skill."""

    name: str = Field(description="Unique skill name")
    instructions: str = Field(description="Instruction text for the skill")
    description: Optional[str] = Field(
        default=None, description="Human-readable description"
    )
    metadata: Optional[dict[str, Any]] = Field(
        default=None, description="Arbitrary extra metadata"
    )

    @field_validator("name", "instructions")
    @classmethod
    def validate_not_blank(cls, v: str, info: ValidationInfo) -> str:
        """Strip surrounding whitespace and reject blank values."""
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} must not be empty")
        return v


def leaf(
    definition: Union[SkillDefinition, Mapping[str, Any], Skill],
    source: Optional[SkillSource] = None,
) -> SkillNode:
    """Create a leaf node from an inline definition.

    Args:
        definition: A SkillDefinition, a mapping with the same keys, or a Skill
        source: Where the skill came from (defaults to inline)

    Returns:
        A new SkillNode

    Raises:
        InvalidSkillError: If the name or the instructions are missing or empty
    """
    if isinstance(definition, Skill):
        return from_skill(definition)

    if isinstance(definition, Mapping):
        try:
            definition = SkillDefinition.model_validate(dict(definition))
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "definition"
            raise InvalidSkillError(f"requires a valid {field}: {first['msg']}") from e

    skill = Skill(
        name=definition.name,
        instructions=definition.instructions,
        description=definition.description,
        source=source if source is not None else InlineSource(),
        metadata=dict(definition.metadata) if definition.metadata else None,
    )
    return SkillNode(skill=skill)


def from_skill(skill: Skill) -> SkillNode:
    """Wrap an already-loaded Skill, as returned by the resolvers."""
    if not skill.name:
        raise InvalidSkillError("requires a non-empty name")
    if not skill.instructions:
        raise InvalidSkillError(f'requires non-empty instructions (skill "{skill.name}")')
    return SkillNode(skill=skill)


def _check_children(constructor: str, children: tuple[Any, ...]) -> None:
    if not children:
        raise EmptyChildrenError(constructor)
    for child in children:
        if not is_composition_node(child):
            raise TypeError(
                f"{constructor}() expects composition nodes, got {type(child).__name__}"
            )


def sequence(*nodes: CompositionNode) -> SequenceNode:
    """Compose nodes to execute in order.

    Raises:
        EmptyChildrenError: If no nodes are given
    """
    _check_children("sequence", nodes)
    return SequenceNode(nodes=tuple(nodes))


def concurrent(*nodes: CompositionNode) -> ConcurrentNode:
    """Compose nodes to execute concurrently.

    Raises:
        EmptyChildrenError: If no nodes are given
    """
    _check_children("concurrent", nodes)
    return ConcurrentNode(nodes=tuple(nodes))


def branch(
    when: Optional[str],
    then: Optional[CompositionNode],
    else_: Optional[CompositionNode] = None,
) -> BranchNode:
    """Create a conditional branch.

    Args:
        when: Condition expression, passed through to the synthesized document
        then: Node taken when the condition holds
        else_: Optional node taken otherwise

    Raises:
        MissingConditionError: If when is empty
        MissingThenBranchError: If then is missing
    """
    if not when or not when.strip():
        raise MissingConditionError()
    if then is None:
        raise MissingThenBranchError()
    for child in (then, else_):
        if child is not None and not is_composition_node(child):
            raise TypeError(f"branch() expects composition nodes, got {type(child).__name__}")

    return BranchNode(when=when, then=then, otherwise=else_)


def hydrate(node: Optional[CompositionNode], config: Optional[Mapping[str, Any]]) -> HydratedNode:
    """Inject configuration into a node.

    Raises:
        MissingNodeError: If node is missing
        EmptyHydrationConfigError: If config is empty
    """
    if node is None:
        raise MissingNodeError()
    if not is_composition_node(node):
        raise TypeError(f"hydrate() expects a composition node, got {type(node).__name__}")
    if not config:
        raise EmptyHydrationConfigError()

    return HydratedNode(node=node, config=config)
