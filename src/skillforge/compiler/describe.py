"""Composition describer.

Turns a composition tree into a structured outline that the synthesizer can
read, together with the list of skills it references, the composition
patterns in use and the depth of the tree.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from skillforge.core.types import (
    BranchNode,
    CompositionNode,
    ConcurrentNode,
    HydratedNode,
    SequenceNode,
    SkillNode,
)

INSTRUCTIONS_PREVIEW_LENGTH = 200


class CompositionPattern(str, Enum):
    """Structural patterns a composition can use."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CONDITIONAL = "conditional"
    HYDRATED = "hydrated"


@dataclass
class SkillSummary:
    """A skill referenced by a composition and the configs injected into it."""

    name: str
    instructions: str
    description: Optional[str] = None
    hydrations: list[Mapping[str, Any]] = field(default_factory=list)


@dataclass
class CompositionDescription:
    """Result of describing a composition tree.

    Attributes:
        outline: Indented text outline of the tree
        skills: Distinct skills in first-visit order
        max_depth: Number of structural levels (hydration does not count)
        patterns: Composition patterns used anywhere in the tree
    """

    outline: str
    skills: list[SkillSummary]
    max_depth: int
    patterns: set[CompositionPattern]

    def ordered_patterns(self) -> list[CompositionPattern]:
        """Return the patterns in declaration order."""
        return [p for p in CompositionPattern if p in self.patterns]


def describe_composition(node: CompositionNode) -> CompositionDescription:
    """Describe a composition tree.

    Args:
        node: Root of the composition

    Returns:
        A fresh CompositionDescription
    """
    describer = _Describer()
    outline = describer.describe(node, 0, ())

    return CompositionDescription(
        outline=outline,
        skills=describer.skills,
        max_depth=calculate_depth(node),
        patterns=describer.patterns,
    )


class _Describer:
    """Accumulates skills and patterns for a single describe call."""

    def __init__(self):
        self.skills: list[SkillSummary] = []
        self.patterns: set[CompositionPattern] = set()

    def describe(
        self,
        node: CompositionNode,
        depth: int,
        hydrations: tuple[Mapping[str, Any], ...],
    ) -> str:
        indent = "  " * depth

        if isinstance(node, SkillNode):
            self._record_skill(node, hydrations)
            skill = node.skill
            note = ""
            if hydrations:
                note = f" [with config: {json.dumps([dict(h) for h in hydrations], default=str)}]"
            return (
                f'{indent}SKILL "{skill.name}"{note}\n'
                f"{indent}  Instructions: {_truncate(skill.instructions, INSTRUCTIONS_PREVIEW_LENGTH)}"
            )

        if isinstance(node, SequenceNode):
            self.patterns.add(CompositionPattern.SEQUENTIAL)
            steps = [
                f"{indent}  {i}. {self.describe(child, depth + 1, hydrations).strip()}"
                for i, child in enumerate(node.nodes, start=1)
            ]
            return f"{indent}SEQUENCE (execute in order):\n" + "\n".join(steps)

        if isinstance(node, ConcurrentNode):
            self.patterns.add(CompositionPattern.PARALLEL)
            branches = [
                f"{indent}  - {self.describe(child, depth + 1, hydrations).strip()}"
                for child in node.nodes
            ]
            return f"{indent}PARALLEL (execute concurrently):\n" + "\n".join(branches)

        if isinstance(node, BranchNode):
            self.patterns.add(CompositionPattern.CONDITIONAL)
            result = (
                f'{indent}BRANCH on condition: "{node.when}"\n'
                f"{indent}  THEN:\n"
                f"{self.describe(node.then, depth + 1, hydrations)}"
            )
            if node.otherwise is not None:
                result += (
                    f"\n{indent}  ELSE:\n"
                    f"{self.describe(node.otherwise, depth + 1, hydrations)}"
                )
            return result

        if isinstance(node, HydratedNode):
            self.patterns.add(CompositionPattern.HYDRATED)
            return self.describe(node.node, depth, hydrations + (node.config,))

        raise TypeError(f"Not a composition node: {type(node).__name__}")

    def _record_skill(
        self, node: SkillNode, hydrations: tuple[Mapping[str, Any], ...]
    ) -> None:
        skill = node.skill
        for summary in self.skills:
            if summary.name == skill.name:
                # Configs are matched by identity, not by value
                for config in hydrations:
                    if not any(config is seen for seen in summary.hydrations):
                        summary.hydrations.append(config)
                return

        self.skills.append(
            SkillSummary(
                name=skill.name,
                instructions=skill.instructions,
                description=skill.description,
                hydrations=list(hydrations),
            )
        )


def calculate_depth(node: CompositionNode) -> int:
    """Return the number of structural levels in a composition."""
    if isinstance(node, SkillNode):
        return 1
    if isinstance(node, (SequenceNode, ConcurrentNode)):
        return 1 + max(calculate_depth(child) for child in node.nodes)
    if isinstance(node, BranchNode):
        else_depth = calculate_depth(node.otherwise) if node.otherwise is not None else 0
        return 1 + max(calculate_depth(node.then), else_depth)
    if isinstance(node, HydratedNode):
        return calculate_depth(node.node)
    raise TypeError(f"Not a composition node: {type(node).__name__}")


def _truncate(text: str, max_length: int) -> str:
    normalized = " ".join(text.split())
    if len(normalized) <= max_length:
        return normalized
    return normalized[: max_length - 3] + "..."


def format_for_compiler(description: CompositionDescription, name: str) -> str:
    """Format a composition description as the synthesizer prompt body.

    Args:
        description: Result of describe_composition
        name: Name of the skill being compiled

    Returns:
        Markdown text listing the patterns, the outline and each skill
    """
    patterns = ", ".join(p.value for p in description.ordered_patterns()) or "simple"

    parts = [
        f"# Skill Composition: {name}\n\n",
        f"## Composition Patterns Used: {patterns}\n\n",
        f"## Composition Tree:\n\n```\n{description.outline}\n```\n\n",
        "## Individual Skills:\n\n",
    ]

    for skill in description.skills:
        parts.append(f"### {skill.name}\n")
        if skill.description:
            parts.append(f"> {skill.description}\n\n")
        parts.append(f"**Instructions:**\n```\n{skill.instructions}\n```\n\n")
        if skill.hydrations:
            hydrations = json.dumps(
                [dict(h) for h in skill.hydrations], indent=2, default=str
            )
            parts.append(f"**Hydrated with:**\n```json\n{hydrations}\n```\n\n")

    return "".join(parts)
