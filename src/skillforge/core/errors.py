"""Exceptions raised by skillforge."""


class SkillforgeError(Exception):
    """Base class for all skillforge errors."""


class CompositionError(SkillforgeError, ValueError):
    """A composition constructor was called with invalid arguments.

    Attributes:
        constructor: Name of the factory that rejected its input
        constraint: Short description of the violated constraint
    """

    def __init__(self, constructor: str, constraint: str):
        self.constructor = constructor
        self.constraint = constraint
        super().__init__(f"{constructor}() {constraint}")


class EmptyChildrenError(CompositionError):
    """sequence() or concurrent() was called without children."""

    def __init__(self, constructor: str):
        super().__init__(constructor, "requires at least one node")


class MissingConditionError(CompositionError):
    """branch() was called with an empty condition."""

    def __init__(self):
        super().__init__("branch", 'requires a non-empty "when" condition')


class MissingThenBranchError(CompositionError):
    """branch() was called without a then node."""

    def __init__(self):
        super().__init__("branch", 'requires a "then" node')


class EmptyHydrationConfigError(CompositionError):
    """hydrate() was called with an empty config."""

    def __init__(self):
        super().__init__("hydrate", "requires a non-empty config")


class MissingNodeError(CompositionError):
    """hydrate() was called without a node to wrap."""

    def __init__(self):
        super().__init__("hydrate", "requires a node")


class InvalidSkillError(CompositionError):
    """leaf() was called with a missing name or empty instructions."""

    def __init__(self, constraint: str):
        super().__init__("leaf", constraint)


class ResolutionError(SkillforgeError):
    """A skill reference could not be resolved."""


class InvalidReferenceError(ResolutionError, ValueError):
    """A skill reference string has an unsupported format."""


class SkillNotFoundError(ResolutionError):
    """The referenced skill file does not exist."""


class SkillParseError(ResolutionError, ValueError):
    """A SKILL.md file could not be parsed."""


class SynthesizerError(SkillforgeError):
    """The text synthesizer could not produce a document."""


class CompositionLoadError(SkillforgeError):
    """A composition file could not be loaded."""
