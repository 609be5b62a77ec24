"""Loading compositions from forge files.

Two formats are supported:

- Python forge modules (``*.py``) that build a composition with the
  factories and expose it as ``composition`` (or ``default``). Optional
  module-level ``name`` and ``description`` strings are picked up too.
- Declarative YAML files (``*.yaml``/``*.yml``)::

      name: incident-response
      description: Triage and respond to production incidents
      skills:
        triage:
          instructions: Classify the incident by severity.
        runbook:
          ref: github:acme/skills/runbooks/SKILL.md@v1
      composition:
        sequence:
          - use: triage
          - hydrate:
              config: {service: payments}
              node: {use: runbook}
          - branch:
              when: severity is critical
              then: {ref: ./skills/page-oncall.md}
              else: {skill: {name: log, instructions: Log the finding.}}

  Every node entry is a mapping with exactly one of ``skill``, ``ref``,
  ``use``, ``sequence``, ``concurrent``, ``branch`` or ``hydrate``.
"""

import importlib.util
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from skillforge.core.compose import (
    branch,
    concurrent,
    from_skill,
    hydrate,
    leaf,
    sequence,
)
from skillforge.core.errors import CompositionError, CompositionLoadError
from skillforge.core.types import CompositionNode, is_composition_node
from skillforge.resolve import ResolveContext, resolve_skill
from skillforge.utils.paths import composition_name

NODE_KINDS = ("skill", "ref", "use", "sequence", "concurrent", "branch", "hydrate")
PYTHON_EXPORTS = ("composition", "default")


@dataclass
class LoadedComposition:
    """A composition together with the naming information found beside it."""

    node: CompositionNode
    name: str
    description: Optional[str] = None
    path: Optional[Path] = None


class NamedSkillConfig(BaseModel):
    """Entry of the ``skills:`` table: inline definition or reference."""

    name: Optional[str] = None
    instructions: Optional[str] = None
    description: Optional[str] = None
    ref: Optional[str] = Field(default=None, description="Skill reference to resolve")

    @model_validator(mode="after")
    def check_source(self) -> "NamedSkillConfig":
        """Require exactly one of instructions or ref."""
        if (self.instructions is None) == (self.ref is None):
            raise ValueError("exactly one of instructions or ref must be provided")
        return self


class BranchEntry(BaseModel):
    """Body of a ``branch:`` entry."""

    when: str
    then: dict[str, Any]
    otherwise: Optional[dict[str, Any]] = Field(default=None, alias="else")


class HydrateEntry(BaseModel):
    """Body of a ``hydrate:`` entry."""

    config: dict[str, Any]
    node: dict[str, Any]


class CompositionFile(BaseModel):
    """Top level of a YAML composition file."""

    name: Optional[str] = None
    description: Optional[str] = None
    skills: dict[str, NamedSkillConfig] = Field(default_factory=dict)
    composition: dict[str, Any]


class _YamlBuilder:
    """Turns validated YAML entries into composition nodes."""

    def __init__(self, definitions: dict[str, NamedSkillConfig], context: ResolveContext):
        self.definitions = definitions
        self.context = context
        self._named: dict[str, CompositionNode] = {}
        self._refs: dict[str, CompositionNode] = {}

    async def build(self, entry: Any, where: str) -> CompositionNode:
        if not isinstance(entry, dict) or len(entry) != 1:
            raise CompositionLoadError(
                f"{where}: expected a mapping with exactly one of {', '.join(NODE_KINDS)}"
            )

        kind, body = next(iter(entry.items()))
        if kind == "skill":
            if not isinstance(body, dict):
                raise CompositionLoadError(f"{where}.skill: expected a mapping")
            return leaf(body)
        if kind == "ref":
            return await self._ref(body, where)
        if kind == "use":
            return await self._use(body, where)
        if kind in ("sequence", "concurrent"):
            if not isinstance(body, list):
                raise CompositionLoadError(f"{where}.{kind}: expected a list of nodes")
            children = [
                await self.build(child, f"{where}.{kind}[{i}]") for i, child in enumerate(body)
            ]
            factory = sequence if kind == "sequence" else concurrent
            return factory(*children)
        if kind == "branch":
            arms = self._validate(BranchEntry, body, where)
            then = await self.build(arms.then, f"{where}.branch.then")
            otherwise = None
            if arms.otherwise is not None:
                otherwise = await self.build(arms.otherwise, f"{where}.branch.else")
            return branch(arms.when, then, else_=otherwise)
        if kind == "hydrate":
            wrapper = self._validate(HydrateEntry, body, where)
            return hydrate(await self.build(wrapper.node, f"{where}.hydrate.node"), wrapper.config)

        raise CompositionLoadError(f"{where}: unknown node kind '{kind}'")

    async def _ref(self, reference: Any, where: str) -> CompositionNode:
        if not isinstance(reference, str):
            raise CompositionLoadError(f"{where}.ref: expected a reference string")
        if reference not in self._refs:
            self._refs[reference] = from_skill(await resolve_skill(reference, self.context))
        return self._refs[reference]

    async def _use(self, name: Any, where: str) -> CompositionNode:
        if not isinstance(name, str) or name not in self.definitions:
            raise CompositionLoadError(f"{where}.use: no skill named '{name}' in skills")
        if name not in self._named:
            definition = self.definitions[name]
            if definition.ref is not None:
                self._named[name] = await self._ref(definition.ref, f"skills.{name}")
            else:
                self._named[name] = leaf(
                    {
                        "name": definition.name or name,
                        "instructions": definition.instructions,
                        "description": definition.description,
                    }
                )
        return self._named[name]

    @staticmethod
    def _validate(model: type[BaseModel], body: Any, where: str) -> Any:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise CompositionLoadError(f"{where}: {e}") from e


async def load_yaml_composition(
    path: Path, context: Optional[ResolveContext] = None
) -> LoadedComposition:
    """Load a declarative YAML composition.

    References are resolved relative to the file's directory.

    Raises:
        CompositionLoadError: If the file is malformed
        CompositionError: If a factory rejects an entry
        ResolutionError: If a referenced skill cannot be resolved
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise CompositionLoadError(f"Could not read {path}: {e}") from e

    try:
        document = CompositionFile.model_validate(raw)
    except ValidationError as e:
        raise CompositionLoadError(f"Invalid composition file {path}: {e}") from e

    context = context or ResolveContext()
    if context.base_path is None:
        context = replace(context, base_path=path.parent)

    node = await _YamlBuilder(document.skills, context).build(document.composition, "composition")
    return LoadedComposition(
        node=node,
        name=document.name or composition_name(path),
        description=document.description,
        path=path,
    )


def load_python_composition(path: Path) -> LoadedComposition:
    """Execute a Python forge module and return its composition.

    Raises:
        CompositionLoadError: If the module fails to import or exports no node
    """
    module_name = f"_skillforge_forge_{composition_name(path).replace('-', '_')}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise CompositionLoadError(f"Cannot import {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except CompositionError:
        raise
    except Exception as e:
        raise CompositionLoadError(f"Error executing {path}: {e}") from e
    finally:
        sys.modules.pop(module_name, None)

    for export in PYTHON_EXPORTS:
        node = getattr(module, export, None)
        if node is not None:
            break
    else:
        raise CompositionLoadError(
            f"{path} must define 'composition' or 'default' as a composition node"
        )

    if not is_composition_node(node):
        raise CompositionLoadError(
            f"{path}: '{export}' is a {type(node).__name__}, not a composition node"
        )

    name = getattr(module, "name", None)
    description = getattr(module, "description", None)
    return LoadedComposition(
        node=node,
        name=name if isinstance(name, str) and name else composition_name(path),
        description=description if isinstance(description, str) else None,
        path=path,
    )


async def load_composition(
    path: Path, context: Optional[ResolveContext] = None
) -> LoadedComposition:
    """Load a composition file, choosing the format from its suffix.

    Raises:
        CompositionLoadError: If the file is missing, has an unknown suffix,
            or is malformed
    """
    path = Path(path)
    if not path.is_file():
        raise CompositionLoadError(f"Composition file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".py":
        return load_python_composition(path)
    if suffix in (".yaml", ".yml"):
        return await load_yaml_composition(path, context)

    raise CompositionLoadError(
        f"Unsupported composition file '{path.name}': expected .py, .yaml or .yml"
    )
