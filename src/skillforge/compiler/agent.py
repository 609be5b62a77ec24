"""Agent compiler.

Synthesizes a single coherent SKILL.md from a composition by describing the
tree and handing the description to a text synthesizer. The default
synthesizer talks to the Anthropic Messages API over httpx.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from skillforge.compiler.describe import (
    CompositionDescription,
    describe_composition,
    format_for_compiler,
)
from skillforge.compiler.protocols import SynthesisResult, TextSynthesizer
from skillforge.core.errors import SynthesizerError
from skillforge.core.types import CompositionNode

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 4096

DEFAULT_SYSTEM_PROMPT = """You are a skill compiler. Your job is to synthesize multiple skill definitions into a single, coherent SKILL.md file.

## What You're Given

You receive a "composition" - a functional description of how skills should work together:
- **SEQUENCE**: Skills execute in order, each building on the previous
- **PARALLEL**: Skills execute concurrently, gathering information simultaneously
- **BRANCH**: Conditional paths based on runtime conditions
- **Hydration**: Configuration injected into generic skills

## Your Output

Produce a single SKILL.md that:

1. **Reads as unified prose**, not pasted-together sections
2. **Preserves logical flow** from the composition structure
3. **Makes parallel operations natural**: "Gather evidence from X, Y, and Z simultaneously"
4. **Expresses conditionals as decision points**: "Based on severity, either alert oncall or log the finding"
5. **Embeds hydration config** naturally in the instructions

## Output Format

```markdown
---
name: <skill-name>
description: <one-line description>
---

# <Skill Title>

<Brief introduction explaining what this skill does and when to use it>

## <Section 1>
...
```

## Style Guidelines

- Write in second person ("You will...", "Search for...")
- Use active voice
- Be specific and actionable
- Include all information from source skills - don't summarize away details
- If skills have overlapping instructions, merge them intelligently
- For hydrated configs, incorporate them as embedded context or examples

## Important

- Output ONLY the SKILL.md content, no commentary
- Include the YAML frontmatter
- Preserve all actionable instructions from the source skills"""


class AnthropicSynthesizer:
    """Synthesizer backed by the Anthropic Messages API."""

    DEFAULT_API_BASE = "https://api.anthropic.com"
    API_VERSION = "2023-06-01"
    MAX_RETRIES = 3
    RETRY_DELAY = 1.0  # seconds
    RETRY_STATUS_CODES = (429, 500, 502, 503, 529)

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        api_base: Optional[str] = None,
        timeout: float = 120.0,
    ):
        """Initialize the synthesizer.

        Args:
            api_key: API key; falls back to the ANTHROPIC_API_KEY environment variable
            model: Model name to request
            max_tokens: Maximum number of tokens in the response
            api_base: Override for the API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.model = model
        self.max_tokens = max_tokens
        self.api_base = (api_base or self.DEFAULT_API_BASE).rstrip("/")
        self.timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key or "",
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }

    async def synthesize(self, prompt: str, *, system_prompt: str) -> SynthesisResult:
        """Send the prompt to the Messages API and return the generated text.

        Raises:
            SynthesizerError: If no API key is configured or the response has no text
            httpx.HTTPError: If the request fails after retries
        """
        if not self.api_key:
            raise SynthesizerError(
                "No API key configured. Set ANTHROPIC_API_KEY to compile with the agent."
            )

        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": prompt}],
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            data = await self._post_messages(client, payload)

        text = "\n".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        if not text.strip():
            raise SynthesizerError("Synthesizer returned no text content")

        usage = data.get("usage") or {}
        return SynthesisResult(
            text=text,
            model=data.get("model", self.model),
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )

    async def _post_messages(
        self, client: httpx.AsyncClient, payload: dict[str, Any]
    ) -> dict[str, Any]:
        url = f"{self.api_base}/v1/messages"

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await client.post(url, headers=self._headers, json=payload)
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status in self.RETRY_STATUS_CODES and attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
                    continue
                if status in (401, 403):
                    raise SynthesizerError(
                        f"Synthesizer rejected the API key (HTTP {status})"
                    ) from e
                raise
            except httpx.TransportError:
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAY * (attempt + 1))
                    continue
                raise

        raise httpx.HTTPError(f"Failed to reach synthesizer after {self.MAX_RETRIES} attempts")


@dataclass
class CompileOptions:
    """Options for compiling a composition.

    Attributes:
        name: Name of the compiled skill
        description: Optional desired description for the compiled skill
        system_prompt: Override for the default system prompt
    """

    name: str
    description: Optional[str] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


@dataclass
class CompileResult:
    """Compiled SKILL.md content and information about the compilation."""

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


def build_prompt(
    description: CompositionDescription, name: str, skill_description: Optional[str] = None
) -> str:
    """Build the user prompt sent to the synthesizer."""
    prompt = f"Synthesize a SKILL.md from this composition:\n\n{format_for_compiler(description, name)}"
    if skill_description:
        prompt += f"\n\n**Desired skill description:** {skill_description}"
    return prompt


async def compile_composition(
    node: CompositionNode,
    options: CompileOptions,
    synthesizer: Optional[TextSynthesizer] = None,
) -> CompileResult:
    """Compile a composition into a single SKILL.md.

    Args:
        node: Root of the composition
        options: Name, description and prompt overrides
        synthesizer: Synthesizer to use (defaults to AnthropicSynthesizer)

    Returns:
        CompileResult with the cleaned document

    Raises:
        SynthesizerError: If the synthesizer cannot produce a document
    """
    if synthesizer is None:
        synthesizer = AnthropicSynthesizer()

    description = describe_composition(node)
    prompt = build_prompt(description, options.name, options.description)

    result = await synthesizer.synthesize(prompt, system_prompt=options.system_prompt)

    return CompileResult(
        content=strip_code_fences(result.text),
        metadata={
            "model": result.model,
            "input_tokens": result.input_tokens,
            "output_tokens": result.output_tokens,
            "skill_count": len(description.skills),
            "patterns": [p.value for p in description.ordered_patterns()],
        },
    )


def preview_compilation(
    node: CompositionNode, name: str, description: Optional[str] = None
) -> str:
    """Return the formatted composition that compile_composition would send."""
    formatted = format_for_compiler(describe_composition(node), name)
    if description:
        formatted += f"**Desired skill description:** {description}\n"
    return formatted


def strip_code_fences(content: str) -> str:
    """Remove a code fence wrapping the whole document, if any."""
    result = content.strip()

    if result.startswith("```markdown"):
        result = result[len("```markdown"):]
    elif result.startswith("```md"):
        result = result[len("```md"):]
    elif result.startswith("```"):
        result = result[len("```"):]

    if result.endswith("```"):
        result = result[:-3]

    return result.strip()
