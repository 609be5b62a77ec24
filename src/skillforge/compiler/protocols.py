"""Abstract interface for text synthesizers."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class SynthesisResult:
    """Text returned by a synthesizer plus usage information."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class TextSynthesizer(Protocol):
    """Abstract interface for services that turn a prompt into a document."""

    async def synthesize(self, prompt: str, *, system_prompt: str) -> SynthesisResult:
        """Produce a document for the given prompt.

        Args:
            prompt: User prompt containing the formatted composition
            system_prompt: Instructions describing the expected output

        Returns:
            SynthesisResult with the raw generated text

        Raises:
            SynthesizerError: If no document could be produced
        """
        ...
