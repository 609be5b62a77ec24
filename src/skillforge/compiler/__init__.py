"""Describing and compiling compositions."""

from skillforge.compiler.agent import (
    AnthropicSynthesizer,
    CompileOptions,
    CompileResult,
    compile_composition,
    preview_compilation,
    strip_code_fences,
)
from skillforge.compiler.describe import (
    CompositionDescription,
    CompositionPattern,
    SkillSummary,
    calculate_depth,
    describe_composition,
    format_for_compiler,
)
from skillforge.compiler.protocols import SynthesisResult, TextSynthesizer

__all__ = [
    "AnthropicSynthesizer",
    "CompileOptions",
    "CompileResult",
    "CompositionDescription",
    "CompositionPattern",
    "SkillSummary",
    "SynthesisResult",
    "TextSynthesizer",
    "calculate_depth",
    "compile_composition",
    "describe_composition",
    "format_for_compiler",
    "preview_compilation",
    "strip_code_fences",
]
