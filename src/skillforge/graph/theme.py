"""Colors and glyphs for composition diagrams.

Colors are ``#RRGGBB`` hex strings so they can be handed directly to Rich.
"""

from typing import Literal

from rich.color import Color, blend_rgb

NodeType = Literal["skill", "sequence", "parallel", "branch"]

DEFAULT_TEXT_COLOR = "#e6edf3"

NODE_COLORS: dict[str, str] = {
    "skill": "#ff6b35",
    "sequence": "#58a6ff",
    "parallel": "#3fb950",
    "branch": "#ffd700",
}

NODE_ICONS: dict[str, str] = {
    "skill": "◆",
    "sequence": "→",
    "parallel": "⫘",
    "branch": "⎇",
}

TYPE_LABELS: dict[str, str] = {
    "skill": "SKILL",
    "sequence": "SEQUENCE",
    "parallel": "PARALLEL",
    "branch": "BRANCH",
}


def interpolate_color(start: str, end: str, factor: float) -> str:
    """Linearly interpolate between two hex colors.

    Args:
        start: Color at factor 0
        end: Color at factor 1
        factor: Position between the two colors, in [0, 1]

    Raises:
        ColorParseError: If either color is not a valid Rich color
    """
    return blend_rgb(
        Color.parse(start).get_truecolor(), Color.parse(end).get_truecolor(), factor
    ).hex


def gradient(start: str, end: str, steps: int) -> list[str]:
    """Return ``steps`` colors running from start to end inclusive."""
    if steps <= 0:
        return []
    if steps == 1:
        return [Color.parse(end).get_truecolor().hex]
    return [interpolate_color(start, end, i / (steps - 1)) for i in range(steps)]
