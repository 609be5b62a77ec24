"""Flatten a positioned graph into printable rows."""

from dataclasses import dataclass, field

from rich.text import Text

from skillforge.graph.layout import ARROW, PositionedGraph
from skillforge.graph.theme import DEFAULT_TEXT_COLOR

MARGIN = 2


@dataclass
class RenderedBuffer:
    """Rows of characters plus a parallel per-cell color map."""

    rows: list[str] = field(default_factory=list)
    colors: list[list[str]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    @property
    def height(self) -> int:
        return len(self.rows)


def render_to_buffer(graph: PositionedGraph) -> RenderedBuffer:
    """Draw a positioned graph into a character buffer.

    Connectors are drawn first and boxes on top of them, so a connector never
    hides part of a box. Within the connectors, arrow cells are drawn last
    so a junction shared by several paths never hides an arrow.

    Args:
        graph: Output of layout_composition

    Returns:
        RenderedBuffer with ``graph.height + MARGIN`` rows, each
        ``graph.width + MARGIN`` characters long; empty for an empty graph
    """
    if not graph.nodes:
        return RenderedBuffer()

    width = graph.width + MARGIN
    height = graph.height + MARGIN
    chars = [[" "] * width for _ in range(height)]
    colors = [[DEFAULT_TEXT_COLOR] * width for _ in range(height)]

    def put(x: int, y: int, char: str, color: str) -> None:
        if 0 <= y < height and 0 <= x < width:
            chars[y][x] = char
            colors[y][x] = color

    points = [point for connector in graph.connectors for point in connector.points]
    for point in points:
        if point.char != ARROW:
            put(point.x, point.y, point.char, point.color)
    for point in points:
        if point.char == ARROW:
            put(point.x, point.y, point.char, point.color)

    for node in graph.nodes:
        for dy, line in enumerate(node.box_lines):
            for dx, char in enumerate(line):
                put(node.x + dx, node.y + dy, char, node.color)

    return RenderedBuffer(rows=["".join(row) for row in chars], colors=colors)


def to_rich_text(buffer: RenderedBuffer) -> Text:
    """Convert a rendered buffer into Rich text, one style span per color run."""
    text = Text()
    for y, row in enumerate(buffer.rows):
        if y:
            text.append("\n")
        start = 0
        row_colors = buffer.colors[y]
        for x in range(1, len(row) + 1):
            if x == len(row) or row_colors[x] != row_colors[start]:
                text.append(row[start:x], style=row_colors[start])
                start = x
    return text
