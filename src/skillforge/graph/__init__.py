"""Diagram layout and rendering for compositions."""

from skillforge.graph.boxes import render_node_box
from skillforge.graph.layout import (
    Connector,
    ConnectorPoint,
    IdGenerator,
    PositionedGraph,
    PositionedNode,
    layout_composition,
)
from skillforge.graph.render import RenderedBuffer, render_to_buffer, to_rich_text

__all__ = [
    "Connector",
    "ConnectorPoint",
    "IdGenerator",
    "PositionedGraph",
    "PositionedNode",
    "RenderedBuffer",
    "layout_composition",
    "render_node_box",
    "render_to_buffer",
    "to_rich_text",
]
