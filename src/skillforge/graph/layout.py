"""Layout engine for composition diagrams.

Assigns every structural node a fixed-size box at integer coordinates and
computes the connector paths between boxes. Children are placed relative to
their parent according to the parent's type:

- sequence: children stacked vertically below the parent
- parallel: children side by side in one row below the parent
- branch: ``then`` below the parent, ``else`` to its right
- hydrated: no box of its own; the wrapped node takes its place

The layout is a pure function of the tree, the selected id and the id
generator passed in.
"""

from dataclasses import dataclass
from typing import Optional

from skillforge.core.types import (
    BranchNode,
    CompositionNode,
    ConcurrentNode,
    HydratedNode,
    SequenceNode,
    SkillNode,
)
from skillforge.graph.boxes import render_node_box
from skillforge.graph.theme import NODE_COLORS, NodeType, gradient

NODE_WIDTH = 24
NODE_HEIGHT = 5
H_SPACING = 4
V_SPACING = 2

VERTICAL = "│"
HORIZONTAL = "─"
CORNER_RIGHT = "└"
CORNER_LEFT = "┘"
ARROW = "▼"


class IdGenerator:
    """Hands out sequential node ids (``node-1``, ``node-2``, ...)."""

    def __init__(self, prefix: str = "node"):
        self.prefix = prefix
        self._counter = 0

    def __call__(self) -> str:
        self._counter += 1
        return f"{self.prefix}-{self._counter}"


@dataclass(frozen=True)
class PositionedNode:
    """A node box placed on the diagram."""

    id: str
    type: NodeType
    label: str
    x: int
    y: int
    width: int
    height: int
    color: str
    selected: bool
    box_lines: tuple[str, ...]


@dataclass(frozen=True)
class ConnectorPoint:
    """One cell of a connector path."""

    x: int
    y: int
    char: str
    color: str


@dataclass(frozen=True)
class Connector:
    """Path from the bottom of one box to the top of another."""

    from_id: str
    to_id: str
    points: tuple[ConnectorPoint, ...]


@dataclass(frozen=True)
class PositionedGraph:
    """Positioned boxes, connectors and the overall bounding size."""

    nodes: tuple[PositionedNode, ...]
    connectors: tuple[Connector, ...]
    width: int
    height: int

    def find(self, node_id: str) -> Optional[PositionedNode]:
        """Return the node with the given id, if any."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


EMPTY_GRAPH = PositionedGraph(nodes=(), connectors=(), width=0, height=0)


@dataclass
class _Placement:
    box: PositionedNode
    width: int
    height: int


def layout_composition(
    node: Optional[CompositionNode],
    selected_id: Optional[str] = None,
    ids: Optional[IdGenerator] = None,
) -> PositionedGraph:
    """Lay out a composition tree.

    Args:
        node: Root of the composition; None yields an empty graph
        selected_id: Id of the node to draw as selected
        ids: Id generator; a fresh one is used when omitted so repeated
            calls produce identical ids

    Returns:
        PositionedGraph with nodes in pre-order
    """
    if node is None:
        return EMPTY_GRAPH

    builder = _LayoutBuilder(selected_id, ids or IdGenerator())
    placement = builder.place(node, 0, 0)

    return PositionedGraph(
        nodes=tuple(builder.nodes),
        connectors=tuple(builder.connectors),
        width=placement.width,
        height=placement.height,
    )


class _LayoutBuilder:
    def __init__(self, selected_id: Optional[str], ids: IdGenerator):
        self.selected_id = selected_id
        self.ids = ids
        self.nodes: list[PositionedNode] = []
        self.connectors: list[Connector] = []

    def place(self, node: CompositionNode, x: int, y: int) -> _Placement:
        if isinstance(node, HydratedNode):
            return self.place(node.node, x, y)

        if isinstance(node, SkillNode):
            box = self._add_box("skill", node.skill.name, x, y)
            return _Placement(box, NODE_WIDTH, NODE_HEIGHT)

        if isinstance(node, SequenceNode):
            box = self._add_box("sequence", f"Sequence ({len(node.nodes)})", x, y)
            width, height = NODE_WIDTH, NODE_HEIGHT
            child_y = y + NODE_HEIGHT + V_SPACING
            previous = box
            for child in node.nodes:
                placed = self.place(child, x, child_y)
                # Sequence children are chained in execution order
                self.connectors.append(build_connector(previous, placed.box))
                previous = placed.box
                child_y += placed.height + V_SPACING
                height += placed.height + V_SPACING
                width = max(width, placed.width)
            return _Placement(box, width, height)

        if isinstance(node, ConcurrentNode):
            box = self._add_box("parallel", f"Parallel ({len(node.nodes)})", x, y)
            child_x = x
            child_y = y + NODE_HEIGHT + V_SPACING
            max_height = 0
            for child in node.nodes:
                placed = self.place(child, child_x, child_y)
                self.connectors.append(build_connector(box, placed.box))
                child_x += placed.width + H_SPACING
                max_height = max(max_height, placed.height)
            width = max(NODE_WIDTH, child_x - x - H_SPACING)
            return _Placement(box, width, NODE_HEIGHT + V_SPACING + max_height)

        if isinstance(node, BranchNode):
            box = self._add_box("branch", f"if {node.when}", x, y)
            child_y = y + NODE_HEIGHT + V_SPACING
            then = self.place(node.then, x, child_y)
            self.connectors.append(build_connector(box, then.box))
            width, max_height = then.width, then.height
            if node.otherwise is not None:
                otherwise = self.place(node.otherwise, x + then.width + H_SPACING, child_y)
                self.connectors.append(build_connector(box, otherwise.box))
                width = then.width + H_SPACING + otherwise.width
                max_height = max(max_height, otherwise.height)
            return _Placement(box, width, NODE_HEIGHT + V_SPACING + max_height)

        raise TypeError(f"Not a composition node: {type(node).__name__}")

    def _add_box(self, node_type: NodeType, label: str, x: int, y: int) -> PositionedNode:
        node_id = self.ids()
        selected = node_id == self.selected_id
        box = PositionedNode(
            id=node_id,
            type=node_type,
            label=label,
            x=x,
            y=y,
            width=NODE_WIDTH,
            height=NODE_HEIGHT,
            color=NODE_COLORS[node_type],
            selected=selected,
            box_lines=tuple(render_node_box(node_type, label, selected, NODE_WIDTH)),
        )
        self.nodes.append(box)
        return box


def build_connector(source: PositionedNode, target: PositionedNode) -> Connector:
    """Build the connector from source's bottom-centre to target's top-centre.

    The path runs straight down to the row above the target. If the centres
    are not aligned, that row holds a corner and a horizontal run. The last
    cell is always an arrow above the target's centre. Colors fade from the
    source color to the target color, one per cell.
    """
    from_x = source.x + source.width // 2
    from_y = source.y + source.height
    to_x = target.x + target.width // 2
    arrow_y = target.y - 1

    cells: list[tuple[int, int, str]] = [(from_x, y, VERTICAL) for y in range(from_y, arrow_y)]

    if to_x != from_x:
        step = 1 if to_x > from_x else -1
        cells.append((from_x, arrow_y, CORNER_RIGHT if step > 0 else CORNER_LEFT))
        cells.extend((x, arrow_y, HORIZONTAL) for x in range(from_x + step, to_x, step))

    cells.append((to_x, arrow_y, ARROW))

    colors = gradient(source.color, target.color, len(cells))
    return Connector(
        from_id=source.id,
        to_id=target.id,
        points=tuple(
            ConnectorPoint(x=x, y=y, char=char, color=color)
            for (x, y, char), color in zip(cells, colors)
        ),
    )
