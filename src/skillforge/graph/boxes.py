"""Fixed five-line box template for diagram nodes."""

from skillforge.graph.theme import NODE_ICONS, TYPE_LABELS

ELLIPSIS = "…"

SINGLE_BORDER = {"tl": "┌", "tr": "┐", "bl": "└", "br": "┘", "h": "─", "v": "│"}
DOUBLE_BORDER = {"tl": "╔", "tr": "╗", "bl": "╚", "br": "╝", "h": "═", "v": "║"}


def truncate_label(label: str, max_length: int) -> str:
    """Shorten a label to max_length characters, ending with an ellipsis."""
    if len(label) <= max_length:
        return label
    if max_length <= 0:
        return ""
    return label[: max_length - 1] + ELLIPSIS


def render_node_box(node_type: str, label: str, selected: bool, width: int) -> list[str]:
    """Render the box for a node.

    The box has five lines: top border, icon and type row, blank row,
    label row, bottom border. Every line is exactly ``width`` characters.

    Args:
        node_type: One of the node types in the theme
        label: Text shown on the label row
        selected: Draw a double border instead of a single one
        width: Total box width including borders
    """
    border = DOUBLE_BORDER if selected else SINGLE_BORDER
    interior = width - 2
    text_width = interior - 2

    heading = f"{NODE_ICONS[node_type]} {TYPE_LABELS[node_type]}"
    heading = truncate_label(heading, text_width)
    name = truncate_label(label, text_width)

    side = border["v"]
    return [
        border["tl"] + border["h"] * interior + border["tr"],
        f"{side} {heading.ljust(text_width)} {side}",
        f"{side}{' ' * interior}{side}",
        f"{side} {name.ljust(text_width)} {side}",
        border["bl"] + border["h"] * interior + border["br"],
    ]
