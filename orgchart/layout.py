"""
Top-down tree layout for the org chart canvas.

Each subtree gets horizontal room proportional to its leaf count so sibling
subtrees never overlap. Roots are placed left to right with an extra gap.
Coordinates are ECharts data coordinates (y grows downward).
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from orgchart.hierarchy import Forest
from orgchart.models import NodeKind


@dataclass(frozen=True)
class LayoutConfig:
    spacing: float = 250.0
    level_height: float = 150.0
    root_gap: float = 300.0


SECTOR_LAYOUT = LayoutConfig(spacing=250.0, level_height=150.0, root_gap=300.0)
POSITION_LAYOUT = LayoutConfig(spacing=280.0, level_height=160.0, root_gap=350.0)


def layout_for_kind(kind: NodeKind) -> LayoutConfig:
    if kind is NodeKind.POSITION:
        return POSITION_LAYOUT
    return SECTOR_LAYOUT


def _leaf_widths(forest: Forest) -> Dict[str, int]:
    """Leaf count per node, computed bottom-up without recursion."""
    widths: Dict[str, int] = {}
    order = [node.id for node, _ in forest.walk()]
    for node_id in reversed(order):
        children = forest.children(node_id)
        widths[node_id] = sum(widths[c.id] for c in children) if children else 1
    return widths


def compute_layout(forest: Forest, config: LayoutConfig = SECTOR_LAYOUT) -> Dict[str, Tuple[float, float]]:
    """
    Return ``{node_id: (x, y)}`` for every node reachable from a root.

    Siblings keep the forest's stable order, so re-renders do not shuffle.
    """
    widths = _leaf_widths(forest)
    positions: Dict[str, Tuple[float, float]] = {}

    cursor = 0.0
    for root in forest.roots():
        # stack of (node_id, depth, left edge of the slot)
        stack: List[Tuple[str, int, float]] = [(root.id, 0, cursor)]
        while stack:
            node_id, depth, left = stack.pop()
            width = widths[node_id] * config.spacing
            positions[node_id] = (left + (width - config.spacing) / 2, depth * config.level_height)
            child_left = left
            slots = []
            for child in forest.children(node_id):
                slots.append((child.id, depth + 1, child_left))
                child_left += widths[child.id] * config.spacing
            stack.extend(reversed(slots))
        cursor += widths[root.id] * config.spacing + (config.root_gap - config.spacing)

    return positions
