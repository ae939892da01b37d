"""
ECharts options builder for the org chart canvas.

Converts a working forest plus its layout into a fixed-position ECharts
``graph`` series, and translates NiceGUI chart event payloads back into
node ids and edges.
"""

import html
from typing import Dict, List, Any, Optional, Iterable, Tuple

from orgchart.edit.constants import NODE_WIDTH, NODE_HEIGHT
from orgchart.hierarchy import Forest
from orgchart.models import NodeKind


# Event keys we request from ECharts mouse events
REQUESTED_EVENT_KEYS = ['componentType', 'name', 'seriesType', 'value', 'dataType', 'data']


# ECharts formatters have no escape syntax: swap the template characters
# for their full-width forms.
_FORMATTER_CHARS = str.maketrans({'{': '\uff5b', '}': '\uff5d', '|': '\uff5c'})


def formatter_safe(text: str) -> str:
    """Make user text safe to embed in a rich-text label formatter."""
    return text.translate(_FORMATTER_CHARS)


def tooltip_safe(text: str) -> str:
    """Make user text safe to embed in an HTML tooltip formatter."""
    return html.escape(formatter_safe(text))


# Per-kind palette
PALETTES: Dict[NodeKind, Dict[str, str]] = {
    NodeKind.SECTOR: {
        'background': '#0f172a',
        'node': '#1e293b',
        'root': '#334155',
        'border': '#475569',
        'accent': '#fbbf24',
        'edge': '#fbbf24',
        'text': '#f1f5f9',
    },
    NodeKind.POSITION: {
        'background': '#172554',
        'node': '#1e3a8a',
        'root': '#1e40af',
        'border': '#2563eb',
        'accent': '#0891b2',
        'edge': '#06b6d4',
        'text': '#f0f9ff',
    },
}

PENDING_COLOR = '#f97316'
SELECTED_COLOR = '#ffffff'
DROP_TARGET_COLOR = '#22c55e'


def _count_label(kind: NodeKind, child_count: int, member_count: int) -> str:
    if kind is NodeKind.SECTOR:
        return f"{child_count} positions · {member_count} people"
    return f"{child_count} assignments · {member_count} people"


def build_echart_options(
    forest: Forest,
    layout: Dict[str, Tuple[float, float]],
    kind: NodeKind = NodeKind.SECTOR,
    pending_ids: Optional[Iterable[str]] = None,
    selected_id: Optional[str] = None,
    drop_target_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build ECharts options for one forest.

    Args:
        forest: Working forest (pending edits applied)
        layout: Dict mapping node_id -> (x, y) from compute_layout
        kind: Which palette to use
        pending_ids: Nodes whose parent changed since the last fetch
        selected_id: Node to outline as selected
        drop_target_id: Node currently hovered as a connect target

    Returns:
        ECharts options dict ready for ui.echart()
    """
    palette = PALETTES[kind]
    pending = set(pending_ids or ())

    e_nodes = []
    for node in forest:
        if node.id not in layout:
            continue
        x, y = layout[node.id]
        is_root = forest.parent_of(node.id) is None

        item_style = {
            'color': palette['root'] if is_root else palette['node'],
            'borderColor': palette['accent'] if is_root else palette['border'],
            'borderWidth': 2 if is_root else 1,
            'borderRadius': 4,
        }
        if node.id in pending:
            item_style['borderColor'] = PENDING_COLOR
            item_style['borderWidth'] = 2
            item_style['borderType'] = 'dashed'
        if node.id == drop_target_id:
            item_style['borderColor'] = DROP_TARGET_COLOR
            item_style['borderWidth'] = 3
        if node.id == selected_id:
            item_style['borderColor'] = SELECTED_COLOR
            item_style['borderWidth'] = 3

        counts = _count_label(kind, node.child_count, node.member_count)
        e_nodes.append({
            'id': node.id,
            'name': node.id,
            'value': node.display_name,
            'x': x,
            'y': y,
            'symbol': 'rect',
            'symbolSize': [NODE_WIDTH, NODE_HEIGHT],
            'itemStyle': item_style,
            'label': {
                'show': True,
                'position': 'inside',
                'formatter': f"{{title|{formatter_safe(node.display_name)}}}\n{{sub|{counts}}}",
                'rich': {
                    'title': {'fontSize': 14, 'fontWeight': 'bold', 'color': palette['text']},
                    'sub': {'fontSize': 10, 'color': '#94a3b8', 'padding': [4, 0, 0, 0]},
                },
            },
            'draggable': False,
            'tooltip': {'formatter': f"{tooltip_safe(node.display_name)}<br/><span style='color:#999;font-size:11px'>{counts}</span>"},
        })

    e_links = []
    for parent_id, child_id in forest.edges():
        if parent_id not in layout or child_id not in layout:
            continue
        e_links.append({
            'source': parent_id,
            'target': child_id,
            'lineStyle': {
                'color': PENDING_COLOR if child_id in pending else palette['edge'],
                'width': 2,
                'curveness': 0,
                'opacity': 1.0,
            },
            'symbol': ['none', 'arrow'],
            'symbolSize': [0, 10],
            'tooltip': {'show': False},
        })

    return {
        'backgroundColor': palette['background'],
        'tooltip': {},
        'animation': True,
        'animationDurationUpdate': 0,
        'series': [{
            'type': 'graph',
            'layout': 'none',
            'roam': True,
            'edgeSymbol': ['none', 'arrow'],
            'data': e_nodes,
            'links': e_links,
            'emphasis': {'focus': 'none'},
        }]
    }


def normalize_click_payload(raw_payload: Any) -> Dict[str, Any]:
    """Normalize NiceGUI chart event payloads into a dictionary for easier parsing."""
    if isinstance(raw_payload, dict):
        return raw_payload
    if isinstance(raw_payload, (list, tuple)):
        return {
            REQUESTED_EVENT_KEYS[i]: raw_payload[i]
            for i in range(min(len(raw_payload), len(REQUESTED_EVENT_KEYS)))
        }
    if isinstance(raw_payload, str):
        return {'componentType': 'series', 'name': raw_payload}
    return {}


def resolve_node_id_from_payload(payload: Dict[str, Any], forest: Forest) -> Optional[str]:
    """Return a node id from a normalized payload, validated against the forest."""
    if not isinstance(payload, dict):
        return None
    if payload.get('componentType') != 'series':
        return None
    if payload.get('dataType') == 'edge':
        return None

    node_id = payload.get('name')
    if not node_id:
        return None
    if node_id in forest:
        return node_id

    for node in forest:
        if node.display_name == node_id:
            return node.id
    return None


def resolve_edge_from_payload(payload: Dict[str, Any], forest: Forest) -> Optional[Tuple[str, str]]:
    """Return ``(parent_id, child_id)`` for an edge event, if it is a current edge."""
    if not isinstance(payload, dict) or payload.get('dataType') != 'edge':
        return None
    data = payload.get('data') or {}
    parent_id, child_id = data.get('source'), data.get('target')
    if child_id in forest and forest.parent_of(child_id) == parent_id and parent_id is not None:
        return parent_id, child_id
    return None


def pending_summary(forest: Forest, operations: List[Any]) -> List[str]:
    """Human-readable lines for the pending-changes panel."""
    lines = []
    for op in operations:
        node = forest.get(op.node_id)
        name = node.display_name if node else op.node_id
        if op.new_parent_id is None:
            lines.append(f"{name} → (root)")
        else:
            parent = forest.get(op.new_parent_id)
            lines.append(f"{name} → {parent.display_name if parent else op.new_parent_id}")
    return lines


def summary_rows(forest: Forest) -> List[Dict[str, Any]]:
    """Rows for the summary table, keyed by node id (names may repeat)."""
    rows = []
    for node in forest:
        parent = forest.get(forest.parent_of(node.id) or '')
        rows.append({
            'id': node.id,
            'name': node.display_name,
            'parent': parent.display_name if parent else '-',
            'children': node.child_count,
            'members': node.member_count,
        })
    return rows
