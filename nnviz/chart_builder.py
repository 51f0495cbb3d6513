"""
ECharts options builder for nnviz graph visualization.

This module handles conversion of the synthesized graph and its layout boxes
into ECharts-compatible options, including per-kind node styling, selection
highlighting and click payload parsing.
"""

from typing import Any, Dict, Optional

from nnviz.identifiers import NodeKind, parse_and_resolve
from nnviz.layout import Box
from nnviz.network import NeuralNetwork
from nnviz.propagation import VisualGraph


# Event keys we request from ECharts click events
REQUESTED_EVENT_KEYS = ['componentType', 'name', 'dataType', 'value']

BACKGROUND_COLOR = '#fafafa'
SELECTED_COLOR = 'lightcoral'
EDGE_COLOR = '#90a4ae'

KIND_COLORS = {
    NodeKind.INPUT: '#e3f2fd',
    NodeKind.HIDDEN: '#ede7f6',
    NodeKind.OUTPUT: '#e8f5e9',
    NodeKind.WEIGHT: '#fff8e1',
}


def format_value(value: float) -> str:
    """Short display form: at most 4 decimals, no trailing zeros."""
    text = f"{round(value, 4):.4f}".rstrip('0').rstrip('.')
    return '0' if text in ('-0', '') else text


def node_caption(kind: NodeKind, label: str, value: float) -> str:
    if kind == NodeKind.WEIGHT:
        return f"× {format_value(value)}"
    if kind == NodeKind.INPUT:
        return f"{label}\n{format_value(value)}"
    return f"{label}\n= {format_value(value)}"


def build_echart_options(
    graph: VisualGraph,
    boxes: Dict[str, Box],
    selected_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build ECharts options from a synthesized graph.

    Args:
        graph: Output of propagation.synthesize()
        boxes: Node id -> top-left anchored Box from the layout adapter
        selected_id: Currently selected node id; the node and every edge
            touching it are highlighted

    Returns:
        ECharts options dict ready for ui.echart()
    """
    e_nodes = []
    for n in graph.nodes:
        box = boxes.get(n.id)
        if box is None:
            continue
        cx, cy = box.center
        is_selected = n.id == selected_id
        e_nodes.append({
            'id': n.id,
            'name': n.id,
            'value': n.value,
            'x': cx,
            'y': cy,
            'symbol': 'roundRect' if n.kind != NodeKind.HIDDEN else 'circle',
            'symbolSize': [box.width, box.height] if n.kind != NodeKind.HIDDEN else box.width,
            'itemStyle': {
                'color': SELECTED_COLOR if is_selected else KIND_COLORS.get(n.kind, '#ffffff'),
                'borderColor': '#546e7a',
                'borderWidth': 1,
            },
            'label': {
                'show': True,
                'formatter': node_caption(n.kind, n.label, n.value),
                'fontSize': 16 if n.kind == NodeKind.INPUT else 13,
                'color': '#263238',
            },
            'tooltip': {'formatter': f"{n.label or n.kind.value}: {format_value(n.value)}"},
            'draggable': False,
        })

    e_links = []
    for e in graph.edges:
        touches_selection = selected_id is not None and selected_id in (e.source, e.target)
        e_links.append({
            'source': e.source,
            'target': e.target,
            'lineStyle': {
                'color': SELECTED_COLOR if touches_selection else EDGE_COLOR,
                'width': 8 if touches_selection else 1.5,
                'opacity': 1.0,
                'curveness': 0,
            },
            'tooltip': {'show': False},
        })

    return {
        'backgroundColor': BACKGROUND_COLOR,
        'tooltip': {},
        'animation': False,
        'series': [{
            'type': 'graph',
            'layout': 'none',
            'roam': True,
            'edgeSymbol': ['none', 'arrow'],
            'edgeSymbolSize': 8,
            'data': e_nodes,
            'links': e_links,
        }],
    }


def normalize_click_payload(raw_payload: Any) -> Dict[str, Any]:
    """Normalize NiceGUI chart click payloads into a dictionary for easier parsing."""
    if isinstance(raw_payload, dict):
        return raw_payload
    if isinstance(raw_payload, (list, tuple)):
        return {
            REQUESTED_EVENT_KEYS[i]: raw_payload[i]
            for i in range(min(len(raw_payload), len(REQUESTED_EVENT_KEYS)))
        }
    if isinstance(raw_payload, str):
        return {'name': raw_payload}
    return {}


def resolve_element_id_from_payload(payload: Dict[str, Any], network: NeuralNetwork) -> Optional[str]:
    """
    Return the clicked node id if the payload names a node that exists in
    `network`; None for background clicks, edges and unknown ids.
    """
    if not isinstance(payload, dict):
        return None
    if payload.get('componentType', 'series') != 'series':
        return None
    if payload.get('dataType') == 'edge':
        return None

    element_id = payload.get('name')
    if parse_and_resolve(network, element_id) is None:
        return None
    return element_id
