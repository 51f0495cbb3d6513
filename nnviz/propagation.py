"""
Forward propagation and visual graph synthesis.

Values are computed with a single linear pass: each node's value is the sum of
source_value * weight over the previous layer. There is no bias term and no
activation function.

The synthesized graph gives every weight its own node so it can be shown and
edited on the canvas, which means each connection becomes two edges:

    source node --(port n)--> weight node --(port s)--> destination node

The graph is also exposed as a NetworkX DiGraph for the layout step.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import networkx as nx

from nnviz.identifiers import (
    Coordinate,
    LinkRef,
    NodeKind,
    NodeRef,
    weight_ref_for,
)
from nnviz.network import NeuralNetwork


@dataclass(frozen=True)
class VisualNode:
    id: str
    kind: NodeKind
    label: str
    value: float
    port_count: int
    ref: Coordinate


@dataclass(frozen=True)
class VisualEdge:
    id: str
    source: str
    target: str
    source_port: Optional[int] = None
    target_port: Optional[int] = None


@dataclass
class VisualGraph:
    """Renderable node/edge set plus the value vector of every layer."""
    nodes: List[VisualNode] = field(default_factory=list)
    edges: List[VisualEdge] = field(default_factory=list)
    layer_values: List[List[float]] = field(default_factory=list)

    @property
    def output_values(self) -> List[float]:
        return self.layer_values[-1] if self.layer_values else []

    def node_map(self) -> Dict[str, VisualNode]:
        return {n.id: n for n in self.nodes}

    def to_networkx(self) -> nx.DiGraph:
        G = nx.DiGraph()
        for n in self.nodes:
            G.add_node(n.id, kind=n.kind, label=n.label, value=n.value)
        for e in self.edges:
            G.add_edge(e.source, e.target, id=e.id)
        return G


def _source_layers(network: NeuralNetwork):
    """Every layer that carries weights, paired with its position (0 = input)."""
    yield 0, network.input_layer
    for li, layer in enumerate(network.hidden_layers):
        yield li + 1, layer


def forward_pass(network: NeuralNetwork) -> List[List[float]]:
    """
    Value vector of every layer, input first and output last.
    """
    prev_values = [float(n.value) for n in network.input_layer]
    values = [prev_values]
    for position, layer in _source_layers(network):
        acc = [0.0] * network.next_layer_size(position)
        for s, node in enumerate(layer):
            for n, weight in enumerate(node.weights):
                acc[n] += weight * prev_values[s]
        prev_values = acc
        values.append(acc)
    return values


def output_values(network: NeuralNetwork) -> List[float]:
    return forward_pass(network)[-1]


def hidden_label(layer: int, index: int) -> str:
    return f"h{layer + 1}.{index + 1}"


def synthesize(network: NeuralNetwork) -> VisualGraph:
    """
    Build the visual graph for a valid network.

    Node order follows the model: each source node is followed by its weight
    nodes, layer by layer, and the output nodes come last.
    """
    graph = VisualGraph()
    prev_values = [float(n.value) for n in network.input_layer]
    graph.layer_values.append(prev_values)
    incoming = 0

    for position, layer in _source_layers(network):
        acc = [0.0] * network.next_layer_size(position)

        for s, node in enumerate(layer):
            if position == 0:
                src_ref = NodeRef(NodeKind.INPUT, s)
                label = weight_label = node.label
                ports = len(node.weights)
            else:
                src_ref = NodeRef(NodeKind.HIDDEN, s, layer=position - 1)
                label = hidden_label(position - 1, s)
                weight_label = ""
                ports = incoming
            src_id = src_ref.to_id()
            graph.nodes.append(VisualNode(src_id, src_ref.kind, label, prev_values[s], ports, src_ref))

            for n, weight in enumerate(node.weights):
                acc[n] += weight * prev_values[s]

                w_ref = weight_ref_for(network, position, s, n)
                w_id = w_ref.to_id()
                graph.nodes.append(VisualNode(w_id, NodeKind.WEIGHT, weight_label, weight, 1, w_ref))

                graph.edges.append(VisualEdge(
                    LinkRef(w_ref, "in").to_id(), src_id, w_id, source_port=n,
                ))
                graph.edges.append(VisualEdge(
                    LinkRef(w_ref, "out").to_id(), w_id, w_ref.target_ref().to_id(), target_port=s,
                ))

        incoming = len(layer)
        prev_values = acc
        graph.layer_values.append(acc)

    for i, node in enumerate(network.output_layer):
        ref = NodeRef(NodeKind.OUTPUT, i)
        graph.nodes.append(VisualNode(ref.to_id(), NodeKind.OUTPUT, node.label, prev_values[i], incoming, ref))

    return graph
