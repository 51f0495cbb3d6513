"""
Layout adapter: assigns a 2D box to every node of the synthesized graph.

Node sizes come from a static table keyed by node kind. The actual layered
drawing is delegated to an external engine:

- "dot": Graphviz dot (left-to-right ranks), via the graphviz package.
- "layered": NetworkX topological generations, each generation ordered by the
  barycenter of its predecessors.

Engines return centre points; the adapter converts them into top-left anchored
boxes. Identical nodes, sizes and edges always give identical coordinates.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import graphviz
import networkx as nx

from nnviz.config import EditorSettings, LAYOUT_ENGINES
from nnviz.identifiers import NodeKind

logger = logging.getLogger(__name__)

# (width, height) in pixels
NODE_SIZES = {
    NodeKind.INPUT: (300, 180),
    NodeKind.OUTPUT: (170, 90),
    NodeKind.HIDDEN: (90, 90),
    NodeKind.WEIGHT: (170, 40),
}
DEFAULT_SIZE = (170, 90)

# Graphviz works in inches
POINTS_PER_INCH = 72.0


def size_for(kind) -> Tuple[int, int]:
    return NODE_SIZES.get(kind, DEFAULT_SIZE)


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


class LayoutAdapter:
    """
    Thin wrapper over a layered graph layout.

    Expected inputs are objects with `id`/`kind` (nodes) and `source`/`target`
    (edges), e.g. VisualNode and VisualEdge.
    """

    def __init__(self, engine: str = "dot", rank_sep: float = 150.0, node_sep: float = 20.0):
        if engine not in LAYOUT_ENGINES:
            raise ValueError(f"Unknown layout engine: {engine!r}")
        self.engine = engine
        self.rank_sep = rank_sep
        self.node_sep = node_sep

    @classmethod
    def from_settings(cls, settings: EditorSettings) -> "LayoutAdapter":
        return cls(engine=settings.layout_engine, rank_sep=settings.rank_sep, node_sep=settings.node_sep)

    def layout(self, nodes: Iterable, edges: Iterable) -> Dict[str, Box]:
        nodes = list(nodes)
        edges = list(edges)
        sizes = {n.id: size_for(n.kind) for n in nodes}
        if not sizes:
            return {}
        pairs = [(e.source, e.target) for e in edges if e.source in sizes and e.target in sizes]

        if self.engine == "dot":
            try:
                centers = self._dot_centers(sizes, pairs)
            except graphviz.ExecutableNotFound:
                logger.warning("Graphviz 'dot' executable not found, using the layered layout instead")
                centers = self._layered_centers(sizes, pairs)
        else:
            centers = self._layered_centers(sizes, pairs)

        boxes = {}
        for node_id, (cx, cy) in centers.items():
            width, height = sizes[node_id]
            boxes[node_id] = Box(cx - width / 2, cy - height / 2, width, height)
        return boxes

    def layout_graph(self, graph) -> Dict[str, Box]:
        """Layout a VisualGraph."""
        return self.layout(graph.nodes, graph.edges)

    # --- Graphviz dot ---

    def _dot_centers(self, sizes: Dict[str, Tuple[int, int]],
                     pairs: List[Tuple[str, str]]) -> Dict[str, Tuple[float, float]]:
        # ids contain '-', which dot would need quoted; use positional names instead
        names = {node_id: f"n{i}" for i, node_id in enumerate(sizes)}
        ids = {name: node_id for node_id, name in names.items()}

        dot = graphviz.Digraph(engine='dot')
        dot.attr(
            rankdir='LR',
            ranksep=f"{self.rank_sep / POINTS_PER_INCH:.4f}",
            nodesep=f"{self.node_sep / POINTS_PER_INCH:.4f}",
        )
        dot.attr('node', shape='box', fixedsize='true', label='')
        for node_id, (width, height) in sizes.items():
            dot.node(
                names[node_id],
                width=f"{width / POINTS_PER_INCH:.4f}",
                height=f"{height / POINTS_PER_INCH:.4f}",
            )
        for src, tgt in pairs:
            dot.edge(names[src], names[tgt])

        plain = dot.pipe(format='plain', encoding='utf-8')
        return self._parse_plain(plain, ids)

    @staticmethod
    def _parse_plain(plain: str, ids: Dict[str, str]) -> Dict[str, Tuple[float, float]]:
        """
        Read node centres from `dot -Tplain` output, flipping y so it grows downwards.

        Format: 'graph scale width height' then 'node name x y width height ...'.
        """
        graph_height = 0.0
        centers = {}
        for line in plain.splitlines():
            parts = line.split()
            if not parts:
                continue
            if parts[0] == 'graph':
                graph_height = float(parts[3])
            elif parts[0] == 'node' and parts[1] in ids:
                x = float(parts[2]) * POINTS_PER_INCH
                y = (graph_height - float(parts[3])) * POINTS_PER_INCH
                centers[ids[parts[1]]] = (x, y)
        return centers

    # --- NetworkX layered ---

    def _layered_centers(self, sizes: Dict[str, Tuple[int, int]],
                         pairs: List[Tuple[str, str]]) -> Dict[str, Tuple[float, float]]:
        G = nx.DiGraph()
        G.add_nodes_from(sizes)
        G.add_edges_from(pairs)
        insertion = {node_id: i for i, node_id in enumerate(sizes)}

        # ordinal of each placed node inside its generation, for barycenters
        slot: Dict[str, float] = {}
        ranks = []
        for gen_idx, generation in enumerate(nx.topological_generations(G)):
            if gen_idx == 0:
                ordered = sorted(generation, key=lambda n: insertion[n])
            else:
                def barycenter(node):
                    preds = [slot[p] for p in G.predecessors(node) if p in slot]
                    if not preds:
                        return float(insertion[node])
                    return sum(preds) / len(preds)
                ordered = sorted(generation, key=lambda n: (barycenter(n), insertion[n]))
            for i, node_id in enumerate(ordered):
                slot[node_id] = float(i)
            ranks.append(ordered)

        centers = {}
        x = 0.0
        for ordered in ranks:
            rank_width = max(sizes[n][0] for n in ordered)
            y = 0.0
            for node_id in ordered:
                height = sizes[node_id][1]
                centers[node_id] = (x + rank_width / 2, y + height / 2)
                y += height + self.node_sep
            x += rank_width + self.rank_sep

        # centre every rank on the tallest one
        tallest = max(
            sum(sizes[n][1] for n in ordered) + self.node_sep * (len(ordered) - 1)
            for ordered in ranks
        )
        for ordered in ranks:
            column = sum(sizes[n][1] for n in ordered) + self.node_sep * (len(ordered) - 1)
            offset = (tallest - column) / 2
            for node_id in ordered:
                cx, cy = centers[node_id]
                centers[node_id] = (cx, cy + offset)
        return centers
