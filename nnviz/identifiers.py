"""
Element identifiers for the synthesized graph.

Every visual node and edge id encodes the model coordinate it was built from,
and parse_id() turns an id coming back from the rendering host into a typed
coordinate. Weight ids carry a pair tag naming both endpoints' kinds, so an
input->output weight can never be mistaken for an input->hidden one:

    input-{i}                     input node i
    hidden-{L}-{n}                node n of hidden layer L
    output-{i}                    output node i
    weight-io-{s}-{d}             input s -> output d
    weight-ih-{s}-{d}             input s -> hidden layer 0, node d
    weight-hh-{L}-{s}-{d}         hidden L node s -> hidden L+1 node d
    weight-ho-{L}-{s}-{d}         hidden L node s -> output d
    link-{pair}-...-in            source node -> weight node
    link-{pair}-...-out           weight node -> destination node
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from nnviz.network import NetworkError, NeuralNetwork


class IdentifierParseError(NetworkError, ValueError):
    """An id does not follow the identifier grammar."""


class NodeKind(str, Enum):
    INPUT = "input"
    HIDDEN = "hidden"
    OUTPUT = "output"
    WEIGHT = "weight"


# pair tag -> (source kind, destination kind)
WEIGHT_PAIRS = {
    "io": (NodeKind.INPUT, NodeKind.OUTPUT),
    "ih": (NodeKind.INPUT, NodeKind.HIDDEN),
    "hh": (NodeKind.HIDDEN, NodeKind.HIDDEN),
    "ho": (NodeKind.HIDDEN, NodeKind.OUTPUT),
}

LINK_HOPS = ("in", "out")


@dataclass(frozen=True)
class NodeRef:
    """Input, hidden or output node. `layer` is set only for hidden nodes."""
    kind: NodeKind
    index: int
    layer: Optional[int] = None

    def to_id(self) -> str:
        if self.kind == NodeKind.HIDDEN:
            return f"hidden-{self.layer}-{self.index}"
        return f"{self.kind.value}-{self.index}"


@dataclass(frozen=True)
class WeightRef:
    """
    Weight from `source` to `target`. `layer` is the source hidden layer for
    'hh'/'ho' pairs and None for weights leaving the input layer.
    """
    pair: str
    source: int
    target: int
    layer: Optional[int] = None

    @property
    def source_kind(self) -> NodeKind:
        return WEIGHT_PAIRS[self.pair][0]

    @property
    def target_kind(self) -> NodeKind:
        return WEIGHT_PAIRS[self.pair][1]

    def _body(self) -> str:
        if self.layer is None:
            return f"{self.pair}-{self.source}-{self.target}"
        return f"{self.pair}-{self.layer}-{self.source}-{self.target}"

    def to_id(self) -> str:
        return f"weight-{self._body()}"

    def source_ref(self) -> NodeRef:
        if self.source_kind == NodeKind.INPUT:
            return NodeRef(NodeKind.INPUT, self.source)
        return NodeRef(NodeKind.HIDDEN, self.source, layer=self.layer)

    def target_ref(self) -> NodeRef:
        if self.target_kind == NodeKind.OUTPUT:
            return NodeRef(NodeKind.OUTPUT, self.target)
        hidden_layer = 0 if self.pair == "ih" else self.layer + 1
        return NodeRef(NodeKind.HIDDEN, self.target, layer=hidden_layer)


@dataclass(frozen=True)
class LinkRef:
    """One of the two edges around a weight node; hop is 'in' or 'out'."""
    weight: WeightRef
    hop: str

    def to_id(self) -> str:
        return f"link-{self.weight._body()}-{self.hop}"

    def endpoints(self):
        """(source id, target id) of this edge."""
        if self.hop == "in":
            return self.weight.source_ref().to_id(), self.weight.to_id()
        return self.weight.to_id(), self.weight.target_ref().to_id()


Coordinate = Union[NodeRef, WeightRef, LinkRef]


# --- Construction helpers ---

def weight_ref_for(network: NeuralNetwork, position: int, source: int, target: int) -> WeightRef:
    """
    WeightRef for the weight `target` of node `source` in the layer at
    `position` (0 = input layer, k = hidden layer k - 1).
    """
    n_hidden = len(network.hidden_layers)
    if position == 0:
        return WeightRef("ih" if n_hidden else "io", source, target)
    layer = position - 1
    pair = "hh" if position < n_hidden else "ho"
    return WeightRef(pair, source, target, layer=layer)


# --- Parsing ---

def _index(token: str, text: str) -> int:
    # canonical non-negative decimal only, so parse(format(x)) and format(parse(s)) agree
    if not (token.isascii() and token.isdigit()) or str(int(token)) != token:
        raise IdentifierParseError(f"invalid index {token!r} in id {text!r}")
    return int(token)


def _parse_weight_body(tokens: List[str], text: str) -> WeightRef:
    if not tokens or tokens[0] not in WEIGHT_PAIRS:
        raise IdentifierParseError(f"unknown weight pair in id {text!r}")
    pair, rest = tokens[0], tokens[1:]
    if pair in ("io", "ih"):
        if len(rest) != 2:
            raise IdentifierParseError(f"malformed weight id {text!r}")
        return WeightRef(pair, _index(rest[0], text), _index(rest[1], text))
    if len(rest) != 3:
        raise IdentifierParseError(f"malformed weight id {text!r}")
    return WeightRef(pair, _index(rest[1], text), _index(rest[2], text), layer=_index(rest[0], text))


def parse_id(text: str) -> Coordinate:
    """
    Parse an element id into its coordinate.

    Raises IdentifierParseError for anything outside the grammar. The result is
    not checked against a network; see resolve().
    """
    if not isinstance(text, str) or not text:
        raise IdentifierParseError(f"id must be a non-empty string, got {text!r}")
    head, *tokens = text.split("-")

    if head in (NodeKind.INPUT.value, NodeKind.OUTPUT.value):
        if len(tokens) != 1:
            raise IdentifierParseError(f"malformed node id {text!r}")
        return NodeRef(NodeKind(head), _index(tokens[0], text))
    if head == NodeKind.HIDDEN.value:
        if len(tokens) != 2:
            raise IdentifierParseError(f"malformed hidden node id {text!r}")
        return NodeRef(NodeKind.HIDDEN, _index(tokens[1], text), layer=_index(tokens[0], text))
    if head == NodeKind.WEIGHT.value:
        return _parse_weight_body(tokens, text)
    if head == "link":
        if not tokens or tokens[-1] not in LINK_HOPS:
            raise IdentifierParseError(f"malformed link id {text!r}")
        return LinkRef(_parse_weight_body(tokens[:-1], text), tokens[-1])

    raise IdentifierParseError(f"unknown id prefix {head!r} in {text!r}")


def try_parse_id(text) -> Optional[Coordinate]:
    """parse_id() that returns None instead of raising."""
    try:
        return parse_id(text)
    except IdentifierParseError:
        return None


# --- Resolution against a network ---

def _node_exists(network: NeuralNetwork, ref: NodeRef) -> bool:
    if ref.kind == NodeKind.INPUT:
        return 0 <= ref.index < len(network.input_layer)
    if ref.kind == NodeKind.OUTPUT:
        return 0 <= ref.index < len(network.output_layer)
    if ref.kind == NodeKind.HIDDEN:
        if ref.layer is None or not 0 <= ref.layer < len(network.hidden_layers):
            return False
        return 0 <= ref.index < len(network.hidden_layers[ref.layer])
    return False


def _weight_exists(network: NeuralNetwork, ref: WeightRef) -> bool:
    n_hidden = len(network.hidden_layers)
    if ref.pair == "io" and n_hidden:
        return False
    if ref.pair == "ih" and not n_hidden:
        return False
    if ref.pair == "hh" and (ref.layer is None or ref.layer + 1 >= n_hidden):
        return False
    if ref.pair == "ho" and ref.layer != n_hidden - 1:
        return False
    return _node_exists(network, ref.source_ref()) and _node_exists(network, ref.target_ref())


def resolve(network: NeuralNetwork, ref: Coordinate) -> bool:
    """True when `ref` addresses an existing node, weight or link of `network`."""
    if isinstance(ref, NodeRef):
        return _node_exists(network, ref)
    if isinstance(ref, WeightRef):
        return _weight_exists(network, ref)
    if isinstance(ref, LinkRef):
        return _weight_exists(network, ref.weight)
    return False


def parse_and_resolve(network: NeuralNetwork, text) -> Optional[Coordinate]:
    """Coordinate for `text` if it parses and exists in `network`, else None."""
    ref = try_parse_id(text)
    if ref is None or not resolve(network, ref):
        return None
    return ref
