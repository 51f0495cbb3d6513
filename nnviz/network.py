"""
Canonical network model for nnviz.

A network is an input layer, zero or more hidden layers and an output layer.
Every node outside the output layer carries one weight per node of the layer
that follows it. Snapshots are frozen dataclasses holding tuples, so an edit
always builds a new network instead of touching one a reader may still hold.

Serialized document format (bulk edit, persistence):
{
  "inputLayer": [{"label": "Links", "value": 3, "weights": [0.0, 0.1]}],
  "hiddenLayers": [[{"weights": [0.5, 0.5]}]],
  "outputLayer": [{"label": "Spam"}, {"label": "No spam"}]
}
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class NetworkError(Exception):
    """Base class for every error raised by the network core."""


class ValidationError(NetworkError, ValueError):
    """A network or document violates a structural invariant."""
    def __init__(self, message: str, layer: Optional[str] = None, node: Optional[int] = None):
        self.layer = layer
        self.node = node
        super().__init__(message)


@dataclass(frozen=True)
class InputNode:
    label: str
    value: float
    weights: Tuple[float, ...] = ()


@dataclass(frozen=True)
class HiddenNode:
    weights: Tuple[float, ...] = ()


@dataclass(frozen=True)
class OutputNode:
    label: str


@dataclass(frozen=True)
class NeuralNetwork:
    """Immutable snapshot of the whole network."""
    input_layer: Tuple[InputNode, ...]
    output_layer: Tuple[OutputNode, ...]
    hidden_layers: Tuple[Tuple[HiddenNode, ...], ...] = field(default=())

    def next_layer_size(self, position: int) -> int:
        """
        Size of the layer fed by the layer at `position`, where position 0 is
        the input layer and position k (k >= 1) is hidden layer k - 1.
        """
        if position < len(self.hidden_layers):
            return len(self.hidden_layers[position])
        return len(self.output_layer)

    def layer_sizes(self) -> List[int]:
        """Node count of every layer, input first and output last."""
        sizes = [len(self.input_layer)]
        sizes.extend(len(layer) for layer in self.hidden_layers)
        sizes.append(len(self.output_layer))
        return sizes


def _is_number(value: Any) -> bool:
    # bool is an int subclass; True is not a weight
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    if not _is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int beyond float range
        return False


def _check_weights(weights: Any, expected: int, layer: str, index: int) -> None:
    if not isinstance(weights, tuple):
        raise ValidationError(
            f"{layer} node {index} weights must be a tuple, got {type(weights).__name__}",
            layer=layer, node=index,
        )
    if len(weights) != expected:
        raise ValidationError(
            f"{layer} node {index} has {len(weights)} weights, expected {expected}",
            layer=layer, node=index,
        )
    for w in weights:
        if not _is_finite_number(w):
            raise ValidationError(
                f"{layer} node {index} has a non-finite or non-numeric weight: {w!r}",
                layer=layer, node=index,
            )


def _check_layer(nodes: Any, node_type: type, layer: str) -> None:
    if not isinstance(nodes, tuple):
        raise ValidationError(f"{layer} layer must be a tuple, got {type(nodes).__name__}", layer=layer)
    if not nodes:
        raise ValidationError(f"{layer} layer must contain at least one node", layer=layer)
    for i, node in enumerate(nodes):
        if not isinstance(node, node_type):
            raise ValidationError(
                f"{layer} node {i} must be a {node_type.__name__}, got {type(node).__name__}",
                layer=layer, node=i,
            )


def validate_network(network: NeuralNetwork) -> NeuralNetwork:
    """
    Check every invariant of the model and return the network unchanged.

    Layers and weight vectors must be tuples so the snapshot stays immutable.
    Raises ValidationError naming the first violating layer/node.
    """
    _check_layer(network.input_layer, InputNode, "input")
    _check_layer(network.output_layer, OutputNode, "output")
    if not isinstance(network.hidden_layers, tuple):
        raise ValidationError("hidden layers must be a tuple of layers", layer="hidden")
    for li, layer in enumerate(network.hidden_layers):
        _check_layer(layer, HiddenNode, f"hidden {li}")

    expected = network.next_layer_size(0)
    for i, node in enumerate(network.input_layer):
        if not isinstance(node.label, str):
            raise ValidationError(f"input node {i} label must be a string", layer="input", node=i)
        if not _is_finite_number(node.value):
            raise ValidationError(
                f"input node {i} has a non-finite or non-numeric value: {node.value!r}",
                layer="input", node=i,
            )
        _check_weights(node.weights, expected, "input", i)

    for li, layer in enumerate(network.hidden_layers):
        expected = network.next_layer_size(li + 1)
        for n, node in enumerate(layer):
            _check_weights(node.weights, expected, f"hidden {li}", n)

    for i, node in enumerate(network.output_layer):
        if not isinstance(node.label, str):
            raise ValidationError(f"output node {i} label must be a string", layer="output", node=i)

    return network


# --- Document conversion ---

def _require_list(doc: Dict[str, Any], key: str, where: str) -> List[Any]:
    value = doc.get(key)
    if not isinstance(value, list):
        raise ValidationError(f"{where}: '{key}' must be a list", layer=where)
    return value


def _require_label(raw: Dict[str, Any], layer: str, index: int) -> str:
    label = raw.get("label")
    if not isinstance(label, str):
        raise ValidationError(f"{layer} node {index}: 'label' must be a string", layer=layer, node=index)
    return label


def _to_float(value: Any, what: str, layer: str, index: int) -> float:
    if not _is_number(value):
        raise ValidationError(f"{layer} node {index}: {what} {value!r} is not a number", layer=layer, node=index)
    try:
        return float(value)
    except OverflowError as e:
        raise ValidationError(
            f"{layer} node {index}: {what} is too large for a float", layer=layer, node=index,
        ) from e


def _read_weights(raw: Dict[str, Any], layer: str, index: int) -> Tuple[float, ...]:
    weights = raw.get("weights")
    if not isinstance(weights, list):
        raise ValidationError(f"{layer} node {index}: 'weights' must be a list", layer=layer, node=index)
    return tuple(_to_float(w, "weight", layer, index) for w in weights)


def network_from_dict(doc: Any) -> NeuralNetwork:
    """
    Build and validate a NeuralNetwork from a parsed JSON document.

    A missing 'hiddenLayers' key is read as no hidden layers. Input and output
    nodes must carry a string 'label'.
    """
    if not isinstance(doc, dict):
        raise ValidationError("network document must be a JSON object")

    inputs = []
    for i, raw in enumerate(_require_list(doc, "inputLayer", "input")):
        if not isinstance(raw, dict):
            raise ValidationError(f"input node {i} must be an object", layer="input", node=i)
        inputs.append(InputNode(
            label=_require_label(raw, "input", i),
            value=_to_float(raw.get("value"), "value", "input", i),
            weights=_read_weights(raw, "input", i),
        ))

    hidden = []
    raw_hidden = doc.get("hiddenLayers")
    if raw_hidden is None:
        raw_hidden = []
    if not isinstance(raw_hidden, list):
        raise ValidationError("'hiddenLayers' must be a list of layers", layer="hidden")
    for li, raw_layer in enumerate(raw_hidden):
        if not isinstance(raw_layer, list):
            raise ValidationError(f"hidden layer {li} must be a list", layer=f"hidden {li}")
        layer = []
        for n, raw in enumerate(raw_layer):
            if not isinstance(raw, dict):
                raise ValidationError(f"hidden {li} node {n} must be an object", layer=f"hidden {li}", node=n)
            layer.append(HiddenNode(weights=_read_weights(raw, f"hidden {li}", n)))
        hidden.append(tuple(layer))

    outputs = []
    for i, raw in enumerate(_require_list(doc, "outputLayer", "output")):
        if not isinstance(raw, dict):
            raise ValidationError(f"output node {i} must be an object", layer="output", node=i)
        outputs.append(OutputNode(label=_require_label(raw, "output", i)))

    return validate_network(NeuralNetwork(
        input_layer=tuple(inputs),
        hidden_layers=tuple(hidden),
        output_layer=tuple(outputs),
    ))




def network_to_dict(network: NeuralNetwork) -> Dict[str, Any]:
    """Serialize a network into the document format (always includes 'hiddenLayers')."""
    return {
        "inputLayer": [
            {"label": n.label, "value": n.value, "weights": list(n.weights)}
            for n in network.input_layer
        ],
        "hiddenLayers": [
            [{"weights": list(n.weights)} for n in layer]
            for layer in network.hidden_layers
        ],
        "outputLayer": [{"label": n.label} for n in network.output_layer],
    }


def default_network() -> NeuralNetwork:
    """Spam-filter example shown on first start and after a failed decode."""
    inputs = (
        InputNode("Number of recipients", 1.0, (0.2, 0.1)),
        InputNode("Trusted sender", 0.4, (0.7, 0.8)),
        InputNode("Number of links", 3.0, (0.0, 0.1)),
        InputNode("Words in subject", 3.0, (0.0, 0.1)),
        InputNode("Emojis in subject", 0.0, (0.0, 0.1)),
        InputNode("Text contains recipient name", 0.0, (0.0, 0.1)),
    )
    outputs = (OutputNode("Spam"), OutputNode("No spam"))
    return validate_network(NeuralNetwork(input_layer=inputs, output_layer=outputs))
