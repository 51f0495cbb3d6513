"""
Structural editor for the network model.

Translates one editing command into a complete new network. Every operation
either returns a new, validated network or hands back the input unchanged
(a no-op, e.g. removing the last node of a layer); nothing is ever modified
in place.

Layers are addressed by position: 0 is the input layer, k >= 1 is hidden
layer k - 1. The layer at position p owns the weights into position p + 1.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional, Sequence, Tuple, Union

from nnviz.config import EditorSettings
from nnviz.identifiers import (
    NodeKind,
    NodeRef,
    WeightRef,
    parse_and_resolve,
    resolve,
)
from nnviz.network import (
    HiddenNode,
    InputNode,
    NeuralNetwork,
    OutputNode,
    validate_network,
)

logger = logging.getLogger(__name__)


def _source_layer(network: NeuralNetwork, position: int):
    if position == 0:
        return network.input_layer
    return network.hidden_layers[position - 1]


def _with_source_layer(network: NeuralNetwork, position: int, nodes: Sequence) -> NeuralNetwork:
    nodes = tuple(nodes)
    if position == 0:
        return replace(network, input_layer=nodes)
    hidden = list(network.hidden_layers)
    hidden[position - 1] = nodes
    return replace(network, hidden_layers=tuple(hidden))


def _map_weights(network: NeuralNetwork, position: int,
                 fn: Callable[[Tuple[float, ...]], Sequence[float]]) -> NeuralNetwork:
    """Rewrite the weight vector of every node in the layer at `position`."""
    layer = _source_layer(network, position)
    return _with_source_layer(
        network, position, [replace(node, weights=tuple(fn(node.weights))) for node in layer]
    )


def _drop(index: int):
    return lambda weights: weights[:index] + weights[index + 1:]


class StructuralEditor:
    """
    Invariant-preserving edits on a NeuralNetwork.

    Newly created weights are filled with settings.default_weight; a new hidden
    layer has settings.hidden_layer_size nodes.
    """

    ACTIONS = (
        'add_input_node',
        'remove_input_node',
        'add_output_node',
        'remove_output_node',
        'add_hidden_layer',
        'remove_hidden_layer',
        'add_hidden_node',
        'remove_hidden_node',
        'update_value',
        'update_weight',
        'update_label',
    )

    def __init__(self, settings: Optional[EditorSettings] = None):
        self.settings = settings or EditorSettings()

    def _fill(self, count: int) -> Tuple[float, ...]:
        return (self.settings.default_weight,) * count

    @staticmethod
    def _commit(network: NeuralNetwork) -> NeuralNetwork:
        return validate_network(network)

    # --- Input layer ---

    def add_input_node(self, network: NeuralNetwork) -> NeuralNetwork:
        node = InputNode(
            label=self.settings.new_input_label,
            value=self.settings.new_input_value,
            weights=self._fill(network.next_layer_size(0)),
        )
        return self._commit(replace(network, input_layer=network.input_layer + (node,)))

    def remove_input_node(self, network: NeuralNetwork, index: int) -> NeuralNetwork:
        layer = network.input_layer
        if len(layer) <= 1 or not 0 <= index < len(layer):
            logger.debug(f"remove_input_node({index}) ignored: {len(layer)} input node(s)")
            return network
        return self._commit(replace(network, input_layer=layer[:index] + layer[index + 1:]))

    # --- Output layer ---

    def add_output_node(self, network: NeuralNetwork) -> NeuralNetwork:
        last = len(network.hidden_layers)
        fill = self.settings.default_weight
        updated = _map_weights(network, last, lambda w: w + (fill,))
        return self._commit(replace(
            updated,
            output_layer=network.output_layer + (OutputNode(self.settings.new_output_label),),
        ))

    def remove_output_node(self, network: NeuralNetwork, index: int) -> NeuralNetwork:
        layer = network.output_layer
        if len(layer) <= 1 or not 0 <= index < len(layer):
            logger.debug(f"remove_output_node({index}) ignored: {len(layer)} output node(s)")
            return network
        updated = _map_weights(network, len(network.hidden_layers), _drop(index))
        return self._commit(replace(updated, output_layer=layer[:index] + layer[index + 1:]))

    # --- Hidden layers ---

    def add_hidden_layer(self, network: NeuralNetwork) -> NeuralNetwork:
        """
        Append a hidden layer just before the output layer. The layer that fed
        the output is re-wired to the new layer with fresh default weights.
        """
        size = self.settings.hidden_layer_size
        rewired = _map_weights(network, len(network.hidden_layers), lambda _: self._fill(size))
        new_layer = tuple(HiddenNode(self._fill(len(network.output_layer))) for _ in range(size))
        return self._commit(replace(rewired, hidden_layers=rewired.hidden_layers + (new_layer,)))

    def remove_hidden_layer(self, network: NeuralNetwork, layer: int) -> NeuralNetwork:
        """
        Delete hidden layer `layer`; the layer before it is re-wired with fresh
        default weights to whatever now follows.
        """
        hidden = network.hidden_layers
        if not 0 <= layer < len(hidden):
            logger.debug(f"remove_hidden_layer({layer}) ignored: {len(hidden)} hidden layer(s)")
            return network
        trimmed = replace(network, hidden_layers=hidden[:layer] + hidden[layer + 1:])
        # the preceding layer sits at position `layer` both before and after the removal
        next_size = trimmed.next_layer_size(layer)
        return self._commit(_map_weights(trimmed, layer, lambda _: self._fill(next_size)))

    def add_hidden_node(self, network: NeuralNetwork, layer: int) -> NeuralNetwork:
        hidden = network.hidden_layers
        if not 0 <= layer < len(hidden):
            logger.debug(f"add_hidden_node({layer}) ignored: no such hidden layer")
            return network
        node = HiddenNode(self._fill(network.next_layer_size(layer + 1)))
        grown = _with_source_layer(network, layer + 1, hidden[layer] + (node,))
        fill = self.settings.default_weight
        return self._commit(_map_weights(grown, layer, lambda w: w + (fill,)))

    def remove_hidden_node(self, network: NeuralNetwork, layer: int, index: int) -> NeuralNetwork:
        hidden = network.hidden_layers
        if not 0 <= layer < len(hidden) or len(hidden[layer]) <= 1 or not 0 <= index < len(hidden[layer]):
            logger.debug(f"remove_hidden_node({layer}, {index}) ignored")
            return network
        nodes = hidden[layer]
        shrunk = _with_source_layer(network, layer + 1, nodes[:index] + nodes[index + 1:])
        return self._commit(_map_weights(shrunk, layer, _drop(index)))

    # --- Scalar edits ---

    def update_value(self, network: NeuralNetwork, index: int, value: float) -> NeuralNetwork:
        layer = network.input_layer
        if not 0 <= index < len(layer):
            logger.debug(f"update_value({index}) ignored: no such input node")
            return network
        nodes = list(layer)
        nodes[index] = replace(nodes[index], value=value)
        return self._commit(replace(network, input_layer=tuple(nodes)))

    def update_weight(self, network: NeuralNetwork, ref: Union[WeightRef, str], weight: float) -> NeuralNetwork:
        if isinstance(ref, str):
            ref = parse_and_resolve(network, ref)
        if not isinstance(ref, WeightRef) or not resolve(network, ref):
            logger.debug(f"update_weight({ref!r}) ignored: weight does not exist")
            return network
        position = 0 if ref.source_kind == NodeKind.INPUT else ref.layer + 1
        nodes = list(_source_layer(network, position))
        weights = list(nodes[ref.source].weights)
        weights[ref.target] = weight
        nodes[ref.source] = replace(nodes[ref.source], weights=tuple(weights))
        return self._commit(_with_source_layer(network, position, nodes))

    def update_label(self, network: NeuralNetwork, ref: Union[NodeRef, str], label: str) -> NeuralNetwork:
        if isinstance(ref, str):
            ref = parse_and_resolve(network, ref)
        if not isinstance(ref, NodeRef) or ref.kind == NodeKind.HIDDEN or not resolve(network, ref):
            logger.debug(f"update_label({ref!r}) ignored: only input/output nodes carry labels")
            return network
        if ref.kind == NodeKind.INPUT:
            nodes = list(network.input_layer)
            nodes[ref.index] = replace(nodes[ref.index], label=label)
            return self._commit(replace(network, input_layer=tuple(nodes)))
        nodes = list(network.output_layer)
        nodes[ref.index] = OutputNode(label)
        return self._commit(replace(network, output_layer=tuple(nodes)))

    # --- Command entry point ---

    def apply(self, network: NeuralNetwork, action: str, **params) -> NeuralNetwork:
        """
        Execute the named action, e.g. apply(net, 'remove_hidden_node', layer=0, index=2).
        """
        if action not in self.ACTIONS:
            raise ValueError(f"Unknown editor action: {action!r}")
        return getattr(self, action)(network, **params)
