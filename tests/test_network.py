import math

import pytest

from nnviz.network import (
    HiddenNode,
    InputNode,
    NeuralNetwork,
    OutputNode,
    ValidationError,
    default_network,
    network_from_dict,
    network_to_dict,
    validate_network,
)


def make_doc(**overrides):
    doc = {
        "inputLayer": [
            {"label": "a", "value": 1, "weights": [0.5]},
            {"label": "b", "value": 2, "weights": [0.5]},
        ],
        "hiddenLayers": [[{"weights": [1, 2]}]],
        "outputLayer": [{"label": "x"}, {"label": "y"}],
    }
    doc.update(overrides)
    return doc


def test_default_network_is_spam_filter():
    net = default_network()
    assert len(net.input_layer) == 6
    assert [n.label for n in net.output_layer] == ["Spam", "No spam"]
    assert net.hidden_layers == ()
    assert net.input_layer[1] == InputNode("Trusted sender", 0.4, (0.7, 0.8))
    assert net.layer_sizes() == [6, 2]


def test_next_layer_size_follows_positions():
    net = network_from_dict(make_doc())
    assert net.next_layer_size(0) == 1
    assert net.next_layer_size(1) == 2
    assert net.layer_sizes() == [2, 1, 2]


def test_from_dict_reads_document():
    net = network_from_dict(make_doc())
    assert net.input_layer[0] == InputNode("a", 1.0, (0.5,))
    assert net.hidden_layers == ((HiddenNode((1.0, 2.0)),),)
    assert net.output_layer == (OutputNode("x"), OutputNode("y"))


def test_missing_hidden_layers_means_none():
    doc = {
        "inputLayer": [{"label": "a", "value": 1, "weights": [0.1, 0.2]}],
        "outputLayer": [{"label": "x"}, {"label": "y"}],
    }
    net = network_from_dict(doc)
    assert net.hidden_layers == ()


def test_to_dict_always_has_hidden_layers():
    doc = network_to_dict(default_network())
    assert doc["hiddenLayers"] == []
    assert network_from_dict(doc) == default_network()


def test_weight_count_mismatch_names_layer_and_node():
    doc = make_doc(hiddenLayers=[[{"weights": [1]}]])
    with pytest.raises(ValidationError) as exc:
        network_from_dict(doc)
    assert exc.value.layer == "hidden 0"
    assert exc.value.node == 0


@pytest.mark.parametrize("doc", [
    [],
    {"inputLayer": [], "outputLayer": [{"label": "x"}]},
    {"inputLayer": [{"label": "a", "value": 1, "weights": []}], "outputLayer": []},
    make_doc(hiddenLayers=[[]]),
    make_doc(hiddenLayers={"0": []}),
    make_doc(inputLayer=[{"label": "a", "value": "1", "weights": [0.5]}]),
    make_doc(inputLayer=[{"label": "a", "value": True, "weights": [0.5]}]),
    make_doc(inputLayer=[{"label": 3, "value": 1, "weights": [0.5]}]),
    make_doc(outputLayer=[{"label": None}, {"label": "y"}]),
    make_doc(hiddenLayers=[[{"weights": ["1", 2]}]]),
    make_doc(hiddenLayers=[[{}]]),
])
def test_invalid_documents_rejected(doc):
    with pytest.raises(ValidationError):
        network_from_dict(doc)


def test_validate_rejects_non_finite_values():
    net = NeuralNetwork(
        input_layer=(InputNode("a", math.nan, (1.0,)),),
        output_layer=(OutputNode("x"),),
    )
    with pytest.raises(ValidationError):
        validate_network(net)

    net = NeuralNetwork(
        input_layer=(InputNode("a", 1.0, (math.inf,)),),
        output_layer=(OutputNode("x"),),
    )
    with pytest.raises(ValidationError):
        validate_network(net)


def test_missing_label_rejected():
    doc = make_doc(outputLayer=[{}, {"label": "y"}])
    with pytest.raises(ValidationError) as exc:
        network_from_dict(doc)
    assert (exc.value.layer, exc.value.node) == ("output", 0)

    doc = make_doc(inputLayer=[{"value": 1, "weights": [0.5]}, {"label": "b", "value": 2, "weights": [0.5]}])
    with pytest.raises(ValidationError) as exc:
        network_from_dict(doc)
    assert (exc.value.layer, exc.value.node) == ("input", 0)


def test_numbers_beyond_float_range_rejected():
    huge = 10 ** 400
    doc = make_doc(inputLayer=[
        {"label": "a", "value": 1, "weights": [0.5]},
        {"label": "b", "value": huge, "weights": [0.5]},
    ])
    with pytest.raises(ValidationError) as exc:
        network_from_dict(doc)
    assert (exc.value.layer, exc.value.node) == ("input", 1)

    doc = make_doc(hiddenLayers=[[{"weights": [1, huge]}]])
    with pytest.raises(ValidationError) as exc:
        network_from_dict(doc)
    assert (exc.value.layer, exc.value.node) == ("hidden 0", 0)

    net = NeuralNetwork(
        input_layer=(InputNode("a", huge, (1.0,)),),
        output_layer=(OutputNode("x"),),
    )
    with pytest.raises(ValidationError):
        validate_network(net)


def test_lists_are_not_valid_snapshots():
    with pytest.raises(ValidationError):
        validate_network(NeuralNetwork(
            input_layer=(InputNode("a", 1.0, [1.0]),),
            output_layer=(OutputNode("y"),),
        ))
    with pytest.raises(ValidationError):
        validate_network(NeuralNetwork(
            input_layer=[InputNode("a", 1.0, (1.0,))],
            output_layer=(OutputNode("y"),),
        ))
    with pytest.raises(ValidationError):
        validate_network(NeuralNetwork(
            input_layer=(InputNode("a", 1.0, (1.0,)),),
            hidden_layers=([HiddenNode((1.0,))],),
            output_layer=(OutputNode("y"),),
        ))


def test_wrong_node_types_rejected():
    with pytest.raises(ValidationError):
        validate_network(NeuralNetwork(
            input_layer=(OutputNode("a"),),
            output_layer=(OutputNode("y"),),
        ))


def test_validate_returns_network_unchanged():
    net = default_network()
    assert validate_network(net) is net


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        network_from_dict("not a document")
