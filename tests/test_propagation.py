import pytest

from nnviz.identifiers import NodeKind
from nnviz.network import HiddenNode, InputNode, NeuralNetwork, OutputNode, default_network
from nnviz.propagation import forward_pass, hidden_label, output_values, synthesize


def single_weight(value, weight):
    return NeuralNetwork(
        input_layer=(InputNode("x", value, (weight,)),),
        output_layer=(OutputNode("y"),),
    )


def test_single_weight_multiplies():
    assert output_values(single_weight(2.0, 3.0)) == [6.0]


def test_fan_in_sums_contributions():
    net = NeuralNetwork(
        input_layer=(
            InputNode("a", 1.0, (0.5,)),
            InputNode("b", 2.0, (0.25,)),
            InputNode("c", -4.0, (1.0,)),
        ),
        output_layer=(OutputNode("y"),),
    )
    assert output_values(net) == [1.0 * 0.5 + 2.0 * 0.25 - 4.0]


def test_hidden_layers_chain_linearly():
    net = NeuralNetwork(
        input_layer=(InputNode("a", 2.0, (1.0, 2.0)),),
        hidden_layers=(
            (HiddenNode((3.0,)), HiddenNode((-1.0,))),
        ),
        output_layer=(OutputNode("y"),),
    )
    values = forward_pass(net)
    assert values == [[2.0], [2.0, 4.0], [2.0 * 3.0 + 4.0 * -1.0]]


def test_default_network_outputs():
    spam, no_spam = output_values(default_network())
    assert spam == pytest.approx(1 * 0.2 + 0.4 * 0.7)
    assert no_spam == pytest.approx(1 * 0.1 + 0.4 * 0.8 + 3 * 0.1 + 3 * 0.1)


def test_synthesize_two_hops_per_weight():
    graph = synthesize(single_weight(2.0, 3.0))
    assert [n.id for n in graph.nodes] == ["input-0", "weight-io-0-0", "output-0"]
    assert [(e.source, e.target) for e in graph.edges] == [
        ("input-0", "weight-io-0-0"),
        ("weight-io-0-0", "output-0"),
    ]
    nodes = graph.node_map()
    assert nodes["weight-io-0-0"].value == 3.0
    assert nodes["weight-io-0-0"].label == "x"
    assert nodes["output-0"].value == 6.0
    assert graph.output_values == [6.0]


def test_synthesize_counts_and_order():
    net = default_network()
    graph = synthesize(net)
    weights = [n for n in graph.nodes if n.kind == NodeKind.WEIGHT]
    assert len(weights) == 6 * 2
    assert len(graph.edges) == 2 * len(weights)
    assert [n.id for n in graph.nodes[:3]] == ["input-0", "weight-io-0-0", "weight-io-0-1"]
    assert [n.kind for n in graph.nodes[-2:]] == [NodeKind.OUTPUT, NodeKind.OUTPUT]


def test_ports():
    net = NeuralNetwork(
        input_layer=(InputNode("a", 1.0, (1.0, 1.0, 1.0)), InputNode("b", 1.0, (1.0, 1.0, 1.0))),
        hidden_layers=((HiddenNode((1.0,)), HiddenNode((1.0,)), HiddenNode((1.0,))),),
        output_layer=(OutputNode("y"),),
    )
    graph = synthesize(net)
    nodes = graph.node_map()
    assert nodes["input-0"].port_count == 3
    assert nodes["hidden-0-1"].port_count == 2
    assert nodes["output-0"].port_count == 3
    assert nodes["weight-ih-1-2"].port_count == 1

    edges = {e.id: e for e in graph.edges}
    assert edges["link-ih-1-2-in"].source_port == 2
    assert edges["link-ih-1-2-out"].target_port == 1
    assert edges["link-ih-1-2-out"].target == "hidden-0-2"


def test_hidden_node_labels():
    assert hidden_label(0, 0) == "h1.1"
    assert hidden_label(1, 2) == "h2.3"


def test_to_networkx_is_acyclic():
    import networkx as nx

    G = synthesize(default_network()).to_networkx()
    assert nx.is_directed_acyclic_graph(G)
    assert G.number_of_nodes() == 6 + 12 + 2
    assert G.nodes["output-0"]["kind"] == NodeKind.OUTPUT


def test_weight_labels_follow_source_kind():
    net = NeuralNetwork(
        input_layer=(InputNode("a", 1.0, (1.0,)),),
        hidden_layers=((HiddenNode((2.0,)),),),
        output_layer=(OutputNode("y"),),
    )
    nodes = synthesize(net).node_map()
    assert nodes["weight-ih-0-0"].label == "a"
    assert nodes["hidden-0-0"].label == "h1.1"
    assert nodes["weight-ho-0-0-0"].label == ""
